from typing import Optional

from pydantic import BaseModel, EmailStr


class PaymentIntentCreate(BaseModel):
    order_id: int
    email: Optional[EmailStr] = None  # guest orders: the email used at checkout


class PaymentConfirm(BaseModel):
    order_id: int
    email: Optional[EmailStr] = None


class PaymentIntentResponse(BaseModel):
    client_secret: Optional[str]
    payment_intent_id: str
    order_number: str
    amount: int  # minor units
    currency: str


class WebhookAck(BaseModel):
    received: bool = True
