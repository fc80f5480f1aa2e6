from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, EmailStr, Field, field_validator


class Address(BaseModel):
    first_name: str = Field(min_length=1)
    last_name: str = Field(min_length=1)
    email: EmailStr
    phone: Optional[str] = None
    address1: str = Field(min_length=1)
    address2: Optional[str] = None
    city: str = Field(min_length=1)
    state: str = Field(min_length=1)
    zip_code: str = Field(min_length=1)
    country: str = Field(min_length=1)

    @field_validator("*", mode="before")
    @classmethod
    def strip_strings(cls, value):
        # "   " is as missing as ""
        return value.strip() if isinstance(value, str) else value


class CheckoutItem(BaseModel):
    product_id: int
    quantity: int = Field(ge=1)


class CheckoutCreate(BaseModel):
    items: List[CheckoutItem] = []  # empty: use the signed-in user's cart
    shipping_address: Address
    billing_address: Optional[Address] = None
    email: Optional[EmailStr] = None  # required for guest checkout
    payment_method: Optional[str] = None


class OrderItemResponse(BaseModel):
    id: int
    product_id: Optional[int]
    product_name: str
    product_sku: Optional[str]
    product_image: Optional[str]
    unit_price: float
    quantity: int
    total_price: float

    class Config:
        from_attributes = True


class OrderResponse(BaseModel):
    id: int
    order_number: str
    checkout_id: str
    user_id: Optional[int]
    email: str
    store_id: int
    status: str
    status_label: str
    payment_status: str
    subtotal: float
    shipping_cost: float
    tax_amount: float
    total_amount: float
    refund_amount: Optional[float]
    refund_reason: Optional[str]
    refunded_at: Optional[datetime]
    tracking_number: Optional[str]
    shipping_address: dict
    billing_address: dict
    total_items: int
    items: List[OrderItemResponse]
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class AdminOrderResponse(OrderResponse):
    payment_intent_id: Optional[str]
    payment_attempts: int
    refund_reference: Optional[str]
    fulfilled_at: Optional[datetime]
    cancelled_at: Optional[datetime]
    notes: Optional[str]
    allowed_statuses: List[str]


class CheckoutResponse(BaseModel):
    checkout_id: str
    orders: List[OrderResponse]


class PageMeta(BaseModel):
    current_page: int
    per_page: int
    total_count: int
    total_pages: int


class OrderPage(BaseModel):
    data: List[OrderResponse]
    meta: PageMeta


class AdminOrderPage(BaseModel):
    data: List[AdminOrderResponse]
    meta: PageMeta


class StatusUpdate(BaseModel):
    status: str  # validated by the state machine so unknown values get a clear message
    tracking_number: Optional[str] = None


class RefundRequest(BaseModel):
    amount: Optional[Decimal] = Field(default=None, gt=0, max_digits=10, decimal_places=2)
    reason: Optional[str] = Field(default=None, max_length=500)


class DailyCount(BaseModel):
    date: str
    count: int


class TopStore(BaseModel):
    id: int
    name: str
    order_count: int


class OrderStats(BaseModel):
    total_orders: int
    total_revenue: float
    recent_orders: int
    recent_revenue: float
    status_breakdown: dict[str, int]
    payment_status_breakdown: dict[str, int]
    daily_orders: List[DailyCount]
    top_stores: List[TopStore]
