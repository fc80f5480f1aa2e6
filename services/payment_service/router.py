"""Payment endpoints.

Intents and confirmation accept either a bearer token (the order's owner) or,
for guest orders, the email the order was placed with. The webhook is public
and authenticated by the provider's signature alone.
"""
from fastapi import APIRouter, Depends, Header, Request
from sqlalchemy.ext.asyncio import AsyncSession

from services.order_service.schemas import OrderResponse
from shared.config.database import get_db
from shared.security.dependencies import get_optional_user

from .schemas import PaymentConfirm, PaymentIntentCreate, PaymentIntentResponse, WebhookAck
from .service import PaymentService

router = APIRouter(prefix="/payments", tags=["Payments"])


def _int_or_none(user_id: str | None) -> int | None:
    return int(user_id) if user_id is not None else None


@router.post("/intents", response_model=PaymentIntentResponse)
async def create_payment_intent(
    payload: PaymentIntentCreate,
    user_id: str | None = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db),
):
    return await PaymentService.create_intent(db, payload.order_id, _int_or_none(user_id), payload.email)


@router.post("/confirm", response_model=OrderResponse)
async def confirm_payment(
    payload: PaymentConfirm,
    user_id: str | None = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db),
):
    return await PaymentService.confirm_payment(db, payload.order_id, _int_or_none(user_id), payload.email)


@router.post("/webhook", response_model=WebhookAck)
async def payment_webhook(
    request: Request,
    stripe_signature: str | None = Header(default=None, alias="Stripe-Signature"),
    db: AsyncSession = Depends(get_db),
):
    payload = await request.body()
    await PaymentService.handle_webhook(db, payload, stripe_signature)
    return {"received": True}
