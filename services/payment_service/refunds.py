"""Refund processor.

Provider first, database second: if the provider refuses, nothing local
changes and the provider's message goes back to the admin.
"""
from decimal import Decimal

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from services.notification_service.queue import get_notifier
from services.notification_service.templates import refund_notification
from services.order_service.models import Order
from services.order_service.pricing import to_minor_units, to_money
from services.order_service.repository import OrderRepository
from services.order_service.status import Actor, OrderStatus, PaymentStatus, apply_transition, check_transition
from shared.errors import NotFoundError, PaymentProviderError, ValidationError
from shared.observability.metrics import ecomm_order_transitions_total, ecomm_refunds_total
from shared.utils import utcnow

from .gateway import get_gateway

logger = structlog.get_logger(__name__)


class RefundService:

    @staticmethod
    async def refund_order(
        db: AsyncSession, order_id: int, amount: Decimal | None = None, reason: str | None = None
    ) -> Order:
        order = await OrderRepository.get_order_for_update(db, order_id)
        if order is None:
            raise NotFoundError("Order not found")

        try:
            refund_amount = RefundService._validate(order, amount)
        except ValidationError:
            await db.rollback()
            ecomm_refunds_total.labels(status="rejected").inc()
            raise

        try:
            result = await get_gateway().create_refund(
                order.payment_intent_id,
                to_minor_units(refund_amount),
                reason=reason,
                metadata={"order_id": str(order.id), "order_number": order.order_number},
            )
        except PaymentProviderError as e:
            await db.rollback()
            ecomm_refunds_total.labels(status="failed").inc()
            logger.warning("refund_failed", order_number=order.order_number, error=e.message)
            raise

        now = utcnow()
        previous = apply_transition(order, OrderStatus.REFUNDED, Actor.SYSTEM)
        order.payment_status = PaymentStatus.REFUNDED.value
        order.refund_amount = refund_amount
        order.refund_reason = reason
        order.refund_reference = result.id
        order.refunded_at = now
        order.updated_at = now
        await db.commit()

        ecomm_refunds_total.labels(status="success").inc()
        if previous is not None:
            ecomm_order_transitions_total.labels(from_status=previous, to_status=OrderStatus.REFUNDED.value).inc()
        logger.info(
            "order_refunded",
            order_number=order.order_number,
            amount=str(refund_amount),
            refund_reference=result.id,
        )
        get_notifier().enqueue(refund_notification(order))
        return order

    @staticmethod
    def _validate(order: Order, amount: Decimal | None) -> Decimal:
        """Everything that must hold before the provider is called."""
        if order.payment_status != PaymentStatus.COMPLETED.value:
            raise ValidationError("Only orders with a completed payment can be refunded")
        if not order.payment_intent_id:
            raise ValidationError("Order has no payment to refund")
        check_transition(order.status, OrderStatus.REFUNDED, Actor.SYSTEM)

        total = to_money(order.total_amount)
        if amount is None:
            return total
        amount = to_money(amount)
        if amount <= 0 or amount > total:
            raise ValidationError(f"Refund amount must be greater than 0 and at most {total}")
        return amount
