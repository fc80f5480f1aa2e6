"""Payment coordinator.

Payment state only ever changes on the provider's word: either a verified
webhook or a server-side lookup of the intent. The client is never trusted to
report a payment's outcome.
"""
import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from services.notification_service.queue import get_notifier
from services.notification_service.templates import order_status_update, refund_notification
from services.order_service.models import Order
from services.order_service.pricing import from_minor_units, to_minor_units
from services.order_service.repository import OrderRepository
from services.order_service.status import (
    Actor,
    OrderStatus,
    PaymentStatus,
    apply_transition,
    can_transition,
)
from shared.config import settings
from shared.errors import NotFoundError, ValidationError
from shared.observability.metrics import ecomm_order_transitions_total, ecomm_payment_events_total
from shared.utils import utcnow

from .gateway import PaymentIntentResult, get_gateway

logger = structlog.get_logger(__name__)

# Provider intent statuses that can still be paid
OPEN_INTENT_STATUSES = frozenset({"requires_payment_method", "requires_confirmation", "requires_action"})
FAILED_INTENT_STATUSES = frozenset({"requires_payment_method", "canceled"})


def _visible_to(order: Order, user_id: int | None, email: str | None) -> bool:
    if order.user_id is not None:
        return user_id is not None and order.user_id == user_id
    return email is not None and order.email.lower() == email.strip().lower()


class PaymentService:

    @staticmethod
    async def _order_for_caller(db: AsyncSession, order_id: int, user_id: int | None, email: str | None) -> Order:
        order = await OrderRepository.get_order_for_update(db, order_id)
        if order is None or not _visible_to(order, user_id, email):
            raise NotFoundError("Order not found")
        return order

    @staticmethod
    async def create_intent(
        db: AsyncSession, order_id: int, user_id: int | None = None, email: str | None = None
    ) -> dict:
        order = await PaymentService._order_for_caller(db, order_id, user_id, email)
        if order.status != OrderStatus.PENDING.value or order.payment_status not in (
            PaymentStatus.PENDING.value,
            PaymentStatus.FAILED.value,
        ):
            await db.rollback()
            raise ValidationError("Order cannot be paid")

        gateway = get_gateway()
        amount = to_minor_units(order.total_amount)
        intent = None
        try:
            if order.payment_intent_id:
                existing = await gateway.retrieve_payment_intent(order.payment_intent_id)
                if existing.status in OPEN_INTENT_STATUSES and existing.amount == amount:
                    intent = existing

            attempt = order.payment_attempts + 1
            if intent is None:
                intent = await gateway.create_payment_intent(
                    amount=amount,
                    currency=settings.PAYMENT_CURRENCY,
                    idempotency_key=f"{order.order_number}:{attempt}",
                    metadata={
                        "order_id": str(order.id),
                        "order_number": order.order_number,
                        "checkout_id": order.checkout_id,
                    },
                    description=f"Order {order.order_number}",
                )
        except Exception:
            await db.rollback()
            raise

        if intent.id != order.payment_intent_id:
            order.payment_intent_id = intent.id
            order.payment_attempts = attempt
        order.payment_status = PaymentStatus.PENDING.value
        order.updated_at = utcnow()
        await db.commit()

        logger.info(
            "payment_intent_ready",
            order_number=order.order_number,
            payment_intent_id=intent.id,
            amount=intent.amount,
            attempt=order.payment_attempts,
        )
        return {
            "client_secret": intent.client_secret,
            "payment_intent_id": intent.id,
            "order_number": order.order_number,
            "amount": intent.amount,
            "currency": intent.currency,
        }

    @staticmethod
    async def confirm_payment(
        db: AsyncSession, order_id: int, user_id: int | None = None, email: str | None = None
    ) -> Order:
        """Reconcile an order with what the provider says about its intent."""
        order = await PaymentService._order_for_caller(db, order_id, user_id, email)
        if not order.payment_intent_id:
            await db.rollback()
            raise ValidationError("No payment has been started for this order")

        try:
            intent = await get_gateway().retrieve_payment_intent(order.payment_intent_id)
        except Exception:
            await db.rollback()
            raise

        if intent.status == "succeeded":
            outcome, previous = PaymentService._mark_paid(order, intent)
        elif intent.status == "processing":
            outcome, previous = PaymentService._mark_processing(order), None
        elif intent.status in FAILED_INTENT_STATUSES:
            outcome, previous = PaymentService._mark_failed(order, intent.failure_message), None
        else:
            outcome, previous = "ignored", None

        await db.commit()
        PaymentService._after_commit(order, "confirm", outcome, previous)
        return order

    @staticmethod
    async def handle_webhook(db: AsyncSession, payload: bytes, signature: str | None) -> None:
        event = get_gateway().parse_webhook(payload, signature)
        event_type = event.get("type")
        obj = (event.get("data") or {}).get("object") or {}

        if event_type == "charge.refunded":
            await PaymentService._handle_charge_refunded(db, obj)
            return
        if event_type not in (
            "payment_intent.succeeded",
            "payment_intent.processing",
            "payment_intent.payment_failed",
        ):
            logger.info("webhook_ignored", event_type=event_type, event_id=event.get("id"))
            return

        order = await OrderRepository.get_by_payment_intent(db, obj.get("id"))
        if order is None:
            logger.warning("webhook_unknown_intent", event_type=event_type, payment_intent_id=obj.get("id"))
            await db.rollback()
            return

        intent = PaymentIntentResult(
            id=obj["id"],
            status=obj.get("status") or "",
            amount=obj.get("amount") or 0,
            currency=obj.get("currency") or settings.PAYMENT_CURRENCY,
            failure_message=(obj.get("last_payment_error") or {}).get("message"),
        )
        previous = None
        if event_type == "payment_intent.succeeded":
            outcome, previous = PaymentService._mark_paid(order, intent)
        elif event_type == "payment_intent.processing":
            outcome = PaymentService._mark_processing(order)
        else:
            outcome = PaymentService._mark_failed(order, intent.failure_message)

        await db.commit()
        PaymentService._after_commit(order, "webhook", outcome, previous)

    # --- Reconciliation steps; callers commit ---

    @staticmethod
    def _mark_paid(order: Order, intent: PaymentIntentResult) -> tuple[str, str | None]:
        if order.payment_status in (PaymentStatus.COMPLETED.value, PaymentStatus.REFUNDED.value):
            return "duplicate", None
        if intent.amount != to_minor_units(order.total_amount):
            logger.error(
                "payment_amount_mismatch",
                order_number=order.order_number,
                payment_intent_id=intent.id,
                intent_amount=intent.amount,
                order_amount=to_minor_units(order.total_amount),
            )
            return "amount_mismatch", None

        order.payment_status = PaymentStatus.COMPLETED.value
        order.updated_at = utcnow()
        if order.status == OrderStatus.CANCELLED.value:
            # Money arrived after the order was cancelled; it stays cancelled for an admin refund
            order.notes = "Payment received after cancellation; refund required"
            logger.warning("payment_for_cancelled_order", order_number=order.order_number)
            return "completed_after_cancel", None
        if order.status == OrderStatus.PENDING.value:
            return "completed", apply_transition(order, OrderStatus.CONFIRMED, Actor.SYSTEM)
        return "completed", None

    @staticmethod
    def _mark_processing(order: Order) -> str:
        if order.payment_status not in (PaymentStatus.PENDING.value, PaymentStatus.FAILED.value):
            return "ignored"
        order.payment_status = PaymentStatus.PROCESSING.value
        order.updated_at = utcnow()
        return "processing"

    @staticmethod
    def _mark_failed(order: Order, message: str | None) -> str:
        # A late failure event must not undo a completed payment
        if order.payment_status in (PaymentStatus.COMPLETED.value, PaymentStatus.REFUNDED.value):
            return "ignored"
        order.payment_status = PaymentStatus.FAILED.value
        order.notes = f"Payment failed: {message}" if message else "Payment failed"
        order.updated_at = utcnow()
        return "failed"

    @staticmethod
    async def _handle_charge_refunded(db: AsyncSession, charge: dict) -> None:
        order = await OrderRepository.get_by_payment_intent(db, charge.get("payment_intent"))
        if order is None:
            logger.warning(
                "webhook_unknown_intent",
                event_type="charge.refunded",
                payment_intent_id=charge.get("payment_intent"),
            )
            await db.rollback()
            return
        if order.payment_status == PaymentStatus.REFUNDED.value:
            # Already recorded by the refund endpoint
            await db.commit()
            ecomm_payment_events_total.labels(source="webhook", outcome="duplicate").inc()
            return

        amount_refunded = charge.get("amount_refunded") or 0
        previous = None
        now = utcnow()
        if amount_refunded >= (charge.get("amount") or 0):
            if can_transition(order.status, OrderStatus.REFUNDED, Actor.SYSTEM):
                previous = apply_transition(order, OrderStatus.REFUNDED, Actor.SYSTEM)
            order.payment_status = PaymentStatus.REFUNDED.value
            order.refund_amount = from_minor_units(amount_refunded)
            order.refund_reason = order.refund_reason or "Refunded with the payment provider"
            order.refunded_at = now
            outcome = "refunded"
        else:
            order.notes = f"Partial refund: ${amount_refunded / 100:.2f}"
            outcome = "partial_refund"
        order.updated_at = now
        await db.commit()

        PaymentService._after_commit(order, "webhook", outcome, previous)
        if outcome == "refunded":
            get_notifier().enqueue(refund_notification(order))

    @staticmethod
    def _after_commit(order: Order, source: str, outcome: str, previous: str | None) -> None:
        ecomm_payment_events_total.labels(source=source, outcome=outcome).inc()
        logger.info("payment_reconciled", order_number=order.order_number, source=source, outcome=outcome)
        if previous is not None:
            ecomm_order_transitions_total.labels(from_status=previous, to_status=order.status).inc()
            if order.status != OrderStatus.REFUNDED.value:
                get_notifier().enqueue(order_status_update(order, previous))
