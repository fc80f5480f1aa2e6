import asyncio
import json

import stripe
import structlog

from shared.errors import PaymentProviderError, WebhookVerificationError

from .port import PaymentGateway, PaymentIntentResult, RefundResult

logger = structlog.get_logger(__name__)


def _intent_result(intent) -> PaymentIntentResult:
    last_error = getattr(intent, "last_payment_error", None)
    return PaymentIntentResult(
        id=intent.id,
        status=intent.status,
        amount=intent.amount,
        currency=intent.currency,
        client_secret=getattr(intent, "client_secret", None),
        failure_message=getattr(last_error, "message", None) if last_error else None,
    )


class StripeGateway(PaymentGateway):
    """stripe-python adapter. SDK calls block, so they run in a worker thread."""

    def __init__(self, api_key: str, webhook_secret: str) -> None:
        self.api_key = api_key
        self.webhook_secret = webhook_secret

    async def _call(self, operation: str, fn, *args, **params):
        try:
            return await asyncio.to_thread(fn, *args, api_key=self.api_key, **params)
        except stripe.StripeError as e:
            logger.warning("stripe_error", operation=operation, code=e.code, message=str(e))
            raise PaymentProviderError(e.user_message or str(e)) from e

    async def create_payment_intent(
        self,
        amount: int,
        currency: str,
        idempotency_key: str,
        metadata: dict,
        description: str | None = None,
    ) -> PaymentIntentResult:
        intent = await self._call(
            "create_payment_intent",
            stripe.PaymentIntent.create,
            amount=amount,
            currency=currency,
            automatic_payment_methods={"enabled": True},
            metadata=metadata,
            description=description,
            idempotency_key=idempotency_key,
        )
        return _intent_result(intent)

    async def retrieve_payment_intent(self, payment_intent_id: str) -> PaymentIntentResult:
        intent = await self._call("retrieve_payment_intent", stripe.PaymentIntent.retrieve, payment_intent_id)
        return _intent_result(intent)

    async def create_refund(
        self,
        payment_intent_id: str,
        amount: int,
        reason: str | None = None,
        metadata: dict | None = None,
    ) -> RefundResult:
        # Stripe only accepts its own reason codes; the admin's text goes in metadata
        metadata = dict(metadata or {})
        if reason:
            metadata["reason"] = reason[:500]
        refund = await self._call(
            "create_refund",
            stripe.Refund.create,
            payment_intent=payment_intent_id,
            amount=amount,
            reason="requested_by_customer",
            metadata=metadata,
        )
        return RefundResult(id=refund.id, status=refund.status, amount=refund.amount)

    def parse_webhook(self, payload: bytes, signature: str | None) -> dict:
        if not signature:
            raise WebhookVerificationError("Missing Stripe-Signature header")
        try:
            text = payload.decode("utf-8")
            event = json.loads(text)
        except ValueError:
            raise WebhookVerificationError("Invalid payload") from None
        try:
            stripe.WebhookSignature.verify_header(text, signature, self.webhook_secret)
        except stripe.SignatureVerificationError:
            raise WebhookVerificationError("Invalid signature") from None
        return event
