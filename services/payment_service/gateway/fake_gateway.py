"""Configurable in-process payment gateway for development and tests.

Intents live in memory. Tests drive them through their lifecycle with
``succeed`` and ``fail``, and build webhook payloads with ``event``.
Webhook signatures are accepted only when equal to ``TEST_SIGNATURE``.
"""
import json
from uuid import uuid4

from shared.errors import PaymentProviderError, WebhookVerificationError

from .port import PaymentGateway, PaymentIntentResult, RefundResult

TEST_SIGNATURE = "test-signature"


class FakeGateway(PaymentGateway):

    def __init__(self) -> None:
        self.should_succeed: bool = True
        self.failure_reason: str = "Your card was declined."
        self.intents: dict[str, dict] = {}
        self.refunds: list[dict] = []
        self.calls: list[dict] = []
        self._by_idempotency_key: dict[str, str] = {}

    def configure(self, should_succeed: bool, failure_reason: str = "Your card was declined.") -> None:
        """Configure gateway behavior at runtime."""
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason

    def _check(self) -> None:
        if not self.should_succeed:
            raise PaymentProviderError(self.failure_reason)

    def _result(self, intent: dict) -> PaymentIntentResult:
        return PaymentIntentResult(**intent)

    async def create_payment_intent(
        self,
        amount: int,
        currency: str,
        idempotency_key: str,
        metadata: dict,
        description: str | None = None,
    ) -> PaymentIntentResult:
        self.calls.append(
            {
                "method": "create_payment_intent",
                "amount": amount,
                "currency": currency,
                "idempotency_key": idempotency_key,
                "metadata": metadata,
            }
        )
        self._check()

        # Same key, same intent, like the real provider
        if idempotency_key in self._by_idempotency_key:
            return self._result(self.intents[self._by_idempotency_key[idempotency_key]])

        intent_id = f"pi_fake_{uuid4().hex[:16]}"
        self.intents[intent_id] = {
            "id": intent_id,
            "status": "requires_payment_method",
            "amount": amount,
            "currency": currency,
            "client_secret": f"{intent_id}_secret_{uuid4().hex[:8]}",
            "failure_message": None,
        }
        self._by_idempotency_key[idempotency_key] = intent_id
        return self._result(self.intents[intent_id])

    async def retrieve_payment_intent(self, payment_intent_id: str) -> PaymentIntentResult:
        self.calls.append({"method": "retrieve_payment_intent", "payment_intent_id": payment_intent_id})
        self._check()
        if payment_intent_id not in self.intents:
            raise PaymentProviderError(f"No such payment_intent: '{payment_intent_id}'")
        return self._result(self.intents[payment_intent_id])

    async def create_refund(
        self,
        payment_intent_id: str,
        amount: int,
        reason: str | None = None,
        metadata: dict | None = None,
    ) -> RefundResult:
        self.calls.append(
            {
                "method": "create_refund",
                "payment_intent_id": payment_intent_id,
                "amount": amount,
                "reason": reason,
            }
        )
        self._check()
        refund = {"id": f"re_fake_{uuid4().hex[:16]}", "status": "succeeded", "amount": amount}
        self.refunds.append({**refund, "payment_intent_id": payment_intent_id})
        return RefundResult(**refund)

    def parse_webhook(self, payload: bytes, signature: str | None) -> dict:
        if signature != TEST_SIGNATURE:
            raise WebhookVerificationError("Invalid signature")
        try:
            return json.loads(payload)
        except ValueError:
            raise WebhookVerificationError("Invalid payload") from None

    # --- Test helpers ---

    def set_status(self, payment_intent_id: str, status: str, failure_message: str | None = None) -> None:
        self.intents[payment_intent_id].update(status=status, failure_message=failure_message)

    def succeed(self, payment_intent_id: str) -> None:
        self.set_status(payment_intent_id, "succeeded")

    def fail(self, payment_intent_id: str, message: str = "Your card was declined.") -> None:
        self.set_status(payment_intent_id, "requires_payment_method", failure_message=message)

    def event(self, event_type: str, payment_intent_id: str, **overrides) -> bytes:
        """Webhook body for an intent event, shaped like the provider's."""
        intent = self.intents.get(payment_intent_id, {"id": payment_intent_id, "amount": 0, "currency": "usd"})
        obj = {
            "id": intent["id"],
            "object": "payment_intent",
            "amount": intent["amount"],
            "currency": intent["currency"],
            "status": intent.get("status"),
        }
        if intent.get("failure_message"):
            obj["last_payment_error"] = {"message": intent["failure_message"]}
        obj.update(overrides)
        return json.dumps({"id": f"evt_{uuid4().hex[:16]}", "type": event_type, "data": {"object": obj}}).encode()

    def charge_refunded_event(self, payment_intent_id: str | None, amount: int, amount_refunded: int) -> bytes:
        obj = {
            "id": f"ch_fake_{uuid4().hex[:16]}",
            "object": "charge",
            "payment_intent": payment_intent_id,
            "amount": amount,
            "amount_refunded": amount_refunded,
        }
        return json.dumps({"id": f"evt_{uuid4().hex[:16]}", "type": "charge.refunded", "data": {"object": obj}}).encode()
