"""Payment gateway port.

Every provider adapter implements this contract, so the payment coordinator
and refund processor never import a provider SDK directly. Amounts cross the
port in minor units (cents). Adapters raise ``PaymentProviderError`` with the
provider's own message when a call fails.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class PaymentIntentResult:
    """Provider view of a payment intent."""

    id: str
    status: str
    amount: int
    currency: str
    client_secret: str | None = None
    failure_message: str | None = None


@dataclass(frozen=True)
class RefundResult:
    id: str
    status: str
    amount: int


class PaymentGateway(ABC):

    @abstractmethod
    async def create_payment_intent(
        self,
        amount: int,
        currency: str,
        idempotency_key: str,
        metadata: dict,
        description: str | None = None,
    ) -> PaymentIntentResult:
        ...

    @abstractmethod
    async def retrieve_payment_intent(self, payment_intent_id: str) -> PaymentIntentResult:
        ...

    @abstractmethod
    async def create_refund(
        self,
        payment_intent_id: str,
        amount: int,
        reason: str | None = None,
        metadata: dict | None = None,
    ) -> RefundResult:
        ...

    @abstractmethod
    def parse_webhook(self, payload: bytes, signature: str | None) -> dict:
        """Verify a webhook delivery and return the decoded event.

        Raises ``WebhookVerificationError`` for a bad payload or signature.
        """
        ...
