"""Payment gateway factory.

``get_gateway`` builds the adapter named by ``PAYMENT_GATEWAY`` on first use
(``stripe`` or ``fake``); ``set_gateway`` swaps it, e.g. for tests.
"""
from shared.config import settings

from .fake_gateway import FakeGateway
from .port import PaymentGateway, PaymentIntentResult, RefundResult
from .stripe_gateway import StripeGateway

_current_gateway: PaymentGateway | None = None


def build_gateway() -> PaymentGateway:
    if settings.PAYMENT_GATEWAY == "fake":
        return FakeGateway()
    return StripeGateway(api_key=settings.STRIPE_SECRET_KEY, webhook_secret=settings.STRIPE_WEBHOOK_SECRET)


def get_gateway() -> PaymentGateway:
    """Return the current payment gateway."""
    global _current_gateway
    if _current_gateway is None:
        _current_gateway = build_gateway()
    return _current_gateway


def set_gateway(gateway: PaymentGateway) -> None:
    """Override the active payment gateway (useful for tests)."""
    global _current_gateway
    _current_gateway = gateway


def reset_gateway() -> None:
    """Reset to the configured gateway."""
    global _current_gateway
    _current_gateway = None


__all__ = [
    "FakeGateway",
    "PaymentGateway",
    "PaymentIntentResult",
    "RefundResult",
    "StripeGateway",
    "build_gateway",
    "get_gateway",
    "reset_gateway",
    "set_gateway",
]
