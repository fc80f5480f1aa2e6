"""Domain errors raised by the service layer.

Routers never translate these by hand; ``main.py`` registers
``domain_error_handler`` which maps each class to its HTTP status.
"""
from fastapi import Request
from fastapi.responses import JSONResponse


class DomainError(Exception):
    """Base class for every error a service surfaces to a caller."""

    status_code = 400

    def __init__(self, message: str, errors: list | None = None):
        self.message = message
        self.errors = errors
        super().__init__(message)


class ValidationError(DomainError):
    """Input was understood but violates a business rule."""

    status_code = 422


class InsufficientInventoryError(ValidationError):
    """One or more cart lines ask for more units than are in stock."""

    def __init__(self, insufficient_items: list[dict]):
        names = ", ".join(
            f"{item['product_name']} only has {item['available']} in stock "
            f"(you requested {item['requested']})"
            for item in insufficient_items
        )
        super().__init__(f"Insufficient inventory: {names}", errors=insufficient_items)


class InvalidTransitionError(ValidationError):
    """The order state machine does not allow the requested move."""


class NotFoundError(DomainError):
    status_code = 404


class AuthenticationError(DomainError):
    status_code = 401


class ForbiddenError(DomainError):
    status_code = 403


class ConflictError(DomainError):
    status_code = 409


class PaymentProviderError(DomainError):
    """The payment provider rejected or failed a call. Message is the provider's."""

    status_code = 502


class WebhookVerificationError(DomainError):
    status_code = 400


async def domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
    content = {"detail": exc.message, "error_type": type(exc).__name__}
    if exc.errors:
        content["errors"] = exc.errors
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, AuthenticationError) else None
    return JSONResponse(status_code=exc.status_code, content=content, headers=headers)
