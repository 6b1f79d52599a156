"""Storefront error hierarchy.

Domain and application code raise these; the HTTP layer maps each class to
a status code via ``status_code`` and serializes ``to_dict()``. Field-level
input problems keep using ``protean.exceptions.ValidationError``.
"""

from typing import Any


class StorefrontError(Exception):
    """Base class for storefront failures. Extra keyword args become hints."""

    status_code = 500

    def __init__(self, message: str, **hints: Any) -> None:
        super().__init__(message)
        self.message = message
        self.hints = hints

    def to_dict(self) -> dict[str, Any]:
        return {"message": self.message, **self.hints}


class NotFound(StorefrontError):
    status_code = 404


class ProductUnavailable(NotFound):
    """The product does not exist or is not active."""

    def __init__(self, product_id: str) -> None:
        super().__init__(f"Product {product_id} not found or unavailable", product_id=str(product_id))


class VariantUnavailable(NotFound):
    """The product has no variant with the requested size and design."""

    def __init__(self, product_id: str, size: str, design: str) -> None:
        super().__init__(
            f"Variant {size}/{design} not available",
            product_id=str(product_id),
            size=size,
            design=design,
        )


class InsufficientStock(StorefrontError):
    status_code = 409

    def __init__(self, title: str, available_stock: int, requested: int) -> None:
        super().__init__(
            f"Insufficient stock for {title}",
            available_stock=available_stock,
            requested=requested,
        )
        self.available_stock = available_stock
        self.requested = requested


class InvalidTransition(StorefrontError):
    status_code = 409

    def __init__(self, message: str, current_status: str) -> None:
        super().__init__(message, current_status=current_status)
        self.current_status = current_status


class InvalidSignature(StorefrontError):
    """Webhook payload failed provider signature verification."""

    status_code = 400


class UpstreamFailure(StorefrontError):
    """The payment provider could not be reached or refused the request."""

    status_code = 502


class GatewayError(Exception):
    """Raised by gateway adapters when the provider call fails."""
