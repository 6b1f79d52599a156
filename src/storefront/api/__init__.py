"""Storefront API package."""

from storefront.api.routes import cart_router, order_router, product_router, webhook_router

__all__ = ["product_router", "cart_router", "order_router", "webhook_router"]
