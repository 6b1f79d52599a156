"""Payment gateway factory.

get_gateway() / set_gateway() choose the adapter the HTTP layer hands to
the checkout service and the reconciler:
- FakeGateway for development and testing (default)
- StripeGateway when ``PAYMENT_GATEWAY=stripe``
"""

import os

from storefront.payments.gateway.fake_adapter import FakeGateway
from storefront.payments.gateway.port import PaymentGateway

_current_gateway: PaymentGateway | None = None


def _build_from_env() -> PaymentGateway:
    if os.getenv("PAYMENT_GATEWAY", "fake").lower() == "stripe":
        from storefront.payments.gateway.stripe_adapter import StripeGateway

        return StripeGateway(
            api_key=os.environ["STRIPE_SECRET_KEY"],
            webhook_secret=os.environ["STRIPE_WEBHOOK_SECRET"],
            max_network_retries=int(os.getenv("STRIPE_MAX_NETWORK_RETRIES", "2")),
        )
    return FakeGateway(webhook_secret=os.getenv("STRIPE_WEBHOOK_SECRET", "whsec_fake"))


def get_gateway() -> PaymentGateway:
    """Return the current payment gateway, building it from the environment once."""
    global _current_gateway
    if _current_gateway is None:
        _current_gateway = _build_from_env()
    return _current_gateway


def set_gateway(gateway: PaymentGateway) -> None:
    """Override the active payment gateway (useful for tests)."""
    global _current_gateway
    _current_gateway = gateway


def reset_gateway() -> None:
    """Reset to default gateway."""
    global _current_gateway
    _current_gateway = None
