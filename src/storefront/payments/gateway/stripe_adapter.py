"""Stripe payment gateway adapter.

Uses hosted Checkout Sessions for payment and Stripe's signed webhooks for
reconciliation. Network calls are bounded by the SDK's request timeout and
``max_network_retries``.
"""

import json

import stripe

from storefront.domain import logger
from storefront.errors import GatewayError, InvalidSignature
from storefront.payments.gateway.port import (
    CheckoutSession,
    GatewayEvent,
    PaymentGateway,
    SessionLineItem,
)

ALLOWED_SHIPPING_COUNTRIES = ["US", "CA"]


class StripeGateway(PaymentGateway):
    """Production Stripe gateway adapter."""

    def __init__(
        self,
        api_key: str,
        webhook_secret: str,
        currency: str = "usd",
        max_network_retries: int = 2,
        tolerance: int = stripe.Webhook.DEFAULT_TOLERANCE,
    ) -> None:
        self.api_key = api_key
        self.webhook_secret = webhook_secret
        self.currency = currency
        self.tolerance = tolerance
        stripe.max_network_retries = max_network_retries

    def _line_item(self, item: SessionLineItem) -> dict:
        return {
            "price_data": {
                "currency": self.currency,
                "product_data": {"name": item.name},
                "unit_amount": item.unit_amount,
            },
            "quantity": item.quantity,
        }

    def create_checkout_session(
        self,
        line_items: list[SessionLineItem],
        metadata: dict[str, str],
        success_url: str,
        cancel_url: str,
        customer_email: str | None = None,
    ) -> CheckoutSession:
        params = {
            "payment_method_types": ["card"],
            "line_items": [self._line_item(item) for item in line_items],
            "mode": "payment",
            "success_url": success_url,
            "cancel_url": cancel_url,
            "metadata": metadata,
            "shipping_address_collection": {"allowed_countries": ALLOWED_SHIPPING_COUNTRIES},
        }
        if customer_email:
            params["customer_email"] = customer_email

        try:
            session = stripe.checkout.Session.create(
                api_key=self.api_key,
                idempotency_key=f"checkout-{metadata.get('orderId', '')}",
                **params,
            )
        except stripe.StripeError as exc:
            logger.error("stripe_session_failed", error=str(exc), order_id=metadata.get("orderId"))
            raise GatewayError(str(exc)) from exc

        return CheckoutSession(session_id=session.id, url=session.url)

    def construct_event(self, payload: bytes, signature: str) -> GatewayEvent:
        try:
            text = payload.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise InvalidSignature("Payload is not valid UTF-8") from exc

        try:
            stripe.WebhookSignature.verify_header(text, signature, self.webhook_secret, self.tolerance)
        except stripe.SignatureVerificationError as exc:
            raise InvalidSignature(str(exc)) from exc

        try:
            body = json.loads(text)
        except json.JSONDecodeError as exc:
            raise InvalidSignature(str(exc)) from exc

        return GatewayEvent(
            event_id=body.get("id", ""),
            type=body.get("type", ""),
            data=body.get("data", {}).get("object", {}),
        )
