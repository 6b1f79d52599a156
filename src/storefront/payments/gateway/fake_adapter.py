"""Configurable fake payment gateway for development and testing.

Simulates the provider without network calls:
- checkout sessions succeed or fail on demand (``configure``)
- webhook payloads are signed with HMAC-SHA256 over the raw body, so
  signature verification is exercised exactly like the real adapter
- every call is recorded in ``calls``
"""

import hashlib
import hmac
import json
from uuid import uuid4

from storefront.errors import GatewayError, InvalidSignature
from storefront.payments.gateway.port import (
    CheckoutSession,
    GatewayEvent,
    PaymentGateway,
    SessionLineItem,
)


class FakeGateway(PaymentGateway):
    """Configurable fake payment gateway."""

    def __init__(self, webhook_secret: str = "whsec_fake") -> None:
        self.webhook_secret = webhook_secret
        self.should_succeed: bool = True
        self.failure_reason: str = "Payment provider unavailable"
        self.calls: list[dict] = []

    def configure(self, should_succeed: bool, failure_reason: str = "Payment provider unavailable") -> None:
        """Configure gateway behavior at runtime."""
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason

    def create_checkout_session(
        self,
        line_items: list[SessionLineItem],
        metadata: dict[str, str],
        success_url: str,
        cancel_url: str,
        customer_email: str | None = None,
    ) -> CheckoutSession:
        self.calls.append(
            {
                "method": "create_checkout_session",
                "line_items": list(line_items),
                "metadata": dict(metadata),
                "success_url": success_url,
                "cancel_url": cancel_url,
                "customer_email": customer_email,
            }
        )

        if not self.should_succeed:
            raise GatewayError(self.failure_reason)

        session_id = f"cs_fake_{uuid4().hex[:16]}"
        return CheckoutSession(session_id=session_id, url=f"https://checkout.fake/pay/{session_id}")

    def sign(self, payload: bytes) -> str:
        return hmac.new(self.webhook_secret.encode(), payload, hashlib.sha256).hexdigest()

    def construct_event(self, payload: bytes, signature: str) -> GatewayEvent:
        self.calls.append({"method": "construct_event", "signature": signature})

        if not signature or not hmac.compare_digest(self.sign(payload), signature):
            raise InvalidSignature("Webhook signature verification failed")

        try:
            body = json.loads(payload)
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise InvalidSignature(f"Invalid payload: {exc}") from exc

        return GatewayEvent(
            event_id=body.get("id", ""),
            type=body.get("type", ""),
            data=body.get("data", {}).get("object", {}),
        )

    @staticmethod
    def event_payload(event_type: str, data: dict, event_id: str | None = None) -> bytes:
        """Serialize an event the way the provider delivers it."""
        return json.dumps(
            {
                "id": event_id or f"evt_fake_{uuid4().hex[:12]}",
                "type": event_type,
                "data": {"object": data},
            }
        ).encode()
