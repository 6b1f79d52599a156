"""Payment gateway port (abstract interface).

Checkout and reconciliation talk to the payment provider only through this
contract, so the Stripe adapter and the fake adapter are interchangeable.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class SessionLineItem:
    """One line on the hosted checkout page. ``unit_amount`` is in cents."""

    name: str
    unit_amount: int
    quantity: int


@dataclass(frozen=True)
class CheckoutSession:
    session_id: str
    url: str | None = None


@dataclass(frozen=True)
class GatewayEvent:
    """A verified provider event: its id, kind and the event's data object."""

    event_id: str
    type: str
    data: dict[str, Any] = field(default_factory=dict)


class PaymentGateway(ABC):
    """Abstract payment gateway interface."""

    @abstractmethod
    def create_checkout_session(
        self,
        line_items: list[SessionLineItem],
        metadata: dict[str, str],
        success_url: str,
        cancel_url: str,
        customer_email: str | None = None,
    ) -> CheckoutSession:
        """Open a hosted checkout session. Raises ``GatewayError`` on failure."""
        ...

    @abstractmethod
    def construct_event(self, payload: bytes, signature: str) -> GatewayEvent:
        """Verify ``signature`` over the raw ``payload`` and parse it.

        Raises ``InvalidSignature`` if the payload is not authentic.
        """
        ...
