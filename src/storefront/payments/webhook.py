"""Typed webhook events.

Provider events arrive as loosely-typed JSON. ``parse_event`` narrows each
verified ``GatewayEvent`` into one of a closed set of frozen dataclasses, and
the reconciler dispatches on the class.
"""

from dataclasses import dataclass

from storefront.payments.gateway.port import GatewayEvent

CHECKOUT_SESSION_COMPLETED = "checkout.session.completed"
PAYMENT_INTENT_SUCCEEDED = "payment_intent.succeeded"
PAYMENT_INTENT_FAILED = "payment_intent.payment_failed"


@dataclass(frozen=True)
class CheckoutSessionCompleted:
    event_id: str
    session_id: str
    order_id: str | None
    customer_id: str | None
    payment_intent_id: str | None


@dataclass(frozen=True)
class PaymentIntentSucceeded:
    event_id: str
    payment_intent_id: str


@dataclass(frozen=True)
class PaymentIntentFailed:
    event_id: str
    payment_intent_id: str
    failure_message: str | None


@dataclass(frozen=True)
class UnhandledEvent:
    event_id: str
    type: str


WebhookEvent = CheckoutSessionCompleted | PaymentIntentSucceeded | PaymentIntentFailed | UnhandledEvent


def parse_event(event: GatewayEvent) -> WebhookEvent:
    data = event.data or {}

    if event.type == CHECKOUT_SESSION_COMPLETED:
        metadata = data.get("metadata") or {}
        return CheckoutSessionCompleted(
            event_id=event.event_id,
            session_id=data.get("id", ""),
            order_id=metadata.get("orderId"),
            customer_id=metadata.get("userId"),
            payment_intent_id=data.get("payment_intent"),
        )

    if event.type == PAYMENT_INTENT_SUCCEEDED:
        return PaymentIntentSucceeded(event_id=event.event_id, payment_intent_id=data.get("id", ""))

    if event.type == PAYMENT_INTENT_FAILED:
        error = data.get("last_payment_error") or {}
        return PaymentIntentFailed(
            event_id=event.event_id,
            payment_intent_id=data.get("id", ""),
            failure_message=error.get("message"),
        )

    return UnhandledEvent(event_id=event.event_id, type=event.type)
