"""Domain events for the Order aggregate."""

from protean.fields import Boolean, DateTime, Float, Identifier, String, Text

from storefront.domain import storefront


@storefront.event(part_of="Order")
class OrderPlaced:
    """A validated cart was turned into a pending order awaiting payment."""

    __version__ = 1

    order_id: Identifier(required=True)
    order_number: String(required=True)
    customer_id: Identifier(required=True)
    items: Text(required=True)  # JSON
    subtotal: Float(required=True)
    tax: Float(required=True)
    shipping: Float(required=True)
    total: Float(required=True)
    placed_at: DateTime(required=True)


@storefront.event(part_of="Order")
class CheckoutSessionAttached:
    __version__ = 1

    order_id: Identifier(required=True)
    checkout_session_id: String(required=True)


@storefront.event(part_of="Order")
class OrderPaid:
    """The payment provider reported the order as paid."""

    __version__ = 1

    order_id: Identifier(required=True)
    payment_intent_id: String()
    amount: Float(required=True)
    status: String(required=True)
    paid_at: DateTime(required=True)


@storefront.event(part_of="Order")
class OrderPaymentFailed:
    __version__ = 1

    order_id: Identifier(required=True)
    payment_intent_id: String()
    previous_status: String(required=True)
    failed_at: DateTime(required=True)


@storefront.event(part_of="Order")
class StockCommitted:
    """Stock for every line was decremented, or the shortfalls were recorded."""

    __version__ = 1

    order_id: Identifier(required=True)
    oversold: Boolean(required=True)
    shortfalls: Text()  # JSON
    committed_at: DateTime(required=True)


@storefront.event(part_of="Order")
class OrderStatusChanged:
    __version__ = 1

    order_id: Identifier(required=True)
    previous_status: String(required=True)
    new_status: String(required=True)
    source: String(required=True)
    tracking_number: String()
    changed_at: DateTime(required=True)


@storefront.event(part_of="Order")
class OrderNoteAdded:
    __version__ = 1

    order_id: Identifier(required=True)
    note: String(required=True)
    added_at: DateTime(required=True)


@storefront.event(part_of="Order")
class OrderCancelled:
    """The customer cancelled their order before it went into processing."""

    __version__ = 1

    order_id: Identifier(required=True)
    customer_id: Identifier(required=True)
    previous_status: String(required=True)
    cancelled_at: DateTime(required=True)
