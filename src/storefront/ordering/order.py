"""Order aggregate: the ledger of what was bought, paid for and shipped.

State machine:
    pending → confirmed → processing → shipped → delivered
    pending | confirmed → cancelled   (customer)

Payment events drive ``pending → confirmed`` and ``→ cancelled``; admins may
set any status from ``_ADMIN_SETTABLE`` without a transition table.
Admin and customer status changes append to ``history``; payment-driven
changes do not.
"""

import json
from datetime import UTC, datetime
from enum import Enum
from uuid import uuid4

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import (
    Boolean,
    DateTime,
    Float,
    HasMany,
    Identifier,
    Integer,
    String,
    ValueObject,
)

from storefront.domain import storefront
from storefront.errors import InvalidTransition
from storefront.ordering.events import (
    CheckoutSessionAttached,
    OrderCancelled,
    OrderNoteAdded,
    OrderPaid,
    OrderPaymentFailed,
    OrderPlaced,
    OrderStatusChanged,
    StockCommitted,
)
from storefront.ordering.pricing import totals_are_consistent


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class OrderStatus(Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class PaymentStatus(Enum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"


class StatusChangeSource(Enum):
    ADMIN = "admin"
    CUSTOMER = "customer"


_ADMIN_SETTABLE = {
    OrderStatus.CONFIRMED,
    OrderStatus.PROCESSING,
    OrderStatus.SHIPPED,
    OrderStatus.DELIVERED,
    OrderStatus.CANCELLED,
}

_CUSTOMER_CANCELLABLE = {OrderStatus.PENDING, OrderStatus.CONFIRMED}

# A late checkout-completed redelivery never pulls an order back from these
_PAST_CONFIRMATION = {OrderStatus.PROCESSING, OrderStatus.SHIPPED, OrderStatus.DELIVERED}


def generate_order_number(now: datetime | None = None) -> str:
    now = now or datetime.now(UTC)
    return f"ORD-{now:%Y%m%d}-{uuid4().hex[:6].upper()}"


# ---------------------------------------------------------------------------
# Value Objects
# ---------------------------------------------------------------------------
@storefront.value_object(part_of="Order")
class ShippingInfo:
    """Where the order ships. Captured at checkout and never edited."""

    name = String(required=True, max_length=100)
    phone = String(required=True, max_length=30)
    address = String(required=True, max_length=255)
    city = String(required=True, max_length=100)
    state = String(required=True, max_length=100)
    postal_code = String(required=True, max_length=20)
    country = String(required=True, max_length=100)


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@storefront.entity(part_of="Order")
class OrderItem:
    """Snapshot of a cart line at checkout time.

    Title and price are copied from the catalogue so later product edits do
    not change what the customer bought.
    """

    product_id = Identifier(required=True)
    title = String(required=True, max_length=100)
    price = Float(required=True, min_value=0.0)
    quantity = Integer(required=True, min_value=1)
    size = String(required=True, max_length=20)
    design = String(required=True, max_length=100)
    stock_taken = Boolean(default=False)


@storefront.entity(part_of="Order")
class StatusChange:
    status = String(required=True, choices=OrderStatus)
    changed_at = DateTime(required=True)
    note = String(max_length=1000)
    source = String(required=True, choices=StatusChangeSource)


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@storefront.aggregate
class Order:
    order_number = String(required=True, max_length=30)
    customer_id = Identifier(required=True)
    items = HasMany(OrderItem)
    subtotal = Float(required=True, min_value=0.0)
    tax = Float(required=True, min_value=0.0)
    shipping = Float(required=True, min_value=0.0)
    total = Float(required=True, min_value=0.0)
    shipping_info = ValueObject(ShippingInfo, required=True)

    # Payment sub-record, kept flat so it can be looked up by intent/session id
    payment_status = String(choices=PaymentStatus, default=PaymentStatus.PENDING.value)
    payment_amount = Float(default=0.0)
    checkout_session_id = String(max_length=255)
    payment_intent_id = String(max_length=255)
    paid_at = DateTime()

    status = String(choices=OrderStatus, default=OrderStatus.PENDING.value)
    tracking_number = String(max_length=100)
    notes = String(max_length=1000)
    history = HasMany(StatusChange)

    stock_committed = Boolean(default=False)
    oversold = Boolean(default=False)

    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def total_must_equal_sum_of_components(self):
        if None in (self.subtotal, self.tax, self.shipping, self.total):
            return
        if not totals_are_consistent(self.subtotal, self.tax, self.shipping, self.total):
            raise ValidationError({"total": ["Total must equal subtotal + tax + shipping"]})

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def place(cls, customer_id, cart, shipping_info):
        """Create a pending order from a ``ValidatedCart``.

        Args:
            customer_id: The ordering user.
            cart: ``storefront.ordering.cart.ValidatedCart``.
            shipping_info: Dict with name, phone, address, city, state,
                postal_code, country.
        """
        now = datetime.now(UTC)
        totals = cart.totals.as_floats()

        order = cls(
            order_number=generate_order_number(now),
            customer_id=customer_id,
            items=[
                OrderItem(
                    product_id=item.product_id,
                    title=item.title,
                    price=item.price,
                    quantity=item.quantity,
                    size=item.size,
                    design=item.design,
                )
                for item in cart.items
            ],
            subtotal=totals["subtotal"],
            tax=totals["tax"],
            shipping=totals["shipping"],
            total=totals["total"],
            shipping_info=ShippingInfo(**shipping_info),
            payment_status=PaymentStatus.PENDING.value,
            payment_amount=totals["total"],
            checkout_session_id="",
            created_at=now,
            updated_at=now,
        )
        order.raise_(
            OrderPlaced(
                order_id=order.id,
                order_number=order.order_number,
                customer_id=customer_id,
                items=json.dumps(
                    [
                        {
                            "product_id": str(i.product_id),
                            "title": i.title,
                            "price": i.price,
                            "quantity": i.quantity,
                            "size": i.size,
                            "design": i.design,
                        }
                        for i in order.items
                    ]
                ),
                subtotal=order.subtotal,
                tax=order.tax,
                shipping=order.shipping,
                total=order.total,
                placed_at=now,
            )
        )
        return order

    # -------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------
    @property
    def is_orphaned(self) -> bool:
        """Pending, unpaid and never linked to a checkout session."""
        return self.status == OrderStatus.PENDING.value and not self.checkout_session_id

    def is_owned_by(self, customer_id) -> bool:
        return str(self.customer_id) == str(customer_id)

    def _record_history(self, status, source, note=None, now=None):
        self.add_history(
            StatusChange(
                status=status,
                changed_at=now or datetime.now(UTC),
                note=note,
                source=source.value,
            )
        )

    # -------------------------------------------------------------------
    # Checkout
    # -------------------------------------------------------------------
    def attach_checkout_session(self, session_id):
        if not session_id:
            raise ValidationError({"checkout_session_id": ["Session id is required"]})

        self.checkout_session_id = session_id
        self.updated_at = datetime.now(UTC)
        self.raise_(CheckoutSessionAttached(order_id=self.id, checkout_session_id=session_id))

    # -------------------------------------------------------------------
    # Payment-driven transitions (no history entries)
    # -------------------------------------------------------------------
    def confirm_checkout_payment(self, payment_intent_id=None):
        """Checkout session completed: mark paid and confirm.

        Orders already processing, shipped or delivered keep their status; only
        the payment fields are updated.
        """
        now = datetime.now(UTC)
        self.payment_status = PaymentStatus.PAID.value
        if payment_intent_id:
            self.payment_intent_id = payment_intent_id
        self.paid_at = now
        if OrderStatus(self.status) not in _PAST_CONFIRMATION:
            self.status = OrderStatus.CONFIRMED.value
        self.updated_at = now

        self.raise_(
            OrderPaid(
                order_id=self.id,
                payment_intent_id=self.payment_intent_id,
                amount=self.payment_amount,
                status=self.status,
                paid_at=now,
            )
        )

    def record_payment_succeeded(self):
        """Payment intent succeeded: mark paid, promote only from pending."""
        now = datetime.now(UTC)
        self.payment_status = PaymentStatus.PAID.value
        self.paid_at = now
        if self.status == OrderStatus.PENDING.value:
            self.status = OrderStatus.CONFIRMED.value
        self.updated_at = now

        self.raise_(
            OrderPaid(
                order_id=self.id,
                payment_intent_id=self.payment_intent_id,
                amount=self.payment_amount,
                status=self.status,
                paid_at=now,
            )
        )

    def record_payment_failed(self):
        """Payment intent failed: cancel regardless of current status."""
        now = datetime.now(UTC)
        previous = self.status
        self.payment_status = PaymentStatus.FAILED.value
        self.status = OrderStatus.CANCELLED.value
        self.updated_at = now

        self.raise_(
            OrderPaymentFailed(
                order_id=self.id,
                payment_intent_id=self.payment_intent_id,
                previous_status=previous,
                failed_at=now,
            )
        )

    def mark_line_stock_taken(self, item_id):
        """Record that one line's units have left the catalogue."""
        for item in self.items:
            if str(item.id) == str(item_id):
                item.stock_taken = True
                self.add_items(item)
                self.updated_at = datetime.now(UTC)
                return
        raise ValidationError({"item_id": [f"No line {item_id} on this order"]})

    def commit_stock(self, shortfalls=None):
        """Mark the order's stock as taken. ``shortfalls`` lists lines that could not be."""
        if self.stock_committed:
            raise InvalidTransition("Stock already committed for this order", current_status=self.status)

        now = datetime.now(UTC)
        self.stock_committed = True
        self.oversold = bool(shortfalls)
        self.updated_at = now

        self.raise_(
            StockCommitted(
                order_id=self.id,
                oversold=self.oversold,
                shortfalls=json.dumps(shortfalls or []),
                committed_at=now,
            )
        )

    # -------------------------------------------------------------------
    # Admin
    # -------------------------------------------------------------------
    def change_status(self, status, tracking_number=None, notes=None):
        """Admin override: any allowed status, no transition table."""
        try:
            target = OrderStatus(status)
        except ValueError:
            target = None
        if target not in _ADMIN_SETTABLE:
            raise ValidationError(
                {"status": [f"Status must be one of: {', '.join(sorted(s.value for s in _ADMIN_SETTABLE))}"]}
            )

        now = datetime.now(UTC)
        previous = self.status
        self.status = target.value
        if tracking_number is not None:
            self.tracking_number = tracking_number
        if notes is not None:
            self.notes = notes
        self.updated_at = now
        self._record_history(target.value, StatusChangeSource.ADMIN, note=notes, now=now)

        self.raise_(
            OrderStatusChanged(
                order_id=self.id,
                previous_status=previous,
                new_status=target.value,
                source=StatusChangeSource.ADMIN.value,
                tracking_number=self.tracking_number,
                changed_at=now,
            )
        )

    def add_note(self, note):
        """Admin note against the current status; status is unchanged."""
        if not note or len(note) > 500:
            raise ValidationError({"note": ["Note must be between 1 and 500 characters"]})

        now = datetime.now(UTC)
        self._record_history(self.status, StatusChangeSource.ADMIN, note=note, now=now)
        self.updated_at = now
        self.raise_(OrderNoteAdded(order_id=self.id, note=note, added_at=now))

    # -------------------------------------------------------------------
    # Customer
    # -------------------------------------------------------------------
    def cancel(self):
        current = OrderStatus(self.status)
        if current not in _CUSTOMER_CANCELLABLE:
            raise InvalidTransition("Order cannot be cancelled at this stage", current_status=current.value)

        now = datetime.now(UTC)
        self.status = OrderStatus.CANCELLED.value
        self.updated_at = now
        self._record_history(
            OrderStatus.CANCELLED.value,
            StatusChangeSource.CUSTOMER,
            note="Cancelled by customer",
            now=now,
        )

        self.raise_(
            OrderCancelled(
                order_id=self.id,
                customer_id=self.customer_id,
                previous_status=current.value,
                cancelled_at=now,
            )
        )
