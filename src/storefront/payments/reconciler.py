"""Payment reconciliation: applies verified provider events to orders and stock.

Webhooks are delivered at least once and in no particular order. Status
updates are last-write-wins; the stock commit runs at most once per order,
guarded by ``Order.stock_committed`` and a per-order lock. Each line is
marked on the order as soon as its units are taken, so a delivery that dies
part way through is finished by the redelivery without taking a line twice.
"""

import json
import threading

from protean.utils.globals import current_domain

from storefront.catalogue.product import Product
from storefront.domain import logger
from storefront.errors import InsufficientStock, ProductUnavailable, VariantUnavailable
from storefront.ordering.order import Order
from storefront.ordering.payment import (
    ConfirmCheckoutPayment,
    MarkLineStockTaken,
    MarkStockCommitted,
    RecordPaymentFailed,
    RecordPaymentSucceeded,
)
from storefront.payments.gateway.port import PaymentGateway
from storefront.payments.webhook import (
    CheckoutSessionCompleted,
    PaymentIntentFailed,
    PaymentIntentSucceeded,
    UnhandledEvent,
    WebhookEvent,
    parse_event,
)

_ORDER_STRIPES = tuple(threading.Lock() for _ in range(64))


def _lock_for(order_id) -> threading.Lock:
    return _ORDER_STRIPES[hash(str(order_id)) % len(_ORDER_STRIPES)]


class PaymentReconciler:
    """Verifies, parses and applies payment provider webhooks."""

    def __init__(self, gateway: PaymentGateway, products=None, orders=None) -> None:
        self.gateway = gateway
        self._products = products
        self._orders = orders
        self._handlers = {
            CheckoutSessionCompleted: self._on_checkout_completed,
            PaymentIntentSucceeded: self._on_payment_succeeded,
            PaymentIntentFailed: self._on_payment_failed,
            UnhandledEvent: self._on_unhandled,
        }

    @property
    def products(self):
        return self._products or current_domain.repository_for(Product)

    @property
    def orders(self):
        return self._orders or current_domain.repository_for(Order)

    def handle(self, payload: bytes, signature: str) -> WebhookEvent:
        """Verify and apply one webhook delivery.

        Raises ``InvalidSignature`` before anything is read or written if the
        payload is not authentic.
        """
        event = parse_event(self.gateway.construct_event(payload, signature))
        logger.info("webhook_received", event_type=type(event).__name__, event_id=event.event_id)
        self._handlers[type(event)](event)
        return event

    # -------------------------------------------------------------------
    # Handlers
    # -------------------------------------------------------------------
    def _on_checkout_completed(self, event: CheckoutSessionCompleted) -> None:
        if not event.order_id:
            logger.warning("webhook_missing_order_id", event_id=event.event_id, session_id=event.session_id)
            return

        with _lock_for(event.order_id):
            if self.orders.find(event.order_id) is None:
                logger.warning("webhook_order_not_found", event_id=event.event_id, order_id=event.order_id)
                return

            current_domain.process(
                ConfirmCheckoutPayment(order_id=event.order_id, payment_intent_id=event.payment_intent_id),
                asynchronous=False,
            )

            order = self.orders.get(event.order_id)
            if order.stock_committed:
                logger.info("stock_already_committed", order_id=event.order_id, event_id=event.event_id)
                return

            shortfalls = self._commit_stock(order)
            current_domain.process(
                MarkStockCommitted(order_id=event.order_id, shortfalls=json.dumps(shortfalls)),
                asynchronous=False,
            )

        if shortfalls:
            logger.warning("order_oversold", order_id=event.order_id, shortfalls=len(shortfalls))
        else:
            logger.info("order_stock_committed", order_id=event.order_id)

    def _commit_stock(self, order: Order) -> list[dict]:
        """Decrement every line not yet taken; return the lines that could not be."""
        shortfalls = []
        for item in order.items:
            if item.stock_taken:
                continue
            try:
                self.products.decrement_stock(item.product_id, item.size, item.design, item.quantity)
            except (ProductUnavailable, VariantUnavailable, InsufficientStock) as exc:
                logger.warning(
                    "stock_shortfall",
                    order_id=str(order.id),
                    product_id=str(item.product_id),
                    size=item.size,
                    design=item.design,
                    quantity=item.quantity,
                    reason=exc.message,
                )
                shortfalls.append(
                    {
                        "product_id": str(item.product_id),
                        "size": item.size,
                        "design": item.design,
                        "quantity": item.quantity,
                        "reason": exc.message,
                    }
                )
                continue

            current_domain.process(MarkLineStockTaken(order_id=order.id, item_id=item.id), asynchronous=False)
        return shortfalls

    def _on_payment_succeeded(self, event: PaymentIntentSucceeded) -> None:
        order = self.orders.find_by_payment_intent(event.payment_intent_id)
        if order is None:
            logger.warning("webhook_order_not_found", event_id=event.event_id, payment_intent_id=event.payment_intent_id)
            return

        current_domain.process(RecordPaymentSucceeded(order_id=order.id), asynchronous=False)

    def _on_payment_failed(self, event: PaymentIntentFailed) -> None:
        order = self.orders.find_by_payment_intent(event.payment_intent_id)
        if order is None:
            logger.warning("webhook_order_not_found", event_id=event.event_id, payment_intent_id=event.payment_intent_id)
            return

        current_domain.process(RecordPaymentFailed(order_id=order.id), asynchronous=False)
        logger.info("order_payment_failed", order_id=str(order.id), reason=event.failure_message)

    def _on_unhandled(self, event: UnhandledEvent) -> None:
        logger.info("webhook_ignored", event_type=event.type, event_id=event.event_id)
