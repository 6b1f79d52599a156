"""Payment-driven order changes: commands and handler.

Issued by the payment reconciler only; none of these append status history.
"""

import json

from protean import handle
from protean.fields import Identifier, String, Text
from protean.utils.globals import current_domain

from storefront.domain import storefront
from storefront.ordering.order import Order


@storefront.command(part_of="Order")
class ConfirmCheckoutPayment:
    order_id = Identifier(required=True)
    payment_intent_id = String(max_length=255)


@storefront.command(part_of="Order")
class RecordPaymentSucceeded:
    order_id = Identifier(required=True)


@storefront.command(part_of="Order")
class RecordPaymentFailed:
    order_id = Identifier(required=True)


@storefront.command(part_of="Order")
class MarkLineStockTaken:
    order_id = Identifier(required=True)
    item_id = Identifier(required=True)


@storefront.command(part_of="Order")
class MarkStockCommitted:
    order_id = Identifier(required=True)
    shortfalls = Text()  # JSON list


@storefront.command_handler(part_of=Order)
class OrderPaymentHandler:
    @handle(ConfirmCheckoutPayment)
    def confirm_checkout_payment(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.confirm_checkout_payment(command.payment_intent_id)
        repo.add(order)

    @handle(RecordPaymentSucceeded)
    def payment_succeeded(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.record_payment_succeeded()
        repo.add(order)

    @handle(RecordPaymentFailed)
    def payment_failed(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.record_payment_failed()
        repo.add(order)

    @handle(MarkLineStockTaken)
    def mark_line_stock_taken(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.mark_line_stock_taken(command.item_id)
        repo.add(order)

    @handle(MarkStockCommitted)
    def mark_stock_committed(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.commit_stock(json.loads(command.shortfalls) if command.shortfalls else [])
        repo.add(order)
        return order.oversold
