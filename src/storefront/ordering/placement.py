"""Order placement: commands and handler.

Placement always goes through the CartValidator, and only here: the command
carries what the client is allowed to choose (lines and shipping info) and
the handler prices them from the catalogue. Checkout then charges from the
persisted order.
"""

import json

from protean import handle
from protean.fields import Identifier, String, Text
from protean.utils.globals import current_domain

from storefront.domain import logger, storefront
from storefront.ordering.cart import CartLine, CartValidator
from storefront.ordering.order import Order


@storefront.command(part_of="Order")
class PlaceOrder:
    customer_id = Identifier(required=True)
    lines = Text(required=True)  # JSON list of {product_id, size, design, quantity}
    shipping_info = Text(required=True)  # JSON


@storefront.command(part_of="Order")
class AttachCheckoutSession:
    order_id = Identifier(required=True)
    checkout_session_id = String(required=True, max_length=255)


@storefront.command_handler(part_of=Order)
class PlaceOrderHandler:
    @handle(PlaceOrder)
    def place_order(self, command):
        lines = [CartLine(**line) for line in json.loads(command.lines)]
        cart = CartValidator().validate(lines)

        order = Order.place(
            customer_id=command.customer_id,
            cart=cart,
            shipping_info=json.loads(command.shipping_info),
        )
        current_domain.repository_for(Order).add(order)

        logger.info(
            "order_placed",
            order_id=str(order.id),
            order_number=order.order_number,
            customer_id=str(command.customer_id),
            total=order.total,
        )
        return str(order.id)

    @handle(AttachCheckoutSession)
    def attach_checkout_session(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.attach_checkout_session(command.checkout_session_id)
        repo.add(order)
