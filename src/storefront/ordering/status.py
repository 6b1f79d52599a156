"""Admin and customer status changes: commands and handler."""

from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from storefront.domain import logger, storefront
from storefront.errors import NotFound
from storefront.ordering.order import Order


@storefront.command(part_of="Order")
class UpdateOrderStatus:
    order_id = Identifier(required=True)
    status = String(required=True, max_length=20)
    tracking_number = String(max_length=100)
    notes = String(max_length=1000)


@storefront.command(part_of="Order")
class AddOrderNote:
    order_id = Identifier(required=True)
    note = String(required=True, max_length=500)


@storefront.command(part_of="Order")
class CancelOrder:
    order_id = Identifier(required=True)
    customer_id = Identifier(required=True)


@storefront.command_handler(part_of=Order)
class OrderStatusHandler:
    @handle(UpdateOrderStatus)
    def update_status(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        previous = order.status
        order.change_status(
            command.status,
            tracking_number=command.tracking_number,
            notes=command.notes,
        )
        repo.add(order)
        logger.info("order_status_changed", order_id=str(order.id), previous=previous, status=order.status)

    @handle(AddOrderNote)
    def add_note(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.add_note(command.note)
        repo.add(order)

    @handle(CancelOrder)
    def cancel(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.find(command.order_id)
        # Someone else's order is indistinguishable from a missing one
        if order is None or not order.is_owned_by(command.customer_id):
            raise NotFound("Order not found", order_id=str(command.order_id))

        order.cancel()
        repo.add(order)
        logger.info("order_cancelled_by_customer", order_id=str(order.id))
