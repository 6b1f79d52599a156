"""Checkout orchestration.

Turns a client cart plus shipping details into a pending order and a hosted
payment session:

1. place the order: the cart is validated once, inside ``PlaceOrder``, and
   the order is persisted ``pending`` with an empty session id
2. open a checkout session priced from the persisted order
3. attach the session id to the order

The session is built from the order rather than the cart, so the customer
is charged exactly ``order.total`` even if a price changes mid-checkout.
If step 2 fails the order stays behind as an orphan (pending, no session);
it is logged and listed by ``OrderRepository.find_orphaned``.
"""

import json
import os
from dataclasses import asdict, dataclass

from protean.utils.globals import current_domain

from storefront.domain import logger
from storefront.errors import GatewayError, UpstreamFailure
from storefront.ordering.cart import CartLine
from storefront.ordering.order import Order
from storefront.ordering.placement import AttachCheckoutSession, PlaceOrder
from storefront.ordering.pricing import to_cents
from storefront.payments.gateway.port import PaymentGateway, SessionLineItem


@dataclass(frozen=True)
class CheckoutResult:
    session_id: str
    order_id: str
    url: str | None = None


def default_urls() -> tuple[str, str]:
    base_url = os.getenv("STOREFRONT_BASE_URL", "http://localhost:3000").rstrip("/")
    return (
        f"{base_url}/checkout/success?session_id={{CHECKOUT_SESSION_ID}}",
        f"{base_url}/cart",
    )


def build_line_items(order) -> list[SessionLineItem]:
    """One line per order item, then Tax and Shipping lines when non-zero.

    Accepts an ``Order`` or a ``ValidatedCart``; both expose items, tax and
    shipping.
    """
    line_items = [
        SessionLineItem(
            name=f"{item.title} ({item.size}, {item.design})",
            unit_amount=to_cents(item.price),
            quantity=item.quantity,
        )
        for item in order.items
    ]
    if order.tax > 0:
        line_items.append(SessionLineItem(name="Tax", unit_amount=to_cents(order.tax), quantity=1))
    if order.shipping > 0:
        line_items.append(SessionLineItem(name="Shipping", unit_amount=to_cents(order.shipping), quantity=1))
    return line_items


class CheckoutService:
    def __init__(
        self,
        gateway: PaymentGateway,
        success_url: str | None = None,
        cancel_url: str | None = None,
    ) -> None:
        self.gateway = gateway
        default_success, default_cancel = default_urls()
        self.success_url = success_url or default_success
        self.cancel_url = cancel_url or default_cancel

    def create_checkout(
        self,
        customer_id: str,
        lines: list[CartLine],
        shipping_info: dict,
        customer_email: str | None = None,
    ) -> CheckoutResult:
        order_id = current_domain.process(
            PlaceOrder(
                customer_id=customer_id,
                lines=json.dumps([asdict(line) for line in lines]),
                shipping_info=json.dumps(shipping_info),
            ),
            asynchronous=False,
        )
        order = current_domain.repository_for(Order).get(order_id)

        try:
            session = self.gateway.create_checkout_session(
                line_items=build_line_items(order),
                metadata={"orderId": order_id, "userId": str(customer_id)},
                success_url=self.success_url,
                cancel_url=self.cancel_url,
                customer_email=customer_email,
            )
        except GatewayError as exc:
            logger.error("checkout_session_failed", order_id=order_id, customer_id=str(customer_id), error=str(exc))
            raise UpstreamFailure("Payment session could not be created", order_id=order_id) from exc

        current_domain.process(
            AttachCheckoutSession(order_id=order_id, checkout_session_id=session.session_id),
            asynchronous=False,
        )
        logger.info("checkout_session_created", order_id=order_id, session_id=session.session_id)

        return CheckoutResult(session_id=session.session_id, order_id=order_id, url=session.url)
