"""Shared BDD fixtures and step definitions for checkout, payment and cancellation."""

import pytest
from protean import current_domain
from pytest_bdd import given, parsers, then, when
from storefront.catalogue.product import Product
from storefront.errors import StorefrontError, UpstreamFailure
from storefront.ordering.cart import CartLine
from storefront.ordering.checkout import CheckoutService
from storefront.ordering.order import Order, StatusChangeSource
from storefront.ordering.status import UpdateOrderStatus
from storefront.payments.reconciler import PaymentReconciler


@pytest.fixture()
def error():
    """Container for the exception raised by a When step."""
    return {"exc": None}


@pytest.fixture()
def payment_intent_id():
    return "pi_bdd_001"


def _order(order_id) -> Order:
    return current_domain.repository_for(Order).get(order_id)


def _checkout(gateway, product, customer_id, quantity, shipping_info):
    lines = [CartLine(product_id=str(product.id), size="M", design="Gold", quantity=quantity)]
    return CheckoutService(gateway).create_checkout(customer_id, lines, shipping_info).order_id


def _deliver(gateway, event_type, data):
    payload = gateway.event_payload(event_type, data)
    PaymentReconciler(gateway).handle(payload, gateway.sign(payload))


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(
    parsers.cfparse('a product "{title}" priced {price:f} with {stock:d} in stock'),
    target_fixture="product",
)
def _(make_product, title, price, stock):
    return make_product(title=title, price=price, variants=[{"size": "M", "design": "Gold", "stock": stock}])


@given(
    parsers.cfparse('customer "{customer_id}" has checked out {quantity:d} of the product'),
    target_fixture="order_id",
)
def _(fake_gateway, product, shipping_info, customer_id, quantity):
    return _checkout(fake_gateway, product, customer_id, quantity, shipping_info)


@given("the payment provider is unavailable")
def _(fake_gateway):
    fake_gateway.configure(should_succeed=False)


@given(parsers.cfparse("the product stock drops to {stock:d}"))
def _(product, stock):
    repo = current_domain.repository_for(Product)
    current = repo.get(product.id).find_variant("M", "Gold").stock
    repo.decrement_stock(product.id, "M", "Gold", current - stock)


@given(parsers.cfparse('the admin marks the order "{status}"'))
def _(order_id, status):
    current_domain.process(UpdateOrderStatus(order_id=order_id, status=status), asynchronous=False)


@given(parsers.cfparse("the checkout completed webhook is delivered {times:d} times"))
@when(parsers.cfparse("the checkout completed webhook is delivered {times:d} times"))
def _(fake_gateway, order_id, payment_intent_id, times):
    order = _order(order_id)
    data = {
        "id": order.checkout_session_id,
        "payment_intent": payment_intent_id,
        "metadata": {"orderId": order_id, "userId": str(order.customer_id)},
    }
    for _ in range(times):
        _deliver(fake_gateway, "checkout.session.completed", data)


# ---------------------------------------------------------------------------
# When steps
# ---------------------------------------------------------------------------
@when(
    parsers.cfparse('customer "{customer_id}" checks out {quantity:d} of the product'),
    target_fixture="order_id",
)
def _(fake_gateway, product, shipping_info, error, customer_id, quantity):
    try:
        return _checkout(fake_gateway, product, customer_id, quantity, shipping_info)
    except UpstreamFailure as exc:
        error["exc"] = exc
        return exc.hints["order_id"]


@when("the payment failed webhook is delivered")
def _(fake_gateway, payment_intent_id):
    _deliver(
        fake_gateway,
        "payment_intent.payment_failed",
        {"id": payment_intent_id, "last_payment_error": {"message": "Your card was declined."}},
    )


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse('the order is "{status}"'))
def _(order_id, status):
    assert _order(order_id).status == status


@then(parsers.cfparse('the payment is "{status}"'))
def _(order_id, status):
    assert _order(order_id).payment_status == status


@then(parsers.cfparse("the order total is {total:f}"))
def _(order_id, total):
    assert _order(order_id).total == pytest.approx(total)


@then(parsers.cfparse("the product has {stock:d} in stock"))
def _(stock_of, product, stock):
    assert stock_of(product.id) == stock


@then("the order is flagged oversold")
def _(order_id):
    order = _order(order_id)
    assert order.oversold is True
    assert [str(o.id) for o in current_domain.repository_for(Order).find_oversold()] == [order_id]


@then("checkout fails with an upstream error")
def _(error):
    assert isinstance(error["exc"], UpstreamFailure)
    assert error["exc"].status_code == 502


@then("the order is listed as orphaned")
def _(order_id):
    assert [str(o.id) for o in current_domain.repository_for(Order).find_orphaned()] == [order_id]


@then("the last history entry came from the customer")
def _(order_id):
    assert _order(order_id).history[-1].source == StatusChangeSource.CUSTOMER.value


@then(parsers.cfparse('the cancellation is rejected with "{message}"'))
def _(error, message):
    assert isinstance(error["exc"], StorefrontError)
    assert error["exc"].message == message
