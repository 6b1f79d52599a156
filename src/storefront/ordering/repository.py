"""Repository for the Order aggregate."""

from protean.exceptions import ObjectNotFoundError

from storefront.domain import storefront
from storefront.ordering.order import Order, OrderStatus


def _newest_first(orders):
    return sorted(orders, key=lambda o: o.created_at, reverse=True)


@storefront.repository(part_of=Order)
class OrderRepository:
    def find(self, order_id) -> Order | None:
        try:
            return self.get(order_id)
        except ObjectNotFoundError:
            return None

    def find_by_payment_intent(self, payment_intent_id) -> Order | None:
        if not payment_intent_id:
            return None
        results = self._dao.query.filter(payment_intent_id=payment_intent_id).all().items
        return results[0] if results else None

    def find_by_checkout_session(self, session_id) -> Order | None:
        if not session_id:
            return None
        results = self._dao.query.filter(checkout_session_id=session_id).all().items
        return results[0] if results else None

    def for_customer(self, customer_id) -> list[Order]:
        return _newest_first(self._dao.query.filter(customer_id=str(customer_id)).all().items)

    def all_orders(self, status: str | None = None) -> list[Order]:
        query = self._dao.query.filter(status=status) if status else self._dao.query
        return _newest_first(query.all().items)

    def find_orphaned(self) -> list[Order]:
        """Pending orders whose checkout session was never created."""
        pending = self._dao.query.filter(status=OrderStatus.PENDING.value).all().items
        return _newest_first(o for o in pending if o.is_orphaned)

    def find_oversold(self) -> list[Order]:
        return _newest_first(self._dao.query.filter(oversold=True).all().items)
