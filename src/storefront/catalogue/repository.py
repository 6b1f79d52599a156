"""Repository for the Product aggregate."""

import threading

from protean.core.unit_of_work import UnitOfWork
from protean.exceptions import ExpectedVersionError, ObjectNotFoundError

from storefront.catalogue.product import Product
from storefront.domain import logger, storefront
from storefront.errors import ProductUnavailable, VariantUnavailable

# Stock writes persist the whole aggregate, so they serialise per product.
# A fixed pool of re-entrant locks striped by product id keeps memory flat.
_STOCK_STRIPES = tuple(threading.RLock() for _ in range(64))

_MAX_STOCK_ATTEMPTS = 5

# sort name -> (key, descending)
SORT_ORDERS = {
    "newest": (lambda p: p.created_at, True),
    "oldest": (lambda p: p.created_at, False),
    "price_asc": (lambda p: p.price, False),
    "price_desc": (lambda p: p.price, True),
    "name_asc": (lambda p: p.title.lower(), False),
    "name_desc": (lambda p: p.title.lower(), True),
}


def stock_guard(product_id) -> threading.RLock:
    """The lock serialising stock writes for ``product_id``."""
    return _STOCK_STRIPES[hash(str(product_id)) % len(_STOCK_STRIPES)]


@storefront.repository(part_of=Product)
class ProductRepository:
    """Product lookups plus the guarded stock adjustments."""

    def find(self, product_id) -> Product | None:
        try:
            return self.get(product_id)
        except ObjectNotFoundError:
            return None

    def find_active(self, product_id) -> Product | None:
        """Return the product only if it exists and is active."""
        product = self.find(product_id)
        if product is None or not product.active:
            return None
        return product

    def list_active(
        self,
        category: str | None = None,
        min_price: float | None = None,
        max_price: float | None = None,
        sort: str = "newest",
    ) -> list[Product]:
        """Active products, optionally narrowed by category and price range.

        ``sort`` names an entry of ``SORT_ORDERS``; anything else sorts newest
        first.
        """
        filters = {"active": True}
        if category:
            filters["category"] = category
        if min_price is not None:
            filters["price__gte"] = min_price
        if max_price is not None:
            filters["price__lte"] = max_price
        products = self._dao.query.filter(**filters).all().items

        key, descending = SORT_ORDERS.get(sort, SORT_ORDERS["newest"])
        return sorted(products, key=key, reverse=descending)

    def low_stock(self, threshold: int = 5) -> list[Product]:
        """Active products with at least one variant at or below ``threshold``."""
        return [p for p in self.list_active() if any(v.stock <= threshold for v in p.variants)]

    def check_stock(self, product_id, size, design, quantity: int) -> dict:
        """Read-only availability check for a single variant."""
        product = self.find_active(product_id)
        if product is None:
            raise ProductUnavailable(product_id)

        variant = product.find_variant(size, design)
        if variant is None:
            raise VariantUnavailable(product_id, size, design)

        return {"available": variant.stock >= quantity, "stock": variant.stock}

    def decrement_stock(self, product_id, size, design, quantity) -> int:
        """Atomically take ``quantity`` units from a variant. Returns remaining stock.

        Raises ``ProductUnavailable`` if the product is gone, and lets
        ``VariantUnavailable`` / ``InsufficientStock`` from the aggregate
        propagate. Nothing is persisted unless the whole quantity fits.
        """
        return self._adjust_stock(product_id, lambda product: product.decrement_stock(size, design, quantity))

    def restock(self, product_id, size, design, quantity) -> int:
        """Atomically add ``quantity`` units to a variant. Returns the new stock."""
        return self._adjust_stock(product_id, lambda product: product.restock(size, design, quantity))

    def _adjust_stock(self, product_id, change):
        # Read, change and commit under the product's stripe. A version
        # conflict means another writer got in first: reload and reapply.
        with stock_guard(product_id):
            for attempt in range(1, _MAX_STOCK_ATTEMPTS + 1):
                try:
                    with UnitOfWork():
                        product = self.find(product_id)
                        if product is None:
                            raise ProductUnavailable(product_id)
                        result = change(product)
                        self.add(product)
                    return result
                except ExpectedVersionError:
                    if attempt == _MAX_STOCK_ATTEMPTS:
                        raise
                    logger.warning("stock_version_conflict", product_id=str(product_id), attempt=attempt)
