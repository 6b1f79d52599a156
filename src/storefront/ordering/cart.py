"""Authoritative cart validation.

Client carts carry only product ids, variant keys and quantities. Everything
else (titles, prices, totals) is re-read from the catalogue here, so a
tampered client total never reaches an order. Validation never mutates stock.
"""

from dataclasses import asdict, dataclass
from decimal import Decimal

from protean.exceptions import ValidationError
from protean.utils.globals import current_domain

from storefront.catalogue.product import Product
from storefront.errors import InsufficientStock, ProductUnavailable, VariantUnavailable
from storefront.ordering.pricing import MAX_LINE_QUANTITY, CartTotals, compute_totals


@dataclass(frozen=True)
class CartLine:
    product_id: str
    size: str
    design: str
    quantity: int


@dataclass(frozen=True)
class ValidatedCartItem:
    product_id: str
    title: str
    price: float
    size: str
    design: str
    quantity: int


@dataclass(frozen=True)
class ValidatedCart:
    items: list[ValidatedCartItem]
    totals: CartTotals

    @property
    def subtotal(self) -> Decimal:
        return self.totals.subtotal

    @property
    def tax(self) -> Decimal:
        return self.totals.tax

    @property
    def shipping(self) -> Decimal:
        return self.totals.shipping

    @property
    def total(self) -> Decimal:
        return self.totals.total

    def to_dict(self) -> dict:
        return {"items": [asdict(item) for item in self.items], **self.totals.as_floats()}


class CartValidator:
    """Re-prices and stock-checks client cart lines against the catalogue."""

    def __init__(self, products=None) -> None:
        self._products = products

    @property
    def products(self):
        return self._products or current_domain.repository_for(Product)

    def validate(self, lines: list[CartLine]) -> ValidatedCart:
        if not lines:
            raise ValidationError({"items": ["Cart is empty"]})

        items = [self._validate_line(index, line) for index, line in enumerate(lines)]
        totals = compute_totals((item.price, item.quantity) for item in items)
        return ValidatedCart(items=items, totals=totals)

    def _validate_line(self, index: int, line: CartLine) -> ValidatedCartItem:
        if (
            isinstance(line.quantity, bool)
            or not isinstance(line.quantity, int)
            or not 1 <= line.quantity <= MAX_LINE_QUANTITY
        ):
            raise ValidationError({f"items[{index}].quantity": [f"Quantity must be between 1 and {MAX_LINE_QUANTITY}"]})

        product = self.products.find_active(line.product_id)
        if product is None:
            raise ProductUnavailable(line.product_id)

        variant = product.find_variant(line.size, line.design)
        if variant is None:
            raise VariantUnavailable(line.product_id, line.size, line.design)

        if line.quantity > variant.stock:
            raise InsufficientStock(product.title, available_stock=variant.stock, requested=line.quantity)

        return ValidatedCartItem(
            product_id=str(product.id),
            title=product.title,
            price=product.price,
            size=variant.size,
            design=variant.design,
            quantity=line.quantity,
        )
