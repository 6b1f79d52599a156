"""Product aggregate root with stock-bearing Variant entities.

A variant is identified within its product by the (size, design) pair and
carries the only stock counter in the system. Stock moves down when a paid
order is committed and up when an admin restocks; it never goes negative.
"""

from datetime import UTC, datetime
from enum import Enum

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, Float, HasMany, Integer, String, Text

from storefront.catalogue.events import (
    ProductActivated,
    ProductCreated,
    ProductDeactivated,
    ProductDetailsUpdated,
    StockDecremented,
    VariantAdded,
    VariantRestocked,
)
from storefront.domain import storefront
from storefront.errors import InsufficientStock, VariantUnavailable


class ProductCategory(Enum):
    CLASSIC = "classic"
    FRENCH = "french"
    GLITTER = "glitter"
    MATTE = "matte"
    CHROME = "chrome"
    STILETTO = "stiletto"
    COFFIN = "coffin"
    ALMOND = "almond"
    SQUARE = "square"
    ROUND = "round"


@storefront.entity(part_of="Product")
class Variant:
    """A purchasable size/design combination and its stock on hand."""

    size: String(required=True, max_length=20)
    design: String(required=True, max_length=100)
    stock: Integer(default=0, min_value=0)

    def matches(self, size, design) -> bool:
        return self.size == size and self.design == design


@storefront.aggregate
class Product:
    """Product aggregate root."""

    title: String(required=True, max_length=100)
    description: Text(required=True)
    price: Float(required=True, min_value=0.0)
    category: String(required=True, choices=ProductCategory)
    active: Boolean(default=True)
    featured: Boolean(default=False)
    variants: HasMany(Variant)
    created_at: DateTime(default=lambda: datetime.now(UTC))
    updated_at: DateTime(default=lambda: datetime.now(UTC))

    @invariant.post
    def variant_keys_must_be_unique(self):
        keys = [(v.size, v.design) for v in self.variants]
        if len(keys) != len(set(keys)):
            raise ValidationError({"variants": ["Each size and design combination may appear only once"]})

    @invariant.post
    def description_must_fit(self):
        if self.description and len(self.description) > 1000:
            raise ValidationError({"description": ["Description cannot exceed 1000 characters"]})

    @classmethod
    def create(cls, title, description, price, category, featured=False, variants=None):
        """Create a product, optionally seeded with ``variants``.

        ``variants`` is a list of dicts with ``size``, ``design`` and ``stock``.
        """
        now = datetime.now(UTC)
        product = cls(
            title=title,
            description=description,
            price=price,
            category=category,
            featured=featured,
            created_at=now,
            updated_at=now,
        )
        product.raise_(
            ProductCreated(
                product_id=product.id,
                title=title,
                price=price,
                category=product.category,
                created_at=now,
            )
        )

        for variant in variants or []:
            product.add_variant(variant["size"], variant["design"], variant.get("stock", 0))

        return product

    @property
    def total_stock(self) -> int:
        return sum(v.stock for v in self.variants)

    def find_variant(self, size, design) -> Variant | None:
        return next((v for v in self.variants if v.matches(size, design)), None)

    def update_details(self, title=None, description=None, price=None, category=None, featured=None):
        if title is not None:
            self.title = title
        if description is not None:
            self.description = description
        if price is not None:
            self.price = price
        if category is not None:
            self.category = category
        if featured is not None:
            self.featured = featured

        self.updated_at = datetime.now(UTC)

        self.raise_(
            ProductDetailsUpdated(
                product_id=self.id,
                title=self.title,
                price=self.price,
                category=self.category,
            )
        )

    def add_variant(self, size, design, stock=0):
        if self.find_variant(size, design) is not None:
            raise ValidationError({"variants": [f"Variant {size}/{design} already exists"]})

        variant = Variant(size=size, design=design, stock=stock)
        self.add_variants(variant)
        self.updated_at = datetime.now(UTC)

        self.raise_(
            VariantAdded(
                product_id=self.id,
                variant_id=variant.id,
                size=size,
                design=design,
                stock=stock,
            )
        )
        return variant

    def restock(self, size, design, quantity):
        if quantity < 1:
            raise ValidationError({"quantity": ["Restock quantity must be at least 1"]})

        variant = self.find_variant(size, design)
        if variant is None:
            raise VariantUnavailable(self.id, size, design)

        variant.stock = variant.stock + quantity
        self.updated_at = datetime.now(UTC)

        self.raise_(
            VariantRestocked(
                product_id=self.id,
                size=size,
                design=design,
                quantity=quantity,
                new_stock=variant.stock,
            )
        )
        return variant.stock

    def decrement_stock(self, size, design, quantity):
        """Take ``quantity`` units off the variant's stock and return what remains.

        Either the full quantity is taken or nothing changes.
        """
        if quantity < 1:
            raise ValidationError({"quantity": ["Quantity must be at least 1"]})

        variant = self.find_variant(size, design)
        if variant is None:
            raise VariantUnavailable(self.id, size, design)

        if quantity > variant.stock:
            raise InsufficientStock(self.title, available_stock=variant.stock, requested=quantity)

        variant.stock = variant.stock - quantity
        self.updated_at = datetime.now(UTC)

        self.raise_(
            StockDecremented(
                product_id=self.id,
                size=size,
                design=design,
                quantity=quantity,
                remaining_stock=variant.stock,
            )
        )
        return variant.stock

    def activate(self):
        if self.active:
            raise ValidationError({"active": ["Product is already active"]})

        now = datetime.now(UTC)
        self.active = True
        self.updated_at = now
        self.raise_(ProductActivated(product_id=self.id, activated_at=now))

    def deactivate(self):
        if not self.active:
            raise ValidationError({"active": ["Product is already inactive"]})

        now = datetime.now(UTC)
        self.active = False
        self.updated_at = now
        self.raise_(ProductDeactivated(product_id=self.id, deactivated_at=now))
