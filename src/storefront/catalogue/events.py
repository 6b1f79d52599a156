"""Domain events for the Product aggregate."""

from protean.fields import DateTime, Float, Identifier, Integer, String

from storefront.domain import storefront


@storefront.event(part_of="Product")
class ProductCreated:
    """A new product was added to the catalogue."""

    __version__ = 1

    product_id: Identifier(required=True)
    title: String(required=True)
    price: Float(required=True)
    category: String(required=True)
    created_at: DateTime(required=True)


@storefront.event(part_of="Product")
class ProductDetailsUpdated:
    __version__ = 1

    product_id: Identifier(required=True)
    title: String(required=True)
    price: Float(required=True)
    category: String(required=True)


@storefront.event(part_of="Product")
class VariantAdded:
    """A new size/design combination became purchasable."""

    __version__ = 1

    product_id: Identifier(required=True)
    variant_id: Identifier(required=True)
    size: String(required=True)
    design: String(required=True)
    stock: Integer(required=True)


@storefront.event(part_of="Product")
class VariantRestocked:
    __version__ = 1

    product_id: Identifier(required=True)
    size: String(required=True)
    design: String(required=True)
    quantity: Integer(required=True)
    new_stock: Integer(required=True)


@storefront.event(part_of="Product")
class StockDecremented:
    """Paid-for units left the shelf."""

    __version__ = 1

    product_id: Identifier(required=True)
    size: String(required=True)
    design: String(required=True)
    quantity: Integer(required=True)
    remaining_stock: Integer(required=True)


@storefront.event(part_of="Product")
class ProductActivated:
    __version__ = 1

    product_id: Identifier(required=True)
    activated_at: DateTime(required=True)


@storefront.event(part_of="Product")
class ProductDeactivated:
    __version__ = 1

    product_id: Identifier(required=True)
    deactivated_at: DateTime(required=True)
