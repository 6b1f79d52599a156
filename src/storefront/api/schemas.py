"""Pydantic request/response schemas for the Storefront API.

These are external contracts (anti-corruption layer), separate from
internal Protean commands. Wire names are camelCase to match the storefront
client; Python attributes stay snake_case.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, StrictInt
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---------------------------------------------------------------------------
# Shared sub-models
# ---------------------------------------------------------------------------
class VariantKey(CamelModel):
    size: str = Field(..., min_length=1, max_length=20)
    design: str = Field(..., min_length=1, max_length=100)


class CartItemRequest(CamelModel):
    product_id: str
    variant: VariantKey
    quantity: StrictInt = Field(..., ge=1, le=10)


class ShippingInfoSchema(CamelModel):
    name: str = Field(..., min_length=1, max_length=100)
    phone: str = Field(..., min_length=1, max_length=30)
    address: str = Field(..., min_length=1, max_length=255)
    city: str = Field(..., min_length=1, max_length=100)
    state: str = Field(..., min_length=1, max_length=100)
    postal_code: str = Field(..., min_length=1, max_length=20)
    country: str = Field(..., min_length=1, max_length=100)


class VariantSchema(CamelModel):
    size: str
    design: str
    stock: int


# ---------------------------------------------------------------------------
# Catalogue
# ---------------------------------------------------------------------------
class CreateProductRequest(CamelModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        json_schema_extra={
            "examples": [
                {
                    "title": "Classic French Manicure",
                    "description": "Timeless French tips with a natural pink base.",
                    "price": 24.99,
                    "category": "french",
                    "featured": True,
                    "variants": [{"size": "M", "design": "Classic French", "stock": 30}],
                }
            ]
        },
    )

    title: str = Field(..., min_length=1, max_length=100)
    description: str = Field(..., min_length=1, max_length=1000)
    price: float = Field(..., ge=0)
    category: str
    featured: bool = False
    variants: list[VariantSchema] = Field(default_factory=list)


class UpdateProductDetailsRequest(CamelModel):
    title: str | None = Field(None, max_length=100)
    description: str | None = Field(None, max_length=1000)
    price: float | None = Field(None, ge=0)
    category: str | None = None
    featured: bool | None = None


class AddVariantRequest(CamelModel):
    size: str = Field(..., min_length=1, max_length=20)
    design: str = Field(..., min_length=1, max_length=100)
    stock: int = Field(0, ge=0)


class RestockRequest(CamelModel):
    size: str
    design: str
    quantity: int = Field(..., ge=1)


class CheckStockRequest(CamelModel):
    size: str
    design: str
    quantity: int = Field(1, ge=1)


class ProductResponse(CamelModel):
    id: str
    title: str
    description: str
    price: float
    category: str
    active: bool
    featured: bool
    variants: list[VariantSchema]
    total_stock: int


class VariantsResponse(CamelModel):
    variants: list[VariantSchema]
    total_stock: int


class StockCheckResponse(CamelModel):
    available: bool
    stock: int


class ProductIdResponse(CamelModel):
    product_id: str


# ---------------------------------------------------------------------------
# Cart & checkout
# ---------------------------------------------------------------------------
class ValidateCartRequest(CamelModel):
    items: list[CartItemRequest] = Field(..., min_length=1)


class ValidatedItemSchema(CamelModel):
    product_id: str
    title: str
    price: float
    size: str
    design: str
    quantity: int


class ValidatedCartResponse(CamelModel):
    items: list[ValidatedItemSchema]
    subtotal: float
    tax: float
    shipping: float
    total: float


class CheckoutRequest(CamelModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        json_schema_extra={
            "examples": [
                {
                    "items": [{"productId": "prod-001", "variant": {"size": "M", "design": "Gold"}, "quantity": 2}],
                    "shippingInfo": {
                        "name": "Jane Doe",
                        "phone": "555-0100",
                        "address": "1 Main St",
                        "city": "Springfield",
                        "state": "IL",
                        "postalCode": "62701",
                        "country": "US",
                    },
                    "email": "jane@example.com",
                }
            ]
        },
    )

    items: list[CartItemRequest] = Field(..., min_length=1)
    shipping_info: ShippingInfoSchema
    email: str | None = None


class CheckoutResponse(CamelModel):
    session_id: str
    order_id: str
    url: str | None = None


# ---------------------------------------------------------------------------
# Orders
# ---------------------------------------------------------------------------
class OrderItemSchema(CamelModel):
    product_id: str
    title: str
    price: float
    quantity: int
    size: str
    design: str


class StatusChangeSchema(CamelModel):
    status: str
    changed_at: datetime
    note: str | None = None
    source: str


class PaymentSchema(CamelModel):
    status: str
    amount: float
    session_id: str | None = None
    payment_intent_id: str | None = None
    paid_at: datetime | None = None


class OrderResponse(CamelModel):
    id: str
    order_number: str
    customer_id: str
    items: list[OrderItemSchema]
    subtotal: float
    tax: float
    shipping: float
    total: float
    shipping_info: ShippingInfoSchema
    payment: PaymentSchema
    status: str
    tracking_number: str | None = None
    notes: str | None = None
    status_history: list[StatusChangeSchema]
    oversold: bool
    created_at: datetime | None = None
    updated_at: datetime | None = None


class TrackingResponse(CamelModel):
    order_number: str
    status: str
    tracking_number: str | None = None
    status_history: list[StatusChangeSchema]
    shipping_info: ShippingInfoSchema


class UpdateOrderStatusRequest(CamelModel):
    status: str
    tracking_number: str | None = Field(None, max_length=100)
    notes: str | None = Field(None, max_length=1000)


class AddNoteRequest(CamelModel):
    note: str = Field(..., min_length=1, max_length=500)


# ---------------------------------------------------------------------------
# Webhook
# ---------------------------------------------------------------------------
class WebhookAck(CamelModel):
    received: bool = True
