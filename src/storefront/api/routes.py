"""FastAPI routes for the storefront: catalogue, cart, orders and webhooks."""

import json

from fastapi import APIRouter, Depends, Header, Query, Request, Response
from fastapi.responses import JSONResponse, PlainTextResponse
from protean.utils.globals import current_domain

from storefront.api.auth import CurrentUser, current_user, require_admin
from storefront.api.schemas import (
    AddNoteRequest,
    AddVariantRequest,
    CheckoutRequest,
    CheckoutResponse,
    CheckStockRequest,
    CreateProductRequest,
    OrderResponse,
    ProductIdResponse,
    ProductResponse,
    RestockRequest,
    StockCheckResponse,
    TrackingResponse,
    UpdateOrderStatusRequest,
    UpdateProductDetailsRequest,
    ValidateCartRequest,
    ValidatedCartResponse,
    VariantsResponse,
    WebhookAck,
)
from storefront.catalogue.management import (
    ActivateProduct,
    AddVariant,
    CreateProduct,
    DeactivateProduct,
    UpdateProductDetails,
    restock,
)
from storefront.catalogue.product import Product
from storefront.domain import logger
from storefront.errors import InvalidSignature, NotFound, ProductUnavailable
from storefront.ordering.cart import CartLine, CartValidator
from storefront.ordering.checkout import CheckoutService
from storefront.ordering.order import Order
from storefront.ordering.status import AddOrderNote, CancelOrder, UpdateOrderStatus
from storefront.payments.gateway import get_gateway
from storefront.payments.reconciler import PaymentReconciler

product_router = APIRouter(prefix="/products", tags=["products"])
cart_router = APIRouter(prefix="/cart", tags=["cart"])
order_router = APIRouter(prefix="/orders", tags=["orders"])
webhook_router = APIRouter(prefix="/webhook", tags=["webhooks"])


# ---------------------------------------------------------------------------
# Serialization
# ---------------------------------------------------------------------------
def _variants(product: Product) -> list[dict]:
    return [{"size": v.size, "design": v.design, "stock": v.stock} for v in product.variants]


def _product_response(product: Product) -> ProductResponse:
    return ProductResponse(
        id=str(product.id),
        title=product.title,
        description=product.description,
        price=product.price,
        category=product.category,
        active=product.active,
        featured=product.featured,
        variants=_variants(product),
        total_stock=product.total_stock,
    )


def _shipping_info(order: Order) -> dict:
    info = order.shipping_info
    return {
        "name": info.name,
        "phone": info.phone,
        "address": info.address,
        "city": info.city,
        "state": info.state,
        "postal_code": info.postal_code,
        "country": info.country,
    }


def _history(order: Order) -> list[dict]:
    entries = sorted(order.history, key=lambda h: h.changed_at)
    return [
        {"status": h.status, "changed_at": h.changed_at, "note": h.note, "source": h.source} for h in entries
    ]


def _order_response(order: Order) -> OrderResponse:
    return OrderResponse(
        id=str(order.id),
        order_number=order.order_number,
        customer_id=str(order.customer_id),
        items=[
            {
                "product_id": str(i.product_id),
                "title": i.title,
                "price": i.price,
                "quantity": i.quantity,
                "size": i.size,
                "design": i.design,
            }
            for i in order.items
        ],
        subtotal=order.subtotal,
        tax=order.tax,
        shipping=order.shipping,
        total=order.total,
        shipping_info=_shipping_info(order),
        payment={
            "status": order.payment_status,
            "amount": order.payment_amount,
            "session_id": order.checkout_session_id,
            "payment_intent_id": order.payment_intent_id,
            "paid_at": order.paid_at,
        },
        status=order.status,
        tracking_number=order.tracking_number,
        notes=order.notes,
        status_history=_history(order),
        oversold=bool(order.oversold),
        created_at=order.created_at,
        updated_at=order.updated_at,
    )


def _cart_lines(items) -> list[CartLine]:
    return [
        CartLine(
            product_id=item.product_id,
            size=item.variant.size,
            design=item.variant.design,
            quantity=item.quantity,
        )
        for item in items
    ]


def _owned_order(order_id: str, user: CurrentUser) -> Order:
    order = current_domain.repository_for(Order).find(order_id)
    if order is None or not (user.is_admin or order.is_owned_by(user.user_id)):
        raise NotFound("Order not found", order_id=order_id)
    return order


# ---------------------------------------------------------------------------
# Products
# ---------------------------------------------------------------------------
@product_router.get("", response_model=list[ProductResponse])
async def list_products(
    response: Response,
    category: str | None = None,
    min_price: float | None = Query(default=None, alias="minPrice", ge=0),
    max_price: float | None = Query(default=None, alias="maxPrice", ge=0),
    sort: str = "newest",
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=12, ge=1, le=100),
) -> list[ProductResponse]:
    """One page of active products. ``X-Total-Count`` carries the unpaged count."""
    if category == "all":
        category = None
    products = current_domain.repository_for(Product).list_active(
        category=category,
        min_price=min_price,
        max_price=max_price,
        sort=sort,
    )
    response.headers["X-Total-Count"] = str(len(products))
    start = (page - 1) * limit
    return [_product_response(p) for p in products[start : start + limit]]


@product_router.get("/{product_id}", response_model=ProductResponse)
async def get_product(product_id: str) -> ProductResponse:
    product = current_domain.repository_for(Product).find_active(product_id)
    if product is None:
        raise ProductUnavailable(product_id)
    return _product_response(product)


@product_router.get("/{product_id}/variants", response_model=VariantsResponse)
async def get_variants(product_id: str) -> VariantsResponse:
    product = current_domain.repository_for(Product).find_active(product_id)
    if product is None:
        raise ProductUnavailable(product_id)
    return VariantsResponse(variants=_variants(product), total_stock=product.total_stock)


@product_router.post("/{product_id}/check-stock", response_model=StockCheckResponse)
async def check_stock(product_id: str, body: CheckStockRequest) -> StockCheckResponse:
    result = current_domain.repository_for(Product).check_stock(product_id, body.size, body.design, body.quantity)
    return StockCheckResponse(**result)


@product_router.post("", status_code=201, response_model=ProductIdResponse)
async def create_product(
    body: CreateProductRequest,
    admin: CurrentUser = Depends(require_admin),  # noqa: ARG001
) -> ProductIdResponse:
    command = CreateProduct(
        title=body.title,
        description=body.description,
        price=body.price,
        category=body.category,
        featured=body.featured,
        variants=json.dumps([v.model_dump() for v in body.variants]),
    )
    result = current_domain.process(command, asynchronous=False)
    return ProductIdResponse(product_id=result)


@product_router.put("/{product_id}/details", response_model=ProductResponse)
async def update_product_details(
    product_id: str,
    body: UpdateProductDetailsRequest,
    admin: CurrentUser = Depends(require_admin),  # noqa: ARG001
) -> ProductResponse:
    command = UpdateProductDetails(
        product_id=product_id,
        title=body.title,
        description=body.description,
        price=body.price,
        category=body.category,
        featured=body.featured,
    )
    current_domain.process(command, asynchronous=False)
    return _product_response(current_domain.repository_for(Product).get(product_id))


@product_router.post("/{product_id}/variants", status_code=201, response_model=VariantsResponse)
async def add_variant(
    product_id: str,
    body: AddVariantRequest,
    admin: CurrentUser = Depends(require_admin),  # noqa: ARG001
) -> VariantsResponse:
    command = AddVariant(product_id=product_id, size=body.size, design=body.design, stock=body.stock)
    current_domain.process(command, asynchronous=False)
    product = current_domain.repository_for(Product).get(product_id)
    return VariantsResponse(variants=_variants(product), total_stock=product.total_stock)


@product_router.put("/{product_id}/variants/stock", response_model=VariantsResponse)
async def restock_variant(
    product_id: str,
    body: RestockRequest,
    admin: CurrentUser = Depends(require_admin),  # noqa: ARG001
) -> VariantsResponse:
    restock(product_id, body.size, body.design, body.quantity)
    product = current_domain.repository_for(Product).get(product_id)
    return VariantsResponse(variants=_variants(product), total_stock=product.total_stock)


@product_router.put("/{product_id}/activate", response_model=ProductResponse)
async def activate_product(
    product_id: str,
    admin: CurrentUser = Depends(require_admin),  # noqa: ARG001
) -> ProductResponse:
    current_domain.process(ActivateProduct(product_id=product_id), asynchronous=False)
    return _product_response(current_domain.repository_for(Product).get(product_id))


@product_router.put("/{product_id}/deactivate", response_model=ProductResponse)
async def deactivate_product(
    product_id: str,
    admin: CurrentUser = Depends(require_admin),  # noqa: ARG001
) -> ProductResponse:
    current_domain.process(DeactivateProduct(product_id=product_id), asynchronous=False)
    return _product_response(current_domain.repository_for(Product).get(product_id))


# ---------------------------------------------------------------------------
# Cart & checkout
# ---------------------------------------------------------------------------
@cart_router.post("/validate", response_model=ValidatedCartResponse)
async def validate_cart(body: ValidateCartRequest) -> ValidatedCartResponse:
    cart = CartValidator().validate(_cart_lines(body.items))
    return ValidatedCartResponse(**cart.to_dict())


@cart_router.post("/checkout-session", response_model=CheckoutResponse)
async def create_checkout_session(
    body: CheckoutRequest,
    user: CurrentUser = Depends(current_user),
) -> CheckoutResponse:
    service = CheckoutService(get_gateway())
    result = service.create_checkout(
        customer_id=user.user_id,
        lines=_cart_lines(body.items),
        shipping_info=body.shipping_info.model_dump(),
        customer_email=body.email or user.email,
    )
    return CheckoutResponse(session_id=result.session_id, order_id=result.order_id, url=result.url)


# ---------------------------------------------------------------------------
# Orders: admin
# ---------------------------------------------------------------------------
@order_router.get("/admin/all", response_model=list[OrderResponse])
async def list_all_orders(
    status: str | None = None,
    admin: CurrentUser = Depends(require_admin),  # noqa: ARG001
) -> list[OrderResponse]:
    orders = current_domain.repository_for(Order).all_orders(status=status)
    return [_order_response(o) for o in orders]


@order_router.get("/admin/orphaned", response_model=list[OrderResponse])
async def list_orphaned_orders(admin: CurrentUser = Depends(require_admin)) -> list[OrderResponse]:  # noqa: ARG001
    return [_order_response(o) for o in current_domain.repository_for(Order).find_orphaned()]


@order_router.get("/admin/oversold", response_model=list[OrderResponse])
async def list_oversold_orders(admin: CurrentUser = Depends(require_admin)) -> list[OrderResponse]:  # noqa: ARG001
    return [_order_response(o) for o in current_domain.repository_for(Order).find_oversold()]


@order_router.put("/admin/{order_id}/status", response_model=OrderResponse)
async def update_order_status(
    order_id: str,
    body: UpdateOrderStatusRequest,
    admin: CurrentUser = Depends(require_admin),  # noqa: ARG001
) -> OrderResponse:
    command = UpdateOrderStatus(
        order_id=order_id,
        status=body.status,
        tracking_number=body.tracking_number,
        notes=body.notes,
    )
    current_domain.process(command, asynchronous=False)
    return _order_response(current_domain.repository_for(Order).get(order_id))


@order_router.post("/admin/{order_id}/notes", response_model=OrderResponse)
async def add_order_note(
    order_id: str,
    body: AddNoteRequest,
    admin: CurrentUser = Depends(require_admin),  # noqa: ARG001
) -> OrderResponse:
    current_domain.process(AddOrderNote(order_id=order_id, note=body.note), asynchronous=False)
    return _order_response(current_domain.repository_for(Order).get(order_id))


# ---------------------------------------------------------------------------
# Orders: customer
# ---------------------------------------------------------------------------
@order_router.get("", response_model=list[OrderResponse])
async def my_orders(user: CurrentUser = Depends(current_user)) -> list[OrderResponse]:
    return [_order_response(o) for o in current_domain.repository_for(Order).for_customer(user.user_id)]


@order_router.get("/success", response_model=OrderResponse)
async def checkout_success(
    session_id: str = Query(default=""),
    user: CurrentUser = Depends(current_user),
) -> OrderResponse:
    """The caller's order for a completed checkout session."""
    order = current_domain.repository_for(Order).find_by_checkout_session(session_id)
    if order is None or not order.is_owned_by(user.user_id):
        raise NotFound("Order not found", session_id=session_id)
    return _order_response(order)


@order_router.get("/{order_id}", response_model=OrderResponse)
async def get_order(order_id: str, user: CurrentUser = Depends(current_user)) -> OrderResponse:
    return _order_response(_owned_order(order_id, user))


@order_router.get("/{order_id}/tracking", response_model=TrackingResponse)
async def track_order(order_id: str, user: CurrentUser = Depends(current_user)) -> TrackingResponse:
    order = _owned_order(order_id, user)
    return TrackingResponse(
        order_number=order.order_number,
        status=order.status,
        tracking_number=order.tracking_number,
        status_history=_history(order),
        shipping_info=_shipping_info(order),
    )


@order_router.put("/{order_id}/cancel", response_model=OrderResponse)
async def cancel_order(order_id: str, user: CurrentUser = Depends(current_user)) -> OrderResponse:
    current_domain.process(CancelOrder(order_id=order_id, customer_id=user.user_id), asynchronous=False)
    return _order_response(current_domain.repository_for(Order).get(order_id))


# ---------------------------------------------------------------------------
# Payment provider webhook
# ---------------------------------------------------------------------------
@webhook_router.post("/stripe", response_model=WebhookAck)
async def stripe_webhook(request: Request, stripe_signature: str = Header(default="")):
    """Receive a signed provider event. The raw body is verified before parsing."""
    payload = await request.body()
    reconciler = PaymentReconciler(get_gateway())

    try:
        reconciler.handle(payload, stripe_signature)
    except InvalidSignature as exc:
        logger.warning("webhook_signature_rejected", error=exc.message)
        return PlainTextResponse(f"Webhook Error: {exc.message}", status_code=400)
    except Exception:
        logger.exception("webhook_processing_failed")
        return JSONResponse(status_code=500, content={"error": "Webhook processing failed"})

    return WebhookAck(received=True)
