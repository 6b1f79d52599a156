"""Storefront FastAPI application.

Every request runs inside the storefront domain context and gets a request
id bound into the structlog context.

Usage:
    uvicorn app:app --app-dir src --host 0.0.0.0 --port 8000 --reload
"""

from uuid import uuid4

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from storefront.domain import storefront

# ---------------------------------------------------------------------------
# Domain initialization
# ---------------------------------------------------------------------------
storefront.init()

from storefront.api import cart_router, order_router, product_router, webhook_router  # noqa: E402
from storefront.api.errors import register_error_handlers  # noqa: E402
from storefront.utils.logging import add_context, clear_context  # noqa: E402

# ---------------------------------------------------------------------------
# FastAPI app
# ---------------------------------------------------------------------------
app = FastAPI(
    title="Storefront API",
    description="Nail-art storefront: catalogue, checkout, orders and payment webhooks",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def domain_context_middleware(request: Request, call_next):
    """Push the storefront domain context and tag logs with a request id."""
    request_id = request.headers.get("x-request-id") or uuid4().hex
    add_context(request_id=request_id, path=request.url.path)
    try:
        with storefront.domain_context():
            response = await call_next(request)
    finally:
        clear_context()
    response.headers["x-request-id"] = request_id
    return response


# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------
app.include_router(product_router)
app.include_router(cart_router)
app.include_router(order_router)
app.include_router(webhook_router)
register_error_handlers(app)


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------
@app.get("/health")
async def health():
    return JSONResponse(content={"status": "ok", "domain": storefront.name})
