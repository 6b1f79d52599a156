"""Map storefront exceptions to HTTP responses.

Protean's own exceptions (``ValidationError`` → 400, ``ObjectNotFoundError``
→ 404, ...) are handled by Protean's FastAPI integration; storefront errors
carry their status code and hint fields themselves.
"""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from protean.integrations.fastapi import register_exception_handlers

from storefront.domain import logger
from storefront.errors import StorefrontError


async def _storefront_error(request: Request, exc: StorefrontError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("request_failed", path=request.url.path, error=exc.message, **exc.hints)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


def register_error_handlers(app: FastAPI) -> None:
    register_exception_handlers(app)
    app.add_exception_handler(StorefrontError, _storefront_error)
