# storefront/api/errors.py
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from storefront.exceptions import StorefrontError
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(StorefrontError)
    async def storefront_error_handler(request: Request, exc: StorefrontError):
        logger.info(f"{request.method} {request.url.path} -> {exc.status_code} {type(exc).__name__}")
        return JSONResponse(status_code=exc.status_code, content={"error": exc.message})
