# storefront/main.py
from contextlib import asynccontextmanager

from fastapi import FastAPI
import uvicorn

from storefront.api.errors import register_exception_handlers
from storefront.api.routers import carts, checkout, health, orders, users, webhooks
from storefront.data.database import init_db
from storefront.utils.logging import get_logger, setup_logging

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()

    logger.info("Initializing database")
    init_db()

    yield


def create_app() -> FastAPI:
    app = FastAPI(
        title="Storefront Service",
        version="1.0.0",
        lifespan=lifespan,
    )

    register_exception_handlers(app)

    app.include_router(health.router)
    app.include_router(users.router)
    app.include_router(carts.router)
    app.include_router(checkout.router)
    app.include_router(orders.router)
    app.include_router(webhooks.router)

    return app


app = create_app()

if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=8000)
