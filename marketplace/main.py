# marketplace/main.py
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
import uvicorn

from marketplace.api.routers import carts, health, orders, products, stores
from marketplace.data.database import init_db
from marketplace.domain.errors import MarketplaceError
from marketplace.utils.logging import get_logger

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Initializing database")
    init_db()
    yield


async def marketplace_error_handler(request: Request, exc: MarketplaceError):
    logger.info(f"{request.method} {request.url.path} -> {exc.kind}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


def create_app(with_lifespan: bool = True) -> FastAPI:
    app = FastAPI(
        title="Marketplace Orders Service",
        version="1.0.0",
        lifespan=lifespan if with_lifespan else None,
    )

    app.add_exception_handler(MarketplaceError, marketplace_error_handler)

    # Include routers
    app.include_router(health.router)
    app.include_router(stores.router)
    app.include_router(products.router)
    app.include_router(carts.router)
    app.include_router(orders.router)

    return app


app = create_app()

if __name__ == "__main__":
    uvicorn.run("marketplace.main:app", host="0.0.0.0", port=8000)
