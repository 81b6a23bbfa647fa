import logging
import sys
from contextlib import asynccontextmanager
from fastapi import FastAPI

from storefront.database import engine
from storefront.infrastructure.db_schema import metadata
from storefront.presentation.api import router, admin_router
from storefront.presentation.errors import register_exception_handlers

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[logging.StreamHandler(sys.stdout)]
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Alembic owns the schema in production; this only fills in a fresh dev database
    async with engine.begin() as conn:
        await conn.run_sync(metadata.create_all)
    logger.info("Storefront started")

    yield

    await engine.dispose()
    logger.info("Storefront stopped")


def create_app(with_lifespan: bool = True) -> FastAPI:
    app = FastAPI(
        title="Storefront",
        description="Catalog, cart and Razorpay checkout for an educational materials shop",
        version="1.0.0",
        lifespan=lifespan if with_lifespan else None
    )
    register_exception_handlers(app)
    app.include_router(router, prefix="/api")
    app.include_router(admin_router, prefix="/api")

    @app.get("/health")
    async def health():
        return {"status": "healthy"}

    return app


app = create_app()
