"""
FastAPI application entry point.
Challenge: Mount routes, middleware (Prometheus), startup/shutdown of the Elasticsearch client.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from prometheus_client import make_asgi_app

from product_search.api.v1.router import api_router
from product_search.config import get_settings
from product_search.repositories.product_repository import ProductRepository
from product_search.search.elasticsearch_client import close_elasticsearch, get_elasticsearch

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup: ensure the product index when ES is available. Shutdown: close the ES client."""
    settings = get_settings()
    if settings.ensure_index_on_startup:
        try:
            repo = ProductRepository(await get_elasticsearch(), settings)
            await repo.create_index()
        except Exception as e:
            # ES may be down; app still starts and /health/ready reports it
            logger.warning("Could not ensure product index %s on startup: %s", settings.product_index, e)
    yield
    await close_elasticsearch()


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def create_app() -> FastAPI:
    settings = get_settings()
    configure_logging(settings.log_level)
    app = FastAPI(
        title=settings.app_name,
        description="Product catalog search over Elasticsearch: index admin, CRUD, filtered search, category reports.",
        version="1.0.0",
        debug=settings.debug,
        lifespan=lifespan,
    )

    # CORS for storefront/API consumers
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Prometheus metrics at /metrics
    metrics_app = make_asgi_app()
    app.mount("/metrics", metrics_app)

    app.include_router(api_router, prefix="/api")

    return app


app = create_app()
