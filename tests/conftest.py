"""
Pytest fixtures - mocked Elasticsearch client, mocked service, HTTP client.
Challenge: Isolated tests; no running Elasticsearch needed.
"""

from datetime import datetime
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from elasticsearch import NotFoundError
from httpx import ASGITransport, AsyncClient

from product_search.config import Settings
from product_search.core.dependencies import get_product_service
from product_search.main import app
from product_search.repositories.product_repository import ProductRepository
from product_search.schemas.product import CREATE_TIME_TZ, Product
from product_search.search.elasticsearch_client import get_elasticsearch
from product_search.services.product_service import ProductService


@pytest.fixture
def settings() -> Settings:
    return Settings(_env_file=None)


@pytest.fixture
def es() -> AsyncMock:
    """AsyncElasticsearch stand-in: every client call is awaitable."""
    return AsyncMock()


@pytest.fixture
def repo(es: AsyncMock, settings: Settings) -> ProductRepository:
    return ProductRepository(es, settings)


@pytest.fixture
def not_found_error():
    def make() -> NotFoundError:
        return NotFoundError("Not Found", meta=MagicMock(status=404), body={"found": False})

    return make


@pytest.fixture
def product_service() -> MagicMock:
    """Service mock; async methods become AsyncMock through spec=ProductService."""
    return MagicMock(spec=ProductService)


@pytest_asyncio.fixture
async def client(product_service: MagicMock, es: AsyncMock):
    app.dependency_overrides[get_product_service] = lambda: product_service
    app.dependency_overrides[get_elasticsearch] = lambda: es
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
def test_product() -> Product:
    return Product(
        id="1001",
        product_name="测试手机",
        category="手机",
        sub_category="智能手机",
        price=2999.99,
        stock=100,
        sales=50,
        tags=["智能", "5G", "新品"],
        create_time=datetime(2026, 1, 5, 15, 42, 0, tzinfo=CREATE_TIME_TZ),
        description="这是一款测试手机，功能强大",
        merchant_id="merchant_001",
        score=4.5,
    )


@pytest.fixture
def test_product_json(test_product: Product) -> dict:
    return test_product.to_document()
