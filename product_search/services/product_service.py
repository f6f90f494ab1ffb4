"""
Product service - request checks in front of the repository (SOLID: Single Responsibility).
Challenge: Keep controllers thin; reject obviously bad input before calling Elasticsearch.
Design: Service depends on the repository abstraction; easy to test with mocks.
"""

from product_search.config import Settings, get_settings
from product_search.core.exceptions import InvalidProductRequest
from product_search.repositories.product_repository import ProductRepository
from product_search.schemas.product import (
    SORT_FIELDS,
    BulkSaveResult,
    PageResult,
    Product,
    SearchCriteria,
)


def _require_id_and_name(product: Product) -> None:
    if not product.id or not product.product_name:
        raise InvalidProductRequest(f"Product id and productName are required, product id: {product.id}")


def _require_product_id(product_id: str | None) -> None:
    if not product_id or not product_id.strip():
        raise InvalidProductRequest("Product id is required")


def _check_criteria(criteria: SearchCriteria) -> None:
    if (
        criteria.min_price is not None
        and criteria.max_price is not None
        and criteria.min_price > criteria.max_price
    ):
        raise InvalidProductRequest("minPrice must not be greater than maxPrice")
    if criteria.sort_field and criteria.sort_field not in SORT_FIELDS:
        raise InvalidProductRequest(f"sortField must be one of: {', '.join(SORT_FIELDS)}")


class ProductService:
    """Handles product use cases: index admin, CRUD, search, aggregations."""

    def __init__(self, product_repo: ProductRepository, settings: Settings | None = None):
        self.product_repo = product_repo
        self.settings = settings or get_settings()

    async def create_index(self) -> bool:
        return await self.product_repo.create_index()

    async def delete_index(self) -> bool:
        return await self.product_repo.delete_index()

    async def save(self, product: Product) -> str:
        _require_id_and_name(product)
        return await self.product_repo.save(product)

    async def bulk_save(self, products: list[Product]) -> BulkSaveResult:
        if not products:
            raise InvalidProductRequest("Product list must not be empty")
        for product in products:
            _require_id_and_name(product)
        return await self.product_repo.bulk_save(products)

    async def get_by_id(self, product_id: str) -> Product | None:
        _require_product_id(product_id)
        return await self.product_repo.get(product_id)

    async def update(self, product: Product) -> str:
        _require_id_and_name(product)
        return await self.product_repo.update(product)

    async def delete(self, product_id: str) -> str:
        _require_product_id(product_id)
        return await self.product_repo.delete(product_id)

    async def search(self, criteria: SearchCriteria) -> list[Product]:
        _check_criteria(criteria)
        return await self.product_repo.search(criteria)

    async def search_page(self, criteria: SearchCriteria, page: int, page_size: int) -> PageResult:
        """Paginated search. Page numbers start at 1."""
        if page < 1:
            raise InvalidProductRequest("page must be at least 1")
        if page_size < 1 or page_size > self.settings.max_page_size:
            raise InvalidProductRequest(f"pageSize must be between 1 and {self.settings.max_page_size}")
        if page * page_size > self.settings.max_result_window:
            raise InvalidProductRequest(
                f"page * pageSize must not exceed {self.settings.max_result_window}, narrow the search instead"
            )
        _check_criteria(criteria)
        return await self.product_repo.search_page(criteria, page, page_size)

    async def count_by_category(self) -> dict[str, int]:
        return await self.product_repo.count_by_category()

    async def count_by_category_and_sub_category(self) -> dict[str, dict[str, int]]:
        return await self.product_repo.count_by_category_and_sub_category()
