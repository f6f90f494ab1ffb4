"""
Product repository - index administration, product CRUD, search and aggregations over Elasticsearch.
Challenge: Translate request parameters into query-DSL; Elasticsearch does the actual work.
"""

import logging
from typing import Any

from elasticsearch import AsyncElasticsearch, NotFoundError

from product_search.config import Settings, get_settings
from product_search.core.exceptions import ProductNotFound
from product_search.repositories.base_repository import BaseRepository
from product_search.schemas.product import (
    BulkItemError,
    BulkSaveResult,
    PageResult,
    Product,
    SearchCriteria,
    SortOrder,
)
from product_search.search.elasticsearch_client import product_index_mappings
from product_search.search.responses import (
    hit_sources,
    parse_nested_terms_buckets,
    parse_terms_buckets,
    response_body,
    wrap_page_result,
    write_result,
)

logger = logging.getLogger(__name__)

CATEGORY_AGG = "category_agg"
SUB_CATEGORY_AGG = "sub_category_agg"
DEFAULT_SORT_FIELD = "sales"


def build_search_query(criteria: SearchCriteria, settings: Settings) -> dict[str, Any]:
    """Bool query: keyword matches as should clauses, price/category/tags as filters."""
    bool_query: dict[str, Any] = {}
    if criteria.keyword:
        bool_query["should"] = [
            {"match": {"productName": {"query": criteria.keyword, "analyzer": settings.product_name_analyzer}}},
            {"match": {"description": {"query": criteria.keyword, "analyzer": settings.description_analyzer}}},
        ]
        bool_query["minimum_should_match"] = 1

    filters: list[dict[str, Any]] = []
    if criteria.min_price is not None or criteria.max_price is not None:
        price_range: dict[str, float] = {}
        if criteria.min_price is not None:
            price_range["gte"] = criteria.min_price
        if criteria.max_price is not None:
            price_range["lte"] = criteria.max_price
        filters.append({"range": {"price": price_range}})
    if criteria.category:
        filters.append({"term": {"category": criteria.category}})
    if criteria.tags:
        filters.append({"terms": {"tags": list(criteria.tags)}})
    if filters:
        bool_query["filter"] = filters
    return {"bool": bool_query}


def build_sort(criteria: SearchCriteria) -> list[dict[str, Any]]:
    """Single field sort; best sellers first by default."""
    field = criteria.sort_field or DEFAULT_SORT_FIELD
    order = (criteria.sort_order or SortOrder.DESC).value
    return [{field: {"order": order}}]


def category_aggregation(settings: Settings, with_sub_category: bool = False) -> dict[str, Any]:
    """Terms aggregation on category, optionally with sub-category buckets inside each category."""
    agg: dict[str, Any] = {"terms": {"field": "category", "size": settings.category_agg_size}}
    if with_sub_category:
        agg["aggs"] = {
            SUB_CATEGORY_AGG: {"terms": {"field": "subCategory", "size": settings.sub_category_agg_size}}
        }
    return {CATEGORY_AGG: agg}


class ProductRepository(BaseRepository[Product]):
    """Product-specific index management and queries."""

    def __init__(self, client: AsyncElasticsearch, settings: Settings | None = None):
        self.settings = settings or get_settings()
        super().__init__(client, self.settings.product_index, Product)

    # --- index management ---

    async def create_index(self) -> bool:
        """Create the product index with its mapping. Existing index counts as success."""
        if await self.index_exists():
            logger.info("Product index %s already exists", self.index)
            return True
        response = await self._execute(
            "create_index",
            self.client.indices.create(index=self.index, mappings=product_index_mappings(self.settings)),
        )
        acknowledged = bool(response_body(response).get("acknowledged"))
        logger.info("Product index %s created, acknowledged=%s", self.index, acknowledged)
        return acknowledged

    async def delete_index(self) -> bool:
        """Drop the product index. Missing index counts as success."""
        if not await self.index_exists():
            logger.info("Product index %s does not exist, nothing to delete", self.index)
            return True
        response = await self._execute("delete_index", self.client.indices.delete(index=self.index))
        acknowledged = bool(response_body(response).get("acknowledged"))
        logger.info("Product index %s deleted, acknowledged=%s", self.index, acknowledged)
        return acknowledged

    # --- CRUD ---

    async def save(self, product: Product) -> str:
        result = await self.add(product.id, product.to_document())
        logger.info("Product %s saved, result=%s", product.id, result)
        return result

    async def bulk_save(self, products: list[Product]) -> BulkSaveResult:
        """Index all products in one _bulk request and report per-item failures."""
        operations: list[dict[str, Any]] = []
        for product in products:
            operations.append({"index": {"_index": self.index, "_id": product.id}})
            operations.append(product.to_document())
        response = await self._execute("bulk", self.client.bulk(operations=operations))
        body = response_body(response)

        errors: list[BulkItemError] = []
        if body.get("errors"):
            for item in body.get("items", []):
                action = item.get("index", {})
                error = action.get("error")
                if error:
                    reason = error.get("reason") or error.get("type") or str(error)
                    logger.error("Product %s failed to index: %s", action.get("_id"), reason)
                    errors.append(BulkItemError(id=action.get("_id"), reason=reason))
            logger.error("Bulk save finished with %d failures out of %d", len(errors), len(products))

        total = len(products)
        failed = len(errors)
        if failed:
            message = f"Bulk save failed for {failed} of {total} products"
        else:
            message = f"Bulk save succeeded, total: {total}"
            logger.info("Bulk save succeeded, total=%d", total)
        return BulkSaveResult(total=total, succeeded=total - failed, failed=failed, errors=errors, message=message)

    async def get(self, product_id: str) -> Product | None:
        product = await self.get_by_id(product_id)
        if product is None:
            logger.warning("Product %s does not exist", product_id)
        else:
            logger.info("Product %s fetched", product_id)
        return product

    async def update(self, product: Product) -> str:
        """Partial update with the non-null fields of product."""
        try:
            response = await self._execute(
                "update",
                self.client.update(index=self.index, id=product.id, doc=product.to_document()),
            )
        except NotFoundError as e:
            logger.warning("Product %s does not exist, cannot update", product.id)
            raise ProductNotFound(product.id) from e
        result = write_result(response)
        logger.info("Product %s updated, result=%s", product.id, result)
        return result

    async def delete(self, product_id: str) -> str:
        result = await self.delete_by_id(product_id)
        if result == "not_found":
            logger.warning("Product %s does not exist, nothing to delete", product_id)
        else:
            logger.info("Product %s deleted, result=%s", product_id, result)
        return result

    # --- search ---

    async def search(self, criteria: SearchCriteria) -> list[Product]:
        """Keyword search with filters, first search_max_results hits."""
        response = await self._execute(
            "search",
            self.client.search(
                index=self.index,
                query=build_search_query(criteria, self.settings),
                sort=build_sort(criteria),
                size=self.settings.search_max_results,
            ),
        )
        products = hit_sources(response)
        logger.info("Product search done: keyword=%r hits=%d", criteria.keyword, len(products))
        return products

    async def search_page(self, criteria: SearchCriteria, page: int, page_size: int) -> PageResult:
        """Same query as search, one page at a time with exact totals."""
        response = await self._execute(
            "search_page",
            self.client.search(
                index=self.index,
                query=build_search_query(criteria, self.settings),
                sort=build_sort(criteria),
                from_=(page - 1) * page_size,
                size=page_size,
                track_total_hits=True,
            ),
        )
        return wrap_page_result(response, page, page_size)

    # --- aggregations ---

    async def count_by_category(self) -> dict[str, int]:
        """Product count per category."""
        response = await self._execute(
            "agg_category",
            self.client.search(index=self.index, size=0, aggregations=category_aggregation(self.settings)),
        )
        counts = parse_terms_buckets(response, CATEGORY_AGG)
        logger.info("Category aggregation done: categories=%d", len(counts))
        return counts

    async def count_by_category_and_sub_category(self) -> dict[str, dict[str, int]]:
        """Product count per sub-category, grouped by category."""
        response = await self._execute(
            "agg_sub_category",
            self.client.search(
                index=self.index,
                size=0,
                aggregations=category_aggregation(self.settings, with_sub_category=True),
            ),
        )
        counts = parse_nested_terms_buckets(response, CATEGORY_AGG, SUB_CATEGORY_AGG)
        logger.info("Category/sub-category aggregation done: categories=%d", len(counts))
        return counts
