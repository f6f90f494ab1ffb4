"""
Helpers turning raw Elasticsearch responses into API shapes.
Challenge: ObjectApiResponse vs plain dict, page maths, terms buckets one or two levels deep.
"""

import logging
import math
from typing import Any, TypeVar

from pydantic import BaseModel

from product_search.core.exceptions import SearchResponseError
from product_search.schemas.product import PageResult, Product

logger = logging.getLogger(__name__)

DocType = TypeVar("DocType", bound=BaseModel)


def response_body(response: Any) -> dict[str, Any]:
    """Response may be ObjectApiResponse; support both .body and dict access."""
    return getattr(response, "body", response)


def hit_sources(response: Any) -> list[Product]:
    """_source of every hit, skipping hits without one."""
    body = response_body(response)
    try:
        hits = body["hits"]["hits"]
        return [Product.model_validate(hit["_source"]) for hit in hits if hit.get("_source") is not None]
    except (KeyError, TypeError, ValueError) as e:
        logger.error("Failed to read search hits: %s", e)
        raise SearchResponseError(f"Failed to read search hits: {e}") from e


def wrap_page_result(response: Any, current_page: int, page_size: int) -> PageResult:
    """Page of products plus totals. Total counts only when Elasticsearch reports an exact value."""
    body = response_body(response)
    try:
        total = body["hits"].get("total")
        total_count = 0
        if isinstance(total, dict) and total.get("relation") == "eq":
            total_count = int(total.get("value", 0))
        elif isinstance(total, int):
            # rest_total_hits_as_int style
            total_count = total
    except (KeyError, TypeError, AttributeError, ValueError) as e:
        logger.error("Failed to wrap page result: %s", e)
        raise SearchResponseError(f"Failed to wrap page result: {e}") from e

    total_page = math.ceil(total_count / page_size) if page_size else 0
    page = PageResult(
        current_page=current_page,
        page_size=page_size,
        total_count=total_count,
        total_page=total_page,
        items=hit_sources(body),
    )
    logger.info(
        "Page result: total_count=%d total_page=%d current_page=%d page_size=%d",
        total_count, total_page, current_page, page_size,
    )
    return page


def _buckets(aggregation: dict[str, Any]) -> list[dict[str, Any]]:
    return aggregation["buckets"]


def parse_terms_buckets(response: Any, agg_name: str) -> dict[str, int]:
    """{bucket key: doc count} of a single terms aggregation."""
    body = response_body(response)
    aggregations = body.get("aggregations") or {}
    if agg_name not in aggregations:
        logger.warning("Aggregation %s not found in response", agg_name)
        return {}
    try:
        return {str(b["key"]): int(b["doc_count"]) for b in _buckets(aggregations[agg_name])}
    except (KeyError, TypeError, ValueError) as e:
        logger.error("Failed to parse aggregation %s: %s", agg_name, e)
        raise SearchResponseError(f"Failed to parse aggregation {agg_name}: {e}") from e


def parse_nested_terms_buckets(response: Any, first_agg: str, second_agg: str) -> dict[str, dict[str, int]]:
    """{outer key: {inner key: doc count}} of a terms aggregation with a terms sub-aggregation."""
    body = response_body(response)
    aggregations = body.get("aggregations") or {}
    if first_agg not in aggregations:
        logger.warning("Aggregation %s not found in response", first_agg)
        return {}
    try:
        return {
            str(outer["key"]): {str(inner["key"]): int(inner["doc_count"]) for inner in _buckets(outer[second_agg])}
            for outer in _buckets(aggregations[first_agg])
        }
    except (KeyError, TypeError, ValueError) as e:
        logger.error("Failed to parse aggregation %s > %s: %s", first_agg, second_agg, e)
        raise SearchResponseError(f"Failed to parse aggregation {first_agg} > {second_agg}: {e}") from e


def found_source(response: Any, model: type[DocType]) -> DocType | None:
    """_source of a get response as model, None when the document was not found."""
    body = response_body(response)
    try:
        if not body.get("found"):
            return None
        return model.model_validate(body["_source"])
    except (KeyError, TypeError, AttributeError, ValueError) as e:
        logger.error("Failed to read document: %s", e)
        raise SearchResponseError(f"Failed to read document: {e}") from e


def write_result(response: Any) -> str:
    """`result` of an index/update/delete response (created, updated, deleted, noop, ...)."""
    body = response_body(response)
    try:
        return str(body["result"])
    except (KeyError, TypeError) as e:
        logger.error("Failed to read write result: %s", e)
        raise SearchResponseError(f"Failed to read write result: {e!r}") from e
