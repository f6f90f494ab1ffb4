"""
Product endpoints - index admin, CRUD, search and aggregation reports (RESTful API).
Challenge: Map service errors to status codes; never leak a traceback to the client.
Design: Thin controller; service layer holds the checks, repository talks to Elasticsearch.
"""

import logging

from elasticsearch import ApiError, TransportError
from fastapi import APIRouter, HTTPException, Query, status

from product_search.config import get_settings
from product_search.core.dependencies import ProductServiceDep
from product_search.core.exceptions import InvalidProductRequest, ProductNotFound, SearchResponseError
from product_search.schemas.product import (
    BulkSaveResult,
    OperationResult,
    PageResult,
    Product,
    SearchCriteria,
    SortOrder,
)

logger = logging.getLogger(__name__)

router = APIRouter()
settings = get_settings()

BACKEND_ERRORS = (ApiError, TransportError, SearchResponseError)


def _bad_request(exc: Exception) -> HTTPException:
    logger.warning("Invalid request: %s", exc)
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Invalid parameter: {exc}")


def _server_error(operation: str, exc: Exception) -> HTTPException:
    logger.exception("%s failed", operation)
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=f"{operation} failed: {exc}",
    )


def _criteria(
    keyword: str | None,
    min_price: float | None,
    max_price: float | None,
    category: str | None,
    tags: list[str] | None,
    sort_field: str | None,
    sort_order: str,
) -> SearchCriteria:
    try:
        order = SortOrder(sort_order)
    except ValueError as e:
        raise _bad_request(InvalidProductRequest(f"sortOrder must be asc or desc, got {sort_order!r}")) from e
    return SearchCriteria(
        keyword=keyword,
        min_price=min_price,
        max_price=max_price,
        category=category,
        tags=tags,
        sort_field=sort_field,
        sort_order=order,
    )


# --- index management ---


@router.post("/index/create", response_model=OperationResult)
async def create_product_index(svc: ProductServiceDep):
    """Create the product index with its mapping (no-op when it exists)."""
    try:
        ok = await svc.create_index()
    except BACKEND_ERRORS as e:
        raise _server_error("Create product index", e) from e
    message = "Product index created (or already exists)" if ok else "Product index creation failed"
    return OperationResult(message=message, result=ok)


@router.delete("/index/delete", response_model=OperationResult)
async def delete_product_index(svc: ProductServiceDep):
    """Delete the product index (no-op when it does not exist)."""
    try:
        ok = await svc.delete_index()
    except BACKEND_ERRORS as e:
        raise _server_error("Delete product index", e) from e
    message = "Product index deleted (or did not exist)" if ok else "Product index deletion failed"
    return OperationResult(message=message, result=ok)


# --- CRUD ---


@router.post("/save", response_model=OperationResult)
async def save_product(svc: ProductServiceDep, product: Product):
    try:
        result = await svc.save(product)
    except InvalidProductRequest as e:
        raise _bad_request(e) from e
    except BACKEND_ERRORS as e:
        raise _server_error("Save product", e) from e
    return OperationResult(message="Product saved", result=result)


@router.post("/batch/save", response_model=BulkSaveResult)
async def batch_save_products(svc: ProductServiceDep, products: list[Product]):
    """Bulk index. Per-item failures are reported in the body, not as an error status."""
    try:
        return await svc.bulk_save(products)
    except InvalidProductRequest as e:
        raise _bad_request(e) from e
    except BACKEND_ERRORS as e:
        raise _server_error("Bulk save products", e) from e


@router.put("/update", response_model=OperationResult)
async def update_product(svc: ProductServiceDep, product: Product):
    """Partial update: only the fields present in the body are changed."""
    try:
        result = await svc.update(product)
    except InvalidProductRequest as e:
        raise _bad_request(e) from e
    except ProductNotFound as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e
    except BACKEND_ERRORS as e:
        raise _server_error("Update product", e) from e
    return OperationResult(message="Product updated", result=result)


# --- search ---


@router.get("/search", response_model=list[Product])
async def search_products(
    svc: ProductServiceDep,
    keyword: str | None = Query(None),
    min_price: float | None = Query(None, alias="minPrice", allow_inf_nan=False),
    max_price: float | None = Query(None, alias="maxPrice", allow_inf_nan=False),
    category: str | None = Query(None),
    tags: list[str] | None = Query(None),
    sort_field: str | None = Query(None, alias="sortField"),
    sort_order: str = Query("desc", alias="sortOrder"),
):
    """Keyword search on productName/description with price, category and tag filters."""
    criteria = _criteria(keyword, min_price, max_price, category, tags, sort_field, sort_order)
    try:
        return await svc.search(criteria)
    except InvalidProductRequest as e:
        raise _bad_request(e) from e
    except BACKEND_ERRORS as e:
        raise _server_error("Product search", e) from e


@router.get("/search/page", response_model=PageResult)
async def search_products_page(
    svc: ProductServiceDep,
    keyword: str | None = Query(None),
    min_price: float | None = Query(None, alias="minPrice", allow_inf_nan=False),
    max_price: float | None = Query(None, alias="maxPrice", allow_inf_nan=False),
    category: str | None = Query(None),
    tags: list[str] | None = Query(None),
    sort_field: str | None = Query(None, alias="sortField"),
    sort_order: str = Query("desc", alias="sortOrder"),
    page: int = Query(1),
    page_size: int = Query(settings.default_page_size, alias="pageSize"),
):
    """Same search as /search, one page at a time with total count and page count."""
    criteria = _criteria(keyword, min_price, max_price, category, tags, sort_field, sort_order)
    try:
        return await svc.search_page(criteria, page, page_size)
    except InvalidProductRequest as e:
        raise _bad_request(e) from e
    except BACKEND_ERRORS as e:
        raise _server_error("Product search", e) from e


# --- aggregations ---


@router.get("/agg/category", response_model=dict[str, int])
async def count_by_category(svc: ProductServiceDep):
    """Product count per category (terms aggregation)."""
    try:
        return await svc.count_by_category()
    except BACKEND_ERRORS as e:
        raise _server_error("Category aggregation", e) from e


@router.get("/agg/category/sub", response_model=dict[str, dict[str, int]])
async def count_by_category_and_sub_category(svc: ProductServiceDep):
    """Product count per sub-category within each category."""
    try:
        return await svc.count_by_category_and_sub_category()
    except BACKEND_ERRORS as e:
        raise _server_error("Sub-category aggregation", e) from e


# --- single product (registered last: {product_id} would shadow the static paths) ---


@router.get("/{product_id}", response_model=Product)
async def get_product(svc: ProductServiceDep, product_id: str):
    try:
        product = await svc.get_by_id(product_id)
    except InvalidProductRequest as e:
        raise _bad_request(e) from e
    except BACKEND_ERRORS as e:
        raise _server_error("Get product", e) from e
    if product is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Product not found")
    return product


@router.delete("/{product_id}", response_model=OperationResult)
async def delete_product(svc: ProductServiceDep, product_id: str):
    try:
        result = await svc.delete(product_id)
    except InvalidProductRequest as e:
        raise _bad_request(e) from e
    except BACKEND_ERRORS as e:
        raise _server_error("Delete product", e) from e
    return OperationResult(message="Product deleted", result=result)
