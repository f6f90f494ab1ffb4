"""
Product repository tests - query-DSL built for Elasticsearch and handling of its answers (client mocked).
"""

import pytest
from elasticsearch import ConnectionError as EsConnectionError
from prometheus_client import REGISTRY

from product_search.core.exceptions import ProductNotFound, SearchResponseError
from product_search.repositories.product_repository import (
    build_search_query,
    build_sort,
    category_aggregation,
)
from product_search.schemas.product import Product, SearchCriteria, SortOrder


def _hit(doc: dict) -> dict:
    return {"_index": "ecommerce_product", "_id": doc["id"], "_source": doc}


def _es_requests(operation: str, outcome: str) -> float:
    value = REGISTRY.get_sample_value(
        "product_search_es_requests_total", {"operation": operation, "outcome": outcome}
    )
    return value or 0.0


# --- query building ---


def test_empty_criteria_matches_everything(settings):
    assert build_search_query(SearchCriteria(), settings) == {"bool": {}}


def test_keyword_matches_name_or_description(settings):
    query = build_search_query(SearchCriteria(keyword="手机"), settings)
    assert query == {
        "bool": {
            "should": [
                {"match": {"productName": {"query": "手机", "analyzer": "ik_max_word"}}},
                {"match": {"description": {"query": "手机", "analyzer": "ik_smart"}}},
            ],
            "minimum_should_match": 1,
        }
    }


def test_filters(settings):
    criteria = SearchCriteria(min_price=10, max_price=99.5, category="图书", tags=["新品", "包邮"])
    query = build_search_query(criteria, settings)
    assert "should" not in query["bool"]
    assert query["bool"]["filter"] == [
        {"range": {"price": {"gte": 10, "lte": 99.5}}},
        {"term": {"category": "图书"}},
        {"terms": {"tags": ["新品", "包邮"]}},
    ]


def test_open_ended_price_range(settings):
    query = build_search_query(SearchCriteria(max_price=50), settings)
    assert query["bool"]["filter"] == [{"range": {"price": {"lte": 50}}}]


def test_blank_keyword_category_and_tags_are_ignored(settings):
    query = build_search_query(SearchCriteria(keyword="", category="", tags=[]), settings)
    assert query == {"bool": {}}


def test_sort_defaults_to_sales_desc():
    assert build_sort(SearchCriteria()) == [{"sales": {"order": "desc"}}]
    assert build_sort(SearchCriteria(sort_field="price", sort_order=SortOrder.ASC)) == [{"price": {"order": "asc"}}]


def test_category_aggregation(settings):
    assert category_aggregation(settings) == {"category_agg": {"terms": {"field": "category", "size": 20}}}
    nested = category_aggregation(settings, with_sub_category=True)
    assert nested["category_agg"]["aggs"] == {
        "sub_category_agg": {"terms": {"field": "subCategory", "size": 10}}
    }


# --- index management ---


@pytest.mark.asyncio
async def test_create_index_when_missing(repo, es):
    es.indices.exists.return_value = False
    es.indices.create.return_value = {"acknowledged": True, "index": "ecommerce_product"}
    assert await repo.create_index() is True
    kwargs = es.indices.create.call_args.kwargs
    assert kwargs["index"] == "ecommerce_product"
    props = kwargs["mappings"]["properties"]
    assert props["productName"] == {"type": "text", "analyzer": "ik_max_word"}
    assert props["category"] == {"type": "keyword"}
    assert props["createTime"] == {"type": "date", "format": "yyyy-MM-dd HH:mm:ss"}


@pytest.mark.asyncio
async def test_create_index_when_present(repo, es):
    es.indices.exists.return_value = True
    assert await repo.create_index() is True
    es.indices.create.assert_not_called()


@pytest.mark.asyncio
async def test_delete_index_when_missing(repo, es):
    es.indices.exists.return_value = False
    assert await repo.delete_index() is True
    es.indices.delete.assert_not_called()


@pytest.mark.asyncio
async def test_delete_index(repo, es):
    es.indices.exists.return_value = True
    es.indices.delete.return_value = {"acknowledged": True}
    assert await repo.delete_index() is True
    es.indices.delete.assert_awaited_once_with(index="ecommerce_product")


# --- CRUD ---


@pytest.mark.asyncio
async def test_save_uses_product_id(repo, es, test_product):
    es.index.return_value = {"result": "created", "_id": "1001"}
    assert await repo.save(test_product) == "created"
    kwargs = es.index.call_args.kwargs
    assert kwargs["id"] == "1001"
    assert kwargs["document"]["productName"] == "测试手机"
    assert kwargs["document"]["createTime"] == "2026-01-05 15:42:00"


@pytest.mark.asyncio
async def test_bulk_save_success(repo, es, test_product):
    other = test_product.model_copy(update={"id": "1002"})
    es.bulk.return_value = {"errors": False, "items": []}
    result = await repo.bulk_save([test_product, other])
    assert result.total == 2
    assert result.failed == 0
    operations = es.bulk.call_args.kwargs["operations"]
    assert operations[0] == {"index": {"_index": "ecommerce_product", "_id": "1001"}}
    assert operations[2] == {"index": {"_index": "ecommerce_product", "_id": "1002"}}
    assert operations[1]["productName"] == "测试手机"


@pytest.mark.asyncio
async def test_bulk_save_reports_failed_items(repo, es, test_product):
    other = test_product.model_copy(update={"id": "1002"})
    es.bulk.return_value = {
        "errors": True,
        "items": [
            {"index": {"_id": "1001", "status": 201, "result": "created"}},
            {
                "index": {
                    "_id": "1002",
                    "status": 400,
                    "error": {"type": "mapper_parsing_exception", "reason": "failed to parse field [price]"},
                }
            },
        ],
    }
    result = await repo.bulk_save([test_product, other])
    assert result.total == 2
    assert result.succeeded == 1
    assert result.failed == 1
    assert result.errors[0].id == "1002"
    assert result.errors[0].reason == "failed to parse field [price]"


@pytest.mark.asyncio
async def test_get_found(repo, es, test_product_json):
    es.get.return_value = {"found": True, "_id": "1001", "_source": test_product_json}
    product = await repo.get("1001")
    assert product.id == "1001"
    assert product.sub_category == "智能手机"


@pytest.mark.asyncio
async def test_get_missing(repo, es, not_found_error):
    es.get.side_effect = not_found_error()
    assert await repo.get("nope") is None


@pytest.mark.asyncio
async def test_update_sends_only_present_fields(repo, es):
    es.update.return_value = {"result": "updated"}
    assert await repo.update(Product(id="1001", product_name="新名字", price=10)) == "updated"
    kwargs = es.update.call_args.kwargs
    assert kwargs["id"] == "1001"
    assert kwargs["doc"] == {"id": "1001", "productName": "新名字", "price": 10.0}


@pytest.mark.asyncio
async def test_update_missing_raises(repo, es, test_product, not_found_error):
    es.update.side_effect = not_found_error()
    with pytest.raises(ProductNotFound):
        await repo.update(test_product)


@pytest.mark.asyncio
async def test_delete(repo, es):
    es.delete.return_value = {"result": "deleted"}
    assert await repo.delete("1001") == "deleted"


@pytest.mark.asyncio
async def test_delete_missing(repo, es, not_found_error):
    es.delete.side_effect = not_found_error()
    assert await repo.delete("nope") == "not_found"


# --- search and aggregations ---


@pytest.mark.asyncio
async def test_search(repo, es, test_product_json):
    es.search.return_value = {"hits": {"total": {"value": 1, "relation": "eq"}, "hits": [_hit(test_product_json)]}}
    products = await repo.search(SearchCriteria(keyword="手机", category="手机"))
    assert [p.id for p in products] == ["1001"]
    kwargs = es.search.call_args.kwargs
    assert kwargs["index"] == "ecommerce_product"
    assert kwargs["size"] == 100
    assert kwargs["sort"] == [{"sales": {"order": "desc"}}]
    assert kwargs["query"]["bool"]["filter"] == [{"term": {"category": "手机"}}]


@pytest.mark.asyncio
async def test_search_page(repo, es, test_product_json):
    es.search.return_value = {"hits": {"total": {"value": 41, "relation": "eq"}, "hits": [_hit(test_product_json)]}}
    page = await repo.search_page(SearchCriteria(), page=3, page_size=20)
    assert page.total_count == 41
    assert page.total_page == 3
    assert page.current_page == 3
    kwargs = es.search.call_args.kwargs
    assert kwargs["from_"] == 40
    assert kwargs["size"] == 20
    assert kwargs["track_total_hits"] is True


@pytest.mark.asyncio
async def test_count_by_category(repo, es):
    es.search.return_value = {
        "hits": {"hits": []},
        "aggregations": {
            "category_agg": {"buckets": [{"key": "手机", "doc_count": 7}, {"key": "图书", "doc_count": 2}]}
        },
    }
    assert await repo.count_by_category() == {"手机": 7, "图书": 2}
    kwargs = es.search.call_args.kwargs
    assert kwargs["size"] == 0
    assert "category_agg" in kwargs["aggregations"]


@pytest.mark.asyncio
async def test_count_by_category_and_sub_category(repo, es):
    es.search.return_value = {
        "aggregations": {
            "category_agg": {
                "buckets": [
                    {
                        "key": "手机",
                        "doc_count": 7,
                        "sub_category_agg": {"buckets": [{"key": "智能手机", "doc_count": 6}, {"key": "老人机", "doc_count": 1}]},
                    },
                    {"key": "图书", "doc_count": 2, "sub_category_agg": {"buckets": []}},
                ]
            }
        }
    }
    assert await repo.count_by_category_and_sub_category() == {
        "手机": {"智能手机": 6, "老人机": 1},
        "图书": {},
    }


# --- malformed answers ---


@pytest.mark.asyncio
async def test_get_invalid_source(repo, es):
    es.get.return_value = {"found": True, "_id": "1", "_source": {"id": "1", "createTime": "2026/01/05"}}
    with pytest.raises(SearchResponseError):
        await repo.get("1")


@pytest.mark.asyncio
async def test_get_found_without_source(repo, es):
    es.get.return_value = {"found": True, "_id": "1"}
    with pytest.raises(SearchResponseError):
        await repo.get("1")


@pytest.mark.asyncio
async def test_save_without_result(repo, es, test_product):
    es.index.return_value = {"_id": "1001"}
    with pytest.raises(SearchResponseError):
        await repo.save(test_product)


@pytest.mark.asyncio
async def test_update_without_result(repo, es, test_product):
    es.update.return_value = {"_id": "1001"}
    with pytest.raises(SearchResponseError):
        await repo.update(test_product)


@pytest.mark.asyncio
async def test_delete_without_result(repo, es):
    es.delete.return_value = {"_id": "1001"}
    with pytest.raises(SearchResponseError):
        await repo.delete("1001")


# --- metrics ---


@pytest.mark.asyncio
async def test_request_outcomes_are_counted(repo, es, test_product_json, not_found_error):
    before = {
        outcome: _es_requests("get", outcome) for outcome in ("success", "not_found", "error")
    }

    es.get.return_value = {"found": True, "_id": "1001", "_source": test_product_json}
    await repo.get("1001")
    es.get.side_effect = not_found_error()
    await repo.get("nope")
    es.get.side_effect = EsConnectionError("Connection error", errors=(OSError("refused"),))
    with pytest.raises(EsConnectionError):
        await repo.get("1001")

    assert _es_requests("get", "success") == before["success"] + 1
    assert _es_requests("get", "not_found") == before["not_found"] + 1
    assert _es_requests("get", "error") == before["error"] + 1


@pytest.mark.asyncio
async def test_search_counted_under_its_operation(repo, es):
    before = _es_requests("agg_category", "success")
    es.search.return_value = {"aggregations": {"category_agg": {"buckets": []}}}
    await repo.count_by_category()
    assert _es_requests("agg_category", "success") == before + 1
