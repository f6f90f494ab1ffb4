"""
Base repository - generic document access over one Elasticsearch index (SOLID: Dependency Inversion).
Challenge: Consistent data access, testability via a mocked client, metrics in one place.
"""

from collections.abc import Awaitable
from typing import Any, Generic, TypeVar

from elasticsearch import AsyncElasticsearch, NotFoundError
from pydantic import BaseModel

from product_search.search import metrics
from product_search.search.responses import found_source, write_result

DocType = TypeVar("DocType", bound=BaseModel)
T = TypeVar("T")


class BaseRepository(Generic[DocType]):
    """Generic async repository. Subclasses define index-specific queries."""

    def __init__(self, client: AsyncElasticsearch, index: str, model: type[DocType]):
        self.client = client
        self.index = index
        self.model = model

    async def _execute(self, operation: str, call: Awaitable[T]) -> T:
        """Await a client call and count its outcome."""
        try:
            result = await call
        except NotFoundError:
            metrics.record(operation, "not_found")
            raise
        except Exception:
            metrics.record(operation, "error")
            raise
        metrics.record(operation)
        return result

    async def index_exists(self) -> bool:
        return bool(await self._execute("index_exists", self.client.indices.exists(index=self.index)))

    async def get_by_id(self, id: str) -> DocType | None:
        """Fetch a single document by id. None when it does not exist."""
        try:
            response = await self._execute("get", self.client.get(index=self.index, id=id))
        except NotFoundError:
            return None
        return found_source(response, self.model)

    async def add(self, id: str, document: dict[str, Any]) -> str:
        """Index (create or replace) a document. Returns the Elasticsearch result."""
        response = await self._execute(
            "index", self.client.index(index=self.index, id=id, document=document)
        )
        return write_result(response)

    async def delete_by_id(self, id: str) -> str:
        """Delete a document. Returns the Elasticsearch result, not_found when absent."""
        try:
            response = await self._execute("delete", self.client.delete(index=self.index, id=id))
        except NotFoundError:
            return "not_found"
        return write_result(response)
