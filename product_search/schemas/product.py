"""Product request/response schemas - REST API contract and Elasticsearch document shape."""

from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator

# Wire format of createTime, shared with the index mapping
CREATE_TIME_FORMAT = "%Y-%m-%d %H:%M:%S"
CREATE_TIME_ES_FORMAT = "yyyy-MM-dd HH:mm:ss"
CREATE_TIME_TZ = timezone(timedelta(hours=8))

SORT_FIELDS = ("price", "sales", "score", "createTime")


class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"

    @classmethod
    def _missing_(cls, value: object):
        # Accept "Desc", "ASC", ...
        if isinstance(value, str):
            for member in cls:
                if member.value == value.lower():
                    return member
        return None


class Product(BaseModel):
    """Catalog product. Stored as-is as the _source of an Elasticsearch document."""

    # Numeric ids and names are accepted and kept as strings
    model_config = ConfigDict(populate_by_name=True, extra="ignore", coerce_numbers_to_str=True)

    id: str | None = None
    product_name: str | None = Field(None, alias="productName")
    category: str | None = None
    sub_category: str | None = Field(None, alias="subCategory")
    price: float | None = None
    stock: int | None = None
    sales: int | None = None
    tags: list[str] | None = None
    create_time: datetime | None = Field(None, alias="createTime")
    description: str | None = None
    merchant_id: str | None = Field(None, alias="merchantId")
    score: float | None = None

    @field_validator("create_time", mode="before")
    @classmethod
    def _parse_create_time(cls, value: Any) -> Any:
        if isinstance(value, str):
            try:
                return datetime.strptime(value, CREATE_TIME_FORMAT).replace(tzinfo=CREATE_TIME_TZ)
            except ValueError:
                # Not "yyyy-MM-dd HH:mm:ss": let pydantic try ISO-8601
                return value
        return value

    @field_serializer("create_time")
    def _format_create_time(self, value: datetime | None) -> str | None:
        if value is None:
            return None
        if value.tzinfo is not None:
            value = value.astimezone(CREATE_TIME_TZ)
        return value.strftime(CREATE_TIME_FORMAT)

    def to_document(self) -> dict[str, Any]:
        """Document body for Elasticsearch: camelCase keys, null fields dropped."""
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


class SearchCriteria(BaseModel):
    """Filters and sort of a product search, as received from the query string."""

    keyword: str | None = None
    min_price: float | None = None
    max_price: float | None = None
    category: str | None = None
    tags: list[str] | None = None
    sort_field: str | None = None
    sort_order: SortOrder = SortOrder.DESC


class PageResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    current_page: int = Field(alias="currentPage")
    page_size: int = Field(alias="pageSize")
    total_count: int = Field(0, alias="totalCount")
    total_page: int = Field(0, alias="totalPage")
    items: list[Product] = Field(default_factory=list, alias="list")


class OperationResult(BaseModel):
    message: str
    result: str | bool | None = None


class BulkItemError(BaseModel):
    id: str | None = None
    reason: str


class BulkSaveResult(BaseModel):
    total: int
    succeeded: int
    failed: int
    errors: list[BulkItemError] = Field(default_factory=list)
    message: str
