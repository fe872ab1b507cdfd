from typing import Generic, Literal, TypeVar

from pydantic import BaseModel, Field

from datamanager.schemas.filters import AnyFilter, QueryFilter

T = TypeVar("T")


class PaginationParameters(BaseModel):
    skip: int = Field(0, ge=0, description="Number of rows to skip")
    take: int | None = Field(None, ge=1, description="Page size; empty means all rows")

    @classmethod
    def page(cls, page_number: int, page_size: int) -> "PaginationParameters":
        page_number = max(page_number, 1)
        return cls(skip=(page_number - 1) * page_size, take=page_size)

    @classmethod
    def all_items(cls) -> "PaginationParameters":
        return cls()


class OrderingParameters(BaseModel):
    order_by: str | None = Field(None, description="Column name; unknown names use the default ordering")
    order_direction: Literal["asc", "desc"] = "asc"

    @property
    def descending(self) -> bool:
        return self.order_direction == "desc"


class FilteringParameters(BaseModel):
    query_filters: list[AnyFilter] = Field(default_factory=list)

    def active_filters(self) -> list[QueryFilter]:
        return [f for f in self.query_filters if f.is_active()]

    def has_filter(self, filter_type: type[QueryFilter]) -> bool:
        return any(isinstance(f, filter_type) for f in self.query_filters)


class Page(BaseModel, Generic[T]):
    """One page of query results plus the total row count before paging."""

    items: list[T]
    total_count: int
    skip: int = 0
    take: int | None = None


class QueryRequest(BaseModel):
    filtering: FilteringParameters = Field(default_factory=FilteringParameters)
    ordering: OrderingParameters = Field(default_factory=OrderingParameters)
    pagination: PaginationParameters = Field(default_factory=PaginationParameters)

