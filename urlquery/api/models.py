"""
urlquery.api.models - Pydantic models for API requests/responses
================================================================
"""

from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field

from urlquery.core.models import (
    Comparator,
    Entity,
    Filter,
    FilterGroup,
    LogicalOperator,
    Query,
    SortDirection,
    Sorter,
)
from urlquery.core.request import DataRequest


# ---------------------------------------------------------------------------
# Example defaults
# ---------------------------------------------------------------------------

EXAMPLE_ENTITY: Dict[str, Any] = {
    "alias": "Order",
    "data_address": "Orders",
    "uid": "OrderID",
    "attributes": [
        {"alias": "OrderID", "data_type": "INTEGER"},
        {"alias": "Status"},
        {"alias": "Customer", "data_address": "Customer/Name"},
    ],
}


class ConditionModel(BaseModel):
    """One filter condition over an attribute alias."""

    attribute: str = Field(description="Attribute alias", json_schema_extra={"example": "Status"})
    comparator: str = Field(
        default="EQUALS",
        description="Comparator name (EQUALS, IN, ...) or symbol (==, [, ...)",
        json_schema_extra={"example": "EQUALS"},
    )
    value: Any = Field(default=None, json_schema_extra={"example": "open"})


class FilterGroupModel(BaseModel):
    """Conditions and nested groups joined by one logical operator."""

    operator: Literal["AND", "OR", "XOR"] = "AND"
    conditions: List[ConditionModel] = Field(default_factory=list)
    groups: List["FilterGroupModel"] = Field(default_factory=list)

    def to_group(self, entity: Entity) -> FilterGroup:
        filters = tuple(
            Filter(
                attribute=entity.attribute(c.attribute),
                comparator=Comparator.parse(c.comparator),
                value=c.value,
            )
            for c in self.conditions
        )
        groups = tuple(g.to_group(entity) for g in self.groups)
        return FilterGroup(LogicalOperator(self.operator), filters, groups)


FilterGroupModel.model_rebuild()


class SorterModel(BaseModel):
    attribute: str
    direction: Literal["ASC", "DESC"] = "ASC"


class QueryModel(BaseModel):
    """Dialect-neutral query against an entity description."""

    dialect: str = Field(
        default="odata2",
        description="json, xml, html, odata2, odata4, odata or graphql",
        json_schema_extra={"example": "odata2"},
    )
    entity: Dict[str, Any] = Field(
        default_factory=lambda: dict(EXAMPLE_ENTITY),
        description="Entity description: alias, data_address, uid, options, attributes",
    )
    attributes: List[str] = Field(default_factory=list, description="Aliases to read; empty reads all")
    filters: Optional[FilterGroupModel] = None
    sorters: List[SorterModel] = Field(default_factory=list)
    offset: int = Field(default=0, ge=0)
    limit: int = Field(default=0, ge=0, description="0 means unbounded")
    rows: List[Dict[str, Any]] = Field(default_factory=list, description="Value rows for writes")

    def to_query(self) -> Query:
        entity = Entity.from_dict(self.entity)
        return Query(
            entity=entity,
            attributes=list(self.attributes),
            filters=self.filters.to_group(entity) if self.filters else FilterGroup(),
            sorters=[
                Sorter(attribute=entity.attribute(s.attribute), direction=SortDirection(s.direction))
                for s in self.sorters
            ],
            offset=self.offset,
            limit=self.limit,
            rows=[dict(r) for r in self.rows],
        )


class CompileRequest(QueryModel):
    """Request model for compiling a query without sending it."""

    operation: Literal["read", "create", "update", "delete"] = "read"


class CompiledRequestModel(BaseModel):
    method: str
    uri: str
    headers: Dict[str, str] = Field(default_factory=dict)
    body: Optional[str] = None

    @classmethod
    def from_request(cls, request: DataRequest) -> "CompiledRequestModel":
        body = request.body.decode("utf-8") if isinstance(request.body, bytes) else request.body
        return cls(method=request.method, uri=request.uri, headers=dict(request.headers), body=body)


class CompileResponse(BaseModel):
    dialect: str
    operation: str
    requests: List[CompiledRequestModel] = Field(default_factory=list)
    count_request: Optional[CompiledRequestModel] = None


class ExtractRequest(QueryModel):
    """Request model for decoding rows from a response body."""

    body: Any = Field(default=None, description="Decoded JSON response body")
    text: Optional[str] = Field(default=None, description="Raw response text (XML, HTML or JSON)")
    uid_scoped: bool = False


class ExtractResponse(BaseModel):
    count: int
    total_count: Optional[int] = None
    rows: List[Dict[str, Any]] = Field(default_factory=list)


class ReadResponse(BaseModel):
    count: int
    total_count: Optional[int] = None
    has_more_rows: bool = False
    rows: List[Dict[str, Any]] = Field(default_factory=list)
