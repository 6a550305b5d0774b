"""
urlquery.core - Query model, errors and connectivity
====================================================

- Entity, Attribute, Filter, FilterGroup, Sorter, Query: dialect-neutral model
- EntityOptions, AttributeOptions: typed options validated at load time
- DataRequest, ReadResult: compiled requests and read results
- HttpTransport, ConnectionConfig, HttpAuth: HTTP transport with retries
- ConnectionContext: environment-driven connection manager
"""

from urlquery.core.errors import (
    BatchResponseNotParsedError,
    ChangesetFailedError,
    EntityConfigError,
    InvalidPathError,
    QueryBuilderError,
    UnsupportedConstructError,
    UpstreamError,
    ValueCastError,
)
from urlquery.core.models import (
    Attribute,
    Comparator,
    DataType,
    Entity,
    Filter,
    FilterGroup,
    LogicalOperator,
    Query,
    SortDirection,
    Sorter,
    make_filter_group,
)
from urlquery.core.options import AttributeOptions, EntityOptions
from urlquery.core.request import DataRequest, ReadResult
from urlquery.core.session import ConnectionConfig, HttpAuth, HttpTransport
from urlquery.core.connection import ConnectionContext

__all__ = [
    "BatchResponseNotParsedError",
    "ChangesetFailedError",
    "EntityConfigError",
    "InvalidPathError",
    "QueryBuilderError",
    "UnsupportedConstructError",
    "UpstreamError",
    "ValueCastError",
    "Attribute",
    "Comparator",
    "DataType",
    "Entity",
    "Filter",
    "FilterGroup",
    "LogicalOperator",
    "Query",
    "SortDirection",
    "Sorter",
    "make_filter_group",
    "AttributeOptions",
    "EntityOptions",
    "DataRequest",
    "ReadResult",
    "ConnectionConfig",
    "HttpAuth",
    "HttpTransport",
    "ConnectionContext",
]
