"""
urlquery - Query translation for URL-based APIs
===============================================

Compiles dialect-neutral queries (filter trees, sorters, paging, CRUD rows)
into HTTP requests for generic JSON REST, OData v2, OData v4, the legacy
OData-JSON hybrid, GraphQL, XML and HTML endpoints, and decodes the
responses back into uniform rows.

Usage
-----
>>> from urlquery import ConnectionContext, Entity, Query
>>>
>>> orders = Entity.from_dict({"alias": "Order", "data_address": "Orders", "uid": "OrderID",
...                            "attributes": [{"alias": "OrderID"}, {"alias": "Status"}]})
>>> with ConnectionContext("https://host/odata/", dialect="odata2") as conn:
...     result = conn.service().read(Query(orders, limit=10))

Subpackages
-----------
- urlquery.core: query model, options, errors, transport, connection
- urlquery.data: path navigation, row extraction, local post-processing
- urlquery.query: generic request builder and strategies
- urlquery.odata: OData literals, $filter grammar, $batch
- urlquery.graphql: GraphQL documents, introspection, builder
- urlquery.markup: XML and HTML row extraction
- urlquery.api: optional FastAPI gateway
"""

__version__ = "0.3.0"

from urlquery.core import (
    Comparator,
    ConnectionContext,
    DataRequest,
    Entity,
    Filter,
    FilterGroup,
    HttpTransport,
    LogicalOperator,
    Query,
    QueryBuilderError,
    ReadResult,
    UpstreamError,
)
from urlquery.dialects import dialect_names, get_builder, get_dialect
from urlquery.service import QueryService

__all__ = [
    "__version__",
    "Comparator",
    "ConnectionContext",
    "DataRequest",
    "Entity",
    "Filter",
    "FilterGroup",
    "HttpTransport",
    "LogicalOperator",
    "Query",
    "QueryBuilderError",
    "ReadResult",
    "UpstreamError",
    "dialect_names",
    "get_builder",
    "get_dialect",
    "QueryService",
]
