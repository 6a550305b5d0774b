"""
urlquery.dialects - Dialect registry
====================================

Builds the strategy bundle and request builder for each supported dialect:

- ``json``    generic JSON REST
- ``xml``     XML over HTTP
- ``html``    HTML pages scraped with CSS selectors
- ``odata2``  OData v2 (JSON format)
- ``odata4``  OData v4
- ``odata``   legacy OData-JSON hybrid (``value`` envelope, ``$skiptoken`` offset)
- ``graphql`` GraphQL
"""

from __future__ import annotations

from typing import Callable, Dict, List

from urlquery.data.rows import ODataV2RowExtractor, ODataV4RowExtractor, RowExtractor
from urlquery.graphql.builder import (
    GraphQLFilterTranslator,
    GraphQLPagination,
    GraphQLRequestBuilder,
    GraphQLRowExtractor,
)
from urlquery.markup.html import HtmlRowExtractor
from urlquery.markup.xml import XmlRowExtractor
from urlquery.odata.filters import ODataFilterTranslator, OData4FilterTranslator
from urlquery.odata.values import ODataValueCodec, OData4ValueCodec
from urlquery.query.builder import Dialect, QueryRequestBuilder
from urlquery.query.filters import ODataSorterRenderer, SorterRenderer, UrlParamFilterTranslator
from urlquery.query.pagination import (
    HybridODataPagination,
    ODataV2Pagination,
    ODataV4Pagination,
    PaginationStrategy,
)
from urlquery.query.values import PlainValueCodec


def _url_dialect(name: str, rows: RowExtractor) -> Dialect:
    codec = PlainValueCodec()
    return Dialect(
        name=name,
        filters=UrlParamFilterTranslator(codec),
        sorters=SorterRenderer(),
        pagination=PaginationStrategy(),
        rows=rows,
        codec=codec,
    )


def json_dialect() -> Dialect:
    return _url_dialect("json", RowExtractor())


def xml_dialect() -> Dialect:
    dialect = _url_dialect("xml", XmlRowExtractor())
    dialect.read_headers = {"Accept": "application/xml"}
    return dialect


def html_dialect() -> Dialect:
    dialect = _url_dialect("html", HtmlRowExtractor())
    dialect.read_headers = {"Accept": "text/html"}
    return dialect


def odata2_dialect() -> Dialect:
    codec = ODataValueCodec()
    return Dialect(
        name="odata2",
        filters=ODataFilterTranslator(codec),
        sorters=ODataSorterRenderer(),
        pagination=ODataV2Pagination(),
        rows=ODataV2RowExtractor(),
        codec=codec,
        read_params=[("$format", "json")],
        read_headers={"Accept": "application/json", "DataServiceVersion": "2.0", "MaxDataServiceVersion": "2.0"},
        select_param="$select",
        expand_param="$expand",
        key_predicates=True,
        update_method="MERGE",
    )


def odata4_dialect() -> Dialect:
    codec = OData4ValueCodec()
    return Dialect(
        name="odata4",
        filters=OData4FilterTranslator(codec),
        sorters=ODataSorterRenderer(),
        pagination=ODataV4Pagination(),
        rows=ODataV4RowExtractor(),
        codec=codec,
        read_headers={"Accept": "application/json", "OData-Version": "4.0", "OData-MaxVersion": "4.0"},
        select_param="$select",
        expand_param="$expand",
        key_predicates=True,
        update_method="PATCH",
    )


def odata_hybrid_dialect() -> Dialect:
    codec = ODataValueCodec()
    return Dialect(
        name="odata",
        filters=ODataFilterTranslator(codec),
        sorters=ODataSorterRenderer(),
        pagination=HybridODataPagination(),
        rows=ODataV4RowExtractor(),
        codec=codec,
        read_params=[("$format", "json")],
        read_headers={"Accept": "application/json"},
        select_param="$select",
        key_predicates=True,
        update_method="PATCH",
    )


def graphql_dialect() -> Dialect:
    codec = PlainValueCodec()
    return Dialect(
        name="graphql",
        filters=GraphQLFilterTranslator(codec),
        sorters=SorterRenderer(),
        pagination=GraphQLPagination(),
        rows=GraphQLRowExtractor(),
        codec=codec,
    )


DIALECTS: Dict[str, Callable[[], Dialect]] = {
    "json": json_dialect,
    "xml": xml_dialect,
    "html": html_dialect,
    "odata2": odata2_dialect,
    "odata4": odata4_dialect,
    "odata": odata_hybrid_dialect,
    "graphql": graphql_dialect,
}


def dialect_names() -> List[str]:
    return list(DIALECTS)


def get_dialect(name: str) -> Dialect:
    """
    Fresh strategy bundle for ``name``.

    Raises
    ------
    ValueError
        For unknown dialect names
    """
    try:
        return DIALECTS[name.lower()]()
    except KeyError:
        raise ValueError(f"Unknown dialect '{name}'. Available: {', '.join(DIALECTS)}") from None


def get_builder(name: str) -> QueryRequestBuilder:
    """Request builder for ``name``."""
    dialect = get_dialect(name)
    if dialect.name == "graphql":
        return GraphQLRequestBuilder(dialect)
    return QueryRequestBuilder(dialect)
