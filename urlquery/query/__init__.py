"""
urlquery.query - Generic request building
=========================================

The dialect-independent half of query translation: filter splitting and
the URL-parameter filter grammar, sorter rendering, paging strategies,
address placeholders and the QueryRequestBuilder that ties them together.
"""

from urlquery.query.builder import Dialect, QueryRequestBuilder
from urlquery.query.filters import FilterTranslator, SorterRenderer, UrlParamFilterTranslator
from urlquery.query.pagination import PaginationStrategy

__all__ = [
    "Dialect",
    "QueryRequestBuilder",
    "FilterTranslator",
    "SorterRenderer",
    "UrlParamFilterTranslator",
    "PaginationStrategy",
]
