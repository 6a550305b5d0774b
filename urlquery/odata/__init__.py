"""
urlquery.odata - OData v2 / v4 specifics
========================================

- ODataValueCodec / OData4ValueCodec: EDM literals for URLs and JSON bodies
- ODataFilterTranslator / OData4FilterTranslator: ``$filter`` expressions
- BatchRequestBuilder: ``$batch`` changesets and response parsing
"""

from urlquery.odata.batch import BatchRequestBuilder, parse_batch_response
from urlquery.odata.filters import ODataFilterTranslator, OData4FilterTranslator
from urlquery.odata.values import ODataValueCodec, OData4ValueCodec, escape_odata_literal

__all__ = [
    "BatchRequestBuilder",
    "parse_batch_response",
    "ODataFilterTranslator",
    "OData4FilterTranslator",
    "ODataValueCodec",
    "OData4ValueCodec",
    "escape_odata_literal",
]
