"""
urlquery.data - Response data handling
======================================

- paths: slash-delimited navigation of decoded bodies
- rows: row and counter extraction from JSON envelopes
- local: filters, sorting and paging applied after reading
"""

from urlquery.data.paths import find_path, set_path
from urlquery.data.rows import (
    ODataV2RowExtractor,
    ODataV4RowExtractor,
    RowContainer,
    RowContainerKind,
    RowExtractor,
)

__all__ = [
    "find_path",
    "set_path",
    "ODataV2RowExtractor",
    "ODataV4RowExtractor",
    "RowContainer",
    "RowContainerKind",
    "RowExtractor",
]
