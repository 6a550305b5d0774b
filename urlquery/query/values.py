"""
urlquery.query.values - Value codecs for non-OData dialects
===========================================================
"""

from __future__ import annotations

from typing import Any, Optional, Protocol

from urlquery.core.models import DataType


class ValueCodec(Protocol):
    """Converts internal values to remote literals and back."""

    def encode(self, value: Any, data_type: DataType, remote_type: Optional[str] = None) -> str:
        """Literal for use inside a URL."""

    def encode_for_body(self, value: Any, data_type: DataType, remote_type: Optional[str] = None) -> Any:
        """Value for use inside a JSON request body."""

    def decode(self, literal: str, data_type: DataType, remote_type: Optional[str] = None) -> Any:
        """Inverse of ``encode``."""

    def decode_from_body(self, value: Any, data_type: DataType, remote_type: Optional[str] = None) -> Any:
        """Normalize a value found in a response body."""


class PlainValueCodec:
    """
    Codec for generic REST, XML and HTML dialects.

    Values travel as their plain string form; booleans as ``true``/``false``.
    """

    def encode(self, value: Any, data_type: DataType, remote_type: Optional[str] = None) -> str:
        if value is None:
            return ""
        if isinstance(value, bool):
            return "true" if value else "false"
        return str(value)

    def encode_for_body(self, value: Any, data_type: DataType, remote_type: Optional[str] = None) -> Any:
        return value

    def decode(self, literal: str, data_type: DataType, remote_type: Optional[str] = None) -> Any:
        if data_type == DataType.BOOLEAN and literal in ("true", "false"):
            return literal == "true"
        return literal

    def decode_from_body(self, value: Any, data_type: DataType, remote_type: Optional[str] = None) -> Any:
        return value
