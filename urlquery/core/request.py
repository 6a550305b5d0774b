"""
urlquery.core.request - Request and result artifacts
====================================================
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple, Union
from urllib.parse import quote, unquote

QueryParams = List[Tuple[str, Optional[str]]]

# Characters left readable in encoded parameter values. Everything that
# changes how a query string is split (& = # + ? %) is escaped.
QUERY_SAFE = "$'(),:/@!*;"
# Path characters left as they are; percent signs are assumed to be escapes.
PATH_SAFE = "/$'(),:=@;&+!*%"


def build_query_string(params: QueryParams) -> str:
    """
    Join parameters into a readable query string without percent-encoding.

    Used for display and logging (``$filter=Status eq 'open'``). Requests
    are sent with :func:`encode_query_string`.
    """
    return "&".join(f"{k}={v}" if v is not None else k for k, v in params if k)


def encode_query_string(params: QueryParams) -> str:
    """
    Join parameters into a percent-encoded query string.

    OData punctuation (``$ ' ( ) , :``) stays readable, separators inside
    values do not.

    Examples
    --------
    >>> encode_query_string([("$filter", "Name eq 'R&D #1'")])
    "$filter=Name%20eq%20'R%26D%20%231'"
    """
    parts = []
    for k, v in params:
        if not k:
            continue
        key = quote(k, safe="$")
        parts.append(key if v is None else f"{key}={quote(str(v), safe=QUERY_SAFE)}")
    return "&".join(parts)


def parse_query_string(query: str) -> QueryParams:
    """Split ``a=1&b=2`` into pairs, keeping order; values are unquoted."""
    out: QueryParams = []
    for part in query.split("&"):
        if not part:
            continue
        key, sep, value = part.partition("=")
        out.append((unquote(key), unquote(value) if sep else None))
    return out


def append_query(uri: str, query: str) -> str:
    if not query:
        return uri
    return f"{uri}{'&' if '?' in uri else '?'}{query}"


@dataclass
class DataRequest:
    """
    One outbound HTTP request produced by a builder.

    Parameters
    ----------
    method : str
        HTTP method
    uri : str
        Endpoint relative to the connection base URL, including the
        readable (unencoded) query string
    headers : dict
        Request headers
    body : str or bytes, optional
        Serialized request body
    query_params : list of (str, str), optional
        The query string as pairs. Builders set it so that values holding
        ``&``, ``#`` or ``+`` survive encoding; without it the query part of
        ``uri`` is split on ``&``.
    """

    method: str = "GET"
    uri: str = ""
    headers: Dict[str, str] = field(default_factory=dict)
    body: Optional[Union[str, bytes]] = None
    query_params: Optional[QueryParams] = None

    @classmethod
    def with_params(cls, method: str, path: str, params: QueryParams, **kwargs: Any) -> "DataRequest":
        """Build a request from a bare path and its query parameters."""
        params = list(params)
        return cls(method, append_query(path, build_query_string(params)), query_params=params, **kwargs)

    @property
    def path(self) -> str:
        return self.uri.split("?", 1)[0]

    @property
    def query(self) -> str:
        return self.uri.split("?", 1)[1] if "?" in self.uri else ""

    def params(self) -> QueryParams:
        if self.query_params is not None:
            return list(self.query_params)
        return parse_query_string(self.query)

    @property
    def encoded_uri(self) -> str:
        """``uri`` with a percent-encoded query string, as sent on the wire."""
        return append_query(quote(self.path, safe=PATH_SAFE), encode_query_string(self.params()))

    def __str__(self) -> str:
        return f"{self.method} {self.uri}"


@dataclass
class ReadResult:
    """
    Rows returned by a read, plus paging information.

    ``total_count`` is None when neither the response nor a count request
    could tell the total.
    """

    rows: List[Dict[str, Any]] = field(default_factory=list)
    total_count: Optional[int] = None
    has_more_rows: bool = False

    def __len__(self) -> int:
        return len(self.rows)

    @classmethod
    def empty(cls) -> "ReadResult":
        return cls(rows=[], total_count=0, has_more_rows=False)
