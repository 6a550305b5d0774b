"""
urlquery.core.errors - Exception hierarchy
==========================================

Errors raised while compiling queries, decoding responses and talking to
remote services.
"""

from __future__ import annotations

from typing import Dict, Optional


class QueryBuilderError(RuntimeError):
    """Base class for every error raised while translating a query."""


class EntityConfigError(QueryBuilderError):
    """An entity or attribute description is malformed."""


class UnsupportedConstructError(QueryBuilderError):
    """
    The query uses a construct the target dialect cannot express.

    Raised for unsupported logical operators (e.g. XOR in OData),
    unknown comparators and missing mutation names in GraphQL.
    """


class ValueCastError(QueryBuilderError):
    """
    A filter or row value cannot be cast to its remote type.

    Attributes
    ----------
    condition : str
        Human readable form of the offending condition, e.g. ``Qty > abc``
    """

    def __init__(self, message: str, condition: str = "") -> None:
        text = f"{message} (in condition: {condition})" if condition else message
        super().__init__(text)
        self.condition = condition


class InvalidPathError(QueryBuilderError):
    """A data path contains a malformed step such as ``items[id=1``."""


class BatchResponseNotParsedError(QueryBuilderError):
    """
    A ``$batch`` response could not be split into sub-responses.

    The batch may or may not have been applied by the server.
    """


class ChangesetFailedError(QueryBuilderError):
    """
    At least one sub-request of a ``$batch`` changeset failed.

    Attributes
    ----------
    status : int
        Status of the first failed sub-response
    body : str
        Body of the first failed sub-response
    """

    def __init__(self, status: int, body: str) -> None:
        super().__init__(f"Batch changeset failed with status {status}: {(body or '')[:1200]}")
        self.status = status
        self.body = body or ""


class UpstreamError(RuntimeError):
    """
    Exception raised when the remote service returns an error.

    Attributes
    ----------
    status : int
        HTTP status code
    body : str
        Response body or extracted error message
    url : str
        The URL that was called
    headers : dict
        Response headers
    """

    def __init__(
        self,
        status: int,
        body: str,
        url: str,
        headers: Optional[Dict[str, str]] = None
    ):
        snippet = (body or "")[:1200]
        super().__init__(f"Upstream error {status} for {url}: {snippet}")
        self.status = status
        self.body = body or ""
        self.url = url
        self.headers = headers or {}
