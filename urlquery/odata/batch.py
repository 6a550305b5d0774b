"""
urlquery.odata.batch - $batch requests
======================================

Combines several write requests into one ``multipart/mixed`` POST to
``<service>/$batch`` holding a single changeset, and splits the response
back into per-request results.
"""

from __future__ import annotations

import json
import re
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import urlsplit

from urlquery.core.errors import BatchResponseNotParsedError, ChangesetFailedError, QueryBuilderError
from urlquery.core.request import DataRequest

CRLF = "\r\n"

_BOUNDARY_RE = re.compile(r'boundary=(?:"([^"]+)"|([^;\s]+))', re.IGNORECASE)
_STATUS_RE = re.compile(r"^HTTP/\d(?:\.\d)?\s+(\d{3})")


@dataclass
class BatchPartResponse:
    """One sub-response of a batch."""

    status: int
    headers: Dict[str, str] = field(default_factory=dict)
    body: str = ""

    def json(self) -> Any:
        return json.loads(self.body) if self.body.strip() else None

    @property
    def ok(self) -> bool:
        return self.status < 400


class BatchRequestBuilder:
    """
    Renders write requests as one ``$batch`` changeset.

    Parameters
    ----------
    base_url : str
        Service base URL the sub-request URIs are relative to,
        e.g. "https://host/sap/opu/odata/sap/API_SALES_ORDER_SRV/"

    Examples
    --------
    >>> batch = BatchRequestBuilder("https://host/sap/opu/odata/sap/SRV/")
    >>> request = batch.build([create_1, create_2])
    >>> request.uri
    '$batch'
    """

    def __init__(self, base_url: str) -> None:
        self.base_url = base_url.rstrip("/") + "/"
        parts = urlsplit(self.base_url)
        self.host = parts.netloc
        self.base_path = parts.path or "/"

    def absolute_path(self, uri: str) -> str:
        """Sub-request path: base URL without its server root, plus the URI."""
        return self.base_path + uri.lstrip("/")

    def _part(self, request: DataRequest, content_id: int) -> str:
        if request.method.upper() == "GET":
            raise QueryBuilderError("Read requests cannot be part of a $batch changeset")
        lines = [
            "Content-Type: application/http",
            "Content-Transfer-Encoding: binary",
            f"Content-ID: {content_id}",
            "",
            f"{request.method.upper()} {self.absolute_path(request.encoded_uri)} HTTP/1.1",
            f"Host: {self.host}",
        ]
        body = request.body or ""
        if isinstance(body, bytes):
            body = body.decode("utf-8")
        headers = dict(request.headers)
        headers.setdefault("Content-Type", "application/json")
        for name, value in headers.items():
            lines.append(f"{name}: {value}")
        if body:
            lines.append(f"Content-Length: {len(body.encode('utf-8'))}")
        lines.append("")
        lines.append(body)
        return CRLF.join(lines)

    def build(self, requests: List[DataRequest]) -> DataRequest:
        """
        One POST to ``$batch`` containing all ``requests`` in one changeset, in order.
        """
        if not requests:
            raise QueryBuilderError("Cannot build an empty $batch request")
        batch_boundary = f"batch_{uuid.uuid4()}"
        changeset_boundary = f"changeset_{uuid.uuid4()}"

        changeset = CRLF.join(
            f"--{changeset_boundary}{CRLF}{self._part(r, i)}"
            for i, r in enumerate(requests, start=1)
        )
        body = CRLF.join([
            f"--{batch_boundary}",
            f"Content-Type: multipart/mixed; boundary={changeset_boundary}",
            "",
            changeset,
            f"--{changeset_boundary}--",
            "",
            f"--{batch_boundary}--",
            "",
        ])
        return DataRequest(
            "POST",
            "$batch",
            headers={
                "Content-Type": f"multipart/mixed; boundary={batch_boundary}",
                "Accept": "multipart/mixed",
            },
            body=body,
        )


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------

def _boundary(content_type: str) -> Optional[str]:
    if "multipart/" not in (content_type or "").lower():
        return None
    match = _BOUNDARY_RE.search(content_type)
    if not match:
        return None
    return match.group(1) or match.group(2)


def _split_head(text: str) -> Tuple[Dict[str, str], str]:
    head, _, body = text.partition("\n\n")
    headers: Dict[str, str] = {}
    for line in head.split("\n"):
        name, sep, value = line.partition(":")
        if sep:
            headers[name.strip().lower()] = value.strip()
    return headers, body


def _split_multipart(text: str, boundary: str) -> List[str]:
    delimiter = f"--{boundary}"
    parts = []
    for chunk in text.split(delimiter)[1:]:
        if chunk.startswith("--"):
            break
        parts.append(chunk.strip("\n"))
    return parts


def _parse_parts(text: str, boundary: str) -> List[BatchPartResponse]:
    out: List[BatchPartResponse] = []
    for part in _split_multipart(text, boundary):
        headers, body = _split_head(part)
        nested = _boundary(headers.get("content-type", ""))
        if nested:
            out.extend(_parse_parts(body, nested))
            continue
        status_line, _, rest = body.partition("\n")
        match = _STATUS_RE.match(status_line.strip())
        if not match:
            raise BatchResponseNotParsedError(f"Unexpected batch part: {status_line[:200]!r}")
        inner_headers, inner_body = _split_head(rest)
        out.append(BatchPartResponse(int(match.group(1)), inner_headers, inner_body.strip()))
    return out


def parse_batch_response(text: str, content_type: str) -> List[BatchPartResponse]:
    """
    Split a ``$batch`` response body into sub-responses, in order.

    Raises
    ------
    BatchResponseNotParsedError
        If the body is not a multipart document or contains no parts
    """
    boundary = _boundary(content_type)
    if not boundary:
        raise BatchResponseNotParsedError(f"Batch response is not multipart (Content-Type: {content_type!r})")
    parts = _parse_parts((text or "").replace("\r\n", "\n"), boundary)
    if not parts:
        raise BatchResponseNotParsedError("Batch response contains no sub-responses")
    return parts


def raise_for_changeset(parts: List[BatchPartResponse]) -> None:
    """Raise ChangesetFailedError for the first failed sub-response."""
    for part in parts:
        if not part.ok:
            raise ChangesetFailedError(part.status, part.body)
