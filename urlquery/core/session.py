"""
urlquery.core.session - HTTP transport
======================================

Sends compiled DataRequests with:
- Basic, Bearer or no authentication
- Automatic retry with exponential backoff
- Optional CSRF token handshake before write operations
- Fixed URL parameters appended to every request
- Error extraction from OData/JSON error envelopes
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Protocol, Tuple, Union
from urllib.parse import urlsplit
import logging
import threading
import time

import requests
from requests import Response, Session
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from urlquery.core.errors import UpstreamError
from urlquery.core.request import DataRequest, append_query, encode_query_string


@dataclass
class HttpAuth:
    """
    Authentication configuration.

    Parameters
    ----------
    kind : str
        "basic", "bearer" or "none"
    value : tuple or str, optional
        For basic: (username, password) tuple
        For bearer: access token string

    Examples
    --------
    >>> auth = HttpAuth("basic", ("USER", "PASSWORD"))
    >>> auth = HttpAuth("bearer", "eyJ...")
    >>> auth = HttpAuth("none")
    """
    kind: str = "none"  # "basic" | "bearer" | "none"
    value: Union[Tuple[str, str], str, None] = None


@dataclass
class ConnectionConfig:
    """
    Connection configuration for a remote URL-based API.

    Parameters
    ----------
    base_url : str
        Base URL all request URIs are relative to,
        e.g. "https://host/sap/opu/odata/sap/API_SALES_ORDER_SRV/"
    auth : HttpAuth
        Authentication configuration
    timeout : float
        Request timeout in seconds (default: 60.0)
    retries : int
        Number of retry attempts (default: 3)
    backoff : float
        Backoff factor for retries (default: 0.5)
    verify : bool or str
        SSL verification (True, False, or path to CA bundle)
    user_agent : str
        User-Agent header value
    fixed_params : dict
        URL parameters added to every request, e.g. {"sap-client": "100"}
    headers : dict
        Default headers sent with every request
    csrf : bool
        Fetch an X-CSRF-Token before the first write request

    Examples
    --------
    >>> cfg = ConnectionConfig(
    ...     base_url="https://s4.example.com/sap/opu/odata/sap/API_SALES_ORDER_SRV/",
    ...     auth=HttpAuth("basic", ("USER", "PASS")),
    ...     fixed_params={"sap-client": "100"},
    ...     csrf=True,
    ... )
    """
    base_url: str
    auth: HttpAuth = field(default_factory=HttpAuth)
    timeout: float = 60.0
    retries: int = 3
    backoff: float = 0.5
    verify: Union[bool, str] = True
    user_agent: str = "urlquery/0.3"
    fixed_params: Dict[str, str] = field(default_factory=dict)
    headers: Dict[str, str] = field(default_factory=dict)
    csrf: bool = False


class Transport(Protocol):
    """Anything able to send a DataRequest and return a requests-like response."""

    base_url: str

    def send(self, request: DataRequest) -> Response:
        ...


def error_message(data: Any) -> str:
    """
    Readable message from an error body.

    Understands OData v2 and v4 envelopes (``error.code``, ``error.message``
    as string or ``{"value": ...}``, ``innererror.transactionid``), GraphQL
    ``errors`` lists and plain ``{"message": ...}`` bodies. Returns an empty
    string for anything else.

    Examples
    --------
    >>> error_message({"error": {"code": "NF", "message": {"value": "Not found"}}})
    'code=NF | message=Not found'
    """
    if not isinstance(data, dict):
        return ""
    if isinstance(data.get("errors"), list):
        texts = [e.get("message") for e in data["errors"] if isinstance(e, dict) and e.get("message")]
        return "; ".join(str(t) for t in texts)

    err = data.get("error")
    if isinstance(err, str):
        return err
    if not isinstance(err, dict):
        message = data.get("message")
        return message if isinstance(message, str) else ""

    message = err.get("message")
    if isinstance(message, dict):
        message = message.get("value")
    inner = err.get("innererror") or err.get("innerError") or {}
    fields = (
        ("code", err.get("code")),
        ("message", message),
        ("txid", inner.get("transactionid") if isinstance(inner, dict) else None),
    )
    return " | ".join(f"{name}={value}" for name, value in fields if value)


def server_root(url: str) -> str:
    """Scheme and authority of a URL: ``https://host:8443/a/b`` -> ``https://host:8443``."""
    parts = urlsplit(url)
    if not parts.scheme:
        return ""
    return f"{parts.scheme}://{parts.netloc}"


class HttpTransport:
    """
    requests-based transport for compiled DataRequests.

    Handles authentication, retries and CSRF tokens. Use as a context
    manager for automatic cleanup.

    Parameters
    ----------
    cfg : ConnectionConfig
        Connection configuration

    Examples
    --------
    >>> with HttpTransport(cfg) as transport:
    ...     response = transport.send(DataRequest("GET", "Orders?$top=5"))
    """

    def __init__(self, cfg: ConnectionConfig) -> None:
        self.cfg = cfg
        self.base_url = cfg.base_url.rstrip("/") + "/"
        self.timeout = float(cfg.timeout)
        self.verify = cfg.verify
        self.logger = logging.getLogger("urlquery.transport")

        self.session = self._build_session()

        self._csrf_token: Optional[str] = None
        self._csrf_lock = threading.Lock()

    def close(self) -> None:
        """Close the underlying HTTP session."""
        self.session.close()

    def __enter__(self) -> "HttpTransport":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @property
    def server_root(self) -> str:
        return server_root(self.base_url)

    # ---------------- auth/session ----------------

    def _build_session(self) -> Session:
        sess = requests.Session()

        # auth
        if self.cfg.auth.kind == "basic":
            sess.auth = self.cfg.auth.value  # type: ignore[assignment]
        elif self.cfg.auth.kind == "bearer":
            sess.headers.update({"Authorization": f"Bearer {self.cfg.auth.value}"})
        elif self.cfg.auth.kind != "none":
            raise ValueError("auth.kind must be 'basic', 'bearer' or 'none'")

        sess.headers.update({
            "Accept": "application/json",
            "User-Agent": self.cfg.user_agent,
        })
        sess.headers.update(self.cfg.headers)

        retry = Retry(
            total=self.cfg.retries,
            backoff_factor=self.cfg.backoff,
            status_forcelist=(429, 500, 502, 503, 504),
            allowed_methods=frozenset({"GET", "HEAD", "OPTIONS", "POST", "PUT", "PATCH", "MERGE", "DELETE"}),
            raise_on_status=False,
        )
        adapter = HTTPAdapter(max_retries=retry, pool_connections=20, pool_maxsize=50)
        sess.mount("https://", adapter)
        sess.mount("http://", adapter)
        return sess

    # ---------------- helpers ----------------

    def _url(self, uri: str) -> str:
        if uri.startswith(("http://", "https://")):
            url = uri
        else:
            url = f"{self.base_url}{uri.lstrip('/')}"
        if self.cfg.fixed_params:
            url = append_query(url, encode_query_string(list(self.cfg.fixed_params.items())))
        return url

    def _extract_error(self, r: Response) -> str:
        try:
            data = r.json()
        except ValueError:
            return r.text
        return error_message(data) or r.text

    def _raise_for_error(self, r: Response, url: str) -> None:
        if r.status_code >= 400:
            body = self._extract_error(r)
            raise UpstreamError(r.status_code, body, url, dict(r.headers))

    def _ensure_csrf(self) -> str:
        if self._csrf_token is not None:
            return self._csrf_token

        with self._csrf_lock:
            if self._csrf_token is not None:
                return self._csrf_token

            url = self._url("")
            r = self.session.request(
                "GET",
                url,
                headers={"X-CSRF-Token": "Fetch"},
                timeout=self.timeout,
                verify=self.verify,
            )
            self._raise_for_error(r, url)
            token = r.headers.get("x-csrf-token")
            if not token:
                raise UpstreamError(400, "Failed to obtain CSRF token", url, dict(r.headers))
            self._csrf_token = token
            return token

    # ---------------- public ops ----------------

    def send(self, request: DataRequest) -> Response:
        """
        Send a compiled request.

        Parameters
        ----------
        request : DataRequest
            Request produced by a builder; its URI is relative to the base URL

        Returns
        -------
        requests.Response

        Raises
        ------
        UpstreamError
            For any response with status >= 400
        """
        url = self._url(request.encoded_uri)
        headers = dict(request.headers)
        if self.cfg.csrf and request.method.upper() not in ("GET", "HEAD", "OPTIONS"):
            headers["X-CSRF-Token"] = self._ensure_csrf()

        t0 = time.perf_counter()
        r = self.session.request(
            method=request.method,
            url=url,
            headers=headers,
            data=request.body,
            timeout=self.timeout,
            verify=self.verify,
        )
        self._raise_for_error(r, url)
        dt = (time.perf_counter() - t0) * 1000.0
        self.logger.debug("%s %s %sms", request.method.upper(), url, round(dt, 1))
        return r


def response_json(r: Response) -> Any:
    """Decode a JSON response body; empty bodies decode to None."""
    if not r.content:
        return None
    return r.json()
