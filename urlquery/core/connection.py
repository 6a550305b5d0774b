"""
urlquery.core.connection - Connection context
=============================================

One object holding the connection settings for a remote API, resolved
from arguments or ``URLQUERY_*`` environment variables.
"""

from __future__ import annotations

import os
from typing import TYPE_CHECKING, Dict, Optional

from urlquery.core.session import ConnectionConfig, HttpAuth, HttpTransport

if TYPE_CHECKING:
    from urlquery.service import QueryService


def _env_flag(name: str, default: str) -> bool:
    return os.environ.get(name, default).strip().lower() not in ("false", "0", "no", "")


class ConnectionContext:
    """
    Connection manager for one URL-based API.

    Parameters
    ----------
    base_url : str, optional
        Base URL of the API. Falls back to URLQUERY_BASE_URL.
    user : str, optional
        Username for basic auth. Falls back to URLQUERY_USER.
    password : str, optional
        Password for basic auth. Falls back to URLQUERY_PASS.
    bearer_token : str, optional
        Bearer token. Falls back to URLQUERY_BEARER_TOKEN.
    dialect : str, optional
        Default dialect for ``service()``. Falls back to URLQUERY_DIALECT, then "json".
    verify : bool, optional
        TLS verification. Falls back to URLQUERY_VERIFY_TLS.
    timeout : float
        Request timeout in seconds
    fixed_params : dict, optional
        URL parameters added to every request, e.g. {"sap-client": "100"}
    csrf : bool
        Fetch an X-CSRF-Token before write requests

    Examples
    --------
    >>> with ConnectionContext("https://host/odata/", dialect="odata4") as conn:
    ...     result = conn.service().read(query)
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        user: Optional[str] = None,
        password: Optional[str] = None,
        bearer_token: Optional[str] = None,
        dialect: Optional[str] = None,
        verify: Optional[bool] = None,
        timeout: float = 60.0,
        fixed_params: Optional[Dict[str, str]] = None,
        csrf: bool = False,
    ) -> None:
        self._base_url = (base_url or os.environ.get("URLQUERY_BASE_URL", "")).rstrip("/") + "/"
        self._user = user or os.environ.get("URLQUERY_USER", "")
        self._password = password or os.environ.get("URLQUERY_PASS", "")
        self._bearer_token = bearer_token or os.environ.get("URLQUERY_BEARER_TOKEN", "")
        self._dialect = dialect or os.environ.get("URLQUERY_DIALECT", "json")

        if verify is not None:
            self._verify = verify
        else:
            self._verify = _env_flag("URLQUERY_VERIFY_TLS", "true")

        self._timeout = timeout
        self._fixed_params = dict(fixed_params or {})
        self._csrf = csrf

        if not self._base_url or self._base_url == "/":
            raise ValueError(
                "Missing base_url. Set URLQUERY_BASE_URL environment variable "
                "or pass base_url parameter."
            )

        self._transport: Optional[HttpTransport] = None

    @property
    def transport(self) -> HttpTransport:
        """Get or create the underlying transport."""
        if self._transport is None:
            self._transport = self._build_transport()
        return self._transport

    def _auth(self) -> HttpAuth:
        if self._bearer_token:
            return HttpAuth("bearer", self._bearer_token)
        if self._user and self._password:
            return HttpAuth("basic", (self._user, self._password))
        return HttpAuth("none")

    def _build_transport(self) -> HttpTransport:
        cfg = ConnectionConfig(
            base_url=self._base_url,
            auth=self._auth(),
            verify=self._verify,
            timeout=self._timeout,
            fixed_params=self._fixed_params,
            csrf=self._csrf,
        )
        return HttpTransport(cfg)

    def close(self) -> None:
        if self._transport is not None:
            self._transport.close()
            self._transport = None

    def __enter__(self) -> "ConnectionContext":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def service(self, dialect: Optional[str] = None) -> "QueryService":
        """
        QueryService for ``dialect`` (defaults to the context's dialect).

        Parameters
        ----------
        dialect : str, optional
            Registry name, e.g. "odata2"

        Returns
        -------
        QueryService
        """
        from urlquery.service import QueryService
        return QueryService(self.transport, dialect or self._dialect)

    @property
    def base_url(self) -> str:
        return self._base_url

    @property
    def dialect(self) -> str:
        return self._dialect
