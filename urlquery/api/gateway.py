"""
urlquery.api.gateway - FastAPI gateway
======================================

Optional REST gateway around the query translation engine:

- ``POST /compile`` returns the requests a query compiles to, without sending them
- ``POST /extract`` decodes rows from a response body supplied by the caller
- ``POST /read`` executes a read against the configured backend
"""

from __future__ import annotations

import logging
import os
from typing import Any, Dict, Optional

from fastapi import Depends, FastAPI, Header, HTTPException
from fastapi.middleware.cors import CORSMiddleware

from urlquery import __version__
from urlquery.api.models import (
    CompiledRequestModel,
    CompileRequest,
    CompileResponse,
    ExtractRequest,
    ExtractResponse,
    QueryModel,
    ReadResponse,
)
from urlquery.core.connection import ConnectionContext
from urlquery.core.errors import QueryBuilderError, UpstreamError
from urlquery.dialects import dialect_names, get_builder

logger = logging.getLogger("urlquery.api")


class GatewayConfig:
    """
    Gateway settings, read from environment variables by default.

    Parameters
    ----------
    api_key : str, optional
        Expected ``x-api-key`` header value. Falls back to URLQUERY_API_KEY.
        An empty key disables the check.
    max_limit : int, optional
        Upper bound for the page size of ``/read``. Falls back to
        URLQUERY_MAX_LIMIT, then 500.
    """

    def __init__(self, api_key: Optional[str] = None, max_limit: Optional[int] = None) -> None:
        self.api_key = api_key if api_key is not None else os.environ.get("URLQUERY_API_KEY", "")
        if max_limit is None:
            max_limit = int(os.environ.get("URLQUERY_MAX_LIMIT", "500"))
        self.max_limit = max_limit
        self._connection: Optional[ConnectionContext] = None

    def validate(self) -> None:
        """Raises RuntimeError if the configuration is unusable."""
        if not self.api_key:
            raise RuntimeError("Missing URLQUERY_API_KEY - required for security")

    def connection(self) -> ConnectionContext:
        """Connection to the backend used by ``/read`` (URLQUERY_* variables)."""
        if self._connection is None:
            self._connection = ConnectionContext()
        return self._connection


def _bad_request(e: Exception) -> HTTPException:
    return HTTPException(status_code=400, detail=str(e))


def create_app(
    config: Optional[GatewayConfig] = None,
    validate_on_startup: bool = True,
) -> FastAPI:
    """
    Create the FastAPI application.

    Parameters
    ----------
    config : GatewayConfig, optional
        Gateway settings. If None, reads from environment.
    validate_on_startup : bool
        Log a warning when the configuration is incomplete

    Returns
    -------
    FastAPI
    """
    gw = config or GatewayConfig()
    if validate_on_startup:
        try:
            gw.validate()
        except RuntimeError as e:
            logger.warning("Gateway configuration incomplete: %s", e)

    app = FastAPI(
        title="urlquery gateway",
        description="Compile dialect-neutral queries into OData, GraphQL and REST requests.",
        version=__version__,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ---------------- dependencies ----------------

    def require_api_key(x_api_key: str = Header(default="")) -> None:
        if gw.api_key and x_api_key != gw.api_key:
            raise HTTPException(status_code=401, detail="Invalid API key")

    # ---------------- endpoints ----------------

    @app.get("/health")
    def health() -> Dict[str, Any]:
        return {"ok": True, "version": __version__}

    @app.get("/dialects")
    def dialects(_: None = Depends(require_api_key)) -> Dict[str, Any]:
        return {"dialects": dialect_names()}

    @app.post("/compile", response_model=CompileResponse)
    def compile_query(req: CompileRequest, _: None = Depends(require_api_key)) -> CompileResponse:
        """Compiled requests for a query; nothing is sent."""
        try:
            builder = get_builder(req.dialect)
            query = req.to_query()
            count_request = None
            if req.operation == "read":
                request = builder.build_read(query)
                requests = [request] if request is not None else []
                if request is not None:
                    count_request = builder.build_count(request, builder.prepare(query))
            else:
                requests = getattr(builder, f"build_{req.operation}")(query)
        except (QueryBuilderError, ValueError) as e:
            raise _bad_request(e)

        return CompileResponse(
            dialect=builder.dialect.name,
            operation=req.operation,
            requests=[CompiledRequestModel.from_request(r) for r in requests],
            count_request=CompiledRequestModel.from_request(count_request) if count_request else None,
        )

    @app.post("/extract", response_model=ExtractResponse)
    def extract_rows(req: ExtractRequest, _: None = Depends(require_api_key)) -> ExtractResponse:
        """Rows and total count decoded from a response body."""
        try:
            builder = get_builder(req.dialect)
            query = builder.prepare(req.to_query())
            body = builder.dialect.rows.parse_text(req.text) if req.text is not None else req.body
            rows = builder.extract_rows(body, query, req.uid_scoped)
            total = builder.extract_count(body, query)
        except (QueryBuilderError, ValueError) as e:
            raise _bad_request(e)
        return ExtractResponse(count=len(rows), total_count=total, rows=rows)

    @app.post("/read", response_model=ReadResponse)
    def read(req: QueryModel, _: None = Depends(require_api_key)) -> ReadResponse:
        """Execute a read against the configured backend."""
        try:
            query = req.to_query()
            if query.limit == 0 or query.limit > gw.max_limit:
                query.limit = gw.max_limit
            result = gw.connection().service(req.dialect).read(query)
        except UpstreamError as e:
            raise HTTPException(
                status_code=502,
                detail={"upstream_status": e.status, "message": str(e), "url": e.url},
            )
        except (QueryBuilderError, ValueError) as e:
            raise _bad_request(e)
        return ReadResponse(
            count=len(result.rows),
            total_count=result.total_count,
            has_more_rows=result.has_more_rows,
            rows=result.rows,
        )

    return app
