"""
urlquery.service - Query execution
==================================

Runs the translate -> execute -> decode loop for one dialect:

- compiles a Query with a QueryRequestBuilder
- sends the requests through a Transport (strictly sequentially)
- decodes rows and counters, then applies whatever could not be done
  remotely: response grouping, local filters, local sorting and paging
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Any, Dict, List, Optional, Union

from urlquery.core.errors import QueryBuilderError, UpstreamError
from urlquery.core.models import Comparator, Query
from urlquery.core.request import DataRequest, ReadResult
from urlquery.core.session import Transport, response_json
from urlquery.data import local
from urlquery.data.rows import parse_count
from urlquery.dialects import get_builder
from urlquery.odata.batch import BatchRequestBuilder, parse_batch_response, raise_for_changeset
from urlquery.query.builder import QueryRequestBuilder

Row = Dict[str, Any]


class QueryService:
    """
    Executes dialect-neutral queries against one remote API.

    Parameters
    ----------
    transport : Transport
        Sends compiled requests; usually an HttpTransport
    dialect : str or QueryRequestBuilder
        Dialect name from the registry ("json", "odata2", "odata4",
        "odata", "graphql", "xml", "html") or a ready builder

    Examples
    --------
    >>> with HttpTransport(cfg) as transport:
    ...     svc = QueryService(transport, "odata2")
    ...     q = Query(orders, limit=10).add_filter("Status", "EQUALS", "open")
    ...     result = svc.read(q)
    ...     result.rows, result.total_count, result.has_more_rows
    """

    def __init__(self, transport: Transport, dialect: Union[str, QueryRequestBuilder] = "json") -> None:
        self.transport = transport
        self.builder = get_builder(dialect) if isinstance(dialect, str) else dialect
        self.logger = logging.getLogger("urlquery.service")

    @property
    def dialect_name(self) -> str:
        return self.builder.dialect.name

    # ---------------- reads ----------------

    def _fan_out(self, query: Query) -> List[Query]:
        """
        One query per UID value when a multi-value UID filter switched the
        endpoint to ``uid_request_data_address``; otherwise just ``query``.
        """
        split = self.builder.split_filter(query)
        if split is None or split.comparator != Comparator.IN:
            return [query]
        values = split.values()
        if len(values) < 2:
            return [query]
        queries = []
        for value in values:
            single = replace(split, comparator=Comparator.EQUALS, value=value)
            queries.append(replace(
                query,
                filters=query.filters.replace_filter(split, single),
                local_filters=query.local_filters.replace_filter(split, single),
            ))
        return queries

    def _read_one(self, query: Query, uid_scoped: bool):
        request = self.builder.build_read(query)
        if request is None:
            return None, [], None
        response = self.transport.send(request)
        body = self.builder.parse_response(response)
        rows = self.builder.extract_rows(body, query, uid_scoped)
        return request, rows, self.builder.extract_count(body, query)

    def _count_remote(self, request: DataRequest, query: Query) -> Optional[int]:
        count_request = self.builder.build_count(request, query)
        if count_request is None:
            return None
        try:
            response = self.transport.send(count_request)
        except UpstreamError as e:
            self.logger.warning("Count request %s failed: %s", count_request.uri, e)
            return None
        return parse_count(response.text)

    def read(self, query: Query) -> ReadResult:
        """
        Read rows matching ``query``.

        Returns
        -------
        ReadResult
            Rows keyed by attribute alias, the total row count (None if
            unknown) and whether more rows exist past the window
        """
        query = self.builder.prepare(query)
        uid_scoped = self.builder.is_uid_scoped(query)
        remote_paging = self.builder.remote_paging(query)

        rows: List[Row] = []
        counts: List[Optional[int]] = []
        first_request: Optional[DataRequest] = None
        for sub_query in self._fan_out(query):
            request, sub_rows, count = self._read_one(sub_query, uid_scoped)
            if request is None:
                continue
            if first_request is None:
                first_request = request
            rows.extend(sub_rows)
            counts.append(count)

        if first_request is None:
            self.logger.debug("%s: no executable request", query.entity.alias)
            return ReadResult.empty()

        has_more = False
        total: Optional[int] = None
        if remote_paging:
            if self.builder.pagination.uses_extra_row(query.entity, query.limit):
                if len(rows) > query.limit:
                    rows = rows[:query.limit]
                    has_more = True
                else:
                    total = query.offset + len(rows)
            else:
                total = counts[0]
                if total is None and (query.limit > 0 or query.offset > 0):
                    total = self._count_remote(first_request, query)
                if total is not None:
                    has_more = query.offset + len(rows) < total

        opts = query.entity.options
        if opts.response_group_by_attribute_alias and opts.response_group_use_only_first:
            rows = local.keep_first_group(rows, opts.response_group_by_attribute_alias)
        rows = local.apply_filters(rows, query.local_filters)
        rows = local.apply_sorting(rows, query.local_sorters)

        if not remote_paging:
            total = len(rows)
            rows = local.apply_pagination(rows, query.offset, query.limit)
            has_more = query.offset + len(rows) < total
        elif total is None and not has_more and (query.limit == 0 or len(rows) < query.limit):
            # a short page is the last one
            total = query.offset + len(rows)

        return ReadResult(rows=rows, total_count=total, has_more_rows=has_more)

    def count(self, query: Query) -> Optional[int]:
        """Total number of rows matching ``query``, ignoring its window."""
        unbounded = replace(query, offset=0, limit=0)
        prepared = self.builder.prepare(unbounded)
        if self.builder.remote_paging(prepared):
            request = self.builder.build_read(prepared)
            if request is None:
                return 0
            total = self._count_remote(request, prepared)
            if total is not None:
                return total
        return self.read(unbounded).total_count

    # ---------------- writes ----------------

    def _uses_batch(self, query: Query, requests: List[DataRequest]) -> bool:
        return (
            query.entity.options.odata_batch
            and self.dialect_name.startswith("odata")
            and len(requests) > 0
        )

    def _send_all(self, query: Query, requests: List[DataRequest]) -> List[Any]:
        """Send write requests and return the decoded response bodies, in order."""
        if self._uses_batch(query, requests):
            batch = BatchRequestBuilder(self.transport.base_url).build(requests)
            response = self.transport.send(batch)
            parts = parse_batch_response(response.text, response.headers.get("Content-Type", ""))
            raise_for_changeset(parts)
            if len(parts) != len(requests):
                self.logger.warning(
                    "$batch returned %s sub-responses for %s requests", len(parts), len(requests)
                )
            return [part.json() for part in parts]
        return [response_json(self.transport.send(r)) for r in requests]

    def create(self, query: Query) -> List[Any]:
        """
        Create one item per value row.

        Returns
        -------
        list
            UIDs of the created items as reported by the service (None where
            the response does not contain one)
        """
        requests = self.builder.build_create(query)
        bodies = self._send_all(query, requests)
        return [self.builder.extract_created_id(body, query) for body in bodies]

    def update(self, query: Query) -> int:
        """Update items addressed by the rows' UIDs; returns the number of requests sent."""
        requests = self.builder.build_update(query)
        self._send_all(query, requests)
        return len(requests)

    def delete(self, query: Query) -> int:
        """Delete items by UID; returns the number of requests sent."""
        requests = self.builder.build_delete(query)
        if not requests:
            raise QueryBuilderError(f"Cannot delete from '{query.entity.alias}' without UID values")
        self._send_all(query, requests)
        return len(requests)
