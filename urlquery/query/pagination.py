"""
urlquery.query.pagination - Paging strategies
=============================================

Each dialect names its offset and limit parameters and knows how to get
a total row count: inline in the response, through a secondary ``$count``
request, or not at all.
"""

from __future__ import annotations

from typing import Optional, Tuple

from urlquery.core.models import Entity
from urlquery.core.request import DataRequest
from urlquery.query.filters import Params


class PaginationStrategy:
    """
    Generic REST paging: only the parameters configured on the entity
    (``request_offset_parameter``, ``request_limit_parameter``).
    """

    offset_param: Optional[str] = None
    limit_param: Optional[str] = None
    count_params: Tuple[Tuple[str, str], ...] = ()
    count_requests = False

    def offset_parameter(self, entity: Entity) -> Optional[str]:
        return entity.options.request_offset_parameter or self.offset_param

    def limit_parameter(self, entity: Entity) -> Optional[str]:
        return entity.options.request_limit_parameter or self.limit_param

    def is_remote(self, entity: Entity) -> bool:
        """True when the service pages; otherwise the page is cut locally."""
        return bool(self.limit_parameter(entity))

    def inline_count_params(self, entity: Entity) -> Params:
        return list(self.count_params)

    def params(self, entity: Entity, offset: int, limit: int) -> Params:
        """Offset only when > 0, limit only when > 0; ``limit == 0`` is unbounded."""
        out: Params = []
        offset_param = self.offset_parameter(entity)
        limit_param = self.limit_parameter(entity)
        if offset > 0 and offset_param:
            out.append((offset_param, str(offset)))
        if limit > 0 and limit_param:
            out.append((limit_param, str(limit)))
        out.extend(self.inline_count_params(entity))
        return out

    def uses_extra_row(self, entity: Entity, limit: int) -> bool:
        return False

    def build_count_request(self, request: DataRequest, entity: Entity) -> Optional[DataRequest]:
        """Secondary request returning the total as plain text, if the dialect has one."""
        if not self.count_requests:
            return None
        stripped = {
            self.offset_parameter(entity),
            self.limit_parameter(entity),
            "$format",
        }
        stripped.update(k for k, _ in self.inline_count_params(entity))
        params = [(k, v) for k, v in request.params() if k not in stripped]
        path = request.path.rstrip("/") + "/$count"
        return DataRequest.with_params("GET", path, params, headers={"Accept": "text/plain"})


class ODataV2Pagination(PaginationStrategy):
    """``$skip`` / ``$top`` with ``$inlinecount=allpages`` unless disabled."""

    offset_param = "$skip"
    limit_param = "$top"
    count_requests = True

    def is_remote(self, entity: Entity) -> bool:
        return True

    def inline_count_params(self, entity: Entity) -> Params:
        if entity.options.odata_inlinecount is False:
            return []
        return [("$inlinecount", "allpages")]


class ODataV4Pagination(ODataV2Pagination):
    """``$skip`` / ``$top`` with ``$count=true``."""

    def inline_count_params(self, entity: Entity) -> Params:
        if entity.options.odata_inlinecount is False:
            return []
        return [("$count", "true")]


class HybridODataPagination(ODataV2Pagination):
    """
    Legacy OData-JSON services: the offset travels in ``$skiptoken``.

    Most services treat ``$skiptoken`` as an opaque continuation token, so
    passing a numeric offset only works where the service was built for it.
    """

    offset_param = "$skiptoken"

    def inline_count_params(self, entity: Entity) -> Params:
        return []
