"""
urlquery.graphql.builder - GraphQL requests
===========================================

Reads become ``query { <op>(<args>) { <fields> } }`` documents, writes
become mutations named by the entity options ``graphql_create_mutation``,
``graphql_update_mutation`` and ``graphql_delete_mutation``.

Filtering is local unless an attribute names a query argument
(``filter_remote_argument``). Remote paging, when configured, requests
``limit + 1`` rows; the extra row only signals that more rows exist.
"""

from __future__ import annotations

import json
from typing import Any, Dict, List, Optional

from urlquery.core.errors import QueryBuilderError, UnsupportedConstructError, UpstreamError
from urlquery.core.models import Attribute, Comparator, Entity, Filter, FilterGroup, Query
from urlquery.core.request import DataRequest
from urlquery.core.session import response_json
from urlquery.data.paths import find_path
from urlquery.data.rows import RowExtractor
from urlquery.graphql.documents import build_json_body, build_mutation, build_query
from urlquery.query.builder import QueryRequestBuilder
from urlquery.query.filters import FilterTranslator, Params
from urlquery.query.pagination import PaginationStrategy


def read_operation(entity: Entity) -> str:
    return entity.options.graphql_read_query or entity.data_address


class GraphQLFilterTranslator(FilterTranslator):
    """EQUALS filters over attributes with ``filter_remote_argument`` become query arguments."""

    def is_remote(self, f: Filter) -> bool:
        if f.options.filter_remote is False:
            return False
        return bool(f.options.filter_remote_argument)

    def remote_param(self, f: Filter) -> str:
        if not self.is_remote(f) or f.comparator != Comparator.EQUALS:
            return ""
        return f.options.filter_remote_argument

    def arguments(self, group: FilterGroup) -> Dict[str, Any]:
        return {self.remote_param(f): f.value for f in group.iter_filters() if self.remote_param(f)}

    def translate(self, group: FilterGroup) -> Params:
        return [(k, str(v)) for k, v in self.arguments(group).items()]


class GraphQLPagination(PaginationStrategy):
    """Offset/limit query arguments with a one-row over-fetch."""

    def offset_parameter(self, entity: Entity) -> Optional[str]:
        return entity.options.graphql_offset_argument

    def limit_parameter(self, entity: Entity) -> Optional[str]:
        return entity.options.graphql_limit_argument

    def is_remote(self, entity: Entity) -> bool:
        enabled = entity.options.graphql_remote_pagination
        if enabled is False:
            return False
        return bool(self.limit_parameter(entity))

    def uses_extra_row(self, entity: Entity, limit: int) -> bool:
        return limit > 0 and self.is_remote(entity)

    def arguments(self, entity: Entity, offset: int, limit: int) -> Dict[str, int]:
        args: Dict[str, int] = {}
        offset_arg = self.offset_parameter(entity)
        if offset > 0 and offset_arg:
            args[offset_arg] = offset
        if limit > 0:
            args[self.limit_parameter(entity)] = limit + 1
        return args


class GraphQLRowExtractor(RowExtractor):
    """Rows live under ``data.<operation>``."""

    def parse(self, response: Any) -> Any:
        data = response_json(response)
        if isinstance(data, dict) and data.get("errors") and not data.get("data"):
            raise UpstreamError(
                getattr(response, "status_code", 200),
                json.dumps(data["errors"]),
                str(getattr(response, "url", "")),
            )
        return data

    def rows_path(self, entity: Entity, uid_scoped: bool = False) -> Optional[str]:
        return entity.options.response_data_path or f"data/{read_operation(entity)}"


class GraphQLRequestBuilder(QueryRequestBuilder):
    """
    Builder for GraphQL endpoints.

    All requests are POSTed to the connection base URL, either as raw
    ``application/graphql`` documents or, with ``graphql_json_envelope``,
    as ``{"query": ...}`` JSON.
    """

    def _document_request(self, entity: Entity, document: str) -> DataRequest:
        if entity.options.graphql_json_envelope:
            return DataRequest(
                "POST", "",
                headers={"Content-Type": "application/json", "Accept": "application/json"},
                body=build_json_body(document),
            )
        return DataRequest(
            "POST", "",
            headers={"Content-Type": "application/graphql", "Accept": "application/json"},
            body=document,
        )

    def _field(self, attr: Attribute, option: str) -> str:
        if attr.related:
            raise QueryBuilderError(f"GraphQL requests over related attributes are not supported ({attr.alias})")
        return getattr(attr.options, option) or attr.data_address

    def _uid_field(self, entity: Entity) -> str:
        uid = entity.uid_attribute
        if uid is None:
            raise QueryBuilderError(f"Entity '{entity.alias}' has no UID attribute")
        return uid.data_address

    def _mutation_name(self, entity: Entity, option: str) -> str:
        name = getattr(entity.options, option)
        if not name:
            raise UnsupportedConstructError(f"Entity '{entity.alias}' has no {option} configured")
        return name

    # ---------------- reads ----------------

    def build_read(self, query: Query) -> Optional[DataRequest]:
        query = self.prepare(query)
        entity = query.entity
        if entity.options.force_filtering and query.filters.is_empty() and query.local_filters.is_empty():
            return None

        fields = [
            self._field(attr, "read_data_address")
            for attr in query.selected_attributes()
            if attr.has_remote_address
        ]
        arguments: Dict[str, Any] = dict(self.dialect.filters.arguments(query.filters))
        if self.remote_paging(query):
            arguments.update(self.pagination.arguments(entity, query.offset, query.limit))
        return self._document_request(entity, build_query(read_operation(entity), fields, arguments))

    def build_count(self, request: DataRequest, query: Query) -> Optional[DataRequest]:
        return None

    # ---------------- writes ----------------

    def _arguments(self, values, option: str) -> Dict[str, Any]:
        args: Dict[str, Any] = {}
        for attr, value in values:
            if value is None or value == "" or not attr.has_remote_address:
                continue
            args[self._field(attr, option)] = value
        return args

    def build_create(self, query: Query) -> List[DataRequest]:
        entity = query.entity
        name = self._mutation_name(entity, "graphql_create_mutation")
        uid_field = self._uid_field(entity)
        return [
            self._document_request(entity, build_mutation(name, self._arguments(values, "create_data_address"), [uid_field]))
            for values in query.value_rows()
        ]

    def build_update(self, query: Query) -> List[DataRequest]:
        entity = query.entity
        name = self._mutation_name(entity, "graphql_update_mutation")
        uid_field = self._uid_field(entity)
        return [
            self._document_request(entity, build_mutation(name, self._arguments(values, "update_data_address"), [uid_field]))
            for values in query.value_rows()
        ]

    def build_delete(self, query: Query) -> List[DataRequest]:
        entity = query.entity
        name = self._mutation_name(entity, "graphql_delete_mutation")
        uid_field = self._uid_field(entity)
        return [
            self._document_request(entity, build_mutation(name, {uid_field: uid}, [uid_field]))
            for uid in query.uid_values()
        ]

    # ---------------- responses ----------------

    def extract_created_id(self, body: Any, query: Query) -> Any:
        entity = query.entity
        name = self._mutation_name(entity, "graphql_create_mutation")
        return find_path(body, f"data/{name}/{self._uid_field(entity)}")
