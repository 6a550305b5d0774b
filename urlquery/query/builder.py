"""
urlquery.query.builder - Request builder
========================================

One builder for every URL dialect. What differs between dialects (filter
grammar, value literals, paging, sorting, envelopes) is plugged in through
a Dialect bundle of strategies.

Read path
---------
1. ``prepare`` splits filters and sorters into remote and local parts
2. ``endpoint`` resolves the address: UID address, custom filter URLs,
   placeholders, regex rewrite
3. ``build_read`` adds filter, sorter, paging and projection parameters

``build_read`` returns None when the query cannot be executed (missing
placeholder values, ``force_filtering`` without filters). Callers treat
that as an empty result.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional, Tuple

from urlquery.core.errors import QueryBuilderError
from urlquery.core.models import (
    Attribute,
    Comparator,
    Filter,
    LogicalOperator,
    Query,
)
from urlquery.core.request import DataRequest, parse_query_string
from urlquery.data.paths import find_path, merge_into, set_path
from urlquery.data.rows import RowExtractor, rows_of
from urlquery.query.filters import FilterTranslator, Params, SorterRenderer, split_filters
from urlquery.query.pagination import PaginationStrategy
from urlquery.query.placeholders import fill_placeholders
from urlquery.query.values import ValueCodec

logger = logging.getLogger("urlquery.query")

Row = Dict[str, Any]

JSON_HEADERS = {"Content-Type": "application/json", "Accept": "application/json"}


@dataclass
class Dialect:
    """
    Strategy bundle describing one URL dialect.

    Parameters
    ----------
    name : str
        Registry name, e.g. "odata2"
    filters : FilterTranslator
        Filter grammar
    sorters : SorterRenderer
        Sort parameter rendering
    pagination : PaginationStrategy
        Offset/limit parameters and total count handling
    rows : RowExtractor
        Response envelope handling
    codec : ValueCodec
        Value literals
    read_params : list of (str, str)
        Parameters added to every read, e.g. ``$format=json``
    read_headers : dict
        Headers added to every read
    select_param : str, optional
        Projection parameter (``$select``); None when unsupported
    expand_param : str, optional
        Navigation expansion parameter (``$expand``)
    key_predicates : bool
        Address single items as ``Set(<key>)`` instead of ``set/<key>``
    update_method : str
        HTTP method for updates
    """

    name: str
    filters: FilterTranslator
    sorters: SorterRenderer
    pagination: PaginationStrategy
    rows: RowExtractor
    codec: ValueCodec
    read_params: List[Tuple[str, str]] = field(default_factory=list)
    read_headers: Dict[str, str] = field(default_factory=dict)
    select_param: Optional[str] = None
    expand_param: Optional[str] = None
    key_predicates: bool = False
    update_method: str = "PUT"


class QueryRequestBuilder:
    """
    Compiles Queries into DataRequests and decodes responses into rows.

    Parameters
    ----------
    dialect : Dialect
        Strategy bundle of the target API

    Examples
    --------
    >>> builder = QueryRequestBuilder(get_dialect("odata2"))
    >>> builder.build_read(query).uri
    "Orders?$filter=Status eq 'open'&$inlinecount=allpages&$format=json"
    """

    def __init__(self, dialect: Dialect) -> None:
        self.dialect = dialect

    @property
    def pagination(self) -> PaginationStrategy:
        return self.dialect.pagination

    @property
    def codec(self) -> ValueCodec:
        return self.dialect.codec

    # ---------------- preparation ----------------

    def prepare(self, query: Query) -> Query:
        """
        New Query with filters and sorters split into remote and local parts.

        Attributes needed for local filtering, local sorting and response
        grouping are added to the projection.
        """
        if query.prepared:
            return query

        remote, local = split_filters(query.filters, self.dialect.filters)
        remote_sorters, local_sorters = self.dialect.sorters.split(query.sorters)

        attributes = list(query.attributes)
        if attributes:
            needed = [f.alias for f in local.iter_filters() if f.attribute is not None]
            needed += [s.alias for s in local_sorters if s.attribute is not None]
            group_alias = query.entity.options.response_group_by_attribute_alias
            if group_alias:
                needed.append(group_alias)
            for alias in needed:
                if alias not in attributes and query.entity.has_attribute(alias):
                    attributes.append(alias)

        return replace(
            query,
            attributes=attributes,
            filters=remote,
            sorters=remote_sorters,
            local_filters=local,
            local_sorters=local_sorters,
            prepared=True,
        )

    def _top_level_filters(self, query: Query) -> List[Filter]:
        out: List[Filter] = []
        for group in (query.filters, query.local_filters):
            if group.operator == LogicalOperator.AND:
                out.extend(f for f in group.filters if not f.is_compound)
        return out

    def find_filter(self, query: Query, name: str) -> Optional[Filter]:
        """Filter over ``name``; ``UID`` stands for the entity's UID attribute."""
        if name.lower() in ("uid", "~uid") and query.entity.uid_alias:
            name = query.entity.uid_alias
        return query.filters.find(name) or query.local_filters.find(name)

    def split_filter(self, query: Query) -> Optional[Filter]:
        """
        The UID filter that switches the endpoint to ``uid_request_data_address``.

        With several UID values the caller issues one request per value.
        """
        entity = query.entity
        if not entity.options.uid_request_data_address or not entity.uid_alias:
            return None
        for f in self._top_level_filters(query):
            if f.alias == entity.uid_alias and f.comparator in (Comparator.EQUALS, Comparator.IN) and f.has_value():
                return f
        return None

    def is_uid_scoped(self, query: Query) -> bool:
        return self.split_filter(query) is not None

    def remote_paging(self, query: Query) -> bool:
        """Page remotely only if every filter and sorter was sent remotely."""
        if not self.pagination.is_remote(query.entity):
            return False
        if not query.local_filters.is_empty() or query.local_sorters:
            return False
        return self.split_filter(query) is None

    # ---------------- endpoint ----------------

    def _filter_value(self, f: Optional[Filter]) -> Optional[str]:
        if f is None:
            return None
        values = f.values() if f.comparator in (Comparator.IN, Comparator.NOT_IN) else [f.value]
        value = values[0] if values else None
        if value is None or value == "":
            return None
        if isinstance(value, bool):
            return "true" if value else "false"
        return str(value)

    def endpoint(self, query: Query) -> Tuple[Optional[str], List[Filter]]:
        """
        Resolved endpoint and the filters consumed by it.

        Returns
        -------
        (endpoint, consumed) : tuple
            ``endpoint`` is None when a placeholder has no value
        """
        entity = query.entity
        endpoint = entity.data_address
        consumed: List[Filter] = []

        split = self.split_filter(query)
        if split is not None:
            endpoint = entity.options.uid_request_data_address
            consumed.append(split)

        custom_url = None
        for f in self._top_level_filters(query):
            url = f.options.filter_remote_url
            if not url or not self.dialect.filters.is_remote(f):
                continue
            if custom_url is not None and custom_url != url:
                raise QueryBuilderError("Cannot use multiple filters requiring different custom URLs")
            value = self._filter_value(f)
            if value is None and "[#value#]" in url:
                return None, consumed
            custom_url = url
            endpoint = url.replace("[#value#]", value or "")
            consumed.append(f)

        endpoint = fill_placeholders(endpoint, lambda name: self._filter_value(self.find_filter(query, name)))
        if endpoint is None:
            return None, consumed

        pattern = entity.options.request_url_replace_pattern
        if pattern:
            endpoint = re.sub(pattern, entity.options.request_url_replace_with, endpoint)
        return endpoint, consumed

    # ---------------- reads ----------------

    def projection_params(self, query: Query) -> Params:
        if not self.dialect.select_param or not query.attributes:
            return []
        if not query.entity.options.odata_select:
            return []
        select: List[str] = []
        expand: List[str] = []
        for attr in query.selected_attributes():
            if not attr.has_remote_address:
                continue
            if attr.data_address not in select:
                select.append(attr.data_address)
            if "/" in attr.data_address and self.dialect.expand_param:
                nav = attr.data_address.rsplit("/", 1)[0]
                if nav not in expand:
                    expand.append(nav)
        params: Params = []
        if select:
            params.append((self.dialect.select_param, ",".join(select)))
        if expand:
            params.append((self.dialect.expand_param, ",".join(expand)))
        return params

    def read_params(self, query: Query, consumed: List[Filter]) -> Params:
        remote = query.filters.without(consumed)

        params: Params = []
        params.extend(self.dialect.filters.translate(remote))
        params.extend(self.dialect.sorters.render(query.sorters))
        if self.remote_paging(query):
            params.extend(self.pagination.params(query.entity, query.offset, query.limit))
        params.extend(self.projection_params(query))
        params.extend(self.dialect.read_params)
        return params

    def build_read(self, query: Query) -> Optional[DataRequest]:
        """
        Compile a read request.

        Returns
        -------
        DataRequest or None
            None when the query cannot be executed
        """
        query = self.prepare(query)
        entity = query.entity
        if entity.options.force_filtering and query.filters.is_empty() and query.local_filters.is_empty():
            logger.debug("%s: force_filtering is set and the query has no filters", entity.alias)
            return None

        endpoint, consumed = self.endpoint(query)
        if endpoint is None:
            logger.debug("%s: no value for a placeholder in the data address", entity.alias)
            return None

        path, _, fixed = endpoint.partition("?")
        params = parse_query_string(fixed) + self.read_params(query, consumed)
        return DataRequest.with_params("GET", path, params, headers=dict(self.dialect.read_headers))

    def build_count(self, request: DataRequest, query: Query) -> Optional[DataRequest]:
        return self.pagination.build_count_request(request, query.entity)

    # ---------------- writes ----------------

    def _body(self, values: List[Tuple[Attribute, Any]], address_option: str, skip: Optional[str] = None) -> Dict[str, Any]:
        body: Dict[str, Any] = {}
        for attr, value in values:
            if attr.alias == skip:
                continue
            if attr.related:
                logger.debug("Skipping related attribute %s in write request", attr.alias)
                continue
            if value is None or value == "" or not attr.has_remote_address:
                continue
            key = getattr(attr.options, address_option) or attr.data_address
            merge_into(body, key, self.codec.encode_for_body(value, attr.data_type, attr.options.odata_type))
        return body

    def _json_request(self, method: str, uri: str, body: Any) -> DataRequest:
        return DataRequest(method, uri, headers=dict(JSON_HEADERS), body=json.dumps(body, separators=(",", ":")))

    def item_uri(self, query: Query, uid: Any, row: Row, template: Optional[str]) -> str:
        """Address of one existing item."""
        entity = query.entity
        if template:
            def resolve(name: str) -> Optional[str]:
                if name.lower() in ("uid", "~uid"):
                    return None if uid is None else str(uid)
                value = row.get(name)
                return None if value is None or value == "" else str(value)

            uri = fill_placeholders(template, resolve)
            if uri is None:
                raise QueryBuilderError(f"Missing values for placeholders in '{template}'")
            return uri

        if uid is None or uid == "":
            raise QueryBuilderError(f"Cannot address an item of '{entity.alias}' without a UID value")
        if self.dialect.key_predicates:
            uid_attr = entity.uid_attribute
            literal = self.codec.encode(uid, uid_attr.data_type, uid_attr.options.odata_type)
            return f"{entity.data_address}({literal})"
        return f"{entity.data_address.rstrip('/')}/{uid}"

    def build_create(self, query: Query) -> List[DataRequest]:
        """One POST per value row."""
        opts = query.entity.options
        uri = opts.create_request_data_address or query.entity.data_address
        requests = []
        for values in query.value_rows():
            body = set_path(opts.create_request_data_path, self._body(values, "create_data_address"))
            requests.append(self._json_request("POST", uri, body))
        return requests

    def build_update(self, query: Query) -> List[DataRequest]:
        """One update request per value row, addressed by the row's UID."""
        entity = query.entity
        opts = entity.options
        method = opts.update_request_method or self.dialect.update_method
        uid_values = query.uid_values()
        requests = []
        for i, (row, values) in enumerate(zip(query.rows, query.value_rows())):
            uid = row.get(entity.uid_alias) if entity.uid_alias else None
            if uid in (None, "") and len(uid_values) == 1:
                uid = uid_values[0]
            elif uid in (None, "") and i < len(uid_values) and len(uid_values) == len(query.rows):
                uid = uid_values[i]
            uri = self.item_uri(query, uid, row, opts.update_request_data_address)
            body = self._body(values, "update_data_address", skip=entity.uid_alias if self.dialect.key_predicates else None)
            requests.append(self._json_request(method, uri, set_path(opts.update_request_data_path, body)))
        return requests

    def build_delete(self, query: Query) -> List[DataRequest]:
        """One DELETE per UID (from the value rows or a UID filter)."""
        entity = query.entity
        template = entity.options.delete_request_data_address
        requests = []
        for uid in query.uid_values():
            row = {entity.uid_alias: uid} if entity.uid_alias else {}
            uri = self.item_uri(query, uid, row, template)
            requests.append(DataRequest("DELETE", uri, headers={"Accept": "application/json"}))
        return requests

    # ---------------- responses ----------------

    def parse_response(self, response: Any) -> Any:
        return self.dialect.rows.parse(response)

    def map_row(self, raw: Any, attributes: List[Attribute]) -> Row:
        out: Row = {}
        for attr in attributes:
            if not attr.has_remote_address:
                continue
            value = self.dialect.rows.read_value(raw, attr)
            if isinstance(value, list) and all(not isinstance(v, (dict, list)) for v in value):
                value = attr.options.value_list_delimiter.join("" if v is None else str(v) for v in value)
            out[attr.alias] = self.codec.decode_from_body(value, attr.data_type, attr.options.odata_type)
        return out

    def extract_rows(self, body: Any, query: Query, uid_scoped: bool = False) -> List[Row]:
        """Rows of a decoded body, keyed by attribute alias."""
        attributes = query.selected_attributes()
        container = self.dialect.rows.extract(body, query.entity, uid_scoped, attributes)
        return [self.map_row(raw, attributes) for raw in rows_of(container)]

    def extract_count(self, body: Any, query: Query) -> Optional[int]:
        return self.dialect.rows.count(body, query.entity)

    def extract_created_id(self, body: Any, query: Query) -> Any:
        """UID of a freshly created item, read from the create response."""
        uid_attr = query.entity.uid_attribute
        if uid_attr is None or body is None:
            return None
        path = query.entity.options.create_request_data_path
        if path:
            candidate = find_path(body, path)
        else:
            container = self.dialect.rows.extract_default(body)
            candidate = container.rows[0] if container.rows else None
        if not isinstance(candidate, dict):
            return None
        return self.dialect.rows.read_value(candidate, uid_attr)
