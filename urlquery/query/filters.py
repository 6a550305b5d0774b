"""
urlquery.query.filters - Filter and sorter translation
======================================================

Decides which filters and sorters can be sent to the remote service and
renders them as URL parameters. Filters that cannot be expressed remotely
are never dropped: they are flagged ``apply_locally`` and evaluated after
reading (see ``urlquery.data.local``).

This module holds the dialect-independent parts plus the generic REST
translator (``param=<prefix><value>``). The OData grammar lives in
``urlquery.odata.filters``.
"""

from __future__ import annotations

from dataclasses import replace
from typing import List, Optional, Tuple

from urlquery.core.errors import QueryBuilderError, ValueCastError
from urlquery.core.models import (
    Comparator,
    Filter,
    FilterGroup,
    LogicalOperator,
    Sorter,
    SortDirection,
)
from urlquery.query.values import PlainValueCodec, ValueCodec

Params = List[Tuple[str, str]]


def flatten_group(group: FilterGroup) -> FilterGroup:
    """
    Drop redundant nesting: a group with no direct filters and exactly one
    nested group is replaced by that nested group.

    Examples
    --------
    ``AND(AND(f1, f2))`` -> ``AND(f1, f2)``
    """
    while not group.filters and len(group.groups) == 1:
        group = group.groups[0]
    return group


def simplify_in(f: Filter) -> Filter:
    """
    Rewrite an IN/NOT_IN filter with exactly one value as EQUALS/NOT_EQUALS.

    Returns a new Filter; other filters are returned unchanged.
    """
    if f.comparator not in (Comparator.IN, Comparator.NOT_IN):
        return f
    values = f.values()
    if len(values) != 1:
        return f
    comparator = Comparator.EQUALS if f.comparator == Comparator.IN else Comparator.NOT_EQUALS
    return replace(f, comparator=comparator, value=values[0])


class FilterTranslator:
    """
    Base translator: remote/local decisions shared by all URL dialects.

    Subclasses set ``remote_by_default`` and ``supports_groups`` and
    implement ``translate``.
    """

    remote_by_default = False
    supports_groups = False

    def __init__(self, codec: Optional[ValueCodec] = None) -> None:
        self.codec = codec or PlainValueCodec()

    # ---------------- remote/local decision ----------------

    def is_remote(self, f: Filter) -> bool:
        opts = f.options
        if opts.filter_remote is not None:
            return opts.filter_remote
        if opts.filter_remote_url or opts.filter_remote_url_param or opts.filter_remote_prefix:
            return True
        return self.remote_by_default

    def remote_param(self, f: Filter) -> str:
        """
        Parameter (or field) the filter is sent in; empty when the filter
        has to be applied locally.
        """
        if not self.is_remote(f):
            return ""
        if f.options.filter_remote_url_param:
            return f.options.filter_remote_url_param
        if f.attribute is not None:
            return f.data_address if f.attribute.has_remote_address else ""
        return f.address if f.address and not f.address.startswith("=") else ""

    def can_translate(self, f: Filter) -> bool:
        if f.is_compound:
            return self.can_translate_group(f.group)
        if f.options.filter_remote_url and self.is_remote(f):
            return True
        return bool(self.remote_param(f))

    def can_translate_group(self, group: FilterGroup) -> bool:
        group = flatten_group(group)
        if not self.supports_groups and group.operator != LogicalOperator.AND \
                and len(group.filters) + len(group.groups) > 1:
            return False
        self.check_operator(group.operator)
        return all(self.can_translate(f) for f in group.filters) and \
            all(self.can_translate_group(g) for g in group.groups)

    def check_operator(self, operator: LogicalOperator) -> None:
        """Raise UnsupportedConstructError for operators the dialect rejects."""

    def wants_local(self, f: Filter) -> bool:
        return bool(f.options.filter_locally) and not f.is_compound

    # ---------------- rendering ----------------

    def encode_value(self, f: Filter, value) -> str:
        try:
            return self.codec.encode(value, f.data_type, f.options.odata_type)
        except ValueCastError as e:
            raise ValueCastError(str(e), condition=str(f)) from e

    def translate(self, group: FilterGroup) -> Params:
        raise NotImplementedError


class UrlParamFilterTranslator(FilterTranslator):
    """
    Generic REST: one ``param=<prefix><value>`` per filter, AND semantics.

    List values are joined with ``+``. Comparators are not encoded, the
    service decides how to interpret the parameter.
    """

    def translate(self, group: FilterGroup) -> Params:
        params: Params = []
        for f in group.iter_filters():
            param = self.remote_param(f)
            if not param:
                # filters switching the endpoint (filter_remote_url) carry no parameter
                continue
            params.append((param, self.predicate_value(f)))
        return params

    def predicate_value(self, f: Filter) -> str:
        prefix = f.options.filter_remote_prefix or ""
        if isinstance(f.value, (list, tuple)) or f.comparator in (Comparator.IN, Comparator.NOT_IN):
            return prefix + "+".join(self.encode_value(f, v) for v in f.values())
        return prefix + self.encode_value(f, f.value)


def split_filters(group: FilterGroup, translator: FilterTranslator) -> Tuple[FilterGroup, FilterGroup]:
    """
    Split a filter tree into the part sent remotely and the part applied
    after reading.

    In an AND group every member is decided on its own. Any other group
    goes remote only as a whole; if one member cannot be translated the
    entire group is evaluated locally.

    Returns
    -------
    (remote, local) : tuple of FilterGroup
    """
    group = flatten_group(group)
    if group.is_empty():
        return FilterGroup(), FilterGroup()

    translator.check_operator(group.operator)

    if group.operator != LogicalOperator.AND:
        if translator.can_translate_group(group):
            return group, FilterGroup()
        return FilterGroup(), mark_local(group)

    remote_filters, local_filters = [], []
    for f in group.filters:
        if translator.can_translate(f):
            remote_filters.append(f)
            if translator.wants_local(f):
                local_filters.append(replace(f, apply_locally=True))
        else:
            local_filters.append(mark_local_filter(f))

    remote_groups, local_groups = [], []
    for g in group.groups:
        if g.is_empty():
            continue
        if translator.can_translate_group(g):
            remote_groups.append(g)
        else:
            local_groups.append(mark_local(g))

    remote = FilterGroup(LogicalOperator.AND, tuple(remote_filters), tuple(remote_groups))
    local = FilterGroup(LogicalOperator.AND, tuple(local_filters), tuple(local_groups))
    return remote, local


def mark_local_filter(f: Filter) -> Filter:
    if f.is_compound:
        return replace(f, apply_locally=True, group=mark_local(f.group))
    return replace(f, apply_locally=True)


def mark_local(group: FilterGroup) -> FilterGroup:
    return FilterGroup(
        group.operator,
        tuple(mark_local_filter(f) for f in group.filters),
        tuple(mark_local(g) for g in group.groups),
    )


# ---------------------------------------------------------------------------
# Sorters
# ---------------------------------------------------------------------------

class SorterRenderer:
    """
    Generic REST sorting: ``sort=<a>,<b>`` over remotely sortable attributes.

    Parameters
    ----------
    param : str
        Name of the sort parameter
    remote_by_default : bool
        Whether attributes without sort options are sorted remotely
    """

    def __init__(self, param: str = "sort", remote_by_default: bool = False) -> None:
        self.param = param
        self.remote_by_default = remote_by_default

    def is_remote(self, s: Sorter) -> bool:
        opts = s.options
        if opts.sort_remote is not None:
            return opts.sort_remote
        if opts.sort_remote_url_param:
            return True
        return self.remote_by_default and bool(s.data_address) and not s.data_address.startswith("=")

    def remote_param(self, s: Sorter) -> str:
        return s.options.sort_remote_url_param or s.data_address

    def split(self, sorters: List[Sorter]) -> Tuple[List[Sorter], List[Sorter]]:
        """
        Remote and local sorters. Once a sorter has to be applied locally,
        all sorters are, so the combined order stays intact.
        """
        remote = [s for s in sorters if self.is_remote(s)]
        if len(remote) != len(sorters) or any(s.options.sort_locally for s in sorters):
            return remote if len(remote) == len(sorters) else [], [replace(s, apply_locally=True) for s in sorters]
        return remote, []

    def render_one(self, s: Sorter) -> str:
        return self.remote_param(s)

    def render(self, sorters: List[Sorter]) -> Params:
        if not sorters:
            return []
        return [(self.param, ",".join(self.render_one(s) for s in sorters))]


class ODataSorterRenderer(SorterRenderer):
    """``$orderby=<a> asc,<b> desc``"""

    def __init__(self) -> None:
        super().__init__(param="$orderby", remote_by_default=True)

    def render_one(self, s: Sorter) -> str:
        direction = "desc" if s.direction == SortDirection.DESC else "asc"
        return f"{self.remote_param(s)} {direction}"


def require_remote_param(translator: FilterTranslator, f: Filter) -> str:
    param = translator.remote_param(f)
    if not param:
        raise QueryBuilderError(f"Filter '{f}' cannot be translated to a remote condition")
    return param
