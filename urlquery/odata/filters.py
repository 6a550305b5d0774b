"""
urlquery.odata.filters - $filter expressions
============================================

OData v2 and v4 filter grammar:

- comparators map to ``eq ne gt ge lt le``
- IS / IS_NOT over strings use ``substringof(v, f) eq true`` (v2) or
  ``contains(f, v)`` (v4), over other types plain ``eq`` / ``ne``
- IN / NOT_IN become OR/AND chains (v2) or ``f in (...)`` (v4)
- groups join their members with ``and`` / ``or``, nested groups are
  parenthesized; XOR is not expressible and raises
"""

from __future__ import annotations

from typing import List

from urlquery.core.errors import UnsupportedConstructError
from urlquery.core.models import Comparator, Filter, FilterGroup, LogicalOperator
from urlquery.odata.values import ODataValueCodec, OData4ValueCodec
from urlquery.query.filters import (
    FilterTranslator,
    Params,
    flatten_group,
    require_remote_param,
    simplify_in,
)

COMPARISON_OPERATORS = {
    Comparator.EQUALS: "eq",
    Comparator.NOT_EQUALS: "ne",
    Comparator.GREATER_THAN: "gt",
    Comparator.GREATER_OR_EQUAL: "ge",
    Comparator.LESS_THAN: "lt",
    Comparator.LESS_OR_EQUAL: "le",
}


class ODataFilterTranslator(FilterTranslator):
    """
    OData v2 $filter translator.

    Examples
    --------
    >>> t = ODataFilterTranslator()
    >>> t.translate(FilterGroup(filters=(status_open,)))
    [('$filter', "Status eq 'open'")]
    """

    remote_by_default = True
    supports_groups = True

    def __init__(self, codec=None) -> None:
        super().__init__(codec or ODataValueCodec())

    def check_operator(self, operator: LogicalOperator) -> None:
        if operator not in (LogicalOperator.AND, LogicalOperator.OR):
            raise UnsupportedConstructError(f"Logical operator {operator.value} not supported in OData $filter")

    def translate(self, group: FilterGroup) -> Params:
        expression = self.translate_group(group)
        return [("$filter", expression)] if expression else []

    def translate_group(self, group: FilterGroup) -> str:
        group = flatten_group(group)
        if group.is_empty():
            return ""
        self.check_operator(group.operator)

        parts: List[str] = []
        for f in group.filters:
            predicate = self.translate_filter(f)
            if predicate:
                parts.append(predicate)
        for g in group.groups:
            predicate = self.translate_group(g)
            if predicate:
                parts.append(f"({predicate})")
        return f" {group.operator.value.lower()} ".join(parts)

    def translate_filter(self, f: Filter) -> str:
        """Predicate for one filter; empty string for conditions without effect."""
        if f.is_compound:
            inner = self.translate_group(f.group)
            return f"({inner})" if inner else ""

        if f.comparator in (Comparator.IN, Comparator.NOT_IN):
            values = f.values()
            if not values:
                return ""
            if len(values) == 1:
                return self.translate_filter(simplify_in(f))
            return self.in_predicate(f, require_remote_param(self, f), values)

        field = require_remote_param(self, f)
        if f.comparator in (Comparator.IS, Comparator.IS_NOT):
            if f.value is None or f.value == "":
                return ""
            if self.is_string(f):
                return self.contains_predicate(f, field)
            op = "eq" if f.comparator == Comparator.IS else "ne"
            return f"{field} {op} {self.scalar(f)}"

        op = COMPARISON_OPERATORS.get(f.comparator)
        if op is None:
            raise UnsupportedConstructError(f"Comparator {f.comparator.name} not supported in OData $filter")
        return f"{field} {op} {self.scalar(f)}"

    # ---------------- helpers ----------------

    def is_string(self, f: Filter) -> bool:
        return self.codec.hint(f.data_type, f.options.odata_type) == "String"

    def scalar(self, f: Filter) -> str:
        literal = self.encode_value(f, f.value)
        prefix = f.options.filter_remote_prefix
        return f"{prefix}{literal}" if prefix else literal

    def contains_predicate(self, f: Filter, field: str) -> str:
        truth = "eq" if f.comparator == Comparator.IS else "ne"
        return f"substringof({self.scalar(f)}, {field}) {truth} true"

    def in_predicate(self, f: Filter, field: str, values: list) -> str:
        literals = [self.encode_value(f, v) for v in values]
        if f.comparator == Comparator.IN:
            return "(" + " or ".join(f"{field} eq {v}" for v in literals) + ")"
        return "(" + " and ".join(f"{field} ne {v}" for v in literals) + ")"


class OData4FilterTranslator(ODataFilterTranslator):
    """OData v4: ``contains()`` and the ``in`` operator."""

    def __init__(self, codec=None) -> None:
        super().__init__(codec or OData4ValueCodec())

    def contains_predicate(self, f: Filter, field: str) -> str:
        negation = "" if f.comparator == Comparator.IS else "not "
        return f"{negation}contains({field},{self.scalar(f)})"

    def in_predicate(self, f: Filter, field: str, values: list) -> str:
        literals = ",".join(self.encode_value(f, v) for v in values)
        if f.comparator == Comparator.IN:
            return f"{field} in ({literals})"
        return f"not ({field} in ({literals}))"
