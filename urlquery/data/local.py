"""
urlquery.data.local - Post-processing of fetched rows
=====================================================

Filters, sorters and pagination that could not be sent to the remote
service are applied here, after reading, in that order.
"""

from __future__ import annotations

import functools
from typing import Any, Dict, Iterable, List, Optional

from urlquery.core.models import Comparator, Filter, FilterGroup, LogicalOperator, Sorter, SortDirection

Row = Dict[str, Any]


def _as_number(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError:
            return None
    return None


def _compare(a: Any, b: Any) -> int:
    na, nb = _as_number(a), _as_number(b)
    if na is not None and nb is not None:
        return (na > nb) - (na < nb)
    sa, sb = str(a), str(b)
    return (sa > sb) - (sa < sb)


def _equals(a: Any, b: Any) -> bool:
    if a is None or b is None:
        return a is None and b is None
    if isinstance(a, bool) or isinstance(b, bool):
        return str(a).lower() == str(b).lower()
    return _compare(a, b) == 0


def _is(a: Any, b: Any) -> bool:
    if b is None or b == "":
        return True
    if a is None:
        return False
    if isinstance(a, str) and _as_number(a) is None:
        return str(b).lower() in a.lower()
    return _equals(a, b)


def matches(row: Row, f: Filter) -> bool:
    """Evaluate a single (possibly compound) filter against a row."""
    if f.is_compound:
        return matches_group(row, f.group)

    actual = row.get(f.alias)
    op = f.comparator
    if op == Comparator.EQUALS:
        return _equals(actual, f.value)
    if op == Comparator.NOT_EQUALS:
        return not _equals(actual, f.value)
    if op == Comparator.IS:
        return _is(actual, f.value)
    if op == Comparator.IS_NOT:
        return not _is(actual, f.value)
    if op == Comparator.IN:
        return any(_equals(actual, v) for v in f.values())
    if op == Comparator.NOT_IN:
        return not any(_equals(actual, v) for v in f.values())

    if actual is None or actual == "":
        return False
    result = _compare(actual, f.value)
    if op == Comparator.GREATER_THAN:
        return result > 0
    if op == Comparator.GREATER_OR_EQUAL:
        return result >= 0
    if op == Comparator.LESS_THAN:
        return result < 0
    if op == Comparator.LESS_OR_EQUAL:
        return result <= 0
    raise ValueError(f"Unknown comparator {op}")


def matches_group(row: Row, group: FilterGroup) -> bool:
    results = [matches(row, f) for f in group.filters]
    results += [matches_group(row, g) for g in group.groups if not g.is_empty()]
    if not results:
        return True
    if group.operator == LogicalOperator.AND:
        return all(results)
    if group.operator == LogicalOperator.OR:
        return any(results)
    return sum(1 for r in results if r) == 1


def apply_filters(rows: Iterable[Row], group: FilterGroup) -> List[Row]:
    if group.is_empty():
        return list(rows)
    return [row for row in rows if matches_group(row, group)]


def apply_sorting(rows: Iterable[Row], sorters: List[Sorter]) -> List[Row]:
    """Stable multi-key sort; empty values sort first in ascending order."""
    rows = list(rows)
    if not sorters:
        return rows

    def cmp(a: Row, b: Row) -> int:
        for s in sorters:
            va, vb = a.get(s.alias), b.get(s.alias)
            if va in (None, "") and vb in (None, ""):
                result = 0
            elif va in (None, ""):
                result = -1
            elif vb in (None, ""):
                result = 1
            else:
                result = _compare(va, vb)
            if result:
                return -result if s.direction == SortDirection.DESC else result
        return 0

    return sorted(rows, key=functools.cmp_to_key(cmp))


def apply_pagination(rows: List[Row], offset: int, limit: int) -> List[Row]:
    start = max(offset, 0)
    if limit > 0:
        return rows[start:start + limit]
    return rows[start:]


def keep_first_group(rows: List[Row], alias: str) -> List[Row]:
    """Rows sharing the value of ``alias`` with the first row."""
    if not rows:
        return rows
    first = rows[0].get(alias)
    return [row for row in rows if row.get(alias) == first]
