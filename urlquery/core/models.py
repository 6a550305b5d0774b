"""
urlquery.core.models - Dialect-neutral query model
==================================================

Entities, attributes, filters, sorters and queries. These are the inputs of
every request builder; none of them knows anything about a concrete dialect.

Examples
--------
>>> orders = Entity.from_dict({
...     "alias": "Order",
...     "data_address": "Orders",
...     "uid": "OrderID",
...     "attributes": [
...         {"alias": "OrderID", "data_type": "INTEGER"},
...         {"alias": "Status"},
...     ],
... })
>>> q = Query(orders).add_filter("Status", Comparator.EQUALS, "open")
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple, Union

from pydantic import ValidationError

from urlquery.core.errors import EntityConfigError
from urlquery.core.options import AttributeOptions, EntityOptions


class DataType(str, Enum):
    """Semantic primitive types of attributes."""

    STRING = "STRING"
    TEXT = "TEXT"
    NUMBER = "NUMBER"
    INTEGER = "INTEGER"
    BOOLEAN = "BOOLEAN"
    DATE = "DATE"
    TIMESTAMP = "TIMESTAMP"
    TIME = "TIME"
    BINARY = "BINARY"
    HTML = "HTML"

    @property
    def is_numeric(self) -> bool:
        return self in (DataType.NUMBER, DataType.INTEGER)

    @property
    def is_textual(self) -> bool:
        return self in (DataType.STRING, DataType.TEXT, DataType.HTML)

    @classmethod
    def parse(cls, value: Union[str, "DataType", None]) -> "DataType":
        if isinstance(value, DataType):
            return value
        if not value:
            return cls.STRING
        try:
            return cls[str(value).strip().upper()]
        except KeyError:
            raise EntityConfigError(f"Unknown data type '{value}'") from None


class Comparator(str, Enum):
    """Filter comparators. Values are the short symbols used in serialized filters."""

    EQUALS = "=="
    NOT_EQUALS = "!=="
    GREATER_THAN = ">"
    GREATER_OR_EQUAL = ">="
    LESS_THAN = "<"
    LESS_OR_EQUAL = "<="
    IS = "="
    IS_NOT = "!="
    IN = "["
    NOT_IN = "!["

    @classmethod
    def parse(cls, value: Union[str, "Comparator"]) -> "Comparator":
        """Accept either the member name (``"EQUALS"``) or its symbol (``"=="``)."""
        if isinstance(value, Comparator):
            return value
        text = str(value).strip()
        if text.upper() in cls.__members__:
            return cls[text.upper()]
        for member in cls:
            if member.value == text:
                return member
        raise ValueError(f"Unknown comparator '{value}'")


class LogicalOperator(str, Enum):
    AND = "AND"
    OR = "OR"
    XOR = "XOR"


class SortDirection(str, Enum):
    ASC = "ASC"
    DESC = "DESC"


# ---------------------------------------------------------------------------
# Entity description
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Attribute:
    """
    One attribute of an entity.

    Parameters
    ----------
    alias : str
        Name of the attribute in result rows
    data_address : str
        Remote field name or path; defaults to the alias
    data_type : DataType
        Semantic type used for value encoding
    options : AttributeOptions
        Typed per-attribute options
    related : bool
        True for attributes reached through a relation (not writable)
    """

    alias: str
    data_address: str = ""
    data_type: DataType = DataType.STRING
    options: AttributeOptions = field(default_factory=AttributeOptions)
    related: bool = False

    def __post_init__(self) -> None:
        if not self.data_address:
            object.__setattr__(self, "data_address", self.alias)

    @property
    def has_remote_address(self) -> bool:
        """False for empty addresses and formulas (``=Concat(...)``)."""
        return bool(self.data_address) and not self.data_address.startswith("=")


@dataclass(frozen=True)
class Entity:
    """A remote collection with its attributes and options."""

    alias: str
    data_address: str
    attributes: Dict[str, Attribute] = field(default_factory=dict)
    uid_alias: Optional[str] = None
    options: EntityOptions = field(default_factory=EntityOptions)

    def attribute(self, alias: str) -> Attribute:
        try:
            return self.attributes[alias]
        except KeyError:
            raise EntityConfigError(f"Entity '{self.alias}' has no attribute '{alias}'") from None

    def has_attribute(self, alias: str) -> bool:
        return alias in self.attributes

    @property
    def uid_attribute(self) -> Optional[Attribute]:
        if self.uid_alias and self.uid_alias in self.attributes:
            return self.attributes[self.uid_alias]
        return None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Entity":
        """
        Load an entity from its type-erased description.

        Options are validated here, once. Invalid values raise
        EntityConfigError.

        Parameters
        ----------
        data : dict
            ``alias``, ``data_address``, ``uid``, ``options`` and
            ``attributes`` (a list of dicts or a dict keyed by alias)

        Returns
        -------
        Entity
        """
        alias = data.get("alias") or data.get("data_address")
        if not alias:
            raise EntityConfigError("Entity description needs an alias or a data_address")

        raw_attrs = data.get("attributes") or []
        if isinstance(raw_attrs, dict):
            raw_attrs = [dict(raw or {}, alias=key) for key, raw in raw_attrs.items()]

        attributes: Dict[str, Attribute] = {}
        for raw in raw_attrs:
            if not raw.get("alias"):
                raise EntityConfigError(f"Attribute without alias in entity '{alias}'")
            try:
                attr_options = AttributeOptions.model_validate(raw.get("options") or {})
            except ValidationError as e:
                raise EntityConfigError(
                    f"Invalid options for attribute '{alias}.{raw['alias']}': {e}"
                ) from e
            attributes[raw["alias"]] = Attribute(
                alias=raw["alias"],
                data_address=raw.get("data_address") or "",
                data_type=DataType.parse(raw.get("data_type")),
                options=attr_options,
                related=bool(raw.get("related", False)),
            )

        try:
            options = EntityOptions.model_validate(data.get("options") or {})
        except ValidationError as e:
            raise EntityConfigError(f"Invalid options for entity '{alias}': {e}") from e

        uid = data.get("uid")
        if uid and uid not in attributes:
            raise EntityConfigError(f"UID attribute '{uid}' is not defined in entity '{alias}'")

        return cls(
            alias=alias,
            data_address=data.get("data_address") or "",
            attributes=attributes,
            uid_alias=uid,
            options=options,
        )


# ---------------------------------------------------------------------------
# Filters and sorters
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Filter:
    """
    A single condition, or a compound condition wrapping a FilterGroup.

    Filters are immutable: rewrites (IN simplification, local flagging)
    produce new instances via ``dataclasses.replace``.
    """

    attribute: Optional[Attribute] = None
    comparator: Comparator = Comparator.EQUALS
    value: Any = None
    address: str = ""
    apply_locally: bool = False
    group: Optional["FilterGroup"] = None

    @property
    def alias(self) -> str:
        return self.attribute.alias if self.attribute else self.address

    @property
    def data_address(self) -> str:
        return self.attribute.data_address if self.attribute else self.address

    @property
    def data_type(self) -> DataType:
        return self.attribute.data_type if self.attribute else DataType.STRING

    @property
    def options(self) -> AttributeOptions:
        return self.attribute.options if self.attribute else AttributeOptions()

    @property
    def is_compound(self) -> bool:
        return self.group is not None

    def values(self) -> List[Any]:
        """Compare value as a list, splitting delimited strings for IN and NOT_IN."""
        value = self.value
        if value is None or value == "":
            return []
        if isinstance(value, (list, tuple)):
            return [v for v in value if v is not None and v != ""]
        if isinstance(value, str) and self.comparator in (Comparator.IN, Comparator.NOT_IN):
            delimiter = self.options.value_list_delimiter
            return [v.strip() for v in value.split(delimiter) if v.strip() != ""]
        return [value]

    def has_value(self) -> bool:
        if self.is_compound:
            return not self.group.is_empty()
        return bool(self.values())

    def __str__(self) -> str:
        if self.is_compound:
            return f"({self.group})"
        return f"{self.alias} {self.comparator.name} {self.value!r}"


@dataclass(frozen=True)
class FilterGroup:
    """Ordered filters and nested groups joined by one logical operator."""

    operator: LogicalOperator = LogicalOperator.AND
    filters: Tuple[Filter, ...] = ()
    groups: Tuple["FilterGroup", ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "filters", tuple(self.filters))
        object.__setattr__(self, "groups", tuple(self.groups))

    def is_empty(self) -> bool:
        return not self.filters and all(g.is_empty() for g in self.groups)

    def iter_filters(self) -> Iterator[Filter]:
        """Depth-first over all non-compound filters, including nested groups."""
        for f in self.filters:
            if f.is_compound:
                yield from f.group.iter_filters()
            else:
                yield f
        for g in self.groups:
            yield from g.iter_filters()

    def find(self, alias: str) -> Optional[Filter]:
        """First filter over the given attribute alias (case-insensitive)."""
        wanted = alias.lower()
        for f in self.iter_filters():
            if f.alias.lower() == wanted:
                return f
        return None

    def replace_filter(self, old: Filter, new: Filter) -> "FilterGroup":
        """Copy of this group with ``old`` swapped for ``new`` wherever it occurs."""
        filters = []
        for f in self.filters:
            if f is old:
                filters.append(new)
            elif f.is_compound:
                filters.append(replace(f, group=f.group.replace_filter(old, new)))
            else:
                filters.append(f)
        groups = [g.replace_filter(old, new) for g in self.groups]
        return FilterGroup(self.operator, tuple(filters), tuple(groups))

    def without(self, drop: Sequence[Filter]) -> "FilterGroup":
        """Copy of this group without the given filter instances."""
        if not drop:
            return self
        ids = {id(f) for f in drop}
        return FilterGroup(
            self.operator,
            tuple(f for f in self.filters if id(f) not in ids),
            tuple(g.without(drop) for g in self.groups),
        )

    def __str__(self) -> str:
        parts = [str(f) for f in self.filters] + [f"({g})" for g in self.groups]
        return f" {self.operator.value} ".join(parts)


@dataclass(frozen=True)
class Sorter:
    attribute: Optional[Attribute] = None
    direction: SortDirection = SortDirection.ASC
    address: str = ""
    apply_locally: bool = False

    @property
    def alias(self) -> str:
        return self.attribute.alias if self.attribute else self.address

    @property
    def data_address(self) -> str:
        return self.attribute.data_address if self.attribute else self.address

    @property
    def options(self) -> AttributeOptions:
        return self.attribute.options if self.attribute else AttributeOptions()


# ---------------------------------------------------------------------------
# Query
# ---------------------------------------------------------------------------

@dataclass
class Query:
    """
    A dialect-neutral read or write request against one entity.

    Parameters
    ----------
    entity : Entity
        Target entity
    attributes : list of str
        Aliases to read (empty means all attributes)
    filters : FilterGroup
        Filter tree
    sorters : list of Sorter
        Sort order
    offset, limit : int
        Pagination window; ``limit == 0`` means unbounded
    rows : list of dict
        Value rows for create/update/delete, keyed by attribute alias
    """

    entity: Entity
    attributes: List[str] = field(default_factory=list)
    filters: FilterGroup = field(default_factory=FilterGroup)
    sorters: List[Sorter] = field(default_factory=list)
    offset: int = 0
    limit: int = 0
    rows: List[Dict[str, Any]] = field(default_factory=list)

    # filled in by QueryRequestBuilder.prepare()
    local_filters: FilterGroup = field(default_factory=FilterGroup)
    local_sorters: List[Sorter] = field(default_factory=list)
    prepared: bool = False

    # ---------------- fluent helpers ----------------

    def add_filter(
        self,
        alias: str,
        comparator: Union[Comparator, str],
        value: Any,
    ) -> "Query":
        """Append a condition to the top-level filter group and return self."""
        f = Filter(
            attribute=self.entity.attribute(alias),
            comparator=Comparator.parse(comparator),
            value=value,
        )
        self.filters = FilterGroup(self.filters.operator, self.filters.filters + (f,), self.filters.groups)
        return self

    def add_filter_group(self, group: FilterGroup) -> "Query":
        self.filters = FilterGroup(self.filters.operator, self.filters.filters, self.filters.groups + (group,))
        return self

    def add_sorter(self, alias: str, direction: Union[SortDirection, str] = SortDirection.ASC) -> "Query":
        direction = SortDirection(str(direction.value if isinstance(direction, SortDirection) else direction).upper())
        self.sorters.append(Sorter(attribute=self.entity.attribute(alias), direction=direction))
        return self

    def add_row(self, **values: Any) -> "Query":
        self.rows.append(dict(values))
        return self

    # ---------------- accessors ----------------

    def selected_attributes(self) -> List[Attribute]:
        """Attributes to read, in order; all attributes when none were selected."""
        if not self.attributes:
            return list(self.entity.attributes.values())
        return [self.entity.attribute(a) for a in self.attributes]

    def value_rows(self) -> List[List[Tuple[Attribute, Any]]]:
        """Value rows as ordered (attribute, value) pairs."""
        return [
            [(self.entity.attribute(alias), value) for alias, value in row.items()]
            for row in self.rows
        ]

    def uid_values(self) -> List[Any]:
        """UID values of the write rows, falling back to a UID filter."""
        uid = self.entity.uid_alias
        if not uid:
            return []
        values = [row[uid] for row in self.rows if row.get(uid) not in (None, "")]
        if values:
            return values
        f = self.filters.find(uid)
        return f.values() if f is not None else []


def make_filter_group(
    operator: Union[LogicalOperator, str],
    items: Sequence[Union[Filter, FilterGroup]],
) -> FilterGroup:
    """Build a group from a mixed list of filters and nested groups."""
    op = operator if isinstance(operator, LogicalOperator) else LogicalOperator(str(operator).upper())
    filters = [i for i in items if isinstance(i, Filter)]
    groups = [i for i in items if isinstance(i, FilterGroup)]
    return FilterGroup(op, tuple(filters), tuple(groups))
