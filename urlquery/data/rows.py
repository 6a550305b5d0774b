"""
urlquery.data.rows - Response row extraction
============================================

Turns heterogeneous response envelopes into a uniform row list:

- generic JSON: ``response_data_path`` or the whole body
- OData v2: ``d`` then ``d/results``
- OData v4 and the OData-JSON hybrid: ``value``

Every candidate goes through one normalization step producing a
RowContainer, so single objects and lists are handled the same way by
callers.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from urlquery.core.models import Attribute, Entity
from urlquery.core.session import response_json
from urlquery.data.paths import find_path


class RowContainerKind(str, Enum):
    SINGLE_OBJECT = "single_object"
    OBJECT_LIST = "object_list"
    EMPTY = "empty"


@dataclass(frozen=True)
class RowContainer:
    """Tagged result of row normalization."""

    kind: RowContainerKind
    rows: Tuple[Any, ...] = ()

    def __len__(self) -> int:
        return len(self.rows)

    def as_list(self) -> List[Any]:
        return list(self.rows)

    @classmethod
    def empty(cls) -> "RowContainer":
        return cls(RowContainerKind.EMPTY)

    @classmethod
    def normalize(cls, candidate: Any, keyed_rows: bool = False) -> "RowContainer":
        """
        Classify a candidate value.

        A mapping is a single row, unless all of its keys are digit strings,
        in which case it is a keyed list of rows. With ``keyed_rows`` a
        mapping whose values are all mappings is a keyed list of rows as
        well. A sequence is a row list. Anything else is empty.

        Examples
        --------
        >>> RowContainer.normalize({"a": 1}).kind
        <RowContainerKind.SINGLE_OBJECT: 'single_object'>
        >>> len(RowContainer.normalize([{"a": 1}, {"a": 2}]))
        2
        >>> len(RowContainer.normalize({"x": {"a": 1}, "y": {"a": 2}}, keyed_rows=True))
        2
        """
        if isinstance(candidate, dict):
            if not candidate:
                return cls.empty()
            if all(isinstance(k, str) and k.isdigit() for k in candidate):
                return cls(RowContainerKind.OBJECT_LIST, tuple(candidate.values()))
            if keyed_rows and all(isinstance(v, dict) for v in candidate.values()):
                return cls(RowContainerKind.OBJECT_LIST, tuple(candidate.values()))
            return cls(RowContainerKind.SINGLE_OBJECT, (candidate,))
        if isinstance(candidate, (list, tuple)):
            if not candidate:
                return cls.empty()
            return cls(RowContainerKind.OBJECT_LIST, tuple(candidate))
        return cls.empty()


def parse_count(value: Any) -> Optional[int]:
    """Integer counter value, or None when missing or malformed."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return None


class RowExtractor:
    """
    Row and counter extraction for JSON bodies.

    Subclasses only change the default paths (and, for OData v2, the
    ``results`` unwrapping). Markup extractors override ``parse`` and
    ``read_value`` as well.
    """

    default_rows_path: Optional[str] = None
    default_count_path: Optional[str] = None

    def parse(self, response: Any) -> Any:
        """Decode a transport response into the structure ``extract`` expects."""
        return response_json(response)

    def parse_text(self, text: str) -> Any:
        """Decode a body given as text, without a transport response."""
        if not text or not text.strip():
            return None
        return json.loads(text)

    def read_value(self, raw: Any, attribute: Attribute) -> Any:
        """Value of one attribute inside one raw row."""
        return find_path(raw, attribute.options.read_data_address or attribute.data_address)

    def rows_path(self, entity: Entity, uid_scoped: bool = False) -> Optional[str]:
        options = entity.options
        if uid_scoped and options.uid_response_data_path:
            return options.uid_response_data_path
        return options.response_data_path or None

    def count_path(self, entity: Entity) -> Optional[str]:
        return entity.options.response_total_count_path or self.default_count_path

    def extract(
        self,
        body: Any,
        entity: Entity,
        uid_scoped: bool = False,
        attributes: Optional[List[Attribute]] = None,
    ) -> RowContainer:
        """
        Locate the rows inside a decoded body.

        Parameters
        ----------
        body : Any
            Decoded response body
        entity : Entity
            Entity whose options carry the configured paths
        uid_scoped : bool
            True for requests addressed through ``uid_request_data_address``
        attributes : list of Attribute, optional
            Attributes to be read; only used by extractors that locate
            values column by column

        Returns
        -------
        RowContainer
        """
        if body is None:
            return RowContainer.empty()
        path = self.rows_path(entity, uid_scoped)
        if path:
            # a keyed object is one row only for UID-scoped requests
            return RowContainer.normalize(find_path(body, path), keyed_rows=not uid_scoped)
        return self.extract_default(body)

    def extract_default(self, body: Any) -> RowContainer:
        if self.default_rows_path:
            return RowContainer.normalize(find_path(body, self.default_rows_path))
        return RowContainer.normalize(body)

    def count(self, body: Any, entity: Entity) -> Optional[int]:
        path = self.count_path(entity)
        if not path or body is None:
            return None
        return parse_count(find_path(body, path))


class ODataV2RowExtractor(RowExtractor):
    """``{"d": {"results": [...]}}`` or ``{"d": {...}}``."""

    default_rows_path = "d"
    default_count_path = "d/__count"

    def extract_default(self, body: Any) -> RowContainer:
        d = find_path(body, "d")
        if isinstance(d, dict) and isinstance(d.get("results"), list):
            return RowContainer.normalize(d["results"])
        return RowContainer.normalize(d)


class ODataV4RowExtractor(RowExtractor):
    """``{"value": [...]}``; a body without ``value`` is a single entity."""

    default_rows_path = "value"
    default_count_path = "@odata.count"

    def extract_default(self, body: Any) -> RowContainer:
        if isinstance(body, dict) and "value" in body:
            return RowContainer.normalize(body["value"])
        if isinstance(body, dict):
            return RowContainer.normalize({k: v for k, v in body.items() if not k.startswith("@odata.")})
        return RowContainer.normalize(body)


def rows_of(container: RowContainer) -> List[Dict[str, Any]]:
    """Row dicts of a container, dropping non-mapping entries."""
    return [r for r in container.rows if isinstance(r, dict)]
