"""
urlquery.markup.html - HTML scraping
====================================

Attribute data addresses are CSS selectors with optional extensions:

- ``#list .title`` - text content of every match
- ``#list img ->src`` - value of the ``src`` attribute
- ``#list img ->srcset()`` / ``->srcset(2x)`` - first or 2x source of ``srcset``
- ``#list .item ->find(.price)`` - text of ``.price`` inside each match
- ``#list .item ->is(.sold)`` / ``->not(.sold)`` - boolean checks
- ``->url`` - URL of the page (same value for every row)

The n-th match of every selector forms row n. Attributes of type HTML get
the markup of the node instead of its text.
"""

from __future__ import annotations

import hashlib
import threading
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

import lxml.html
from lxml.html import HtmlElement

from urlquery.core.models import Attribute, DataType, Entity
from urlquery.data.rows import RowContainer, RowContainerKind, RowExtractor

EXTENSION_SEPARATOR = "->"


@dataclass
class HtmlDocument:
    """Raw page plus the URL it was fetched from."""

    text: str
    url: str = ""


def split_address(address: str) -> Tuple[str, str]:
    """
    ``"#a img ->src"`` -> ``("#a img", "src")``; no extension gives ``""``.
    """
    selector, sep, extension = address.partition(EXTENSION_SEPARATOR)
    if not sep:
        return address.strip(), ""
    return selector.strip(), extension.strip()


def _call(extension: str) -> Optional[Tuple[str, str]]:
    if "(" in extension and extension.endswith(")"):
        name, _, arg = extension[:-1].partition("(")
        return name.strip().lower(), arg.strip()
    return None


def _srcset(node: HtmlElement, density: str) -> str:
    sources = [s.strip() for s in (node.get("srcset") or "").split(",") if s.strip()]
    if not sources:
        return ""
    if not density:
        return sources[0].split()[0]
    for source in sources:
        parts = source.split()
        if len(parts) > 1 and parts[1] == density:
            return parts[0]
    return ""


def apply_extension(node: HtmlElement, extension: str) -> Any:
    """Evaluate an attribute extension (``src``, ``find(..)``, ...) on one node."""
    call = _call(extension)
    if call is None:
        return node.get(extension)
    name, arg = call
    if name in ("is", "not"):
        found = bool(node.cssselect(arg))
        return found if name == "is" else not found
    if name == "find":
        matches = node.cssselect(arg)
        return matches[-1].text_content().strip() if matches else None
    if name == "srcset":
        return _srcset(node, arg)
    raise ValueError(f"Unknown HTML data address extension '{extension}'")


def _parse_scalar(value: Any, data_type: DataType) -> Any:
    if not isinstance(value, str):
        return value
    if data_type == DataType.INTEGER:
        try:
            return int(value.strip())
        except ValueError:
            return value
    if data_type == DataType.NUMBER:
        try:
            return float(value.strip())
        except ValueError:
            return value
    return value


class HtmlRowExtractor(RowExtractor):
    """
    Column-wise extraction with CSS selectors.

    Parsed documents are cached per extractor instance, keyed by the MD5
    of the page content. Only the ``cache_size`` most recently used pages
    are kept.
    """

    def __init__(self, cache_size: int = 8) -> None:
        self.cache_size = max(int(cache_size), 0)
        self._cache: "OrderedDict[str, HtmlElement]" = OrderedDict()
        self._cache_lock = threading.Lock()

    def parse(self, response: Any) -> Any:
        return HtmlDocument(text=response.text or "", url=str(getattr(response, "url", "") or ""))

    def parse_text(self, text: str) -> Any:
        return HtmlDocument(text=text or "", url="")

    def document(self, text: str) -> HtmlElement:
        key = hashlib.md5(text.encode("utf-8")).hexdigest()
        with self._cache_lock:
            root = self._cache.get(key)
            if root is not None:
                self._cache.move_to_end(key)
                return root
            root = lxml.html.fromstring(text)
            if self.cache_size:
                self._cache[key] = root
                while len(self._cache) > self.cache_size:
                    self._cache.popitem(last=False)
            return root

    def read_value(self, raw: Any, attribute: Attribute) -> Any:
        return raw.get(attribute.alias) if isinstance(raw, dict) else None

    def extract(
        self,
        body: Any,
        entity: Entity,
        uid_scoped: bool = False,
        attributes: Optional[List[Attribute]] = None,
    ) -> RowContainer:
        if not isinstance(body, HtmlDocument) or not body.text.strip():
            return RowContainer.empty()

        root = self.document(body.text)
        rows: Dict[int, Dict[str, Any]] = {}
        document_values: Dict[str, Any] = {}

        for attr in attributes or []:
            if not attr.has_remote_address:
                continue
            selector, extension = split_address(attr.data_address)
            if not selector:
                if extension.lower() == "url":
                    document_values[attr.alias] = body.url
                elif extension:
                    document_values[attr.alias] = apply_extension(root, extension)
                continue

            for i, node in enumerate(root.cssselect(selector)):
                if attr.data_type == DataType.HTML:
                    value = lxml.html.tostring(node, encoding="unicode")
                elif extension:
                    value = apply_extension(node, extension)
                else:
                    value = node.text_content().strip()
                rows.setdefault(i, {})[attr.alias] = _parse_scalar(value, attr.data_type)

        result = [rows[i] for i in sorted(rows)]
        for row in result:
            row.update(document_values)
        if not result:
            return RowContainer.empty()
        return RowContainer(RowContainerKind.OBJECT_LIST, tuple(result))

    def count(self, body: Any, entity: Entity) -> Optional[int]:
        return None
