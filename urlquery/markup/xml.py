"""
urlquery.markup.xml - XML responses
===================================

XML bodies are converted into plain dicts and lists so that the usual
slash-delimited paths (and ``[key=value]`` selectors) work on them:

- child elements become keys (namespaces stripped), repeated tags a list
- XML attributes become ``@name`` keys
- leaf elements become their text
"""

from __future__ import annotations

from typing import Any, Dict

from lxml import etree

from urlquery.data.rows import RowContainer, RowExtractor


def _strip_ns(tag: str) -> str:
    """Strip XML namespace from a tag name."""
    return tag.split("}", 1)[-1] if "}" in tag else tag


def element_to_data(el: etree._Element) -> Any:
    """
    Convert an element into dicts, lists and strings.

    Comments and processing instructions are skipped.

    Examples
    --------
    >>> element_to_data(etree.fromstring('<o id="1"><n>A</n><n>B</n></o>'))
    {'@id': '1', 'n': ['A', 'B']}
    """
    children = [c for c in el if isinstance(c.tag, str)]
    text = (el.text or "").strip()
    if not children and not el.attrib:
        return text if text else None

    data: Dict[str, Any] = {f"@{_strip_ns(k)}": v for k, v in el.attrib.items()}
    for child in children:
        tag = _strip_ns(child.tag)
        value = element_to_data(child)
        if tag in data:
            if not isinstance(data[tag], list):
                data[tag] = [data[tag]]
            data[tag].append(value)
        else:
            data[tag] = value
    if text:
        data["#text"] = text
    return data


class XmlRowExtractor(RowExtractor):
    """
    Rows from XML documents.

    Paths are relative to the root element. Without ``response_data_path``
    a root holding a single repeated child element yields those children
    as rows; any other root is one row.
    """

    def parse(self, response: Any) -> Any:
        content = response.content
        if not content or not content.strip():
            return None
        return element_to_data(etree.fromstring(content))

    def parse_text(self, text: str) -> Any:
        if not text or not text.strip():
            return None
        # bytes, so documents with an encoding declaration are accepted
        return element_to_data(etree.fromstring(text.encode("utf-8")))

    def extract_default(self, body: Any) -> RowContainer:
        if isinstance(body, dict) and len(body) == 1:
            (only,) = body.values()
            if isinstance(only, list):
                return RowContainer.normalize(only)
        return RowContainer.normalize(body)
