"""
urlquery.data.paths - Slash-delimited data paths
================================================

Navigate decoded response bodies with paths like ``d/results``,
``items/0/name`` or ``addresses[type=billing]/city``.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Tuple

from urlquery.core.errors import InvalidPathError

PATH_DELIMITER = "/"


def split_path(path: Optional[str]) -> List[str]:
    """
    Split a path into steps, ignoring empty steps.

    Examples
    --------
    >>> split_path("d/results")
    ['d', 'results']
    >>> split_path("")
    []
    """
    if not path:
        return []
    return [step for step in path.split(PATH_DELIMITER) if step != ""]


def parse_step(step: str) -> Tuple[str, Optional[Tuple[str, str]]]:
    """
    Split a step into its name and an optional ``[key=value]`` condition.

    Raises
    ------
    InvalidPathError
        If the step opens a condition but does not close it
    """
    if "[" not in step:
        return step, None
    if not step.endswith("]"):
        raise InvalidPathError(f"Invalid conditional selector '{step}': missing closing ']'")
    name, _, condition = step[:-1].partition("[")
    key, sep, value = condition.partition("=")
    if not sep or not key:
        raise InvalidPathError(f"Invalid conditional selector '{step}': expected [key=value]")
    return name, (key.strip(), value.strip())


def _matches(item: Any, key: str, value: str) -> bool:
    if not isinstance(item, dict) or key not in item:
        return False
    candidate = item[key]
    if isinstance(candidate, bool):
        return str(candidate).lower() == value.lower()
    return str(candidate) == value


def _step(data: Any, step: str) -> Any:
    name, condition = parse_step(step)

    if name:
        if isinstance(data, dict):
            data = data.get(name)
        elif isinstance(data, list) and name.isdigit():
            index = int(name)
            data = data[index] if index < len(data) else None
        else:
            return None

    if condition is None:
        return data

    key, value = condition
    if isinstance(data, dict):
        data = list(data.values())
    if not isinstance(data, list):
        return None
    for item in data:
        if _matches(item, key, value):
            return item
    return None


def find_path(data: Any, path: Optional[str]) -> Any:
    """
    Value at ``path`` inside ``data``, or None if any step is missing.

    Parameters
    ----------
    data : Any
        Decoded body (dicts and lists)
    path : str
        Slash-delimited path; numeric steps index lists, ``name[key=value]``
        picks the first list element whose ``key`` equals ``value``

    Examples
    --------
    >>> find_path({"d": {"results": [1, 2]}}, "d/results")
    [1, 2]
    >>> find_path({"a": [{"t": "x", "v": 1}, {"t": "y", "v": 2}]}, "a[t=y]/v")
    2
    """
    steps = split_path(path)
    for step in steps:
        if data is None:
            return None
        data = _step(data, step)
    return data


def set_path(path: Optional[str], value: Any) -> Any:
    """
    Wrap ``value`` so that it sits at ``path``.

    Examples
    --------
    >>> set_path("data/order", {"id": 1})
    {'data': {'order': {'id': 1}}}
    >>> set_path("", {"id": 1})
    {'id': 1}
    """
    for step in reversed(split_path(path)):
        name, condition = parse_step(step)
        if condition is not None:
            raise InvalidPathError(f"Conditional selector '{step}' cannot be used to build a body")
        value = {name: value}
    return value


def merge_into(target: Dict[str, Any], path: str, value: Any) -> None:
    """Set ``value`` at a nested ``path`` of ``target``, creating dicts on the way."""
    steps = split_path(path)
    if not steps:
        return
    node = target
    for step in steps[:-1]:
        child = node.get(step)
        if not isinstance(child, dict):
            child = {}
            node[step] = child
        node = child
    node[steps[-1]] = value
