"""
urlquery.query.placeholders - Placeholders in data addresses
============================================================

Addresses like ``customers/[#CustomerID#]/orders`` or ``Orders({UID})`` are
filled with filter or row values before a request is sent.
"""

from __future__ import annotations

import re
from typing import Callable, List, Optional

PLACEHOLDER_RE = re.compile(r"\[#([^#\]]+)#\]|\{([A-Za-z_~][\w~.\-]*)\}")


def find_placeholders(text: str) -> List[str]:
    """
    Names of all placeholders in ``text``, in order of appearance.

    Examples
    --------
    >>> find_placeholders("customers/[#id#]/orders?since={from}")
    ['id', 'from']
    """
    return [m.group(1) or m.group(2) for m in PLACEHOLDER_RE.finditer(text or "")]


def fill_placeholders(text: str, resolve: Callable[[str], Optional[str]]) -> Optional[str]:
    """
    Replace every placeholder using ``resolve``.

    Returns None as soon as one placeholder cannot be resolved: an address
    with a missing value cannot be requested.
    """
    missing = False

    def _sub(match: "re.Match") -> str:
        nonlocal missing
        value = resolve(match.group(1) or match.group(2))
        if value is None:
            missing = True
            return match.group(0)
        return value

    filled = PLACEHOLDER_RE.sub(_sub, text or "")
    return None if missing else filled
