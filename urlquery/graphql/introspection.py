"""
urlquery.graphql.introspection - Schema discovery
=================================================

Runs the introspection query once per instance and answers questions about
the schema: root type names, object types, and which queries or mutations
return a given type.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Dict, List, Optional

from urlquery.core.errors import UpstreamError
from urlquery.core.request import DataRequest
from urlquery.core.session import Transport, response_json
from urlquery.graphql.documents import INTROSPECTION_QUERY, build_json_body

logger = logging.getLogger("urlquery.graphql")


def innermost_type(type_ref: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Follow ``ofType`` links down to the named type."""
    node = type_ref or {}
    while node.get("ofType"):
        node = node["ofType"]
    return node


def is_list_type(type_ref: Optional[Dict[str, Any]]) -> bool:
    node = type_ref or {}
    while node:
        if node.get("kind") == "LIST":
            return True
        node = node.get("ofType") or {}
    return False


def returns_type(field: Dict[str, Any], type_name: str) -> bool:
    """True if ``field`` returns ``type_name`` or a list of it (through any wrappers)."""
    named = innermost_type(field.get("type"))
    return named.get("kind") == "OBJECT" and named.get("name") == type_name


class GraphQLSchema:
    """
    Read-only view over an introspection result (``data.__schema``).

    Parameters
    ----------
    schema : dict
        The ``__schema`` object
    """

    def __init__(self, schema: Dict[str, Any]) -> None:
        self.raw = schema or {}
        self._types = {t.get("name"): t for t in self.raw.get("types") or [] if t.get("name")}

    @property
    def query_type_name(self) -> Optional[str]:
        return (self.raw.get("queryType") or {}).get("name")

    @property
    def mutation_type_name(self) -> Optional[str]:
        return (self.raw.get("mutationType") or {}).get("name")

    def type(self, name: str) -> Dict[str, Any]:
        return self._types.get(name) or {}

    def object_types(self) -> List[str]:
        """Names of OBJECT types, without introspection and root types."""
        roots = {self.query_type_name, self.mutation_type_name}
        return [
            name for name, t in self._types.items()
            if t.get("kind") == "OBJECT" and not name.startswith("__") and name not in roots
        ]

    def fields(self, type_name: str) -> List[Dict[str, Any]]:
        return list(self.type(type_name).get("fields") or [])

    def queries(self, returning: Optional[str] = None) -> List[Dict[str, Any]]:
        fields = self.fields(self.query_type_name) if self.query_type_name else []
        if returning:
            fields = [f for f in fields if returns_type(f, returning)]
        return fields

    def mutations(self, returning: Optional[str] = None) -> List[Dict[str, Any]]:
        fields = self.fields(self.mutation_type_name) if self.mutation_type_name else []
        if returning:
            fields = [f for f in fields if returns_type(f, returning)]
        return fields


class GraphQLIntrospection:
    """
    Cached schema introspection for one endpoint.

    Parameters
    ----------
    transport : Transport
        Transport used to send the introspection request
    uri : str
        GraphQL endpoint relative to the transport base URL

    Examples
    --------
    >>> schema = GraphQLIntrospection(transport).schema()
    >>> schema.object_types()
    ['Order', 'Customer']
    """

    def __init__(self, transport: Transport, uri: str = "") -> None:
        self.transport = transport
        self.uri = uri
        self._schema: Optional[GraphQLSchema] = None
        self._lock = threading.Lock()

    def request(self) -> DataRequest:
        return DataRequest(
            "POST",
            self.uri,
            headers={"Content-Type": "application/json", "Accept": "application/json"},
            body=build_json_body(INTROSPECTION_QUERY, "IntrospectionQuery"),
        )

    def schema(self) -> GraphQLSchema:
        if self._schema is not None:
            return self._schema
        with self._lock:
            if self._schema is None:
                response = self.transport.send(self.request())
                data = response_json(response) or {}
                if data.get("errors") and not data.get("data"):
                    raise UpstreamError(response.status_code, str(data["errors"]), self.uri)
                self._schema = GraphQLSchema((data.get("data") or {}).get("__schema") or {})
                logger.debug("Loaded GraphQL schema with %s types", len(self._schema.raw.get("types") or []))
            return self._schema

    def clear(self) -> None:
        with self._lock:
            self._schema = None
