"""
urlquery.graphql.documents - GraphQL document text
==================================================

Query and mutation documents plus the static introspection query used to
discover query, mutation and object types of a schema.
"""

from __future__ import annotations

import json
from typing import Any, Dict, Iterable, List, Optional

INDENT = "    "


def graphql_value(value: Any) -> str:
    """
    Literal for an argument value. Strings are double-quoted with embedded
    quotes and backslashes escaped.

    Examples
    --------
    >>> graphql_value(5)
    '5'
    >>> graphql_value("open")
    '"open"'
    """
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return repr(value)
    text = str(value).replace("\\", "\\\\").replace('"', '\\"')
    return f'"{text}"'


def _arguments(arguments: Dict[str, Any], multiline: bool) -> str:
    if not arguments:
        return ""
    pairs = [f"{name}: {graphql_value(value)}" for name, value in arguments.items()]
    if multiline:
        inner = ("\n" + INDENT * 2).join(pairs)
        return f" (\n{INDENT * 2}{inner}\n{INDENT})"
    return "(" + ", ".join(pairs) + ")"


def _selection(fields: Iterable[str]) -> str:
    unique: List[str] = []
    for f in fields:
        if f and f not in unique:
            unique.append(f)
    return ("\n" + INDENT * 2).join(unique)


def build_query(name: str, fields: Iterable[str], arguments: Optional[Dict[str, Any]] = None) -> str:
    """
    Read query selecting ``fields`` from the root field ``name``.

    Examples
    --------
    >>> print(build_query("orders", ["id", "status"]))
    query {
        orders {
            id
            status
        }
    }
    """
    return (
        "query {\n"
        f"{INDENT}{name}{_arguments(arguments or {}, multiline=False)} {{\n"
        f"{INDENT * 2}{_selection(fields)}\n"
        f"{INDENT}}}\n"
        "}"
    )


def build_mutation(name: str, arguments: Dict[str, Any], return_fields: Iterable[str]) -> str:
    """
    Mutation document calling ``name`` with ``arguments``.

    Examples
    --------
    >>> print(build_mutation("createOrder", {"status": "open"}, ["id"]))
    mutation {
        createOrder (
            status: "open"
        ) {
            id
        }
    }
    """
    return (
        "mutation {\n"
        f"{INDENT}{name}{_arguments(arguments, multiline=True)} {{\n"
        f"{INDENT * 2}{_selection(return_fields)}\n"
        f"{INDENT}}}\n"
        "}"
    )


def build_json_body(document: str, operation_name: Optional[str] = None) -> str:
    """JSON envelope ``{"operationName": ..., "query": ...}`` for POST requests."""
    body: Dict[str, Any] = {}
    if operation_name:
        body["operationName"] = operation_name
    body["query"] = document
    return json.dumps(body)


INTROSPECTION_QUERY = """query IntrospectionQuery {
    __schema {
        queryType {
            name
        }
        mutationType {
            name
        }
        subscriptionType {
            name
        }
        types {
            ...FullType
        }
        directives {
            name
            description
            locations
            args {
                ...InputValue
            }
        }
    }
}

fragment FullType on __Type {
    kind
    name
    description
    fields(includeDeprecated: true) {
        name
        description
        args {
            ...InputValue
        }
        type {
            ...TypeRef
        }
        isDeprecated
        deprecationReason
    }
    inputFields {
        ...InputValue
    }
    interfaces {
        ...TypeRef
    }
    enumValues(includeDeprecated: true) {
        name
        description
        isDeprecated
        deprecationReason
    }
    possibleTypes {
        ...TypeRef
    }
}

fragment InputValue on __InputValue {
    name
    description
    type {
        ...TypeRef
    }
    defaultValue
}

fragment TypeRef on __Type {
    kind
    name
    ofType {
        kind
        name
        ofType {
            kind
            name
            ofType {
                kind
                name
                ofType {
                    kind
                    name
                    ofType {
                        kind
                        name
                        ofType {
                            kind
                            name
                            ofType {
                                kind
                                name
                            }
                        }
                    }
                }
            }
        }
    }
}
"""
