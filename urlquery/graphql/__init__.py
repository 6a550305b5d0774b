"""
urlquery.graphql - GraphQL documents and requests
=================================================
"""

from urlquery.graphql.builder import GraphQLRequestBuilder
from urlquery.graphql.documents import INTROSPECTION_QUERY, build_mutation, build_query
from urlquery.graphql.introspection import GraphQLIntrospection, GraphQLSchema

__all__ = [
    "GraphQLRequestBuilder",
    "INTROSPECTION_QUERY",
    "build_mutation",
    "build_query",
    "GraphQLIntrospection",
    "GraphQLSchema",
]
