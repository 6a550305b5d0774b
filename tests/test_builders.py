"""
Tests for request compilation (urlquery.query.builder) across URL dialects.
"""

import json

import pytest

from urlquery.core.errors import QueryBuilderError
from urlquery.core.models import Entity, Query
from urlquery.dialects import get_builder


@pytest.fixture
def odata2():
    return get_builder("odata2")


@pytest.fixture
def rest():
    return get_builder("json")


def _orders(**options):
    return Entity.from_dict({
        "alias": "Order",
        "data_address": "Orders",
        "uid": "OrderID",
        "options": options,
        "attributes": [
            {"alias": "OrderID", "data_type": "INTEGER"},
            {"alias": "Status"},
            {"alias": "Customer", "data_address": "Customer/Name"},
        ],
    })


class TestODataReads:
    """Read URIs for the OData dialects."""

    def test_status_filter(self, odata2, orders_entity):
        query = Query(orders_entity).add_filter("Status", "EQUALS", "open")
        request = odata2.build_read(query)
        assert request.method == "GET"
        assert request.uri == "Orders?$filter=Status eq 'open'&$inlinecount=allpages&$format=json"
        assert request.headers["DataServiceVersion"] == "2.0"

    def test_v2_paging(self, odata2, orders_entity):
        request = odata2.build_read(Query(orders_entity, offset=20, limit=10))
        assert "$skip=20&$top=10" in request.uri
        assert request.uri == "Orders?$skip=20&$top=10&$inlinecount=allpages&$format=json"

    def test_zero_offset_and_limit_are_omitted(self, odata2, orders_entity):
        assert odata2.build_read(Query(orders_entity)).uri == "Orders?$inlinecount=allpages&$format=json"

    def test_v4_paging(self, orders_entity):
        request = get_builder("odata4").build_read(Query(orders_entity, offset=20, limit=10))
        assert request.uri == "Orders?$skip=20&$top=10&$count=true"
        assert request.headers["OData-Version"] == "4.0"

    def test_hybrid_paging_uses_skiptoken(self, orders_entity):
        request = get_builder("odata").build_read(Query(orders_entity, offset=20, limit=10))
        assert request.uri == "Orders?$skiptoken=20&$top=10&$format=json"

    def test_sorting(self, odata2, orders_entity):
        query = Query(orders_entity).add_sorter("Status", "desc")
        assert "$orderby=Status desc" in odata2.build_read(query).uri

    def test_select_and_expand(self, odata2, orders_entity):
        query = Query(orders_entity, attributes=["OrderID", "Customer"])
        uri = odata2.build_read(query).uri
        assert "$select=OrderID,Customer/Name&$expand=Customer" in uri

    def test_select_and_inlinecount_can_be_disabled(self, odata2):
        entity = _orders(**{"odata_select": "0", "odata_$inlinecount": "0"})
        query = Query(entity, attributes=["OrderID"])
        assert odata2.build_read(query).uri == "Orders?$format=json"

    def test_count_request(self, odata2, orders_entity):
        query = Query(orders_entity, offset=20, limit=10).add_filter("Status", "EQUALS", "open")
        request = odata2.build_read(query)
        count = odata2.build_count(request, odata2.prepare(query))
        assert count.uri == "Orders/$count?$filter=Status eq 'open'"
        assert count.headers == {"Accept": "text/plain"}

    def test_no_count_request_for_generic_rest(self, rest, rest_entity):
        request = rest.build_read(Query(rest_entity, limit=5))
        assert rest.build_count(request, Query(rest_entity)) is None

    def test_force_filtering_without_filters(self, odata2):
        assert odata2.build_read(Query(_orders(force_filtering="1"))) is None

    def test_uid_address(self, odata2, uid_orders_entity):
        query = Query(uid_orders_entity).add_filter("OrderID", "EQUALS", 7)
        assert odata2.is_uid_scoped(odata2.prepare(query))
        assert odata2.build_read(query).uri == "Orders(7)?$format=json"


class TestEndpoints:
    """Placeholders, custom filter URLs and URL rewriting."""

    def _entity(self, address, **options):
        return Entity.from_dict({
            "alias": "Ticket",
            "data_address": address,
            "options": options,
            "attributes": {
                "id": {},
                "CustomerID": {},
                "customer": {"options": {"filter_remote_url": "customers/[#value#]/tickets"}},
                "project": {"options": {"filter_remote_url": "projects/[#value#]/tickets"}},
            },
        })

    def test_placeholder_filled_from_filter(self, rest):
        query = Query(self._entity("customers/[#CustomerID#]/orders")).add_filter("CustomerID", "EQUALS", 7)
        assert rest.build_read(query).uri == "customers/7/orders"

    def test_missing_placeholder_gives_no_request(self, rest):
        assert rest.build_read(Query(self._entity("customers/[#CustomerID#]/orders"))) is None

    def test_filter_remote_url(self, rest):
        query = Query(self._entity("tickets")).add_filter("customer", "EQUALS", "ACME")
        assert rest.build_read(query).uri == "customers/ACME/tickets"

    def test_conflicting_filter_urls(self, rest):
        query = Query(self._entity("tickets")).add_filter("customer", "EQUALS", "a").add_filter("project", "EQUALS", "b")
        with pytest.raises(QueryBuilderError, match="different custom URLs"):
            rest.build_read(query)

    def test_regex_rewrite(self, rest):
        entity = self._entity("api/v1/tickets", request_url_replace_pattern="^api/v1/", request_url_replace_with="v2/")
        assert rest.build_read(Query(entity)).uri == "v2/tickets"


class TestRestReads:
    """Generic REST parameters."""

    def test_filters_then_paging(self, rest, rest_entity):
        query = Query(rest_entity, offset=10, limit=5).add_filter("state", "EQUALS", "open")
        assert rest.build_read(query).uri == "api/tickets?state=open&offset=10&limit=5"

    def test_local_filter_disables_remote_paging(self, rest, rest_entity):
        query = Query(rest_entity, offset=10, limit=5).add_filter("state", "EQUALS", "open")
        query.add_filter("title", "IS", "crash")
        prepared = rest.prepare(query)
        assert not rest.remote_paging(prepared)
        assert rest.build_read(query).uri == "api/tickets?state=open"

    def test_prepare_adds_attributes_for_local_filters(self, rest, rest_entity):
        query = Query(rest_entity, attributes=["id"]).add_filter("title", "IS", "crash")
        prepared = rest.prepare(query)
        assert prepared.attributes == ["id", "title"]
        assert prepared.local_filters.filters[0].apply_locally
        assert query.attributes == ["id"]


class TestWrites:
    """Create, update and delete requests."""

    def test_create_body(self, odata2, orders_entity):
        query = Query(orders_entity).add_row(Status="open", Customer="ACME", CreatedAt="2024-05-01 10:00:00")
        (request,) = odata2.build_create(query)
        assert request.method == "POST"
        assert request.uri == "Orders"
        assert request.headers["Content-Type"] == "application/json"
        assert json.loads(request.body) == {
            "Status": "open",
            "Customer": {"Name": "ACME"},
            "CreatedAt": "/Date(1714557600000)/",
        }

    def test_create_wraps_body_and_uses_create_address(self, rest):
        entity = Entity.from_dict({
            "alias": "Ticket",
            "data_address": "tickets",
            "options": {"create_request_data_address": "tickets/new", "create_request_data_path": "data/ticket"},
            "attributes": {"title": {}, "owner": {"data_address": "owner/login", "related": True}},
        })
        (request,) = rest.build_create(Query(entity).add_row(title="Crash", owner="bob"))
        assert request.uri == "tickets/new"
        assert json.loads(request.body) == {"data": {"ticket": {"title": "Crash"}}}

    def test_one_request_per_row(self, odata2, orders_entity):
        query = Query(orders_entity).add_row(Status="a").add_row(Status="b")
        assert len(odata2.build_create(query)) == 2

    def test_update_methods(self, orders_entity):
        query = Query(orders_entity).add_row(OrderID=5, Status="closed")
        (v2,) = get_builder("odata2").build_update(query)
        assert (v2.method, v2.uri) == ("MERGE", "Orders(5)")
        assert json.loads(v2.body) == {"Status": "closed"}
        (v4,) = get_builder("odata4").build_update(query)
        assert (v4.method, v4.uri) == ("PATCH", "Orders(5)")

    def test_generic_update(self, rest, rest_entity):
        (request,) = rest.build_update(Query(rest_entity).add_row(id=5, title="Crash"))
        assert (request.method, request.uri) == ("PUT", "api/tickets/5")

    def test_update_options(self, rest):
        entity = Entity.from_dict({
            "alias": "Ticket",
            "data_address": "tickets",
            "uid": "id",
            "options": {"update_request_method": "post", "update_request_data_address": "tickets/[#id#]/edit"},
            "attributes": {"id": {}, "title": {}},
        })
        (request,) = rest.build_update(Query(entity).add_row(id=5, title="x"))
        assert (request.method, request.uri) == ("POST", "tickets/5/edit")

    def test_update_uid_from_filter(self, odata2, orders_entity):
        query = Query(orders_entity).add_filter("OrderID", "EQUALS", 9).add_row(Status="closed")
        (request,) = odata2.build_update(query)
        assert request.uri == "Orders(9)"

    def test_update_without_uid(self, rest, rest_entity):
        with pytest.raises(QueryBuilderError, match="without a UID"):
            rest.build_update(Query(rest_entity).add_row(title="x"))

    def test_delete_from_rows_and_filter(self, odata2, orders_entity):
        from_rows = odata2.build_delete(Query(orders_entity).add_row(OrderID=1).add_row(OrderID=2))
        from_filter = odata2.build_delete(Query(orders_entity).add_filter("OrderID", "IN", [1, 2]))
        assert [str(r) for r in from_rows] == ["DELETE Orders(1)", "DELETE Orders(2)"]
        assert [r.uri for r in from_filter] == ["Orders(1)", "Orders(2)"]
        assert odata2.build_delete(Query(orders_entity)) == []


class TestResponses:
    """Rows, counters and created ids from decoded bodies."""

    def test_extract_rows(self, odata2, orders_entity, sample_odata_response):
        query = Query(orders_entity, attributes=["OrderID", "Status", "Customer"])
        rows = odata2.extract_rows(sample_odata_response, query)
        assert rows == [
            {"OrderID": 1, "Status": "open", "Customer": "ACME"},
            {"OrderID": 2, "Status": "closed", "Customer": "Globex"},
        ]
        assert odata2.extract_count(sample_odata_response, query) == 5

    def test_configured_paths(self, rest, rest_entity):
        body = {"data": {"items": [{"id": 1, "owner": {"login": "bob"}}], "total": "40"}}
        query = Query(rest_entity, attributes=["id", "owner"])
        assert rest.extract_rows(body, query) == [{"id": 1, "owner": "bob"}]
        assert rest.extract_count(body, query) == 40

    def test_keyed_rows_under_configured_path(self, rest):
        entity = _orders(response_data_path="items")
        body = {"items": {"a": {"OrderID": 1, "Status": "open"}, "b": {"OrderID": 2, "Status": "held"}}}
        rows = rest.extract_rows(body, Query(entity, attributes=["OrderID", "Status"]))
        assert rows == [{"OrderID": 1, "Status": "open"}, {"OrderID": 2, "Status": "held"}]

    def test_scalar_lists_are_joined(self, rest):
        entity = Entity.from_dict({"alias": "E", "attributes": {"tags": {}}})
        assert rest.extract_rows([{"tags": ["a", "b"]}], Query(entity)) == [{"tags": "a,b"}]

    def test_created_id(self, odata2, orders_entity):
        body = {"d": {"OrderID": 9, "Status": "open"}}
        assert odata2.extract_created_id(body, Query(orders_entity)) == 9
        assert odata2.extract_created_id(None, Query(orders_entity)) is None


class TestPlaceholders:
    """Placeholder syntax in addresses."""

    def test_both_syntaxes(self):
        from urlquery.query.placeholders import fill_placeholders, find_placeholders

        text = "customers/[#CustomerID#]/orders({uid})"
        assert find_placeholders(text) == ["CustomerID", "uid"]
        assert fill_placeholders(text, {"CustomerID": "7", "uid": "3"}.get) == "customers/7/orders(3)"
        assert fill_placeholders(text, {"uid": "3"}.get) is None
