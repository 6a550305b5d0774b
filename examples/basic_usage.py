"""
Example: Basic usage of urlquery
================================

Reads, counts and writes against an OData v2 service, and compiles the same
query for other dialects without sending anything.
"""

from urlquery import ConnectionContext, Entity, Query, get_builder

ORDERS = Entity.from_dict({
    "alias": "Order",
    "data_address": "A_SalesOrder",
    "uid": "SalesOrder",
    "options": {"uid_request_data_address": "A_SalesOrder('{uid}')"},
    "attributes": [
        {"alias": "SalesOrder"},
        {"alias": "SalesOrderType"},
        {"alias": "SoldToParty"},
        {"alias": "TotalNetAmount", "data_type": "NUMBER"},
        {"alias": "CreationDate", "data_type": "DATE"},
    ],
})


def example_compile():
    """Compile one query for several dialects."""
    query = Query(ORDERS, attributes=["SalesOrder", "SoldToParty"], limit=20)
    query.add_filter("SalesOrderType", "IN", "OR,ZOR").add_sorter("CreationDate", "DESC")

    for dialect in ("odata2", "odata4", "odata"):
        request = get_builder(dialect).build_read(query)
        print(f"{dialect:8} {request}")


def example_read():
    """Read one page with a total count."""
    # Reads URLQUERY_BASE_URL, URLQUERY_USER, URLQUERY_PASS (or URLQUERY_BEARER_TOKEN)
    with ConnectionContext(dialect="odata2", fixed_params={"sap-client": "100"}) as conn:
        svc = conn.service()
        query = Query(ORDERS, limit=50).add_filter("SoldToParty", "EQUALS", "17100001")
        result = svc.read(query)
        print(f"Got {len(result)} of {result.total_count} orders (more: {result.has_more_rows})")

        # UID filters switch to the single-item address, one request per value
        by_id = svc.read(Query(ORDERS).add_filter("SalesOrder", "IN", ["1", "2"]))
        print("By id:", by_id.rows)

        print("Total:", svc.count(query))


def example_write():
    """Create and delete through one $batch changeset."""
    entity = Entity.from_dict({
        "alias": "Order",
        "data_address": "A_SalesOrder",
        "uid": "SalesOrder",
        "options": {"odata_batch": True},
        "attributes": [{"alias": "SalesOrder"}, {"alias": "SalesOrderType"}, {"alias": "SoldToParty"}],
    })
    with ConnectionContext(dialect="odata2", csrf=True) as conn:
        svc = conn.service()
        ids = svc.create(Query(entity).add_row(SalesOrderType="OR", SoldToParty="17100001"))
        print("Created:", ids)
        svc.delete(Query(entity).add_filter("SalesOrder", "IN", [i for i in ids if i]))


if __name__ == "__main__":
    example_compile()

    # Uncomment once the environment variables are set
    # example_read()
    # example_write()
