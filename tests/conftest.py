"""
Pytest configuration and shared fixtures.
"""

import json

import pytest
from unittest.mock import Mock
from typing import Any, Dict, Optional

from urlquery.core.models import Entity


BASE_URL = "https://test.example.com/sap/opu/odata/sap/API_ORDER_SRV/"


def make_response(
    payload: Any = None,
    text: Optional[str] = None,
    status: int = 200,
    headers: Optional[Dict[str, str]] = None,
    url: str = "",
):
    """Mock requests.Response carrying a JSON payload or raw text."""
    if text is None:
        text = json.dumps(payload) if payload is not None else ""
    response = Mock()
    response.status_code = status
    response.text = text
    response.content = text.encode("utf-8")
    response.json = Mock(side_effect=lambda: json.loads(text))
    response.headers = headers or {}
    response.url = url
    return response


@pytest.fixture
def response_factory():
    return make_response


@pytest.fixture
def mock_transport():
    """Transport mock; set ``send.return_value`` or ``send.side_effect`` per test."""
    transport = Mock()
    transport.base_url = BASE_URL
    return transport


@pytest.fixture
def orders_entity():
    """OData-style order entity."""
    return Entity.from_dict({
        "alias": "Order",
        "data_address": "Orders",
        "uid": "OrderID",
        "attributes": [
            {"alias": "OrderID", "data_type": "INTEGER"},
            {"alias": "Status", "data_type": "STRING"},
            {"alias": "Customer", "data_address": "Customer/Name"},
            {"alias": "Amount", "data_type": "NUMBER"},
            {"alias": "CreatedAt", "data_type": "TIMESTAMP"},
        ],
    })


@pytest.fixture
def uid_orders_entity():
    """Order entity with a dedicated single-item address."""
    return Entity.from_dict({
        "alias": "Order",
        "data_address": "Orders",
        "uid": "OrderID",
        "options": {"uid_request_data_address": "Orders({uid})"},
        "attributes": [
            {"alias": "OrderID", "data_type": "INTEGER"},
            {"alias": "Status"},
        ],
    })


@pytest.fixture
def rest_entity():
    """Generic REST entity: filters only where URL parameters are configured."""
    return Entity.from_dict({
        "alias": "Ticket",
        "data_address": "api/tickets",
        "uid": "id",
        "options": {
            "request_offset_parameter": "offset",
            "request_limit_parameter": "limit",
            "response_data_path": "data/items",
            "response_total_count_path": "data/total",
        },
        "attributes": {
            "id": {"data_type": "INTEGER"},
            "title": {},
            "state": {"options": {"filter_remote_url_param": "state", "sort_remote": "1"}},
            "owner": {"data_address": "owner/login"},
        },
    })


@pytest.fixture
def sample_odata_response():
    """Sample OData v2 response."""
    return {
        "d": {
            "results": [
                {"OrderID": 1, "Status": "open", "Customer": {"Name": "ACME"}},
                {"OrderID": 2, "Status": "closed", "Customer": {"Name": "Globex"}},
            ],
            "__count": "5",
        }
    }
