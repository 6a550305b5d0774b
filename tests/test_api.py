"""
Tests for the FastAPI gateway.
"""

import pytest
from unittest.mock import Mock, patch
from fastapi.testclient import TestClient

from urlquery.api.gateway import GatewayConfig, create_app
from urlquery.core.errors import UpstreamError
from urlquery.core.request import ReadResult


ENTITY = {
    "alias": "Order",
    "data_address": "Orders",
    "uid": "OrderID",
    "attributes": [
        {"alias": "OrderID", "data_type": "INTEGER"},
        {"alias": "Status"},
    ],
}

HEADERS = {"x-api-key": "secret"}


@pytest.fixture
def config():
    return GatewayConfig(api_key="secret", max_limit=50)


@pytest.fixture
def client(config):
    return TestClient(create_app(config, validate_on_startup=False))


class TestGatewayConfig:
    """Gateway settings."""

    def test_missing_key_fails_validation(self, monkeypatch):
        monkeypatch.delenv("URLQUERY_API_KEY", raising=False)
        with pytest.raises(RuntimeError, match="URLQUERY_API_KEY"):
            GatewayConfig().validate()

    def test_key_from_env(self, monkeypatch):
        monkeypatch.setenv("URLQUERY_API_KEY", "from-env")
        assert GatewayConfig().api_key == "from-env"


class TestAuth:
    """x-api-key handling."""

    def test_health_is_open(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["ok"] is True

    def test_key_required(self, client):
        assert client.get("/dialects").status_code == 401
        assert client.get("/dialects", headers={"x-api-key": "wrong"}).status_code == 401

    def test_dialects(self, client):
        response = client.get("/dialects", headers=HEADERS)
        assert response.status_code == 200
        assert response.json()["dialects"] == ["json", "xml", "html", "odata2", "odata4", "odata", "graphql"]


class TestCompile:
    """POST /compile"""

    def test_read(self, client):
        payload = {
            "dialect": "odata2",
            "entity": ENTITY,
            "filters": {"conditions": [{"attribute": "Status", "value": "open"}]},
            "limit": 10,
        }
        data = client.post("/compile", json=payload, headers=HEADERS).json()
        assert data["operation"] == "read"
        assert data["requests"][0]["uri"] == "Orders?$filter=Status eq 'open'&$top=10&$inlinecount=allpages&$format=json"
        assert data["count_request"]["uri"] == "Orders/$count?$filter=Status eq 'open'"

    def test_create(self, client):
        payload = {"dialect": "odata4", "entity": ENTITY, "operation": "create", "rows": [{"Status": "open"}]}
        data = client.post("/compile", json=payload, headers=HEADERS).json()
        assert [(r["method"], r["uri"]) for r in data["requests"]] == [("POST", "Orders")]
        assert data["requests"][0]["body"] == '{"Status":"open"}'
        assert data["count_request"] is None

    def test_unknown_dialect(self, client):
        response = client.post("/compile", json={"dialect": "soap", "entity": ENTITY}, headers=HEADERS)
        assert response.status_code == 400
        assert "Unknown dialect" in response.json()["detail"]

    def test_xor_in_odata(self, client):
        payload = {
            "dialect": "odata2",
            "entity": ENTITY,
            "filters": {"operator": "XOR", "conditions": [
                {"attribute": "Status", "value": "open"},
                {"attribute": "OrderID", "value": 1},
            ]},
        }
        response = client.post("/compile", json=payload, headers=HEADERS)
        assert response.status_code == 400
        assert "XOR" in response.json()["detail"]

    def test_unknown_attribute(self, client):
        payload = {"entity": ENTITY, "filters": {"conditions": [{"attribute": "Nope", "value": 1}]}}
        assert client.post("/compile", json=payload, headers=HEADERS).status_code == 400


class TestExtract:
    """POST /extract"""

    def test_json_body(self, client, sample_odata_response):
        payload = {"dialect": "odata2", "entity": ENTITY, "body": sample_odata_response}
        data = client.post("/extract", json=payload, headers=HEADERS).json()
        assert data["count"] == 2
        assert data["total_count"] == 5
        assert data["rows"][0] == {"OrderID": 1, "Status": "open"}

    def test_xml_text(self, client):
        entity = {"alias": "Order", "data_address": "orders", "attributes": [
            {"alias": "id", "data_address": "@id"}, {"alias": "status"},
        ]}
        text = '<orders><order id="1"><status>open</status></order><order id="2"><status>held</status></order></orders>'
        data = client.post("/extract", json={"dialect": "xml", "entity": entity, "text": text}, headers=HEADERS).json()
        assert data["rows"] == [{"id": "1", "status": "open"}, {"id": "2", "status": "held"}]
        assert data["total_count"] is None


class TestRead:
    """POST /read with a mocked backend."""

    def test_read(self, client, config):
        service = Mock()
        service.read.return_value = ReadResult(rows=[{"OrderID": 1, "Status": "open"}], total_count=9, has_more_rows=True)
        config._connection = Mock()
        config._connection.service.return_value = service

        data = client.post("/read", json={"dialect": "odata2", "entity": ENTITY}, headers=HEADERS).json()
        assert data == {"count": 1, "total_count": 9, "has_more_rows": True, "rows": [{"OrderID": 1, "Status": "open"}]}
        config._connection.service.assert_called_once_with("odata2")
        assert service.read.call_args[0][0].limit == 50

    def test_upstream_error(self, client, config):
        config._connection = Mock()
        config._connection.service.return_value.read.side_effect = UpstreamError(404, "Not found", "https://x/Orders")
        response = client.post("/read", json={"entity": ENTITY}, headers=HEADERS)
        assert response.status_code == 502
        detail = response.json()["detail"]
        assert detail["upstream_status"] == 404
        assert detail["url"] == "https://x/Orders"


class TestEntryPoint:
    """python -m urlquery.api"""

    def test_defaults(self, monkeypatch):
        from urlquery.api.__main__ import DEFAULT_HOST, DEFAULT_PORT, parse_args

        for name in ("URLQUERY_HOST", "URLQUERY_PORT", "URLQUERY_RELOAD", "URLQUERY_LOG_LEVEL"):
            monkeypatch.delenv(name, raising=False)
        args = parse_args([])
        assert (args.host, args.port, args.reload, args.max_limit) == (DEFAULT_HOST, DEFAULT_PORT, False, None)

    def test_flags_win_over_environment(self, monkeypatch):
        from urlquery.api.__main__ import main

        monkeypatch.setenv("URLQUERY_PORT", "9000")
        monkeypatch.setenv("URLQUERY_MAX_LIMIT", "500")
        with patch("urlquery.api.__main__.uvicorn.run") as run:
            main(["--port", "9100", "--max-limit", "25"])
        kwargs = run.call_args.kwargs
        assert run.call_args[0][0] == "urlquery.api:app"
        assert kwargs["port"] == 9100
        assert GatewayConfig(api_key="k").max_limit == 25
