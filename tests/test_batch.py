"""
Tests for OData $batch requests and responses.
"""

import pytest

from urlquery.core.errors import BatchResponseNotParsedError, ChangesetFailedError, QueryBuilderError
from urlquery.core.models import Query
from urlquery.core.request import DataRequest
from urlquery.dialects import get_builder
from urlquery.odata.batch import BatchRequestBuilder, parse_batch_response, raise_for_changeset

BASE_URL = "https://test.example.com/sap/opu/odata/sap/API_ORDER_SRV/"


SAMPLE_RESPONSE = "\r\n".join([
    "--batch_resp",
    "Content-Type: multipart/mixed; boundary=changeset_resp",
    "",
    "--changeset_resp",
    "Content-Type: application/http",
    "Content-Transfer-Encoding: binary",
    "",
    "HTTP/1.1 201 Created",
    "Content-Type: application/json",
    "",
    '{"d":{"OrderID":1}}',
    "--changeset_resp",
    "Content-Type: application/http",
    "Content-Transfer-Encoding: binary",
    "",
    "HTTP/1.1 204 No Content",
    "",
    "",
    "--changeset_resp--",
    "",
    "--batch_resp--",
    "",
])


def _response(*statuses):
    parts = []
    for status in statuses:
        parts += [
            "--changeset_x",
            "Content-Type: application/http",
            "",
            f"HTTP/1.1 {status}",
            "Content-Type: application/json",
            "",
            '{"error":{"message":{"value":"bad"}}}' if status.startswith("4") else "",
        ]
    return "\n".join(
        ["--batch_x", "Content-Type: multipart/mixed; boundary=changeset_x", ""]
        + parts
        + ["--changeset_x--", "--batch_x--"]
    )


class TestBatchRequest:
    """Rendering writes as one changeset."""

    @pytest.fixture
    def creates(self, orders_entity):
        query = Query(orders_entity).add_row(Status="a").add_row(Status="b").add_row(Status="c")
        return get_builder("odata2").build_create(query)

    def test_three_writes_in_one_changeset(self, creates):
        batch = BatchRequestBuilder(BASE_URL).build(creates)
        body = batch.body

        assert batch.method == "POST"
        assert batch.uri == "$batch"
        assert batch.headers["Content-Type"].startswith("multipart/mixed; boundary=batch_")
        assert body.count("Content-Type: multipart/mixed; boundary=changeset_") == 1
        assert body.count("Content-Type: application/http") == 3

        lines = [line for line in body.split("\r\n") if line.startswith("POST ")]
        assert lines == ["POST /sap/opu/odata/sap/API_ORDER_SRV/Orders HTTP/1.1"] * 3
        positions = [body.index(f'"Status":"{s}"') for s in "abc"]
        assert positions == sorted(positions)

    def test_batch_boundary_wraps_the_body(self, creates):
        batch = BatchRequestBuilder(BASE_URL).build(creates)
        boundary = batch.headers["Content-Type"].split("boundary=")[1]
        assert batch.body.startswith(f"--{boundary}\r\n")
        assert f"--{boundary}--" in batch.body

    def test_part_headers(self, creates):
        body = BatchRequestBuilder(BASE_URL).build(creates).body
        assert "Host: test.example.com" in body
        assert "Content-ID: 3" in body
        assert "Content-Length: 14" in body

    def test_reads_and_empty_batches_are_rejected(self):
        batch = BatchRequestBuilder(BASE_URL)
        with pytest.raises(QueryBuilderError):
            batch.build([DataRequest("GET", "Orders")])
        with pytest.raises(QueryBuilderError):
            batch.build([])


class TestBatchResponse:
    """Splitting $batch responses."""

    def test_nested_changeset(self):
        parts = parse_batch_response(SAMPLE_RESPONSE, "multipart/mixed; boundary=batch_resp")
        assert [p.status for p in parts] == [201, 204]
        assert parts[0].json() == {"d": {"OrderID": 1}}
        assert parts[0].headers["content-type"] == "application/json"
        assert parts[1].json() is None
        raise_for_changeset(parts)

    def test_quoted_boundary(self):
        parts = parse_batch_response(_response("201 Created"), 'multipart/mixed; boundary="batch_x"')
        assert len(parts) == 1

    def test_failed_part_raises(self):
        parts = parse_batch_response(_response("201 Created", "400 Bad Request"), "multipart/mixed; boundary=batch_x")
        with pytest.raises(ChangesetFailedError) as e:
            raise_for_changeset(parts)
        assert e.value.status == 400
        assert "bad" in e.value.body

    def test_not_multipart(self):
        with pytest.raises(BatchResponseNotParsedError):
            parse_batch_response('{"d": {}}', "application/json")

    def test_empty_multipart(self):
        with pytest.raises(BatchResponseNotParsedError, match="no sub-responses"):
            parse_batch_response("", "multipart/mixed; boundary=batch_x")

    def test_garbage_status_line(self):
        text = "--batch_x\nContent-Type: application/http\n\nnot a status line\n--batch_x--"
        with pytest.raises(BatchResponseNotParsedError, match="Unexpected batch part"):
            parse_batch_response(text, "multipart/mixed; boundary=batch_x")
