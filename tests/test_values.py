"""
Tests for value codecs (urlquery.odata.values, urlquery.query.values).
"""

import pytest

from urlquery.core.errors import ValueCastError
from urlquery.core.models import DataType
from urlquery.odata.values import (
    OData4ValueCodec,
    ODataValueCodec,
    decode_time,
    encode_time,
    escape_odata_literal,
)
from urlquery.query.values import PlainValueCodec


ROUND_TRIP_CASES = [
    ("3f2504e0-4f89-11d3-9a0c-0305e82c3301", DataType.STRING, "Edm.Guid"),
    (9007199254740993, DataType.INTEGER, "Edm.Int64"),
    ("2024-05-01T10:00:00+02:00", DataType.TIMESTAMP, "Edm.DateTimeOffset"),
    ("10:30:15", DataType.TIME, "Edm.Time"),
    (True, DataType.BOOLEAN, "Edm.Boolean"),
    (False, DataType.BOOLEAN, None),
    (2.5, DataType.NUMBER, "Edm.Double"),
    ("O'Brien & Sons", DataType.STRING, None),
    ("", DataType.STRING, "Edm.String"),
]


class TestEscaping:
    """Tests for OData string escaping."""

    def test_quotes_are_doubled(self):
        assert escape_odata_literal("O'Brien") == "O''Brien"

    def test_time_conversion(self):
        assert encode_time("10:30:15") == "PT10H30M15S"
        assert encode_time("10:30") == "PT10H30M"
        assert decode_time("PT10H30M15S") == "10:30:15"
        assert decode_time("PT5M") == "00:05"
        assert decode_time("nope") is None


class TestODataValueCodec:
    """OData v2 URI literals and body values."""

    @pytest.mark.parametrize("value,data_type,hint", ROUND_TRIP_CASES)
    def test_round_trip(self, value, data_type, hint):
        codec = ODataValueCodec()
        assert codec.decode(codec.encode(value, data_type, hint), data_type, hint) == value

    def test_uri_literals(self):
        codec = ODataValueCodec()
        assert codec.encode("42", DataType.INTEGER, "Edm.Int64") == "42L"
        assert codec.encode("abc", DataType.STRING, "Edm.Guid") == "guid'abc'"
        assert codec.encode("2024-05-01 10:00:00", DataType.TIMESTAMP) == "datetime'2024-05-01T10:00:00'"
        assert codec.encode("1.5", DataType.NUMBER, "Edm.Single") == "1.5f"
        assert codec.encode("1", DataType.BOOLEAN) == "true"
        assert codec.encode("open", DataType.STRING) == "'open'"
        assert codec.encode(None, DataType.STRING) == "null"

    def test_numbers_without_hint_are_bare(self):
        codec = ODataValueCodec()
        assert codec.encode(10, DataType.NUMBER) == "10"
        assert codec.encode("abc", DataType.NUMBER) == "'abc'"

    def test_cast_failure_raises(self):
        with pytest.raises(ValueCastError, match="Int64"):
            ODataValueCodec().encode("abc", DataType.INTEGER, "Edm.Int64")

    def test_decode_datetime(self):
        codec = ODataValueCodec()
        assert codec.decode("datetime'2024-05-01T10:00:00'", DataType.TIMESTAMP) == "2024-05-01 10:00:00"

    def test_body_values(self):
        codec = ODataValueCodec()
        assert codec.encode_for_body("2024-05-01 10:00:00", DataType.TIMESTAMP) == "/Date(1714557600000)/"
        assert codec.encode_for_body(42, DataType.INTEGER, "Edm.Int64") == "42"
        assert codec.encode_for_body("0xCAFE", DataType.BINARY) == "yv4="
        assert codec.encode_for_body("yes", DataType.BOOLEAN) is True
        assert codec.encode_for_body("open", DataType.STRING) == "open"

    def test_decode_from_body(self):
        codec = ODataValueCodec()
        assert codec.decode_from_body("/Date(1714557600000)/", DataType.TIMESTAMP) == "2024-05-01 10:00:00"
        assert codec.decode_from_body("PT08H15M", DataType.TIME) == "08:15"
        assert codec.decode_from_body({"__deferred": {"uri": "https://x/Orders(1)/Items"}}, DataType.STRING) == \
            "https://x/Orders(1)/Items"
        assert codec.decode_from_body(7, DataType.INTEGER) == 7


class TestOData4ValueCodec:
    """OData v4 literals are bare for GUIDs, numbers and dates."""

    @pytest.mark.parametrize("value,data_type,hint", ROUND_TRIP_CASES)
    def test_round_trip(self, value, data_type, hint):
        codec = OData4ValueCodec()
        assert codec.decode(codec.encode(value, data_type, hint), data_type, hint) == value

    def test_uri_literals(self):
        codec = OData4ValueCodec()
        assert codec.encode("abc", DataType.STRING, "Edm.Guid") == "abc"
        assert codec.encode("42", DataType.INTEGER, "Edm.Int64") == "42"
        assert codec.encode("2024-05-01 10:00:00", DataType.TIMESTAMP) == "2024-05-01T10:00:00Z"
        assert codec.encode("10:30", DataType.TIME) == "10:30:00"
        assert codec.encode("open", DataType.STRING) == "'open'"

    def test_body_numbers(self):
        codec = OData4ValueCodec()
        assert codec.encode_for_body("42", DataType.INTEGER, "Edm.Int64") == 42
        assert codec.encode_for_body("1.5", DataType.NUMBER, "Edm.Double") == 1.5


class TestPlainValueCodec:
    """Generic REST values travel as plain strings."""

    def test_encode(self):
        codec = PlainValueCodec()
        assert codec.encode(True, DataType.BOOLEAN) == "true"
        assert codec.encode(5, DataType.INTEGER) == "5"
        assert codec.encode(None, DataType.STRING) == ""

    def test_decode(self):
        codec = PlainValueCodec()
        assert codec.decode("false", DataType.BOOLEAN) is False
        assert codec.decode("5", DataType.INTEGER) == "5"
