"""
urlquery.odata.values - OData literal encoding
==============================================

Two switch tables, one for URI literals and one for JSON bodies, keyed
first on the remote EDM type hint (``Edm.Guid``, ``Edm.Int64`` ...) and
then on the declared attribute type.

============== ============================= =============================
hint           URI literal                   JSON body
============== ============================= =============================
Guid           ``guid'<v>'``                 raw string
Int64          ``<n>L``                      stringified number
Byte, Decimal  ``<n>``                       stringified number
DateTimeOffset ``datetimeoffset'<v>'``       URI form
DateTime       ``datetime'<Y-m-dTH:i:s>'``   ``/Date(<ms>)/``
Time           ``PT<h>H<m>M<s>S``            URI form
Binary         ``binary'<v>'``               base64
Boolean        ``true`` / ``false``          bool
Single, Double ``<n>f`` / ``<n>d``           URI form
String         ``'<escaped>'``               raw value
============== ============================= =============================

Without a hint, numeric-looking values are emitted bare and everything
else as a quoted string.
"""

from __future__ import annotations

import base64
import binascii
import calendar
import re
from datetime import date, datetime, time as dt_time, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Optional

from urlquery.core.errors import ValueCastError
from urlquery.core.models import DataType


def escape_odata_literal(value: str) -> str:
    """
    Escape a string value for use in OData $filter expressions.

    Parameters
    ----------
    value : str
        The value to escape

    Returns
    -------
    str
        Escaped value safe for OData filters

    Examples
    --------
    >>> escape_odata_literal("O'Brien")
    "O''Brien"
    """
    return value.replace("'", "''")


def unescape_odata_literal(value: str) -> str:
    return value.replace("''", "'")


_NUMERIC_RE = re.compile(r"^[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?$")
_TIME_RE = re.compile(r"^PT(?:(\d+)H)?(?:(\d+)M)?(?:(\d+)(?:\.\d+)?S)?$")
_DATE_MS_RE = re.compile(r"^/Date\((-?\d+)(?:[+-]\d{4})?\)/$")
_PREFIXED_RE = re.compile(r"^(guid|datetime|datetimeoffset|binary|X|time|duration)'(.*)'$", re.DOTALL)

_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def normalize_edm_type(remote_type: Optional[str]) -> str:
    """``Edm.Int64`` -> ``Int64``; empty when no hint is set."""
    if not remote_type:
        return ""
    t = remote_type.strip()
    if t.lower().startswith("edm."):
        t = t[4:]
    return t


def is_numeric(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, (int, float, Decimal)):
        return True
    return isinstance(value, str) and bool(_NUMERIC_RE.match(value.strip()))


def _cast(fn: Callable[[Any], Any], value: Any, type_name: str) -> Any:
    try:
        return fn(value)
    except (ValueError, TypeError, InvalidOperation, binascii.Error) as e:
        raise ValueCastError(f"Cannot cast {value!r} to {type_name}: {e}") from e


def to_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return bool(value)
    text = str(value).strip().lower()
    if text in ("1", "true", "yes", "y", "x"):
        return True
    if text in ("0", "false", "no", "n", ""):
        return False
    raise ValueError(f"not a boolean: {value!r}")


def to_int(value: Any) -> int:
    if isinstance(value, bool):
        raise ValueError(f"not an integer: {value!r}")
    if isinstance(value, float) and not value.is_integer():
        raise ValueError(f"not an integer: {value!r}")
    return int(str(value).strip()) if not isinstance(value, (int, float)) else int(value)


def to_datetime(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    text = str(value).strip()
    if text.endswith("Z"):
        text = text[:-1]
    return datetime.fromisoformat(text)


def _number_text(value: Any) -> str:
    if isinstance(value, float):
        return repr(value)
    if isinstance(value, Decimal):
        return str(value)
    return str(Decimal(str(value).strip()))


def _time_parts(value: Any) -> tuple:
    if isinstance(value, dt_time):
        return value.hour, value.minute, value.second
    parts = str(value).strip().split(":")
    if len(parts) not in (2, 3):
        raise ValueError(f"not a time of day: {value!r}")
    h, m = int(parts[0]), int(parts[1])
    s = int(float(parts[2])) if len(parts) == 3 else None
    return h, m, s


def encode_time(value: Any) -> str:
    """``10:30:15`` -> ``PT10H30M15S``, ``10:30`` -> ``PT10H30M``."""
    if isinstance(value, str) and value.startswith("PT"):
        return value
    h, m, s = _time_parts(value)
    out = f"PT{h:02d}H{m:02d}M"
    if s is not None:
        out += f"{s:02d}S"
    return out


def decode_time(value: str) -> Optional[str]:
    """
    ``PT10H30M15S`` -> ``10:30:15``. Missing hours or minutes default to ``00``,
    seconds are omitted when absent. Returns None for non-duration input.
    """
    match = _TIME_RE.match(value.strip())
    if not match or value.strip() == "PT":
        return None
    hours, minutes, seconds = match.groups()
    out = f"{int(hours or 0):02d}:{int(minutes or 0):02d}"
    if seconds is not None:
        out += f":{int(seconds):02d}"
    return out


def decode_date_ms(value: str) -> Optional[str]:
    """``/Date(1714557600000)/`` -> ``2024-05-01 10:00:00`` (UTC)."""
    match = _DATE_MS_RE.match(value.strip())
    if not match:
        return None
    ms = int(match.group(1))
    return datetime.fromtimestamp(ms / 1000.0, tz=timezone.utc).strftime(_DATE_FORMAT)


def encode_date_ms(value: Any) -> str:
    dt = to_datetime(value)
    if dt.tzinfo is not None:
        seconds = int(dt.timestamp())
    else:
        seconds = calendar.timegm(dt.timetuple())
    return f"/Date({seconds}000)/"


def _binary_bytes(value: Any) -> bytes:
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    text = str(value).strip()
    if text.lower().startswith("0x"):
        text = text[2:]
    return bytes.fromhex(text)


def find_deferred_uri(value: Any) -> Optional[str]:
    """URI of an OData v2 ``{"__deferred": {"uri": ...}}`` navigation stub."""
    if isinstance(value, dict):
        deferred = value.get("__deferred")
        if isinstance(deferred, dict):
            return deferred.get("uri")
    return None


class ODataValueCodec:
    """
    Value codec for OData v2 and the OData-JSON hybrid dialect.

    Examples
    --------
    >>> codec = ODataValueCodec()
    >>> codec.encode("42", DataType.INTEGER, "Edm.Int64")
    '42L'
    >>> codec.encode("O'Brien", DataType.STRING)
    "'O''Brien'"
    """

    # ---------------- hints ----------------

    def hint(self, data_type: DataType, remote_type: Optional[str] = None) -> str:
        t = normalize_edm_type(remote_type)
        if t:
            return t
        if data_type in (DataType.DATE, DataType.TIMESTAMP):
            return "DateTime"
        if data_type == DataType.TIME:
            return "Time"
        if data_type == DataType.BOOLEAN:
            return "Boolean"
        if data_type == DataType.BINARY:
            return "Binary"
        if data_type.is_textual:
            return "String"
        return ""

    # ---------------- URI literals ----------------

    def encode(self, value: Any, data_type: DataType, remote_type: Optional[str] = None) -> str:
        """
        URI literal of ``value``.

        Raises
        ------
        ValueCastError
            If the value cannot be cast to the hinted type
        """
        if value is None:
            return "null"
        t = self.hint(data_type, remote_type)

        if t == "Guid":
            return f"guid'{value}'"
        if t == "Int64":
            return f"{_cast(to_int, value, t)}L"
        if t in ("Byte", "SByte", "Int16", "Int32"):
            return str(_cast(to_int, value, t))
        if t == "Decimal":
            return _cast(_number_text, value, t)
        if t == "DateTimeOffset":
            return f"datetimeoffset'{self._datetimeoffset_text(value)}'"
        if t == "DateTime":
            dt = _cast(to_datetime, value, t)
            return f"datetime'{dt.strftime('%Y-%m-%dT%H:%M:%S')}'"
        if t == "Time":
            return _cast(encode_time, value, t)
        if t == "Binary":
            return f"binary'{value}'"
        if t == "Boolean":
            return "true" if _cast(to_bool, value, t) else "false"
        if t == "Single":
            return _cast(_number_text, value, t) + "f"
        if t == "Double":
            return _cast(_number_text, value, t) + "d"
        if t == "String":
            return f"'{escape_odata_literal(str(value))}'"

        if is_numeric(value):
            return str(value).strip()
        return f"'{escape_odata_literal(str(value))}'"

    def _datetimeoffset_text(self, value: Any) -> str:
        if isinstance(value, datetime):
            return value.isoformat()
        return str(value)

    def decode(self, literal: str, data_type: DataType, remote_type: Optional[str] = None) -> Any:
        """
        Inverse of ``encode``: internal value of a URI literal.

        Examples
        --------
        >>> ODataValueCodec().decode("datetime'2024-05-01T10:00:00'", DataType.TIMESTAMP)
        '2024-05-01 10:00:00'
        """
        if literal == "null":
            return None
        t = self.hint(data_type, remote_type)
        text = literal.strip()

        match = _PREFIXED_RE.match(text)
        if match:
            text = match.group(2)
        elif len(text) >= 2 and text[0] == "'" and text[-1] == "'":
            return unescape_odata_literal(text[1:-1])

        if t == "Int64":
            return _cast(int, text[:-1] if text[-1:] in ("L", "l") else text, t)
        if t in ("Byte", "SByte", "Int16", "Int32"):
            return _cast(int, text, t)
        if t == "Decimal":
            return text[:-1] if text[-1:] in ("M", "m") else text
        if t in ("Single", "Double"):
            return _cast(float, text[:-1] if text[-1:] in ("f", "F", "d", "D") else text, t)
        if t == "Boolean":
            return text.lower() == "true"
        if t == "DateTime":
            return _cast(to_datetime, text, t).strftime(_DATE_FORMAT)
        if t == "Time":
            return decode_time(text) or text
        if not t and is_numeric(text):
            return int(text) if text.lstrip("+-").isdigit() else float(text)
        return text

    # ---------------- JSON bodies ----------------

    def encode_for_body(self, value: Any, data_type: DataType, remote_type: Optional[str] = None) -> Any:
        """
        JSON body value of ``value``.

        Examples
        --------
        >>> ODataValueCodec().encode_for_body("2024-05-01 10:00:00", DataType.TIMESTAMP)
        '/Date(1714557600000)/'
        """
        if value is None:
            return None
        t = self.hint(data_type, remote_type)

        if t == "Guid":
            return str(value)
        if t in ("Int64", "Byte", "SByte", "Int16", "Int32"):
            return str(_cast(to_int, value, t))
        if t == "Decimal":
            return _cast(_number_text, value, t)
        if t in ("DateTimeOffset", "Time", "Single", "Double"):
            return self.encode(value, data_type, remote_type)
        if t == "DateTime":
            return _cast(encode_date_ms, value, t)
        if t == "Binary":
            return base64.b64encode(_cast(_binary_bytes, value, t)).decode("ascii")
        if t == "Boolean":
            return _cast(to_bool, value, t)
        return value

    def decode_from_body(self, value: Any, data_type: DataType, remote_type: Optional[str] = None) -> Any:
        """Normalize ``/Date(ms)/`` and ``PT..`` values, resolve deferred navigation stubs."""
        if isinstance(value, str):
            text = decode_date_ms(value)
            if text is not None:
                return text
            if value.startswith("PT"):
                text = decode_time(value)
                if text is not None:
                    return text
            return value
        uri = find_deferred_uri(value)
        if uri is not None:
            return uri
        return value


class OData4ValueCodec(ODataValueCodec):
    """
    OData v4 variant: GUIDs, dates and numbers are bare in URI literals and
    dates are ISO 8601 strings in bodies. ``decode`` accepts both forms.
    """

    def hint(self, data_type: DataType, remote_type: Optional[str] = None) -> str:
        t = super().hint(data_type, remote_type)
        return "DateTimeOffset" if t == "DateTime" else t

    def encode(self, value: Any, data_type: DataType, remote_type: Optional[str] = None) -> str:
        if value is None:
            return "null"
        t = self.hint(data_type, remote_type)
        if t == "Guid":
            return str(value)
        if t == "Int64":
            return str(_cast(to_int, value, t))
        if t in ("Single", "Double"):
            return _cast(_number_text, value, t)
        if t == "DateTimeOffset":
            return self._datetimeoffset_text(value)
        if t == "Time":
            h, m, s = _cast(_time_parts, value, "TimeOfDay")
            return f"{h:02d}:{m:02d}:{(s or 0):02d}"
        return super().encode(value, data_type, remote_type)

    def _datetimeoffset_text(self, value: Any) -> str:
        if isinstance(value, datetime):
            return value.isoformat() if value.tzinfo else value.strftime("%Y-%m-%dT%H:%M:%SZ")
        text = str(value).strip()
        if " " in text and "T" not in text:
            text = text.replace(" ", "T") + "Z"
        return text

    def decode(self, literal: str, data_type: DataType, remote_type: Optional[str] = None) -> Any:
        t = self.hint(data_type, remote_type)
        if t == "Time" and re.match(r"^\d{2}:\d{2}(:\d{2})?$", literal.strip()):
            return literal.strip()
        return super().decode(literal, data_type, remote_type)

    def encode_for_body(self, value: Any, data_type: DataType, remote_type: Optional[str] = None) -> Any:
        if value is None:
            return None
        t = self.hint(data_type, remote_type)
        if t == "Int64":
            return _cast(to_int, value, t)
        if t in ("Single", "Double"):
            return _cast(float, value, t)
        return super().encode_for_body(value, data_type, remote_type)
