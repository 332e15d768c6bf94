"""
Enhanced JSON serialization

Encodes event argument lists as JSON text while keeping values that plain JSON
loses: bytes, NaN and infinities, datetimes and absent values. Such values are
written as strings tagged with a leading ``:``; ordinary strings that already
start with ``:`` are escaped with a second one.
"""

import base64
import json
import math
from datetime import datetime
from typing import Any

TAG = ":"
_BASE64_TAG = ":base64:"
_DATE_TAG = ":date:"
_NAN = ":NaN"
_POSITIVE_INFINITY = ":Infinity"
_NEGATIVE_INFINITY = ":-Infinity"
_UNDEFINED = ":undefined"


class _Undefined:
    """Marker for a value that is absent, as opposed to ``None``"""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self):
        return False

    def __repr__(self):
        return "UNDEFINED"

    def __reduce__(self):
        return (_Undefined, ())


UNDEFINED = _Undefined()


def _encode(value: Any) -> Any:
    if isinstance(value, str):
        return TAG + value if value.startswith(TAG) else value
    # bool is an int subclass and must pass through untouched
    if value is None or isinstance(value, (bool, int)):
        return value
    if isinstance(value, float):
        if math.isnan(value):
            return _NAN
        if math.isinf(value):
            return _POSITIVE_INFINITY if value > 0 else _NEGATIVE_INFINITY
        return value
    if value is UNDEFINED:
        return _UNDEFINED
    if isinstance(value, (bytes, bytearray)):
        return _BASE64_TAG + base64.b64encode(bytes(value)).decode("ascii")
    if isinstance(value, datetime):
        return _DATE_TAG + value.isoformat()
    if isinstance(value, dict):
        return {key: _encode(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_encode(item) for item in value]
    raise TypeError(f"Object of type {type(value).__name__} is not serializable")


def _decode(value: Any) -> Any:
    if isinstance(value, str):
        if not value.startswith(TAG):
            return value
        if value.startswith(TAG + TAG):
            return value[1:]
        if value.startswith(_BASE64_TAG):
            return base64.b64decode(value[len(_BASE64_TAG):])
        if value.startswith(_DATE_TAG):
            return datetime.fromisoformat(value[len(_DATE_TAG):])
        if value == _NAN:
            return math.nan
        if value == _POSITIVE_INFINITY:
            return math.inf
        if value == _NEGATIVE_INFINITY:
            return -math.inf
        if value == _UNDEFINED:
            return UNDEFINED
        # Unknown tag, keep the text as written
        return value
    if isinstance(value, dict):
        return {key: _decode(item) for key, item in value.items()}
    if isinstance(value, list):
        return [_decode(item) for item in value]
    return value


def dumps(value: Any) -> str:
    """Serialize a value to enhanced JSON text

    Args:
        value: Value built from dicts, lists, tuples, strings, numbers, booleans,
            None, bytes, datetimes and UNDEFINED

    Returns:
        str: Compact JSON text

    Raises:
        TypeError: The value contains an object that cannot be serialized
    """
    return json.dumps(_encode(value), separators=(",", ":"), ensure_ascii=False, allow_nan=False)


def loads(text: str) -> Any:
    """Deserialize enhanced JSON text

    Args:
        text: JSON text, tagged or plain

    Returns:
        The decoded value

    Raises:
        ValueError: The text is not valid JSON or holds a malformed tagged value
    """
    return _decode(json.loads(text))
