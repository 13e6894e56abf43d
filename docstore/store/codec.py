"""
Document <-> payload serialization.

A document is stored as one JSON object in the ``data`` column. Nested
mappings and lists are embedded in that object as JSON *strings*, and decoding
only reconstitutes top-level fields:

    >>> decode(encode({"party": {"name": "A"}}))
    {'party': {'name': 'A'}}
    >>> decode(encode({"party": {"contact": {"email": "a@b"}}}))
    {'party': {'contact': '{"email":"a@b"}'}}

Filtering with json_extract therefore only sees top-level values.
"""

from datetime import date, datetime, time
from typing import Any, Dict, List, Mapping

import orjson


class _Missing:
    """Marker for "no value supplied", as opposed to an explicit None."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING: Any = _Missing()

_DATE_TYPES = (datetime, date, time)


def _to_json_text(value: Any) -> str:
    return orjson.dumps(value).decode("utf-8")


def _clean_list(items: List[Any]) -> List[Any]:
    # Absent list slots keep their position as null.
    return [None if item is MISSING else _clean_value(item) for item in items]


def _clean_value(value: Any) -> Any:
    if isinstance(value, _DATE_TYPES):
        return value.isoformat()
    if isinstance(value, Mapping):
        return _clean_mapping(value)
    if isinstance(value, (list, tuple)):
        return _clean_list(list(value))
    return value


def _clean_mapping(obj: Mapping[str, Any]) -> Dict[str, Any]:
    cleaned: Dict[str, Any] = {}
    for key, value in obj.items():
        if value is MISSING:
            continue
        if isinstance(value, Mapping):
            cleaned[key] = _to_json_text(_clean_mapping(value))
        elif isinstance(value, (list, tuple)):
            cleaned[key] = _to_json_text(_clean_list(list(value)))
        elif isinstance(value, _DATE_TYPES):
            cleaned[key] = value.isoformat()
        else:
            cleaned[key] = value
    return cleaned


# PUBLIC_INTERFACE
def encode(document: Mapping[str, Any]) -> Dict[str, Any]:
    """Return the flat storage payload for ``document``.

    MISSING fields are dropped, dates become ISO-8601 strings, and mapping or
    list fields are cleaned recursively and then serialized to a JSON string.
    """
    if not isinstance(document, Mapping):
        raise TypeError(f"Document must be a mapping, got {type(document).__name__}")
    return _clean_mapping(document)


def _looks_structured(value: str) -> bool:
    return (value.startswith("{") and value.endswith("}")) or (
        value.startswith("[") and value.endswith("]")
    )


# PUBLIC_INTERFACE
def decode(payload: Mapping[str, Any]) -> Dict[str, Any]:
    """Reconstitute bracket-delimited top-level string fields of ``payload``."""
    decoded: Dict[str, Any] = {}
    for key, value in payload.items():
        if isinstance(value, str) and _looks_structured(value):
            try:
                decoded[key] = orjson.loads(value)
            except orjson.JSONDecodeError:
                decoded[key] = value
        else:
            decoded[key] = value
    return decoded


# PUBLIC_INTERFACE
def dumps(payload: Mapping[str, Any]) -> str:
    """Serialize an encoded payload for the ``data`` column."""
    return _to_json_text(dict(payload))


# PUBLIC_INTERFACE
def loads(text: str) -> Dict[str, Any]:
    """Parse a ``data`` column value and decode it."""
    return decode(orjson.loads(text))


def bind_value(value: Any) -> Any:
    """Convert a filter value to what the payload would hold for it."""
    if isinstance(value, _DATE_TYPES):
        return value.isoformat()
    if isinstance(value, Mapping):
        return _to_json_text(_clean_mapping(value))
    if isinstance(value, (list, tuple)):
        return _to_json_text(_clean_list(list(value)))
    return value
