"""
Identifier validation for collections, documents and payload fields.

Collection names become table identifiers, which bound parameters cannot
protect, so every statement builder must go through sanitize_collection_name.
"""

import re
from typing import Any
from uuid import UUID

from ..core.errors import InvalidCollectionName, InvalidDocumentId, InvalidQueryCondition

MAX_IDENTIFIER_LENGTH = 64

_IDENTIFIER_PATTERN = re.compile(r"^[A-Za-z0-9_-]+$")


# PUBLIC_INTERFACE
def validate_collection_name(name: Any) -> bool:
    """Return True if ``name`` is safe to use as a table identifier."""
    return (
        isinstance(name, str)
        and len(name) <= MAX_IDENTIFIER_LENGTH
        and _IDENTIFIER_PATTERN.fullmatch(name) is not None
    )


# PUBLIC_INTERFACE
def sanitize_collection_name(name: Any) -> str:
    """Return ``name`` unchanged if valid, else raise InvalidCollectionName."""
    if not validate_collection_name(name):
        raise InvalidCollectionName(name)
    return name


# PUBLIC_INTERFACE
def normalize_document_id(value: Any) -> str:
    """Return the string form of a document id.

    Strings, integers and UUIDs are accepted; None, booleans and blank strings
    raise InvalidDocumentId.
    """
    if isinstance(value, bool) or value is None:
        raise InvalidDocumentId(f"Invalid document id: {value!r}")
    if isinstance(value, (str, int, UUID)):
        document_id = str(value)
        if document_id.strip():
            return document_id
    raise InvalidDocumentId(f"Invalid document id: {value!r}")


# PUBLIC_INTERFACE
def validate_field_name(field: Any) -> str:
    """Return ``field`` if it can be embedded in a JSON path, else raise InvalidQueryCondition."""
    if (
        not isinstance(field, str)
        or len(field) > MAX_IDENTIFIER_LENGTH
        or _IDENTIFIER_PATTERN.fullmatch(field) is None
    ):
        raise InvalidQueryCondition(f"Invalid field name: {field!r}")
    return field


def quote_identifier(name: str) -> str:
    """Quote an already-sanitized identifier for use in DDL/DML."""
    return f'"{sanitize_collection_name(name)}"'


def json_path(field: str) -> str:
    """SQL expression extracting a top-level payload field."""
    return f"json_extract(data, '$.\"{validate_field_name(field)}\"')"
