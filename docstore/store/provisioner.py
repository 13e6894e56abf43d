"""
Lazy table provisioning.

Collections are never declared ahead of time: the first operation on a name
creates its table. Every statement is IF NOT EXISTS, so calling these
repeatedly is harmless.
"""

import hashlib
from typing import Iterable, List

from sqlalchemy import text
from sqlalchemy.engine import Connection

from ..core.errors import InvalidQueryCondition
from ..core.logger import get_logger
from .naming import (
    json_path,
    quote_identifier,
    sanitize_collection_name,
    validate_collection_name,
    validate_field_name,
)

logger = get_logger(__name__)

NOW_SQL = "strftime('%Y-%m-%dT%H:%M:%fZ', 'now')"


# PUBLIC_INTERFACE
def ensure_collection(conn: Connection, name: str) -> str:
    """Create the backing table and its timestamp indexes if absent; return the sanitized name."""
    name = sanitize_collection_name(name)
    table = quote_identifier(name)
    conn.execute(
        text(
            f"""
            CREATE TABLE IF NOT EXISTS {table} (
                id TEXT PRIMARY KEY,
                data TEXT NOT NULL,
                created_at TEXT NOT NULL DEFAULT ({NOW_SQL}),
                updated_at TEXT NOT NULL DEFAULT ({NOW_SQL})
            )
            """
        )
    )
    conn.execute(
        text(f'CREATE INDEX IF NOT EXISTS "idx_{name}_created_at" ON {table}(created_at)')
    )
    conn.execute(
        text(f'CREATE INDEX IF NOT EXISTS "idx_{name}_updated_at" ON {table}(updated_at)')
    )
    return name


def field_index_name(name: str, columns: List[str]) -> str:
    """Index name for ``columns`` on ``name``; the digest makes it unique per (collection, fields)."""
    digest = hashlib.sha1("\x00".join([name, *columns]).encode("utf-8")).hexdigest()[:8]
    return f"idx_{name}_{'_'.join(columns)}_{digest}"


# PUBLIC_INTERFACE
def ensure_field_index(conn: Connection, name: str, fields: Iterable[str]) -> str:
    """Create an expression index over one or more top-level payload fields.

    Returns the index name. The expressions match the ones emitted by the
    predicate builder, so SQLite can use the index for those filters.
    """
    name = ensure_collection(conn, name)
    columns = [validate_field_name(f) for f in fields]
    if not columns:
        raise InvalidQueryCondition("At least one field is required for an index")
    index_name = field_index_name(name, columns)
    expressions = ", ".join(json_path(f) for f in columns)
    conn.execute(
        text(f'CREATE INDEX IF NOT EXISTS "{index_name}" ON {quote_identifier(name)}({expressions})')
    )
    owner = conn.execute(
        text("SELECT tbl_name FROM sqlite_master WHERE type = 'index' AND name = :name"),
        {"name": index_name},
    ).scalar_one_or_none()
    if owner != name:
        raise InvalidQueryCondition(f"Index name {index_name} is already used by table {owner!r}")
    logger.debug("Field index ensured.", extra={"collection": name, "index": index_name})
    return index_name


# PUBLIC_INTERFACE
def list_collections(conn: Connection) -> List[str]:
    """Return the names of every collection table, sorted.

    Tables whose names are not valid collection names were not created by
    the store and are left out.
    """
    rows = conn.execute(
        text("SELECT name FROM sqlite_master WHERE type = 'table' AND name NOT LIKE 'sqlite_%' ORDER BY name")
    )
    return [row[0] for row in rows if validate_collection_name(row[0])]
