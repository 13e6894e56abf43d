"""
Collection-oriented document store over SQLite.

DocumentStore is constructed once per process around a SQLAlchemy Engine and
passed to whoever needs it. Every operation sanitizes the collection name,
provisions the table if absent, runs its statement in a short transaction
and decodes rows through the codec.

Writes are last-writer-wins: ``update`` is a read followed by an upsert, so
two concurrent updates of the same id race and the later commit silently
replaces the earlier merge. Isolation is whatever SQLite in WAL mode gives.
"""

import os
import sqlite3
from contextlib import contextmanager
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Union
from uuid import uuid4

from pydantic import ValidationError
from sqlalchemy import text
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import SQLAlchemyError

from ..core.config import Settings, get_settings
from ..core.errors import (
    DocumentNotFound,
    EngineFailure,
    InvalidDocumentId,
    InvalidQueryCondition,
)
from ..core.logger import get_logger
from ..db.engine import build_engine
from ..models.schemas import BatchResult, DatabaseResult, QueryOptions, StoredDocument
from . import provisioner
from .codec import MISSING, dumps, encode, loads
from .naming import normalize_document_id, quote_identifier, sanitize_collection_name
from .predicates import ConditionLike, build_order_by, build_where, coerce_conditions

logger = get_logger(__name__)

NOT_FOUND_MESSAGE = "Document not found."

_NOW = provisioner.NOW_SQL


def _engine_message(exc: SQLAlchemyError) -> str:
    orig = getattr(exc, "orig", None)
    return str(orig) if orig is not None else str(exc)


def _payload(document: Mapping[str, Any], document_id: str) -> str:
    return dumps({**encode(document), "id": document_id})


def _in_transaction(conn: Connection) -> bool:
    return bool(conn.connection.dbapi_connection.in_transaction)


def _check_count(value: Any, label: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise InvalidQueryCondition(f"{label} must be a non-negative integer, got {value!r}")
    return value


# PUBLIC_INTERFACE
class DocumentStore:
    """Firestore-like document operations over one SQLite database."""

    def __init__(self, engine: Engine):
        self._engine = engine

    # PUBLIC_INTERFACE
    @classmethod
    def from_path(cls, db_path: str, **engine_options: Any) -> "DocumentStore":
        """Build a store on a new engine for ``db_path`` (see db.engine.build_engine)."""
        return cls(build_engine(db_path, **engine_options))

    # PUBLIC_INTERFACE
    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "DocumentStore":
        """Build a store from application settings."""
        s = settings or get_settings()
        return cls.from_path(
            s.DOCSTORE_DB_PATH,
            echo=s.DB_ECHO,
            journal_mode=s.DB_JOURNAL_MODE,
            foreign_keys=s.DB_FOREIGN_KEYS,
            busy_timeout_ms=s.DB_BUSY_TIMEOUT_MS,
        )

    @property
    def engine(self) -> Engine:
        return self._engine

    def close(self) -> None:
        """Release pooled connections."""
        self._engine.dispose()

    @contextmanager
    def _connect(self, name: str) -> Iterator[Connection]:
        # `name` must already be sanitized.
        try:
            with self._engine.begin() as conn:
                provisioner.ensure_collection(conn, name)
                yield conn
        except SQLAlchemyError as exc:
            raise EngineFailure(_engine_message(exc)) from exc

    @staticmethod
    def _upsert_row(conn: Connection, table: str, document_id: str, payload: str) -> None:
        conn.execute(
            text(
                f"""
                INSERT INTO {table} (id, data, created_at, updated_at)
                VALUES (:id, :data, {_NOW}, {_NOW})
                ON CONFLICT(id) DO UPDATE SET
                    data = excluded.data,
                    updated_at = excluded.updated_at
                """
            ),
            {"id": document_id, "data": payload},
        )

    def _select(
        self,
        name: str,
        where: str = "",
        params: Optional[Dict[str, Any]] = None,
        order: Optional[str] = None,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        bound = dict(params or {})
        sql = f"SELECT data FROM {quote_identifier(name)} {where} {order or build_order_by(None)}"
        if limit is not None:
            sql += " LIMIT :limit"
            bound["limit"] = limit
        if offset:
            if limit is None:
                sql += " LIMIT -1"
            sql += " OFFSET :offset"
            bound["offset"] = offset
        with self._connect(name) as conn:
            rows = conn.execute(text(sql), bound).all()
        return [loads(row[0]) for row in rows]

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    # PUBLIC_INTERFACE
    def insert(self, collection: str, document: Mapping[str, Any]) -> bool:
        """Store ``document`` as a new row, generating an id when it has none.

        Returns False (and logs) on any storage error, including an id that
        already exists.
        """
        name = sanitize_collection_name(collection)
        raw_id = document.get("id") if isinstance(document, Mapping) else None
        try:
            document_id = normalize_document_id(raw_id) if raw_id else str(uuid4())
            payload = _payload(document, document_id)
            with self._connect(name) as conn:
                conn.execute(
                    text(
                        f"INSERT INTO {quote_identifier(name)} (id, data, created_at, updated_at) "
                        f"VALUES (:id, :data, {_NOW}, {_NOW})"
                    ),
                    {"id": document_id, "data": payload},
                )
            return True
        except (EngineFailure, InvalidDocumentId, TypeError) as exc:
            logger.error("Error adding document.", exc_info=exc, extra={"collection": name})
            return False

    # PUBLIC_INTERFACE
    def upsert(
        self, collection: str, document: Mapping[str, Any], document_id: Union[str, int, Any]
    ) -> DatabaseResult:
        """Insert or fully replace the document stored under ``document_id``.

        ``created_at`` of an existing row is left untouched.
        """
        name = sanitize_collection_name(collection)
        try:
            doc_id = normalize_document_id(document_id)
            payload = _payload(document, doc_id)
            with self._connect(name) as conn:
                self._upsert_row(conn, quote_identifier(name), doc_id, payload)
        except (InvalidDocumentId, EngineFailure, TypeError) as exc:
            logger.error(
                "Error setting document.",
                exc_info=exc,
                extra={"collection": name, "document_id": str(document_id)},
            )
            return DatabaseResult(success=False, error=str(exc))
        return DatabaseResult(success=True, id=doc_id)

    # PUBLIC_INTERFACE
    def update(self, collection: str, document_id: Union[str, int, Any], fields: Mapping[str, Any]) -> DatabaseResult:
        """Shallow-merge ``fields`` onto the stored document, then upsert it."""
        name = sanitize_collection_name(collection)
        try:
            doc_id = normalize_document_id(document_id)
            existing = self.get_one(name, doc_id)
        except DocumentNotFound:
            return DatabaseResult(success=False, id=str(document_id), error=NOT_FOUND_MESSAGE)
        except (InvalidDocumentId, EngineFailure) as exc:
            logger.error(
                "Error updating document.",
                exc_info=exc,
                extra={"collection": name, "document_id": str(document_id)},
            )
            return DatabaseResult(success=False, error=str(exc))

        merged = dict(existing)
        merged.update({key: value for key, value in fields.items() if value is not MISSING})
        return self.upsert(name, merged, doc_id)

    # PUBLIC_INTERFACE
    def upsert_many(self, collection: str, documents: Iterable[Mapping[str, Any]]) -> BatchResult:
        """Upsert every document in a single transaction.

        Items without an id (or that cannot be serialized or written) are
        skipped and reported in ``errors``; the other items are still
        committed. A failure of the transaction itself, including one where
        SQLite aborts the whole transaction mid-batch, rolls back everything
        and reports no upserted ids.
        """
        name = sanitize_collection_name(collection)
        items = list(documents or [])
        if not items:
            return BatchResult(success=True)

        table = quote_identifier(name)
        errors: List[str] = []
        written: List[str] = []
        try:
            with self._connect(name) as conn:
                for position, document in enumerate(items):
                    raw_id = document.get("id") if isinstance(document, Mapping) else None
                    if not raw_id:
                        errors.append(f"Item {position} missing ID field")
                        continue
                    try:
                        doc_id = normalize_document_id(raw_id)
                        payload = _payload(document, doc_id)
                        with conn.begin_nested():
                            self._upsert_row(conn, table, doc_id, payload)
                    except (InvalidDocumentId, TypeError) as exc:
                        errors.append(f"Error processing item {raw_id}: {exc}")
                        continue
                    except SQLAlchemyError as exc:
                        if not _in_transaction(conn):
                            # SQLite rolled back the whole batch; later items would autocommit.
                            raise EngineFailure(
                                f"Batch aborted at item {raw_id}: {_engine_message(exc)}"
                            ) from exc
                        errors.append(f"Error processing item {raw_id}: {_engine_message(exc)}")
                        continue
                    written.append(doc_id)
        except EngineFailure as exc:
            logger.error("Batch upsert rolled back.", exc_info=exc, extra={"collection": name})
            return BatchResult(success=False, errors=errors + [str(exc)], upserted_ids=[])

        if errors:
            logger.warning(
                "Batch upsert completed with item errors.",
                extra={"collection": name, "written": len(written), "failed": len(errors)},
            )
        return BatchResult(success=not errors, errors=errors, upserted_ids=written)

    # PUBLIC_INTERFACE
    def delete(self, collection: str, document_id: Union[str, int, Any]) -> DatabaseResult:
        """Remove one document; reports "Document not found." when nothing was deleted."""
        name = sanitize_collection_name(collection)
        try:
            doc_id = normalize_document_id(document_id)
            with self._connect(name) as conn:
                deleted = conn.execute(
                    text(f"DELETE FROM {quote_identifier(name)} WHERE id = :id"), {"id": doc_id}
                ).rowcount
        except (InvalidDocumentId, EngineFailure) as exc:
            logger.error(
                "Error deleting document.",
                exc_info=exc,
                extra={"collection": name, "document_id": str(document_id)},
            )
            return DatabaseResult(success=False, error=str(exc))

        if deleted == 0:
            return DatabaseResult(success=False, id=doc_id, error=NOT_FOUND_MESSAGE)
        logger.info("Document deleted.", extra={"collection": name, "document_id": doc_id})
        return DatabaseResult(success=True, id=doc_id)

    # PUBLIC_INTERFACE
    def delete_many(self, collection: str, conditions: Iterable[ConditionLike]) -> DatabaseResult:
        """Delete every document matching ``conditions``.

        Refuses to run without at least one condition.
        """
        name = sanitize_collection_name(collection)
        parsed = coerce_conditions(conditions)
        if not parsed:
            return DatabaseResult(success=False, error="No conditions provided for delete operation")
        where, params = build_where(parsed)
        try:
            with self._connect(name) as conn:
                deleted = conn.execute(text(f"DELETE FROM {quote_identifier(name)} {where}"), params).rowcount
        except EngineFailure as exc:
            logger.error("Error deleting documents.", exc_info=exc, extra={"collection": name})
            return DatabaseResult(success=False, error=str(exc))
        return DatabaseResult(success=True, data={"deleted_count": deleted})

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    # PUBLIC_INTERFACE
    def get_one(self, collection: str, document_id: Union[str, int, Any]) -> Dict[str, Any]:
        """Return the decoded document, raising DocumentNotFound if absent."""
        name = sanitize_collection_name(collection)
        doc_id = normalize_document_id(document_id)
        with self._connect(name) as conn:
            row = conn.execute(
                text(f"SELECT data FROM {quote_identifier(name)} WHERE id = :id"), {"id": doc_id}
            ).first()
        if row is None:
            raise DocumentNotFound(name, doc_id)
        return loads(row[0])

    # PUBLIC_INTERFACE
    def get_record(self, collection: str, document_id: Union[str, int, Any]) -> StoredDocument:
        """Return the decoded document with its row timestamps."""
        name = sanitize_collection_name(collection)
        doc_id = normalize_document_id(document_id)
        with self._connect(name) as conn:
            row = conn.execute(
                text(f"SELECT id, data, created_at, updated_at FROM {quote_identifier(name)} WHERE id = :id"),
                {"id": doc_id},
            ).first()
        if row is None:
            raise DocumentNotFound(name, doc_id)
        return StoredDocument(id=row[0], data=loads(row[1]), created_at=row[2], updated_at=row[3])

    # PUBLIC_INTERFACE
    def get_all(self, collection: str) -> List[Dict[str, Any]]:
        """Return every document, newest first."""
        return self._select(sanitize_collection_name(collection))

    # PUBLIC_INTERFACE
    def get_limited(self, collection: str, limit: int) -> List[Dict[str, Any]]:
        """Return the ``limit`` newest documents."""
        name = sanitize_collection_name(collection)
        return self._select(name, limit=_check_count(limit, "limit"))

    # PUBLIC_INTERFACE
    def fetch(self, collection: str, count: Optional[int] = None) -> List[Dict[str, Any]]:
        """Best-effort listing: like get_all/get_limited, but [] on storage errors."""
        name = sanitize_collection_name(collection)
        try:
            if count:
                return self.get_limited(name, count)
            return self.get_all(name)
        except EngineFailure as exc:
            logger.error("Error fetching data.", exc_info=exc, extra={"collection": name})
            return []

    # PUBLIC_INTERFACE
    def get_all_where_equals(self, collection: str, field: str, value: Any) -> List[Dict[str, Any]]:
        """Return documents whose top-level ``field`` equals ``value``, newest first."""
        name = sanitize_collection_name(collection)
        where, params = build_where([(field, "=", value)])
        return self._select(name, where, params)

    # PUBLIC_INTERFACE
    def query(
        self, collection: str, options: Optional[Union[QueryOptions, Dict[str, Any]]] = None
    ) -> List[Dict[str, Any]]:
        """Filtered, ordered and paginated listing."""
        name = sanitize_collection_name(collection)
        if options is None:
            options = QueryOptions()
        elif not isinstance(options, QueryOptions):
            try:
                options = QueryOptions.model_validate(options)
            except ValidationError as exc:
                raise InvalidQueryCondition(f"Malformed query options: {exc}") from exc
        where, params = build_where(options.where)
        order = build_order_by(options.order_by)
        return self._select(name, where, params, order, options.limit, options.offset)

    # PUBLIC_INTERFACE
    def count(self, collection: str, conditions: Optional[Iterable[ConditionLike]] = None) -> int:
        """Number of documents matching ``conditions`` (all documents when omitted)."""
        name = sanitize_collection_name(collection)
        where, params = build_where(conditions)
        with self._connect(name) as conn:
            total = conn.execute(
                text(f"SELECT COUNT(*) FROM {quote_identifier(name)} {where}"), params
            ).scalar_one()
        return int(total)

    # ------------------------------------------------------------------
    # Collections and maintenance
    # ------------------------------------------------------------------

    # PUBLIC_INTERFACE
    def ensure_collection(self, collection: str) -> str:
        """Provision ``collection`` now rather than on first use."""
        name = sanitize_collection_name(collection)
        with self._connect(name):
            pass
        return name

    # PUBLIC_INTERFACE
    def ensure_field_index(self, collection: str, fields: Union[str, Iterable[str]]) -> str:
        """Create an expression index on one or more top-level fields; returns its name."""
        name = sanitize_collection_name(collection)
        columns = [fields] if isinstance(fields, str) else list(fields)
        with self._connect(name) as conn:
            return provisioner.ensure_field_index(conn, name, columns)

    # PUBLIC_INTERFACE
    def list_collections(self) -> List[str]:
        """Names of every provisioned collection."""
        try:
            with self._engine.connect() as conn:
                return provisioner.list_collections(conn)
        except SQLAlchemyError as exc:
            raise EngineFailure(_engine_message(exc)) from exc

    # PUBLIC_INTERFACE
    def ping(self) -> bool:
        """Run SELECT 1; raises EngineFailure if the database is unreachable."""
        try:
            with self._engine.connect() as conn:
                return conn.execute(text("SELECT 1")).scalar_one() == 1
        except SQLAlchemyError as exc:
            raise EngineFailure(_engine_message(exc)) from exc

    def _run_outside_transaction(self, *statements: str, params: tuple = ()) -> None:
        # VACUUM refuses to run inside a transaction, so bypass SQLAlchemy's autobegin.
        raw = self._engine.raw_connection()
        try:
            cursor = raw.cursor()
            try:
                for statement in statements:
                    cursor.execute(statement, params)
            finally:
                cursor.close()
        except sqlite3.Error as exc:
            raise EngineFailure(str(exc)) from exc
        finally:
            raw.close()

    # PUBLIC_INTERFACE
    def optimize(self) -> None:
        """Refresh planner statistics and compact the database file."""
        self._run_outside_transaction("ANALYZE")
        self._run_outside_transaction("VACUUM")
        logger.info("Database optimized.")

    # PUBLIC_INTERFACE
    def backup(self, destination: str) -> str:
        """Write a consistent copy of the database to ``destination``; returns its absolute path."""
        target = os.path.abspath(destination)
        if os.path.exists(target):
            raise FileExistsError(target)
        os.makedirs(os.path.dirname(target), exist_ok=True)
        self._run_outside_transaction("VACUUM INTO ?", params=(target,))
        logger.info("Database backup created.", extra={"path": target})
        return target
