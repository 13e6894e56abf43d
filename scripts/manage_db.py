#!/usr/bin/env python3
"""
Database maintenance for the document store.

Commands:
  migrate  Provision every known collection, create the field indexes,
           then ANALYZE/VACUUM and print a summary.
  reset    Delete the database file (and its WAL/SHM side files), then migrate.
  backup   Write a timestamped copy of the database into BACKUP_DIR.

The database location comes from DOCSTORE_DB_PATH (env or .env).

Usage:
  python scripts/manage_db.py migrate
  DOCSTORE_DB_PATH=/data/court.sqlite python scripts/manage_db.py backup
"""
import argparse
import os
import sys
from datetime import datetime, timezone
from typing import Optional, Sequence

from docstore.core.config import Settings, get_settings
from docstore.core.errors import DocumentStoreError
from docstore.models.collections import COLLECTIONS, FIELD_INDEXES
from docstore.store.crud import DocumentStore


def _size_mb(path: str) -> str:
    return f"{os.path.getsize(path) / (1024 * 1024):.2f} MB"


def run_migrations(settings: Settings) -> int:
    print("[migrate] Creating tables for all collections...")
    store = DocumentStore.from_settings(settings)
    failures = 0
    try:
        for name in COLLECTIONS:
            try:
                store.ensure_collection(name)
                print(f"[migrate] Table created/verified: {name}")
            except DocumentStoreError as exc:
                failures += 1
                print(f"[migrate] Error creating table {name}: {exc}", file=sys.stderr)

        created = 0
        for name, indexes in FIELD_INDEXES.items():
            for fields in indexes:
                try:
                    store.ensure_field_index(name, fields)
                    created += 1
                except DocumentStoreError as exc:
                    failures += 1
                    print(f"[migrate] Error creating index on {name}{fields}: {exc}", file=sys.stderr)
        print(f"[migrate] Created/verified {created} field indexes")

        store.optimize()
        print("[migrate] Database optimization completed")

        tables = store.list_collections()
        print(f"[migrate] Total tables: {len(tables)}")
        for table in tables:
            print(f"   - {table}")
    finally:
        store.close()

    if os.path.exists(settings.DOCSTORE_DB_PATH):
        print(f"[migrate] Database file size: {_size_mb(settings.DOCSTORE_DB_PATH)}")
    return 1 if failures else 0


def reset_database(settings: Settings) -> int:
    path = settings.DOCSTORE_DB_PATH
    for candidate in (path, f"{path}-wal", f"{path}-shm"):
        if os.path.exists(candidate):
            os.remove(candidate)
            print(f"[reset] Deleted {candidate}")
    return run_migrations(settings)


def backup_database(settings: Settings) -> int:
    path = settings.DOCSTORE_DB_PATH
    if not os.path.exists(path):
        print(f"[backup] Database file does not exist: {path}", file=sys.stderr)
        return 1
    stamp = datetime.now(timezone.utc).strftime("%Y-%m-%dT%H-%M-%S-%fZ")
    destination = os.path.join(settings.BACKUP_DIR, f"database-backup-{stamp}.sqlite")
    store = DocumentStore.from_settings(settings)
    try:
        written = store.backup(destination)
    except (DocumentStoreError, OSError) as exc:
        print(f"[backup] Database backup failed: {exc}", file=sys.stderr)
        return 1
    finally:
        store.close()
    print(f"[backup] Database backup created: {written} ({_size_mb(written)})")
    return 0


COMMANDS = {
    "migrate": run_migrations,
    "reset": reset_database,
    "backup": backup_database,
}


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Document store maintenance")
    parser.add_argument("command", choices=sorted(COMMANDS), help="Maintenance action to run")
    args = parser.parse_args(argv)
    return COMMANDS[args.command](get_settings())


if __name__ == "__main__":
    sys.exit(main())
