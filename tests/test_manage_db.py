import importlib.util
import os
from pathlib import Path

import pytest

from docstore.core.config import Settings
from docstore.models.collections import COLLECTIONS
from docstore.store.crud import DocumentStore

SCRIPT = Path(__file__).resolve().parents[1] / "scripts" / "manage_db.py"


@pytest.fixture(scope="module")
def manage_db():
    spec = importlib.util.spec_from_file_location("manage_db", SCRIPT)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


@pytest.fixture
def settings(tmp_path):
    return Settings(
        DOCSTORE_DB_PATH=str(tmp_path / "data" / "court.sqlite"),
        BACKUP_DIR=str(tmp_path / "backups"),
    )


def test_migrate_provisions_every_collection(manage_db, settings, capsys):
    assert manage_db.run_migrations(settings) == 0

    store = DocumentStore.from_settings(settings)
    try:
        assert store.list_collections() == sorted(COLLECTIONS)
    finally:
        store.close()
    out = capsys.readouterr().out
    assert f"[migrate] Total tables: {len(COLLECTIONS)}" in out


def test_migrate_is_repeatable(manage_db, settings):
    assert manage_db.run_migrations(settings) == 0
    assert manage_db.run_migrations(settings) == 0


def test_reset_drops_existing_data(manage_db, settings):
    store = DocumentStore.from_settings(settings)
    store.upsert("cases", {"title": "x"}, "c1")
    store.close()

    assert manage_db.reset_database(settings) == 0

    store = DocumentStore.from_settings(settings)
    try:
        assert store.count("cases") == 0
    finally:
        store.close()


def test_backup_requires_an_existing_database(manage_db, settings):
    assert manage_db.backup_database(settings) == 1


def test_backup_writes_a_readable_copy(manage_db, settings):
    store = DocumentStore.from_settings(settings)
    store.upsert("cases", {"title": "x"}, "c1")
    store.close()

    assert manage_db.backup_database(settings) == 0

    [name] = os.listdir(settings.BACKUP_DIR)
    assert name.startswith("database-backup-") and name.endswith(".sqlite")
    copy = DocumentStore.from_path(os.path.join(settings.BACKUP_DIR, name))
    try:
        assert copy.get_one("cases", "c1") == {"title": "x", "id": "c1"}
    finally:
        copy.close()


def test_unknown_command_exits(manage_db):
    with pytest.raises(SystemExit):
        manage_db.main(["explode"])
