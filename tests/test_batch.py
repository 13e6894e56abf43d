import pytest
from sqlalchemy import text

from docstore.core.errors import InvalidCollectionName, PartialBatchFailure


def test_batch_writes_every_item(store):
    result = store.upsert_many(
        "hearings",
        [{"id": "h1", "room": "2A"}, {"id": "h2", "room": "3B"}, {"id": 7, "room": "1C"}],
    )
    assert result.success is True
    assert result.errors == []
    assert result.upserted_ids == ["h1", "h2", "7"]
    assert store.count("hearings") == 3
    result.raise_for_errors()


def test_items_without_id_are_skipped_and_reported(store):
    result = store.upsert_many("hearings", [{"id": "a", "room": "1"}, {"room": "2"}, {"id": "b", "room": "3"}])
    assert result.success is False
    assert result.errors == ["Item 1 missing ID field"]
    assert result.upserted_ids == ["a", "b"]
    assert sorted(d["id"] for d in store.get_all("hearings")) == ["a", "b"]

    with pytest.raises(PartialBatchFailure) as excinfo:
        result.raise_for_errors()
    assert excinfo.value.upserted_ids == ["a", "b"]
    assert excinfo.value.errors == ["Item 1 missing ID field"]


def test_empty_batch_succeeds(store):
    result = store.upsert_many("hearings", [])
    assert result.success is True
    assert result.errors == []
    assert result.upserted_ids == []


def test_batch_replaces_existing_documents(store):
    store.upsert("hearings", {"room": "old", "judge": "j-1"}, "h1")
    created_at = store.get_record("hearings", "h1").created_at

    store.upsert_many("hearings", [{"id": "h1", "room": "new"}])

    record = store.get_record("hearings", "h1")
    assert record.data == {"id": "h1", "room": "new"}
    assert record.created_at == created_at


def test_unserializable_item_does_not_abort_the_batch(store):
    result = store.upsert_many("hearings", [{"id": "a"}, {"id": "bad", "blob": object()}, {"id": "c"}])
    assert result.upserted_ids == ["a", "c"]
    assert len(result.errors) == 1
    assert result.errors[0].startswith("Error processing item bad:")
    assert store.count("hearings") == 2


def test_engine_error_on_one_item_rolls_back_only_that_item(store):
    store.ensure_collection("hearings")
    with store.engine.begin() as conn:
        conn.execute(
            text(
                'CREATE TRIGGER reject_boom BEFORE INSERT ON "hearings" '
                "WHEN NEW.id = 'boom' BEGIN SELECT RAISE(ABORT, 'boom rejected'); END"
            )
        )

    result = store.upsert_many("hearings", [{"id": "a"}, {"id": "boom"}, {"id": "b"}])

    assert result.success is False
    assert result.upserted_ids == ["a", "b"]
    assert len(result.errors) == 1
    assert result.errors[0].startswith("Error processing item boom:")
    assert "boom rejected" in result.errors[0]
    assert sorted(d["id"] for d in store.get_all("hearings")) == ["a", "b"]


def test_transaction_abort_mid_batch_rolls_back_every_item(store):
    store.upsert("hearings", {"room": "kept"}, "existing")
    with store.engine.begin() as conn:
        conn.execute(
            text(
                'CREATE TRIGGER abort_boom BEFORE INSERT ON "hearings" '
                "WHEN NEW.id = 'boom' BEGIN SELECT RAISE(ROLLBACK, 'batch aborted'); END"
            )
        )

    result = store.upsert_many("hearings", [{"id": "a"}, {"id": "boom"}, {"id": "b"}])

    assert result.success is False
    assert result.upserted_ids == []
    assert any("boom" in error for error in result.errors)
    assert [d["id"] for d in store.get_all("hearings")] == ["existing"]

    assert store.upsert_many("hearings", [{"id": "c"}]).upserted_ids == ["c"]
    assert sorted(d["id"] for d in store.get_all("hearings")) == ["c", "existing"]


def test_batch_rejects_invalid_collection(store):
    with pytest.raises(InvalidCollectionName):
        store.upsert_many("hearings;", [{"id": "a"}])
