from datetime import date, datetime, timezone

import orjson
import pytest

from docstore.store.codec import MISSING, decode, dumps, encode, loads


def test_scalar_documents_round_trip():
    doc = {
        "id": "case-001",
        "title": "State vs. John Doe",
        "hearingCount": 3,
        "fee": 12.5,
        "sealed": False,
        "judgeId": None,
    }
    assert decode(encode(doc)) == doc
    assert loads(dumps(encode(doc))) == doc


def test_dates_are_stored_as_iso_strings():
    filed = datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
    payload = encode({"filedAt": filed, "hearingDay": date(2024, 2, 1)})
    assert payload == {"filedAt": "2024-01-02T03:04:05+00:00", "hearingDay": "2024-02-01"}
    assert decode(payload)["filedAt"] == filed.isoformat()


def test_missing_fields_are_dropped_but_none_is_kept():
    payload = encode({"status": "filed", "closedAt": MISSING, "judgeId": None})
    assert payload == {"status": "filed", "judgeId": None}


def test_missing_list_items_become_null():
    payload = encode({"slots": ["a", MISSING, "c"]})
    assert orjson.loads(payload["slots"]) == ["a", None, "c"]


def test_nested_structures_are_embedded_as_strings():
    payload = encode({"contact": {"email": "a@b.zm"}, "tags": ["theft"]})
    assert payload["contact"] == '{"email":"a@b.zm"}'
    assert payload["tags"] == '["theft"]'


def test_one_level_nesting_round_trips():
    doc = {
        "id": "case-001",
        "contactInfo": {"email": "prosecutor@state.zm", "phone": "+260"},
        "tags": ["theft", "criminal"],
        "plaintiffs": [{"id": "p-1", "name": "State of Zambia"}],
        "hearings": [],
    }
    assert decode(encode(doc)) == doc


def test_two_level_nesting_leaves_inner_mappings_serialized():
    doc = {"plaintiffs": [{"id": "p-1", "contactInfo": {"email": "x@y.zm"}}]}
    decoded = decode(encode(doc))
    assert decoded["plaintiffs"][0]["id"] == "p-1"
    assert decoded["plaintiffs"][0]["contactInfo"] == '{"email":"x@y.zm"}'

    doc = {"party": {"contact": {"email": "x@y.zm"}}}
    assert decode(encode(doc)) == {"party": {"contact": '{"email":"x@y.zm"}'}}


def test_nested_dates_become_iso_strings():
    when = datetime(2024, 5, 6, 7, 8, 9)
    decoded = decode(encode({"timeline": [{"at": when}]}))
    assert decoded["timeline"] == [{"at": "2024-05-06T07:08:09"}]


def test_decode_is_top_level_only_and_tolerant():
    payload = {
        "note": "{not json}",
        "label": "[draft]",
        "plain": "hello",
        "count": 4,
    }
    assert decode(payload) == payload


def test_encode_requires_a_mapping():
    with pytest.raises(TypeError):
        encode(["not", "a", "document"])
