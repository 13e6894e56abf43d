from datetime import datetime, timezone

import pytest

from docstore.core.errors import InvalidQueryCondition
from docstore.models.schemas import OrderBy, WhereCondition
from docstore.store.predicates import build_order_by, build_where

STATUS = "json_extract(data, '$.\"status\"')"


def test_no_conditions_give_empty_clause():
    assert build_where([]) == ("", {})
    assert build_where(None) == ("", {})


def test_single_condition_is_parameterized():
    clause, params = build_where([WhereCondition(field="status", operator="=", value="active")])
    assert clause == f"WHERE {STATUS} = :w0"
    assert params == {"w0": "active"}


def test_conditions_accept_dicts_and_tuples_and_are_anded():
    clause, params = build_where(
        [
            {"field": "status", "operator": "!=", "value": "closed"},
            ("priority", ">=", 2),
            ("title", "like", "%Doe%"),
        ]
    )
    assert clause == (
        f"WHERE {STATUS} != :w0"
        " AND json_extract(data, '$.\"priority\"') >= :w1"
        " AND json_extract(data, '$.\"title\"') LIKE :w2"
    )
    assert params == {"w0": "closed", "w1": 2, "w2": "%Doe%"}


def test_in_and_not_in_expand_placeholders():
    clause, params = build_where([("type", "IN", ["civil", "criminal"]), ("status", "not in", ["closed"])])
    assert clause == (
        "WHERE json_extract(data, '$.\"type\"') IN (:w0_0, :w0_1)"
        f" AND {STATUS} NOT IN (:w1_0)"
    )
    assert params == {"w0_0": "civil", "w0_1": "criminal", "w1_0": "closed"}


@pytest.mark.parametrize("value", [[], "civil", None])
def test_in_requires_non_empty_list(value):
    with pytest.raises(InvalidQueryCondition):
        build_where([("type", "IN", value)])


@pytest.mark.parametrize(
    "condition",
    [
        ("status", "OR 1=1 --", "x"),
        ("status'", "=", "x"),
        ("status",),
        "status = x",
        {"field": "status"},
    ],
)
def test_malformed_conditions_are_rejected(condition):
    with pytest.raises(InvalidQueryCondition):
        build_where([condition])


def test_values_are_bound_never_interpolated():
    clause, params = build_where([("title", "=", "x'); DROP TABLE cases; --")])
    assert "DROP" not in clause
    assert params["w0"] == "x'); DROP TABLE cases; --"


def test_date_values_bind_as_iso_strings():
    when = datetime(2024, 3, 1, tzinfo=timezone.utc)
    _, params = build_where([("filedAt", ">", when)])
    assert params == {"w0": "2024-03-01T00:00:00+00:00"}


def test_order_by_defaults_to_newest_first():
    assert build_order_by(None) == "ORDER BY created_at DESC, rowid DESC"


def test_order_by_fields_and_timestamp_columns():
    assert build_order_by(OrderBy(field="priority", direction="desc")) == (
        "ORDER BY json_extract(data, '$.\"priority\"') DESC, rowid DESC"
    )
    assert build_order_by({"field": "updated_at"}) == "ORDER BY updated_at ASC, rowid ASC"


def test_order_by_rejects_bad_direction():
    with pytest.raises(InvalidQueryCondition):
        build_order_by({"field": "priority", "direction": "sideways"})
