"""
Translate structured filter conditions into SQLite WHERE clauses.

Each condition compares ``json_extract(data, '$."<field>"')`` with a bound
parameter. Conditions are combined with AND; there is no OR and no grouping.
"""

from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple, Union

from pydantic import ValidationError

from ..core.errors import InvalidQueryCondition
from ..models.schemas import OrderBy, WhereCondition
from .codec import bind_value
from .naming import json_path

ConditionLike = Union[WhereCondition, Dict[str, Any], Sequence[Any]]

# Orderings on these names use the physical columns instead of the payload.
TIMESTAMP_COLUMNS = ("created_at", "updated_at")


def _coerce_condition(condition: ConditionLike) -> WhereCondition:
    if isinstance(condition, WhereCondition):
        return condition
    try:
        if isinstance(condition, dict):
            return WhereCondition.model_validate(condition)
        if isinstance(condition, (list, tuple)) and len(condition) == 3:
            field, operator, value = condition
            return WhereCondition(field=field, operator=operator, value=value)
    except ValidationError as exc:
        raise InvalidQueryCondition(f"Malformed condition {condition!r}: {exc}") from exc
    raise InvalidQueryCondition(f"Malformed condition: {condition!r}")


def coerce_conditions(conditions: Optional[Iterable[ConditionLike]]) -> List[WhereCondition]:
    """Validate every condition, raising InvalidQueryCondition on the first bad one."""
    if conditions is None:
        return []
    if isinstance(conditions, (str, bytes, dict)):
        raise InvalidQueryCondition("Conditions must be a list of conditions.")
    return [_coerce_condition(c) for c in conditions]


# PUBLIC_INTERFACE
def build_where(conditions: Optional[Iterable[ConditionLike]]) -> Tuple[str, Dict[str, Any]]:
    """Return ``(clause, params)`` for the given conditions.

    The clause starts with ``WHERE`` and uses named parameters ``:w0``,
    ``:w1_0``...; zero conditions give ``("", {})``.
    """
    parsed = coerce_conditions(conditions)
    if not parsed:
        return "", {}

    clauses: List[str] = []
    params: Dict[str, Any] = {}
    for index, condition in enumerate(parsed):
        target = json_path(condition.field)
        operator = condition.operator
        if operator in ("IN", "NOT IN"):
            values = condition.value
            if not isinstance(values, (list, tuple, set, frozenset)) or len(values) == 0:
                raise InvalidQueryCondition(f"{operator} operator requires a non-empty list")
            names = []
            for position, value in enumerate(values):
                name = f"w{index}_{position}"
                params[name] = bind_value(value)
                names.append(f":{name}")
            clauses.append(f"{target} {operator} ({', '.join(names)})")
        else:
            name = f"w{index}"
            params[name] = bind_value(condition.value)
            clauses.append(f"{target} {operator} :{name}")

    return "WHERE " + " AND ".join(clauses), params


# PUBLIC_INTERFACE
def build_order_by(order_by: Optional[Union[OrderBy, Dict[str, Any]]]) -> str:
    """Return an ORDER BY clause; newest first by ``created_at`` when unspecified."""
    if order_by is None:
        return "ORDER BY created_at DESC, rowid DESC"
    if not isinstance(order_by, OrderBy):
        try:
            order_by = OrderBy.model_validate(order_by)
        except ValidationError as exc:
            raise InvalidQueryCondition(f"Malformed ordering {order_by!r}: {exc}") from exc

    direction = order_by.direction
    if order_by.field in TIMESTAMP_COLUMNS:
        target = order_by.field
    else:
        target = json_path(order_by.field)
    return f"ORDER BY {target} {direction}, rowid {direction}"
