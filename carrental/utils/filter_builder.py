"""Translate list query parameters into a MongoDB filter document."""

import re
from datetime import datetime
from typing import Any

from bson import ObjectId
from bson.errors import InvalidId

from carrental.errors import QueryError

# Operator tokens accepted in `field[op]=value` parameters
OPERATORS = {
    "gt": "$gt",
    "gte": "$gte",
    "lt": "$lt",
    "lte": "$lte",
    "in": "$in",
}

_KEY_PATTERN = re.compile(r"^(?P<field>[^\[\]]+)(?:\[(?P<op>[^\[\]]*)\])?$")


def check_field_name(field: str) -> str:
    """Reject names that would be interpreted as query operators."""
    if not field or field.startswith("$") or "\x00" in field:
        raise QueryError(f"Invalid field name '{field}'")
    return field


def parse_key(key: str) -> tuple[str, str | None]:
    """Split `price[gte]` into ('price', 'gte'); a bare key has no operator."""
    match = _KEY_PATTERN.match(key.strip())
    if not match:
        raise QueryError(f"Malformed query parameter '{key}'")
    field = check_field_name(match.group("field"))
    op = match.group("op")
    if op is not None and op not in OPERATORS:
        raise QueryError(f"Unsupported operator '{op}' for field '{field}'")
    return field, op


def coerce_value(field: str, raw: Any, field_type: type) -> Any:
    if not isinstance(raw, str):
        return raw
    try:
        if field_type is ObjectId:
            return ObjectId(raw)
        if field_type is datetime:
            # fromisoformat only accepts a trailing Z from Python 3.11 on
            if raw.endswith(("Z", "z")):
                raw = raw[:-1] + "+00:00"
            return datetime.fromisoformat(raw)
        if field_type is int:
            return int(raw)
        if field_type is float:
            return float(raw)
    except (InvalidId, ValueError) as e:
        raise QueryError(f"Invalid value '{raw}' for field '{field}': {e}") from e
    return raw


class FilterBuilder:
    """Accumulates equality and comparison conditions for one collection."""

    def __init__(self, field_types: dict[str, type] | None = None):
        self.field_types = field_types
        self._conditions: dict[str, Any] = {}

    def _field_type(self, field: str) -> type:
        if self.field_types is None:
            return str
        if field not in self.field_types:
            raise QueryError(f"Unknown filter field '{field}'")
        return self.field_types[field]

    def add(self, key: str, raw_value: Any) -> "FilterBuilder":
        field, op = parse_key(key)
        field_type = self._field_type(field)

        if op is None:
            if field in self._conditions:
                raise QueryError(f"Conflicting conditions for field '{field}'")
            self._conditions[field] = coerce_value(field, raw_value, field_type)
            return self

        if op == "in":
            values = raw_value.split(",") if isinstance(raw_value, str) else list(raw_value)
            value = [coerce_value(field, v.strip() if isinstance(v, str) else v, field_type) for v in values]
        else:
            value = coerce_value(field, raw_value, field_type)

        existing = self._conditions.setdefault(field, {})
        if not isinstance(existing, dict):
            raise QueryError(f"Conflicting conditions for field '{field}'")
        existing[OPERATORS[op]] = value
        return self

    def add_all(self, params: dict[str, Any]) -> "FilterBuilder":
        for key, value in params.items():
            self.add(key, value)
        return self

    def build(self) -> dict[str, Any]:
        return dict(self._conditions)
