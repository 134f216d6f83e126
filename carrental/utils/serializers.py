"""Conversion of MongoDB documents into JSON-ready dicts."""

from typing import Any

from bson import ObjectId
from bson.errors import InvalidId

HIDDEN_FIELDS = ("password",)


def to_object_id(value: Any) -> ObjectId | None:
    """Parse an id from a path or payload. Returns None when it is not a valid ObjectId."""
    if isinstance(value, ObjectId):
        return value
    try:
        return ObjectId(str(value))
    except (InvalidId, TypeError):
        return None


def serialize_value(value: Any) -> Any:
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, dict):
        return serialize_document(value)
    if isinstance(value, list):
        return [serialize_value(item) for item in value]
    return value


def serialize_document(doc: dict[str, Any]) -> dict[str, Any]:
    """Stringify ObjectIds, expose `_id` as `id` and drop hidden fields."""
    result = {}
    for key, value in doc.items():
        if key in HIDDEN_FIELDS:
            continue
        if key == "_id":
            key = "id"
        result[key] = serialize_value(value)
    return result
