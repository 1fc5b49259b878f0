from __future__ import annotations

from typing import Any

from bson import ObjectId


def maybe_object_id(value: Any) -> ObjectId | None:
    """Return an ObjectId for a valid id (instance or 24-char hex), else None."""

    if isinstance(value, ObjectId):
        return value
    if isinstance(value, str) and ObjectId.is_valid(value):
        return ObjectId(value)
    return None


def serialize_doc(doc: dict[str, Any]) -> dict[str, Any]:
    """Copy a Mongo document, exposing `_id` as a string `id`."""

    out = dict(doc)
    if "_id" in out:
        out["id"] = str(out.pop("_id"))
    return out


__all__ = ["maybe_object_id", "serialize_doc"]
