"""
Helpers for the loosely typed references stored in the database.

A user's college may be an ObjectId, the id as a string, the college name,
or a populated college document. Everything here accepts any of those.
"""

from bson import ObjectId

from utils.errors import BadRequest


def is_valid_id(value):
    if isinstance(value, ObjectId):
        return True
    return isinstance(value, str) and ObjectId.is_valid(value)


def to_object_id(value, label="ID"):
    if isinstance(value, ObjectId):
        return value
    if isinstance(value, dict) and "_id" in value:
        return to_object_id(value["_id"], label)
    if not is_valid_id(value):
        raise BadRequest(f"Invalid {label}")
    return ObjectId(value)


def optional_object_id(value, label="ID"):
    if value in (None, "", "null", "none"):
        return None
    return to_object_id(value, label)


def id_variants(value):
    """All stored forms of an id, for use in an $in query."""
    if value is None:
        return []
    if isinstance(value, dict):
        value = value.get("_id")
    variants = [str(value)]
    if is_valid_id(value):
        variants.insert(0, ObjectId(str(value)))
    return variants


def id_query(field, value):
    return {field: {"$in": id_variants(value)}}


def ref_to_str(ref):
    if ref is None:
        return None
    if isinstance(ref, dict):
        return ref_to_str(ref.get("_id"))
    return str(ref)


def same_id(a, b):
    if a is None or b is None:
        return False
    return ref_to_str(a) == ref_to_str(b)


def college_matches(ref, college):
    """True when a stored college reference points at the given college document."""
    if ref is None or not college:
        return False
    if isinstance(ref, dict):
        if "_id" in ref:
            return same_id(ref["_id"], college.get("_id"))
        ref = ref.get("name")
    if same_id(ref, college.get("_id")):
        return True
    name = college.get("name") or ""
    return isinstance(ref, str) and ref.strip().lower() == name.strip().lower()
