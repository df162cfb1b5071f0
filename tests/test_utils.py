from datetime import datetime

import pytest
from bson import ObjectId

from models.users import DEFAULT_TAB_ORDER
from utils.dashboard import move_tab, validate_tab_order
from utils.errors import BadRequest
from utils.ids import college_matches, id_variants, optional_object_id, same_id, to_object_id
from utils.validation import is_valid_email, is_valid_ipv4, parse_date, require_fields


# -----------------------------
# IDS
# -----------------------------
def test_to_object_id_accepts_strings_and_documents():
    oid = ObjectId()
    assert to_object_id(str(oid)) == oid
    assert to_object_id({"_id": oid}) == oid


def test_to_object_id_rejects_garbage():
    with pytest.raises(BadRequest) as exc:
        to_object_id("not-an-id", "cohort ID")
    assert exc.value.message == "Invalid cohort ID"


def test_optional_object_id():
    assert optional_object_id("") is None
    assert optional_object_id("null") is None


def test_id_variants_cover_both_stored_forms():
    oid = ObjectId()
    assert id_variants(oid) == [oid, str(oid)]
    assert id_variants("Example College") == ["Example College"]


def test_college_matches_id_name_and_document():
    college = {"_id": ObjectId(), "name": "Example College"}
    assert college_matches(college["_id"], college)
    assert college_matches(str(college["_id"]), college)
    assert college_matches("example college ", college)
    assert college_matches({"_id": college["_id"], "name": "x"}, college)
    assert college_matches({"name": "Example College"}, college)
    assert not college_matches("Other College", college)
    assert not college_matches(None, college)


def test_same_id():
    oid = ObjectId()
    assert same_id(oid, str(oid))
    assert not same_id(oid, None)


# -----------------------------
# VALIDATION
# -----------------------------
def test_email_and_ip_formats():
    assert is_valid_email("jane@example.com")
    assert not is_valid_email("jane@example")
    assert is_valid_ipv4("192.168.1.10")
    assert not is_valid_ipv4("256.1.1.1")
    assert not is_valid_ipv4("10.0.0")


def test_parse_date_formats():
    assert parse_date("2025-01-31") == datetime(2025, 1, 31)
    assert parse_date("2025-01-31T10:30:00Z") == datetime(2025, 1, 31, 10, 30)
    assert parse_date("2025-01-31T10:30:00+05:30") == datetime(2025, 1, 31, 5, 0)
    assert parse_date("31/01/2025") == datetime(2025, 1, 31)
    assert parse_date("someday") is None
    assert parse_date("") is None


def test_require_fields_lists_missing():
    with pytest.raises(BadRequest) as exc:
        require_fields({"name": "x", "email": "  "}, ["name", "email", "role"])
    assert exc.value.details == ["email", "role"]


# -----------------------------
# DASHBOARD TABS
# -----------------------------
def test_move_tab_inserts_at_target_index():
    order = ["a", "b", "c", "d"]
    assert move_tab(order, "a", "c") == ["b", "c", "a", "d"]
    assert move_tab(order, "d", "b") == ["a", "d", "b", "c"]
    assert move_tab(order, "b", "b") == order
    assert order == ["a", "b", "c", "d"]


def test_move_tab_unknown_tab():
    with pytest.raises(BadRequest):
        move_tab(["a", "b"], "a", "z")


def test_validate_tab_order():
    assert validate_tab_order(list(reversed(DEFAULT_TAB_ORDER))) == list(reversed(DEFAULT_TAB_ORDER))
    with pytest.raises(BadRequest):
        validate_tab_order(["tasks", "tasks"])
    with pytest.raises(BadRequest):
        validate_tab_order(["tasks", "casino"])
    with pytest.raises(BadRequest):
        validate_tab_order("tasks")
