import io
from datetime import datetime

import pytest
from openpyxl import Workbook

from models.roles import INTERN, TECH_LEAD
from utils.errors import BadRequest
from utils.importer import parse_csv, parse_file, process_import, template_csv, validate_tasks, validate_users


def test_parse_csv_strips_quotes_and_drops_ragged_rows():
    text = 'gitlabUsername,name,role\n"jane.doe","Jane Doe",intern\nbroken,row\n\njohn,John,mentor\n'
    rows = parse_csv(text)
    assert rows == [
        {"gitlabUsername": "jane.doe", "name": "Jane Doe", "role": "intern"},
        {"gitlabUsername": "john", "name": "John", "role": "mentor"},
    ]


def test_parse_csv_needs_header_and_data():
    with pytest.raises(BadRequest):
        parse_csv("gitlabUsername,name\n")


def test_parse_file_xlsx():
    wb = Workbook()
    ws = wb.active
    ws.append(["title", "description", "category", "dueDate"])
    ws.append(["Build API", "CRUD endpoints", "Backend", datetime(2025, 1, 31)])
    buffer = io.BytesIO()
    wb.save(buffer)

    rows = parse_file(buffer.getvalue(), "tasks.xlsx")
    assert rows == [{"title": "Build API", "description": "CRUD endpoints", "category": "Backend", "dueDate": "2025-01-31"}]


def test_parse_file_rejects_unknown_extension():
    with pytest.raises(BadRequest) as exc:
        parse_file(b"{}", "users.json")
    assert exc.value.message == "Unsupported file format"


def test_template_csv():
    lines = template_csv("attendance").splitlines()
    assert lines[0] == "gitlabUsername,date,status,checkInTime,checkOutTime"
    with pytest.raises(BadRequest):
        template_csv("payroll")


def test_validate_users_reports_row_numbers():
    rows = [
        {"gitlabUsername": "Jane.Doe", "email": "jane@example.com", "role": "mentor"},
        {"gitlabUsername": "", "email": "nope"},
        {"gitlabUsername": "x", "role": "wizard"},
    ]
    processed, validation = validate_users(rows, "admin")
    assert validation["valid"] == 1
    assert validation["invalid"] == 2
    assert "Row 2: Missing required field 'gitlabUsername'" in validation["errors"]
    assert "Row 2: Invalid email format" in validation["errors"]
    assert "Row 3: Invalid role 'wizard'" in validation["errors"]
    assert processed[0]["gitlabUsername"] == "jane.doe"
    assert processed[0]["role"] == TECH_LEAD


def test_validate_tasks_week_numbers():
    base = {"title": "T", "description": "D", "category": "C", "dueDate": "2025-02-01"}
    processed, validation = validate_tasks([dict(base, weekNumber="3"), dict(base, weekNumber="0")], "admin")
    assert validation["valid"] == 1
    assert validation["errors"] == ["Row 2: Invalid week number '0'"]
    assert processed[0]["weekNumber"] == 3
    assert processed[0]["assignmentType"] == "individual"


def test_preview_writes_nothing(db):
    rows = [{"gitlabUsername": "jane", "name": "Jane"}]
    result = process_import(rows, None, True, "admin")
    assert result["preview"] is True
    assert result["validation"]["valid"] == 1
    assert db.users.count_documents({}) == 0


def test_import_users_skips_existing(db, make_user, make_college):
    make_user("jane")
    college = make_college("Example College")
    rows = [
        {"gitlabUsername": "jane", "name": "Jane"},
        {"gitlabUsername": "john", "name": "John", "college": "example college"},
        {"gitlabUsername": "mary", "name": "Mary", "college": "Nowhere"},
    ]
    result = process_import(rows, "users", False, "admin")
    assert result["successful"] == 1
    assert result["skipped"] == 1
    assert result["failed"] == 1

    john = db.users.find_one({"gitlabUsername": "john"})
    assert john["college"] == college["_id"]
    assert john["role"] == INTERN


def test_import_attendance_one_record_per_day(db, make_user):
    make_user("jane")
    rows = [
        {"gitlabUsername": "jane", "date": "2025-01-06", "status": "present"},
        {"gitlabUsername": "jane", "date": "2025-01-06", "status": "late"},
        {"gitlabUsername": "ghost", "date": "2025-01-06", "status": "present"},
    ]
    result = process_import(rows, "attendance", False, "admin")
    assert result["successful"] == 1
    assert result["skipped"] == 1
    assert result["failed"] == 1
    assert db.attendance.find_one({})["date"] == "2025-01-06"
