"""
Bulk import of users, tasks and attendance from CSV / Excel files.

Every import runs in two phases: rows are validated and normalized first
(this is all a preview returns), then the valid rows are written.
"""

import csv
import io
import logging
import uuid
from datetime import datetime

from openpyxl import load_workbook

from models.attendance import STATUSES as ATTENDANCE_STATUSES
from models.attendance import Attendance
from models.cohort import Cohort
from models.college import College
from models.roles import INTERN, ROLES, normalize_role
from models.task import PRIORITIES, TASK_TYPES, Task
from models.users import DEFAULT_TAB_ORDER, User
from utils.errors import BadRequest
from utils.validation import is_valid_email, parse_date

logger = logging.getLogger(__name__)

IMPORT_TYPES = ["users", "tasks", "attendance"]

REQUIRED_FIELDS = {
    "users": ["gitlabUsername"],
    "tasks": ["title", "description", "category", "dueDate"],
    "attendance": ["gitlabUsername", "date", "status"],
}

TEMPLATES = {
    "users": (
        ["gitlabUsername", "name", "email", "role", "college", "cohort"],
        ["jane.doe", "Jane Doe", "jane@example.com", INTERN, "Example College", "Batch 1"],
    ),
    "tasks": (
        ["title", "description", "category", "dueDate", "type", "priority", "cohort", "weekNumber", "estimatedHours"],
        ["Build a REST API", "Create CRUD endpoints", "Backend", "2025-01-31", "coding", "high", "Batch 1", "2", "6"],
    ),
    "attendance": (
        ["gitlabUsername", "date", "status", "checkInTime", "checkOutTime"],
        ["jane.doe", "2025-01-06", "present", "09:00", "17:30"],
    ),
}


# -----------------------------
# PARSING
# -----------------------------
def parse_csv(text):
    """Header row plus data rows; rows whose width differs from the header are dropped."""
    lines = [line for line in text.splitlines() if line.strip()]
    if len(lines) < 2:
        raise BadRequest("CSV file must have at least a header row and one data row")

    reader = csv.reader(lines, skipinitialspace=True)
    headers = [h.strip().strip('"') for h in next(reader)]

    rows = []
    for values in reader:
        if len(values) != len(headers):
            continue
        rows.append({h: v.strip().strip('"') for h, v in zip(headers, values)})
    return rows


def parse_xlsx(content):
    workbook = load_workbook(io.BytesIO(content), read_only=True, data_only=True)
    sheet = workbook.worksheets[0]
    rows = sheet.iter_rows(values_only=True)
    try:
        headers = [str(h).strip() if h is not None else "" for h in next(rows)]
    except StopIteration:
        return []

    data = []
    for values in rows:
        if values is None or all(v is None or str(v).strip() == "" for v in values):
            continue
        row = {}
        for header, value in zip(headers, values):
            if not header:
                continue
            if isinstance(value, datetime):
                value = value.strftime("%Y-%m-%d")
            row[header] = "" if value is None else str(value).strip()
        data.append(row)
    workbook.close()
    return data


def parse_file(content, filename):
    extension = filename.rsplit(".", 1)[-1].lower() if "." in filename else ""
    try:
        if extension == "csv":
            return parse_csv(content.decode("utf-8-sig"))
        if extension in ("xlsx", "xlsm"):
            return parse_xlsx(content)
    except BadRequest as e:
        raise BadRequest(f"Failed to parse file: {e.message}")
    except (UnicodeDecodeError, ValueError, KeyError, OSError) as e:
        raise BadRequest(f"Failed to parse file: {e}")
    raise BadRequest("Unsupported file format")


def template_csv(import_type):
    if import_type not in TEMPLATES:
        raise BadRequest(f"Unknown import type: {import_type}")
    headers, example = TEMPLATES[import_type]
    buffer = io.StringIO()
    writer = csv.writer(buffer)
    writer.writerow(headers)
    writer.writerow(example)
    return buffer.getvalue()


# -----------------------------
# VALIDATION
# -----------------------------
def _missing(row, index, import_type):
    return [
        f"Row {index}: Missing required field '{field}'"
        for field in REQUIRED_FIELDS[import_type]
        if not str(row.get(field) or "").strip()
    ]


def validate_users(rows, actor):
    processed, errors = [], []
    invalid = 0
    for i, row in enumerate(rows, start=1):
        row_errors = _missing(row, i, "users")
        role = row.get("role")
        if role and normalize_role(role) not in ROLES:
            row_errors.append(f"Row {i}: Invalid role '{role}'")
        if row.get("email") and not is_valid_email(row["email"]):
            row_errors.append(f"Row {i}: Invalid email format")

        if row_errors:
            invalid += 1
            errors.extend(row_errors)
            continue

        username = row["gitlabUsername"].strip().lower()
        processed.append({
            "gitlabUsername": username,
            "name": row.get("name") or username,
            "email": row["email"].strip().lower() if row.get("email") else None,
            "role": normalize_role(role) or INTERN,
            "college": row.get("college") or None,
            "cohort": row.get("cohort") or None,
            "assignedBy": actor,
        })
    return processed, {"valid": len(processed), "invalid": invalid, "errors": errors}


def validate_tasks(rows, actor):
    processed, errors = [], []
    invalid = 0
    for i, row in enumerate(rows, start=1):
        row_errors = _missing(row, i, "tasks")
        if row.get("type") and row["type"] not in TASK_TYPES:
            row_errors.append(f"Row {i}: Invalid task type '{row['type']}'")
        if row.get("priority") and row["priority"] not in PRIORITIES:
            row_errors.append(f"Row {i}: Invalid priority '{row['priority']}'")
        due = parse_date(row.get("dueDate"))
        if row.get("dueDate") and due is None:
            row_errors.append(f"Row {i}: Invalid due date format")
        week = row.get("weekNumber")
        if week and (not str(week).isdigit() or int(week) < 1):
            row_errors.append(f"Row {i}: Invalid week number '{week}'")

        if row_errors:
            invalid += 1
            errors.extend(row_errors)
            continue

        processed.append({
            "title": row["title"].strip(),
            "description": row["description"].strip(),
            "category": row["category"].strip(),
            "type": row.get("type") or "assignment",
            "priority": row.get("priority") or "medium",
            "assignmentType": "cohort" if row.get("cohort") else "individual",
            "cohortName": row.get("cohort") or None,
            "weekNumber": int(week) if week else None,
            "dueDate": due,
            "estimatedHours": _to_number(row.get("estimatedHours")),
            "assignedBy": actor,
        })
    return processed, {"valid": len(processed), "invalid": invalid, "errors": errors}


def validate_attendance(rows, actor):
    processed, errors = [], []
    invalid = 0
    for i, row in enumerate(rows, start=1):
        row_errors = _missing(row, i, "attendance")
        if row.get("status") and row["status"] not in ATTENDANCE_STATUSES:
            row_errors.append(f"Row {i}: Invalid status '{row['status']}'")
        day = parse_date(row.get("date"))
        if row.get("date") and day is None:
            row_errors.append(f"Row {i}: Invalid date format")

        if row_errors:
            invalid += 1
            errors.extend(row_errors)
            continue

        processed.append({
            "gitlabUsername": row["gitlabUsername"].strip().lower(),
            "date": day,
            "status": row["status"],
            "checkInTime": row.get("checkInTime") or None,
            "checkOutTime": row.get("checkOutTime") or None,
            "recordedBy": actor,
        })
    return processed, {"valid": len(processed), "invalid": invalid, "errors": errors}


def _to_number(value):
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0


# -----------------------------
# COMMIT
# -----------------------------
def _empty_results():
    return {"successful": 0, "failed": 0, "skipped": 0, "errors": []}


def import_users(processed):
    results = _empty_results()
    for data in processed:
        if User.find_by_username(data["gitlabUsername"]):
            results["skipped"] += 1
            continue

        college = College.resolve(data["college"]) if data["college"] else None
        if data["college"] and not college:
            results["failed"] += 1
            results["errors"].append(f"College not found for {data['gitlabUsername']}: {data['college']}")
            continue

        cohort = None
        if data["cohort"]:
            cohort = Cohort.collection().find_one({"name": data["cohort"], "isActive": True})

        User.collection().insert_one({
            "gitlabUsername": data["gitlabUsername"],
            "gitlabId": f"import_{uuid.uuid4().hex[:12]}",
            "name": data["name"],
            "email": data["email"],
            "role": data["role"],
            "college": college["_id"] if college else None,
            "cohortId": cohort["_id"] if cohort else None,
            "assignedBy": data["assignedBy"],
            "isActive": True,
            "sessionVersion": 1,
            "dashboardPreferences": {"tabOrder": list(DEFAULT_TAB_ORDER)},
            "createdAt": datetime.utcnow(),
            "updatedAt": datetime.utcnow(),
        })
        if cohort:
            Cohort.update_member_count(cohort["_id"])
        results["successful"] += 1
    return results


def import_tasks(processed, creator_id=None, creator_role=None):
    results = _empty_results()
    for data in processed:
        cohort_id = None
        if data["cohortName"]:
            cohort = Cohort.collection().find_one({"name": data["cohortName"], "isActive": True})
            if not cohort:
                results["failed"] += 1
                results["errors"].append(f"Failed to create task '{data['title']}': cohort '{data['cohortName']}' not found")
                continue
            cohort_id = cohort["_id"]

        Task(
            title=data["title"],
            description=data["description"],
            category=data["category"],
            due_date=data["dueDate"],
            cohort_id=cohort_id,
            task_type=data["type"],
            priority=data["priority"],
            assignment_type=data["assignmentType"],
            week_number=data["weekNumber"],
            estimated_hours=data["estimatedHours"],
            created_by=creator_id,
            created_by_role=creator_role,
            assigned_by=data["assignedBy"],
        ).save()
        results["successful"] += 1
    return results


def import_attendance(processed):
    results = _empty_results()
    for data in processed:
        user = User.find_by_username(data["gitlabUsername"])
        if not user:
            results["failed"] += 1
            results["errors"].append(f"User not found: {data['gitlabUsername']}")
            continue

        day = data["date"].strftime("%Y-%m-%d")
        existing = Attendance.collection().find_one({"userId": str(user["_id"]), "date": day})
        if existing:
            results["skipped"] += 1
            continue

        Attendance(
            user_id=user["_id"],
            action="import",
            user_name=user.get("name"),
            user_role=user.get("role"),
            status=data["status"],
            college=user.get("college"),
            recorded_by=data["recordedBy"],
            timestamp=data["date"],
        ).save()
        results["successful"] += 1
    return results


VALIDATORS = {
    "users": validate_users,
    "tasks": validate_tasks,
    "attendance": validate_attendance,
}


def process_import(rows, import_type, preview, actor, creator_id=None, creator_role=None):
    # Older clients send no type; those payloads were always user lists
    import_type = import_type or "users"
    if import_type not in VALIDATORS:
        raise BadRequest(f"Unknown import type: {import_type}")

    processed, validation = VALIDATORS[import_type](rows, actor)
    if preview:
        return {"data": processed, "validation": validation, "preview": True}

    if import_type == "users":
        results = import_users(processed)
    elif import_type == "tasks":
        results = import_tasks(processed, creator_id, creator_role)
    else:
        results = import_attendance(processed)

    results["invalid"] = validation["invalid"]
    results["errors"] = validation["errors"] + results["errors"]
    logger.info("Imported %s: %s successful, %s failed, %s skipped",
                import_type, results["successful"], results["failed"], results["skipped"])
    return results
