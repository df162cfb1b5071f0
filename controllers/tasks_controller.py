import logging
from datetime import datetime

from flask import Blueprint, jsonify, request, session

from models.cohort import Cohort
from models.log import Log
from models.task import PRIORITIES, STATUSES, TASK_TYPES, UNSCHEDULED, Task, TaskDraft, parse_week
from utils.auth import current_actor, current_role, current_user_id, role_required
from utils.ids import id_query, optional_object_id
from utils.importer import parse_file, process_import
from utils.validation import number_field, parse_date, require_fields

logger = logging.getLogger(__name__)

tasks_bp = Blueprint("tasks", __name__, url_prefix="/api/admin/tasks")

EDITABLE_FIELDS = (
    "title", "description", "category", "type", "status", "priority",
    "assignmentType", "requirements", "resources",
)


def _task_query():
    query = {"isActive": True}
    cohort_id = request.args.get("cohortId")
    if cohort_id and cohort_id != "all":
        query.update(id_query("cohortId", cohort_id))

    status = request.args.get("status")
    if status and status != "all":
        query["status"] = status

    week = request.args.get("week")
    if week == UNSCHEDULED:
        query["weekNumber"] = None
    elif week and week != "all":
        query["weekNumber"] = parse_week(week)
    return query


def _check_choices(data):
    if data.get("type") and data["type"] not in TASK_TYPES:
        return f"Invalid task type: {data['type']}"
    if data.get("priority") and data["priority"] not in PRIORITIES:
        return f"Invalid priority: {data['priority']}"
    if data.get("status") and data["status"] not in STATUSES:
        return f"Invalid status: {data['status']}"
    return None


# -----------------------------
# VIEW TASKS
# -----------------------------
@tasks_bp.route("", methods=["GET"])
@role_required("admin", "POC", "Tech Lead")
def list_tasks():
    tasks = list(Task.collection().find(_task_query()).sort([("weekNumber", 1), ("dueDate", 1)]))
    return jsonify({"tasks": tasks, "total": len(tasks)})


# -----------------------------
# WEEK FOLDERS
# -----------------------------
@tasks_bp.route("/weeks", methods=["GET"])
@role_required("admin", "POC", "Tech Lead")
def task_weeks():
    tasks = list(Task.collection().find(_task_query()).sort("dueDate", 1))
    weeks = Task.group_by_week(tasks)
    return jsonify({"weeks": weeks, "totalTasks": len(tasks)})


# -----------------------------
# ADD TASK
# -----------------------------
@tasks_bp.route("", methods=["POST"])
@role_required("admin", "POC", "Tech Lead")
def add_task():
    data = request.get_json(silent=True) or {}
    require_fields(data, ["title", "description", "category", "cohortId", "dueDate"])

    error = _check_choices(data)
    if error:
        return jsonify({"error": error}), 400

    points = number_field(data, "points")
    estimated_hours = number_field(data, "estimatedHours", cast=float)

    due_date = parse_date(data["dueDate"])
    if not due_date:
        return jsonify({"error": "Invalid due date"}), 400

    cohort = Cohort.find_by_id(data["cohortId"])
    if not cohort:
        return jsonify({"error": "Cohort not found"}), 400

    result = Task(
        title=data["title"],
        description=data["description"],
        category=data["category"],
        due_date=due_date,
        cohort_id=cohort["_id"],
        task_type=data.get("type"),
        priority=data.get("priority"),
        status=data.get("status"),
        assignment_type=data.get("assignmentType", "cohort"),
        assigned_to=data.get("assignedTo"),
        week_number=data.get("weekNumber"),
        points=10 if points is None else points,
        start_date=parse_date(data.get("startDate")),
        estimated_hours=estimated_hours,
        requirements=data.get("requirements"),
        resources=data.get("resources"),
        created_by=current_user_id(),
        created_by_role=current_role(),
        assigned_by=current_actor(),
    ).save()

    TaskDraft.clear(current_user_id())
    Log.record("CREATE", "tasks", current_actor(), result.inserted_id, {"title": data["title"]})
    return jsonify({
        "success": True,
        "message": "Task created successfully",
        "task": Task.find_by_id(result.inserted_id),
    }), 201


# -----------------------------
# TASK FORM DRAFT
# -----------------------------
@tasks_bp.route("/draft", methods=["GET"])
@role_required("admin", "POC", "Tech Lead")
def get_draft():
    draft = TaskDraft.get(session["user_id"])
    return jsonify({"hasDraft": draft is not None, **(draft or {"draft": None, "savedAt": None})})


@tasks_bp.route("/draft", methods=["PUT"])
@role_required("admin", "POC", "Tech Lead")
def save_draft():
    data = request.get_json(silent=True) or {}
    draft = data.get("draft", data)
    if not isinstance(draft, dict):
        return jsonify({"error": "Draft must be an object"}), 400

    saved_at = TaskDraft.save(session["user_id"], draft)
    if saved_at is None:
        return jsonify({"saved": False, "message": "Draft has no content; nothing saved"})
    return jsonify({"saved": True, "savedAt": saved_at})


@tasks_bp.route("/draft", methods=["DELETE"])
@role_required("admin", "POC", "Tech Lead")
def clear_draft():
    TaskDraft.clear(session["user_id"])
    return jsonify({"success": True, "message": "Draft cleared"})


# -----------------------------
# IMPORT TASKS
# -----------------------------
@tasks_bp.route("/import", methods=["POST"])
@role_required("admin", "POC", "Tech Lead")
def import_tasks():
    upload = request.files.get("file")
    if upload is None or not upload.filename:
        return jsonify({"error": "No file uploaded"}), 400

    rows = parse_file(upload.read(), upload.filename)
    preview = request.form.get("preview", "false").lower() == "true"
    result = process_import(
        rows, "tasks", preview, current_actor(),
        creator_id=current_user_id(), creator_role=current_role(),
    )

    if not preview:
        Log.record("IMPORT", "tasks", current_actor(), None, {
            "successful": result["successful"],
            "failed": result["failed"],
        })
    return jsonify({"success": True, "results": result})


# -----------------------------
# VIEW ONE TASK
# -----------------------------
@tasks_bp.route("/<task_id>", methods=["GET"])
@role_required("admin", "POC", "Tech Lead")
def get_task(task_id):
    task = Task.find_by_id(task_id)
    if not task:
        return jsonify({"error": "Task not found"}), 404
    return jsonify({"task": task})


# -----------------------------
# EDIT / UPDATE TASK
# -----------------------------
@tasks_bp.route("/<task_id>", methods=["PUT"])
@role_required("admin", "POC", "Tech Lead")
def update_task(task_id):
    data = request.get_json(silent=True) or {}
    task = Task.find_by_id(task_id)
    if not task:
        return jsonify({"error": "Task not found"}), 404

    error = _check_choices(data)
    if error:
        return jsonify({"error": error}), 400

    update_data = {k: data[k] for k in EDITABLE_FIELDS if k in data}
    for field in ("title", "description", "category"):
        if field in update_data and not str(update_data[field] or "").strip():
            return jsonify({"error": f"{field} cannot be empty"}), 400

    if "dueDate" in data:
        due_date = parse_date(data["dueDate"])
        if not due_date:
            return jsonify({"error": "Invalid due date"}), 400
        update_data["dueDate"] = due_date
    if "cohortId" in data:
        cohort_id = optional_object_id(data["cohortId"], "cohort ID")
        if cohort_id and not Cohort.find_by_id(cohort_id):
            return jsonify({"error": "Cohort not found"}), 400
        update_data["cohortId"] = cohort_id
    if "weekNumber" in data:
        update_data["weekNumber"] = parse_week(data["weekNumber"])
    # stored as numbers; week folders sum them
    if "points" in data:
        update_data["points"] = number_field(data, "points") or 0
    if "estimatedHours" in data:
        update_data["estimatedHours"] = number_field(data, "estimatedHours", cast=float) or 0.0

    update_data["updatedAt"] = datetime.utcnow()
    Task.collection().update_one({"_id": task["_id"]}, {"$set": update_data})
    Log.record("UPDATE", "tasks", current_actor(), task["_id"], update_data)

    return jsonify({"success": True, "task": Task.find_by_id(task["_id"])})


# -----------------------------
# MOVE TASK TO ANOTHER WEEK
# -----------------------------
@tasks_bp.route("/<task_id>/move", methods=["POST"])
@role_required("admin", "POC", "Tech Lead")
def move_task(task_id):
    data = request.get_json(silent=True) or {}
    if "weekNumber" not in data:
        return jsonify({"error": "weekNumber is required (null for unscheduled)"}), 400

    task, changed = Task.move_to_week(task_id, data["weekNumber"])
    if changed:
        Log.record("UPDATE", "tasks", current_actor(), task["_id"], {"weekNumber": task.get("weekNumber")})

    return jsonify({"success": True, "moved": changed, "task": task})


# -----------------------------
# DELETE TASK (soft)
# -----------------------------
@tasks_bp.route("/<task_id>", methods=["DELETE"])
@role_required("admin", "POC", "Tech Lead")
def delete_task(task_id):
    task = Task.find_by_id(task_id)
    if not task:
        return jsonify({"error": "Task not found"}), 404

    Task.collection().update_one(
        {"_id": task["_id"]},
        {"$set": {"isActive": False, "status": "archived", "updatedAt": datetime.utcnow()}},
    )
    Log.record("DELETE", "tasks", current_actor(), task["_id"])
    return jsonify({"success": True, "message": "Task deleted successfully"})
