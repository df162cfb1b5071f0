import logging
from datetime import datetime

from flask import Blueprint, jsonify, request

from models.cohort import DEFAULT_CAPACITY, Cohort
from models.log import Log
from models.users import User
from utils.auth import current_actor, role_required
from utils.ids import id_query, optional_object_id
from utils.validation import number_field, parse_date, require_fields

logger = logging.getLogger(__name__)

cohorts_bp = Blueprint("cohorts", __name__, url_prefix="/api/admin/cohorts")


# -----------------------------
# VIEW COHORTS
# -----------------------------
@cohorts_bp.route("", methods=["GET"])
@role_required("admin")
def list_cohorts():
    query = {}
    college_id = request.args.get("collegeId")
    if college_id:
        query.update(id_query("collegeId", college_id))

    active = request.args.get("active", "true").lower()
    if active != "all":
        query["isActive"] = active != "false"

    cohorts = list(Cohort.collection().find(query).sort("startDate", -1))
    return jsonify({"cohorts": cohorts, "total": len(cohorts)})


# -----------------------------
# ADD COHORT
# -----------------------------
@cohorts_bp.route("", methods=["POST"])
@role_required("admin")
def add_cohort():
    data = request.get_json(silent=True) or {}
    require_fields(data, ["name", "startDate", "endDate"])

    start_date = parse_date(data["startDate"])
    end_date = parse_date(data["endDate"])
    if not start_date or not end_date:
        return jsonify({"error": "Invalid start or end date"}), 400
    max_interns = number_field(data, "maxInterns", minimum=1)

    if Cohort.collection().find_one({"name": data["name"].strip(), "isActive": True}):
        return jsonify({"error": "Cohort with this name already exists"}), 400

    result = Cohort(
        name=data["name"],
        start_date=start_date,
        end_date=end_date,
        description=data.get("description"),
        college_id=data.get("collegeId"),
        mentor_id=data.get("mentorId"),
        max_interns=max_interns or DEFAULT_CAPACITY,
        created_by=current_actor(),
    ).save()

    Log.record("CREATE", "cohorts", current_actor(), result.inserted_id, {"name": data["name"]})
    return jsonify({
        "success": True,
        "message": "Cohort created successfully",
        "cohort": Cohort.find_by_id(result.inserted_id),
    }), 201


# -----------------------------
# VIEW ONE COHORT
# -----------------------------
@cohorts_bp.route("/<cohort_id>", methods=["GET"])
@role_required("admin")
def get_cohort(cohort_id):
    cohort = Cohort.find_by_id(cohort_id)
    if not cohort:
        return jsonify({"error": "Cohort not found"}), 404
    cohort["memberCount"] = Cohort.count_members(cohort["_id"])
    return jsonify({"cohort": cohort})


# -----------------------------
# EDIT / UPDATE COHORT
# -----------------------------
@cohorts_bp.route("/<cohort_id>", methods=["PUT"])
@role_required("admin")
def update_cohort(cohort_id):
    data = request.get_json(silent=True) or {}
    cohort = Cohort.find_by_id(cohort_id)
    if not cohort:
        return jsonify({"error": "Cohort not found"}), 404

    update_data = {}
    for field in ("name", "description"):
        if field in data:
            update_data[field] = (data[field] or "").strip()
    if "name" in update_data and not update_data["name"]:
        return jsonify({"error": "Cohort name is required"}), 400

    for field in ("startDate", "endDate"):
        if field in data:
            parsed = parse_date(data[field])
            if not parsed:
                return jsonify({"error": f"Invalid {field}"}), 400
            update_data[field] = parsed

    start_date = update_data.get("startDate", cohort.get("startDate"))
    end_date = update_data.get("endDate", cohort.get("endDate"))
    if start_date and end_date and end_date < start_date:
        return jsonify({"error": "End date cannot be before start date"}), 400

    if "collegeId" in data:
        update_data["collegeId"] = optional_object_id(data["collegeId"], "college ID")
    if "mentorId" in data:
        update_data["mentorId"] = optional_object_id(data["mentorId"], "mentor ID")
    if "maxInterns" in data:
        update_data["maxInterns"] = number_field(data, "maxInterns", minimum=1)
        if update_data["maxInterns"] is None:
            return jsonify({"error": "maxInterns must be a number"}), 400
    if "isActive" in data:
        update_data["isActive"] = bool(data["isActive"])

    update_data["updatedAt"] = datetime.utcnow()
    Cohort.collection().update_one({"_id": cohort["_id"]}, {"$set": update_data})
    Log.record("UPDATE", "cohorts", current_actor(), cohort["_id"], update_data)

    return jsonify({"success": True, "cohort": Cohort.find_by_id(cohort["_id"])})


# -----------------------------
# DELETE COHORT (deactivate)
# -----------------------------
@cohorts_bp.route("/<cohort_id>", methods=["DELETE"])
@role_required("admin")
def delete_cohort(cohort_id):
    released = Cohort.deactivate(cohort_id)
    Log.record("DELETE", "cohorts", current_actor(), cohort_id, {"usersReleased": released})
    return jsonify({
        "success": True,
        "message": "Cohort deactivated successfully",
        "usersReleased": released,
    })


# -----------------------------
# ASSIGN / REMOVE USERS
# -----------------------------
@cohorts_bp.route("/assign-users", methods=["POST"])
@role_required("admin")
def assign_users():
    data = request.get_json(silent=True) or {}
    cohort_id = data.get("cohortId")
    user_ids = data.get("userIds")
    action = data.get("action", "assign")

    if not cohort_id or not isinstance(user_ids, list) or not user_ids:
        return jsonify({
            "error": "Missing required fields",
            "details": "cohortId and a non-empty userIds array are required",
        }), 400

    if action not in ("assign", "remove"):
        return jsonify({"error": "Invalid action", "details": "Action must be 'assign' or 'remove'"}), 400

    cohort, results = Cohort.change_members(cohort_id, user_ids, action)
    Log.record("ASSIGN", "cohorts", current_actor(), cohort["_id"], {
        "action": action,
        "success": len(results["success"]),
        "failed": len(results["failed"]),
        "skipped": len(results["skipped"]),
    })

    return jsonify({
        "success": True,
        "message": f"Cohort {action} completed: {len(results['success'])} successful, "
                   f"{len(results['failed'])} failed, {len(results['skipped'])} skipped",
        "results": results,
        "cohort": {
            "_id": cohort["_id"],
            "name": cohort["name"],
            "memberCount": Cohort.count_members(cohort["_id"]),
        },
    })


# -----------------------------
# COHORT MEMBERS
# -----------------------------
@cohorts_bp.route("/<cohort_id>/members", methods=["GET"])
@role_required("admin")
def cohort_members(cohort_id):
    cohort = Cohort.find_by_id(cohort_id)
    if not cohort:
        return jsonify({"error": "Cohort not found"}), 404

    query = {"isActive": True}
    query.update(id_query("cohortId", cohort["_id"]))
    members = list(User.collection().find(query, {"password": 0}).sort("name", 1))

    return jsonify({
        "cohort": {"_id": cohort["_id"], "name": cohort["name"], "maxInterns": cohort.get("maxInterns")},
        "members": members,
        "total": len(members),
    })
