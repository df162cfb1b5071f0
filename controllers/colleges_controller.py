import logging
from datetime import datetime

from flask import Blueprint, jsonify, request

from models.college import College
from models.log import Log
from models.roles import INTERN, POC, TECH_LEAD, normalize_role
from models.users import User
from utils.auth import current_actor, current_user_id, role_required
from utils.db import mongo
from utils.ids import college_matches

logger = logging.getLogger(__name__)

colleges_bp = Blueprint("colleges", __name__, url_prefix="/api/admin/colleges")


def _college_row(college):
    super_mentor = College.find_super_mentor(college.get("superMentorUsername"))
    return {
        "_id": college["_id"],
        "name": college.get("name"),
        "description": college.get("description"),
        "location": college.get("location"),
        "website": college.get("website"),
        "superMentorUsername": college.get("superMentorUsername"),
        "superMentorName": super_mentor["name"] if super_mentor else "N/A",
        "internCount": College.intern_count(college["_id"]),
        "createdAt": college.get("createdAt"),
    }


# -----------------------------
# VIEW COLLEGES
# -----------------------------
@colleges_bp.route("", methods=["GET"])
@role_required("admin")
def list_colleges():
    colleges = College.get_all_active()
    return jsonify({"colleges": [_college_row(c) for c in colleges]})


# -----------------------------
# ADD COLLEGE
# -----------------------------
@colleges_bp.route("", methods=["POST"])
@role_required("admin")
def add_college():
    data = request.get_json(silent=True) or {}
    name = (data.get("name") or "").strip()
    description = data.get("description")
    location = data.get("location")
    super_mentor_username = data.get("superMentorUsername")

    if not name or not description or not location:
        return jsonify({"error": "Missing required fields"}), 400

    if College.find_by_name(name, active_only=False):
        return jsonify({"error": "College already exists"}), 400

    if super_mentor_username and not College.find_super_mentor(super_mentor_username):
        return jsonify({"error": "Super-mentor not found"}), 400

    result = College(
        name=name,
        description=description,
        location=location,
        website=data.get("website"),
        super_mentor_username=super_mentor_username,
        created_by=current_user_id(),
    ).save()

    if super_mentor_username:
        mongo.db.users.update_one(
            {"gitlabUsername": super_mentor_username.lower()},
            {"$set": {"college": result.inserted_id, "updatedAt": datetime.utcnow()}},
        )

    Log.record("CREATE", "colleges", current_actor(), result.inserted_id, {"name": name})
    return jsonify({
        "success": True,
        "message": "College created successfully",
        "college": College.find_by_id(result.inserted_id),
    }), 201


# -----------------------------
# VIEW ONE COLLEGE
# -----------------------------
@colleges_bp.route("/<college_id>", methods=["GET"])
@role_required("admin")
def get_college(college_id):
    college = College.find_by_id(college_id)
    if not college:
        return jsonify({"error": "College not found"}), 404
    return jsonify({"college": _college_row(college)})


# -----------------------------
# EDIT / UPDATE COLLEGE
# -----------------------------
@colleges_bp.route("/<college_id>", methods=["PUT", "PATCH"])
@role_required("admin")
def update_college(college_id):
    data = request.get_json(silent=True) or {}
    name = (data.get("name") or "").strip()
    super_mentor_username = (data.get("superMentorUsername") or "").strip().lower()

    if not name:
        return jsonify({"error": "College name is required"}), 400

    college = College.find_by_id(college_id)
    if not college:
        return jsonify({"error": "College not found"}), 404

    if College.find_by_name(name, exclude_id=college["_id"]):
        return jsonify({"error": "College with this name already exists"}), 400

    current = college.get("superMentorUsername") or "unassigned"
    if super_mentor_username and super_mentor_username != current:
        super_mentor = College.find_super_mentor(super_mentor_username)
        if not super_mentor:
            return jsonify({"error": "Super-mentor not found or not available"}), 400

        taken = College.collection().find_one({
            "superMentorUsername": super_mentor_username,
            "isActive": True,
            "_id": {"$ne": college["_id"]},
        })
        if taken:
            return jsonify({"error": "This super-mentor is already assigned to another college"}), 400

        mongo.db.users.update_one(
            {"_id": super_mentor["_id"]},
            {"$set": {"college": college["_id"], "updatedAt": datetime.utcnow()}},
        )

        previous = College.find_super_mentor(current)
        if previous:
            mongo.db.users.update_one(
                {"_id": previous["_id"]},
                {"$set": {"college": None, "updatedAt": datetime.utcnow()}},
            )

    update_data = {
        "name": name,
        "description": (data.get("description") or "").strip(),
        "location": (data.get("location") or "").strip(),
        "website": (data.get("website") or "").strip(),
        "superMentorUsername": super_mentor_username or "unassigned",
        "updatedAt": datetime.utcnow(),
    }
    College.collection().update_one({"_id": college["_id"]}, {"$set": update_data})
    Log.record("UPDATE", "colleges", current_actor(), college["_id"], update_data)

    return jsonify(College.find_by_id(college["_id"]))


# -----------------------------
# DELETE COLLEGE (soft)
# -----------------------------
@colleges_bp.route("/<college_id>", methods=["DELETE"])
@role_required("admin")
def delete_college(college_id):
    college = College.find_by_id(college_id)
    if not college:
        return jsonify({"error": "College not found"}), 404

    active_users = College.active_user_count(college["_id"])
    if active_users > 0:
        return jsonify({
            "error": f"Cannot delete college with {active_users} active users. "
                     f"Please reassign or deactivate users first."
        }), 400

    College.collection().update_one(
        {"_id": college["_id"]},
        {"$set": {"isActive": False, "updatedAt": datetime.utcnow()}},
    )
    Log.record("DELETE", "colleges", current_actor(), college["_id"])
    return jsonify({"message": "College deleted successfully"})


# -----------------------------
# COLLEGE USERS (grouped by role)
# -----------------------------
@colleges_bp.route("/<college_id>/users", methods=["GET"])
@role_required("admin")
def college_users(college_id):
    college = College.find_by_id(college_id)
    if not college:
        return jsonify({"error": "College not found"}), 404

    # college may be stored as an id, a string id or the college name
    users = [
        u for u in User.collection().find({"isActive": True}, {"password": 0}).sort([("role", 1), ("name", 1)])
        if college_matches(u.get("college"), college)
    ]

    grouped = {POC: [], TECH_LEAD: [], INTERN: [], "other": []}
    for user in users:
        role = normalize_role(user.get("role"))
        grouped[role if role in grouped else "other"].append(user)

    interns = grouped[INTERN]
    stats = {
        "total": len(users),
        "superMentors": len(grouped[POC]),
        "mentors": len(grouped[TECH_LEAD]),
        "interns": len(interns),
        "assignedInterns": len([u for u in interns if u.get("assignedTechLead")]),
        "unassignedInterns": len([u for u in interns if not u.get("assignedTechLead")]),
    }

    return jsonify({"college": college, "users": users, "groupedUsers": grouped, "stats": stats})
