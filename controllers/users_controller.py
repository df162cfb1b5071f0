import logging
from datetime import datetime

from flask import Blueprint, jsonify, request, session
from werkzeug.security import generate_password_hash

from models.cohort import Cohort
from models.college import College
from models.log import Log
from models.roles import COLLEGE_ROLES, is_valid_role, normalize_role, role_variants
from models.users import User, search_regex
from utils.auth import current_actor, login_required, role_required
from utils.dashboard import move_tab, validate_tab_order
from utils.ids import id_query, optional_object_id, ref_to_str, same_id
from utils.role_detection import detect_user_role, get_role_suggestions, validate_gitlab_username
from utils.errors import Conflict
from utils.validation import is_valid_email, missing_fields

logger = logging.getLogger(__name__)

users_bp = Blueprint("users", __name__, url_prefix="/api/admin/users")
preferences_bp = Blueprint("preferences", __name__, url_prefix="/api/users/me")

BULK_FIELDS = ("role", "college", "cohortId", "isActive", "assignedTechLead")


def _format_user(user, colleges):
    key = ref_to_str(user.get("college"))
    if key not in colleges:
        colleges[key] = College.resolve(user.get("college"))
    college = colleges[key]
    user.pop("password", None)
    user["role"] = normalize_role(user.get("role")) or user.get("role")
    user["collegeName"] = college["name"] if college else None
    return user


def _resolve_college(value):
    """Returns (college_id, error)."""
    if value in (None, ""):
        return None, None
    college = College.resolve(value)
    if not college:
        return None, f"College not found: {value}"
    return college["_id"], None


# -----------------------------
# VIEW USERS
# -----------------------------
@users_bp.route("", methods=["GET"])
@role_required("admin")
def list_users():
    query = {}

    role = request.args.get("role")
    if role and role != "all":
        query["role"] = {"$in": role_variants(role) or [role]}

    college = request.args.get("college")
    if college and college != "all":
        found = College.resolve(college)
        refs = [college]
        if found:
            refs = [found["_id"], str(found["_id"]), found["name"]]
        query["college"] = {"$in": refs}

    cohort = request.args.get("cohort")
    if cohort == "none":
        query["cohortId"] = None
    elif cohort and cohort != "all":
        query.update(id_query("cohortId", cohort))

    status = request.args.get("status", "active")
    if status == "active":
        query["isActive"] = True
    elif status == "inactive":
        query["isActive"] = False

    search = (request.args.get("search") or "").strip()
    if search:
        pattern = search_regex(search)
        query["$or"] = [{"name": pattern}, {"gitlabUsername": pattern}, {"email": pattern}]

    colleges = {}
    users = [_format_user(u, colleges) for u in User.collection().find(query).sort("name", 1)]
    return jsonify({"users": users, "total": len(users)})


# -----------------------------
# ADD USER
# -----------------------------
@users_bp.route("", methods=["POST"])
@role_required("admin")
def add_user():
    data = request.get_json(silent=True) or {}
    missing = missing_fields(data, ["gitlabUsername", "name", "email", "role"])
    if missing:
        return jsonify({"error": "Missing required fields", "details": missing}), 400

    username = data["gitlabUsername"].strip().lower()
    valid, message = validate_gitlab_username(username)
    if not valid:
        return jsonify({"error": message}), 400

    if not is_valid_email(data["email"].strip()):
        return jsonify({"error": "Invalid email format"}), 400

    role = data["role"]
    if role == "auto":
        role = detect_user_role(username)
    if not is_valid_role(role):
        return jsonify({"error": f"Invalid role: {role}"}), 400
    role = normalize_role(role)

    if role in COLLEGE_ROLES and not data.get("college"):
        return jsonify({"error": "College is required for non-admin users"}), 400

    if User.exists(username=username, email=data["email"]):
        raise Conflict("User with this GitLab username or email already exists")

    college_id, error = _resolve_college(data.get("college"))
    if error:
        return jsonify({"error": error}), 400

    cohort_id = optional_object_id(data.get("cohortId"), "cohort ID")
    if cohort_id and not Cohort.find_by_id(cohort_id):
        return jsonify({"error": "Cohort not found"}), 400

    result = User(
        gitlab_username=username,
        name=data["name"],
        email=data["email"],
        role=role,
        college=college_id,
        cohort_id=cohort_id,
        assigned_by=current_actor(),
        assigned_tech_lead=data.get("assignedTechLead"),
        password=data.get("password"),
    ).save()

    if cohort_id:
        Cohort.update_member_count(cohort_id)

    Log.record("CREATE", "users", current_actor(), result.inserted_id, {"gitlabUsername": username, "role": role})
    return jsonify({
        "success": True,
        "message": "User created successfully",
        "user": _format_user(User.find_by_id(result.inserted_id), {}),
    }), 201


# -----------------------------
# ROLE SUGGESTIONS
# -----------------------------
@users_bp.route("/role-suggestions", methods=["GET"])
@role_required("admin")
def role_suggestions():
    username = request.args.get("username", "")
    valid, message = validate_gitlab_username(username)
    suggestions = get_role_suggestions(username)
    suggestions["validation"] = {"valid": valid, "message": message}
    return jsonify(suggestions)


# -----------------------------
# BULK UPDATE
# -----------------------------
@users_bp.route("/bulk-update", methods=["POST"])
@role_required("admin")
def bulk_update():
    data = request.get_json(silent=True) or {}
    user_ids = data.get("userIds")
    updates = data.get("updates") or {}

    if not isinstance(user_ids, list) or not user_ids:
        return jsonify({"error": "userIds must be a non-empty array"}), 400

    unknown = [k for k in updates if k not in BULK_FIELDS]
    if unknown or not updates:
        return jsonify({"error": "Invalid updates", "details": unknown or "No updates provided"}), 400

    updates = dict(updates)
    if "role" in updates:
        if not is_valid_role(updates["role"]):
            return jsonify({"error": f"Invalid role: {updates['role']}"}), 400
        updates["role"] = normalize_role(updates["role"])
    if "college" in updates:
        updates["college"], error = _resolve_college(updates["college"])
        if error:
            return jsonify({"error": error}), 400
    if "cohortId" in updates:
        updates["cohortId"] = optional_object_id(updates["cohortId"], "cohort ID")
        if updates["cohortId"] and not Cohort.find_by_id(updates["cohortId"]):
            return jsonify({"error": "Cohort not found"}), 400
    if "assignedTechLead" in updates:
        updates["assignedTechLead"] = optional_object_id(updates["assignedTechLead"], "tech lead ID")
    if "isActive" in updates:
        updates["isActive"] = bool(updates["isActive"])

    results = User.bulk_update(user_ids, updates)
    if results["successful"] and ("cohortId" in updates or "isActive" in updates):
        Cohort.sync_all_member_counts()

    Log.record("UPDATE", "users", current_actor(), None, {
        "bulk": True,
        "fields": list(updates),
        "successful": len(results["successful"]),
    })
    return jsonify({
        "success": True,
        "message": f"Bulk update completed: {len(results['successful'])} successful, "
                   f"{len(results['failed'])} failed, {len(results['skipped'])} skipped",
        "results": results,
    })


# -----------------------------
# VIEW ONE USER
# -----------------------------
@users_bp.route("/<user_id>", methods=["GET"])
@role_required("admin")
def get_user(user_id):
    user = User.find_by_id(user_id)
    if not user:
        return jsonify({"error": "User not found"}), 404
    return jsonify({"user": _format_user(user, {})})


# -----------------------------
# EDIT / UPDATE USER
# -----------------------------
@users_bp.route("/<user_id>", methods=["PUT"])
@role_required("admin")
def update_user(user_id):
    data = request.get_json(silent=True) or {}
    user = User.find_by_id(user_id)
    if not user:
        return jsonify({"error": "User not found"}), 404

    update_data = {}
    username = data.get("gitlabUsername")
    email = data.get("email")

    if username is not None:
        username = username.strip().lower()
        valid, message = validate_gitlab_username(username)
        if not valid:
            return jsonify({"error": message}), 400
        update_data["gitlabUsername"] = username
    if email is not None:
        email = email.strip().lower()
        if email and not is_valid_email(email):
            return jsonify({"error": "Invalid email format"}), 400
        update_data["email"] = email or None

    conflict = User.exists(username=username, email=email, exclude_id=user["_id"], active_only=True)
    if conflict:
        field = "GitLab username" if conflict.get("gitlabUsername") == username else "email"
        return jsonify({"error": f"Another active user already uses this {field}"}), 400

    if "name" in data:
        if not (data["name"] or "").strip():
            return jsonify({"error": "Name cannot be empty"}), 400
        update_data["name"] = data["name"].strip()

    if "role" in data:
        if not is_valid_role(data["role"]):
            return jsonify({"error": f"Invalid role: {data['role']}"}), 400
        update_data["role"] = normalize_role(data["role"])

    if "college" in data:
        update_data["college"], error = _resolve_college(data["college"])
        if error:
            return jsonify({"error": error}), 400

    old_cohort = user.get("cohortId")
    if "cohortId" in data:
        new_cohort = optional_object_id(data["cohortId"], "cohort ID")
        if new_cohort and not Cohort.find_by_id(new_cohort):
            return jsonify({"error": "Cohort not found"}), 400
        update_data["cohortId"] = new_cohort

    if "assignedTechLead" in data:
        update_data["assignedTechLead"] = optional_object_id(data["assignedTechLead"], "tech lead ID")

    role_changed = "role" in update_data and update_data["role"] != normalize_role(user.get("role"))
    activation_changed = "isActive" in data and bool(data["isActive"]) != user.get("isActive", True)
    now = datetime.utcnow()

    if activation_changed:
        update_data["isActive"] = bool(data["isActive"])
        prefix = "reactivated" if update_data["isActive"] else "deactivated"
        update_data[f"{prefix}At"] = now
        update_data[f"{prefix}By"] = current_actor()
        update_data[f"{prefix}Reason"] = data.get("reason") or "Updated by admin"

    if data.get("password"):
        update_data["password"] = generate_password_hash(data["password"])

    update_data["updatedAt"] = now
    changes = {"$set": update_data}
    if role_changed or activation_changed:
        changes["$inc"] = {"sessionVersion": 1}
    User.collection().update_one({"_id": user["_id"]}, changes)

    affected = set()
    if "cohortId" in update_data and not same_id(old_cohort, update_data["cohortId"]):
        affected.update(ref_to_str(c) for c in (old_cohort, update_data["cohortId"]) if c)
    elif activation_changed and old_cohort:
        affected.add(ref_to_str(old_cohort))
    for cohort_id in affected:
        Cohort.update_member_count(cohort_id)

    logged = {k: v for k, v in update_data.items() if k != "password"}
    Log.record("UPDATE", "users", current_actor(), user["_id"], logged)

    return jsonify({
        "success": True,
        "message": "User updated successfully",
        "user": _format_user(User.find_by_id(user["_id"]), {}),
        "sessionInvalidated": role_changed or activation_changed,
    })


# -----------------------------
# DELETE USER (deactivate)
# -----------------------------
@users_bp.route("/<user_id>", methods=["DELETE"])
@role_required("admin")
def delete_user(user_id):
    user = User.find_by_id(user_id)
    if not user:
        return jsonify({"error": "User not found"}), 404

    if str(user["_id"]) == session.get("user_id"):
        return jsonify({"error": "You cannot deactivate your own account"}), 400

    User.collection().update_one(
        {"_id": user["_id"]},
        {
            "$set": {
                "isActive": False,
                "deactivatedAt": datetime.utcnow(),
                "deactivatedBy": current_actor(),
                "deactivatedReason": request.args.get("reason") or "Deleted by admin",
                "updatedAt": datetime.utcnow(),
            },
            "$inc": {"sessionVersion": 1},
        },
    )
    if user.get("cohortId"):
        Cohort.update_member_count(user["cohortId"])

    Log.record("DELETE", "users", current_actor(), user["_id"])
    return jsonify({"success": True, "message": "User deactivated successfully"})


# -----------------------------
# DASHBOARD PREFERENCES
# -----------------------------
@preferences_bp.route("/preferences", methods=["GET"])
@login_required
def get_preferences():
    user = User.find_by_id(session["user_id"])
    if not user:
        return jsonify({"error": "User not found"}), 404
    return jsonify({"tabOrder": User.get_tab_order(user)})


@preferences_bp.route("/preferences", methods=["PUT"])
@login_required
def update_preferences():
    data = request.get_json(silent=True) or {}
    tab_order = validate_tab_order(data.get("tabOrder"))
    User.set_tab_order(session["user_id"], tab_order)
    return jsonify({"success": True, "tabOrder": tab_order})


@preferences_bp.route("/preferences/move-tab", methods=["POST"])
@login_required
def move_preference_tab():
    data = request.get_json(silent=True) or {}
    if not data.get("tab") or not data.get("target"):
        return jsonify({"error": "tab and target are required"}), 400

    user = User.find_by_id(session["user_id"])
    if not user:
        return jsonify({"error": "User not found"}), 404

    tab_order = move_tab(User.get_tab_order(user), data["tab"], data["target"])
    User.set_tab_order(user["_id"], tab_order)
    return jsonify({"success": True, "tabOrder": tab_order})
