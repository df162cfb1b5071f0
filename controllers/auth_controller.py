import logging

from flask import Blueprint, jsonify, request, session

from models.users import User
from utils.auth import login_required, login_session, logout_user

logger = logging.getLogger(__name__)

auth_bp = Blueprint("auth", __name__)


# Login
@auth_bp.route("/login", methods=["POST"])
def login():
    data = request.get_json(silent=True) or request.form
    identifier = data.get("email") or data.get("gitlabUsername")
    password = data.get("password")

    if not identifier or not password:
        return jsonify({"error": "Email (or GitLab username) and password are required"}), 400

    user = User.verify_password(identifier, password)
    if not user:
        logger.info("Failed login for %s", identifier)
        return jsonify({"error": "Invalid email or password"}), 401

    if not user.get("isActive", True):
        return jsonify({"error": "Account is inactive. Contact an administrator."}), 403

    login_session(user)
    User.touch_login(user["_id"])
    logger.info("User %s logged in", user.get("gitlabUsername"))

    return jsonify({
        "success": True,
        "message": f"Welcome {user.get('name')}!",
        "user": {
            "_id": user["_id"],
            "name": user.get("name"),
            "gitlabUsername": user.get("gitlabUsername"),
            "role": session["role"],
            "college": user.get("college"),
        },
    })


# Logout
@auth_bp.route("/logout", methods=["POST", "GET"])
def logout():
    return logout_user()


# Current session
@auth_bp.route("/me")
@login_required
def me():
    user = User.find_by_id(session["user_id"])
    if not user:
        session.clear()
        return jsonify({"error": "User not found"}), 404

    user.pop("password", None)
    return jsonify({"user": user, "role": session.get("role")})
