import logging
from functools import wraps

from flask import jsonify, session

from models.roles import normalize_role
from models.users import User
from utils.errors import Forbidden, Unauthorized
from utils.ids import is_valid_id

logger = logging.getLogger(__name__)


# This decorator makes sure that only logged-in users can access protected routes
def login_required(view_function):
    @wraps(view_function)
    def decorated_function(*args, **kwargs):
        if "user_id" not in session:
            raise Unauthorized()
        return view_function(*args, **kwargs)
    return decorated_function


def role_required(*roles):
    """Allow only sessions whose role is one of `roles` (legacy names accepted)."""
    allowed = {normalize_role(r) for r in roles}

    def decorator(view_function):
        @wraps(view_function)
        def decorated_function(*args, **kwargs):
            if "user_id" not in session:
                raise Unauthorized()
            if normalize_role(session.get("role")) not in allowed:
                raise Forbidden()
            return view_function(*args, **kwargs)
        return decorated_function
    return decorator


def current_user_id():
    return session.get("user_id")


def current_role():
    return normalize_role(session.get("role"))


def current_actor():
    """Name recorded in assignedBy / performedBy fields."""
    return session.get("gitlab_username") or session.get("user_name") or "system"


def login_session(user):
    session.clear()
    session.permanent = True
    session["user_id"] = str(user["_id"])
    session["user_name"] = user.get("name")
    session["gitlab_username"] = user.get("gitlabUsername")
    session["role"] = normalize_role(user.get("role"))
    session["college_id"] = str(user["college"]) if user.get("college") else None
    session["session_version"] = user.get("sessionVersion", 1)


def logout_user():
    session.clear()
    return jsonify({"success": True, "message": "You have been logged out successfully."})


def refresh_session():
    """
    Re-read the logged-in user on every request.
    Role and college come from the database; a missing or inactive user,
    or a bumped sessionVersion, clears the session.
    """
    user_id = session.get("user_id")
    if not user_id or not is_valid_id(user_id):
        return False

    user = User.find_by_id(user_id)
    if not user or not user.get("isActive", True) \
            or user.get("sessionVersion", 1) != session.get("session_version", 1):
        logger.info("Dropping stale session for user %s", user_id)
        session.clear()
        return False

    session["role"] = normalize_role(user.get("role"))
    session["college_id"] = str(user["college"]) if user.get("college") else None
    return True
