import re
import uuid
from datetime import datetime

from werkzeug.security import check_password_hash, generate_password_hash

from models.roles import INTERN, normalize_role, role_variants
from utils.db import mongo
from utils.errors import BadRequest
from utils.ids import id_query, optional_object_id, to_object_id

DEFAULT_TAB_ORDER = [
    "progress", "tasks", "performance", "gitlab", "meetings",
    "profile", "leaderboard", "attendance", "chat", "ai-assistant",
]


class User:

    @staticmethod
    def collection():
        return mongo.db.users

    def __init__(self, gitlab_username, name, email=None, role=INTERN, college=None,
                 cohort_id=None, assigned_by="system", assigned_tech_lead=None,
                 password=None, gitlab_id=None, is_active=True,
                 created_at=None, updated_at=None):
        self.gitlab_username = gitlab_username.strip().lower()
        self.gitlab_id = gitlab_id or f"manual_{uuid.uuid4().hex[:12]}"
        self.name = name.strip() if name else self.gitlab_username
        self.email = email.strip().lower() if email else None
        self.role = normalize_role(role) or INTERN
        self.college = optional_object_id(college, "college ID")
        self.cohort_id = optional_object_id(cohort_id, "cohort ID")
        self.assigned_by = assigned_by
        self.assigned_tech_lead = optional_object_id(assigned_tech_lead, "tech lead ID")
        self.password = generate_password_hash(password) if password else None
        self.is_active = is_active
        self.created_at = created_at or datetime.utcnow()
        self.updated_at = updated_at or datetime.utcnow()

    # Convert to dictionary for MongoDB
    def to_dict(self):
        return {
            "gitlabUsername": self.gitlab_username,
            "gitlabId": self.gitlab_id,
            "name": self.name,
            "email": self.email,
            "role": self.role,
            "college": self.college,
            "cohortId": self.cohort_id,
            "assignedBy": self.assigned_by,
            "assignedTechLead": self.assigned_tech_lead,
            "password": self.password,
            "isActive": self.is_active,
            "sessionVersion": 1,
            "lastLoginAt": None,
            "dashboardPreferences": {"tabOrder": list(DEFAULT_TAB_ORDER)},
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }

    def save(self):
        return self.collection().insert_one(self.to_dict())

    @staticmethod
    def find_by_id(user_id):
        return User.collection().find_one({"_id": to_object_id(user_id, "user ID")})

    @staticmethod
    def find_by_username(username):
        if not username:
            return None
        return User.collection().find_one({"gitlabUsername": username.strip().lower()})

    @staticmethod
    def find_by_email(email):
        if not email:
            return None
        return User.collection().find_one({"email": email.strip().lower()})

    @staticmethod
    def find_by_login(identifier):
        """Login accepts either the e-mail address or the GitLab username."""
        if identifier and "@" in identifier:
            return User.find_by_email(identifier)
        return User.find_by_username(identifier)

    @staticmethod
    def verify_password(identifier, password):
        user = User.find_by_login(identifier)
        if user and user.get("password") and check_password_hash(user["password"], password or ""):
            return user
        return None

    @staticmethod
    def exists(username=None, email=None, exclude_id=None, active_only=False):
        clauses = []
        if username:
            clauses.append({"gitlabUsername": username.strip().lower()})
        if email:
            clauses.append({"email": email.strip().lower()})
        if not clauses:
            return None
        query = {"$or": clauses}
        if exclude_id is not None:
            query["_id"] = {"$ne": to_object_id(exclude_id)}
        if active_only:
            query["isActive"] = True
        return User.collection().find_one(query)

    @staticmethod
    def find_by_role(role, college_id=None, active_only=True):
        query = {"role": {"$in": role_variants(role)}}
        if college_id:
            query.update(id_query("college", college_id))
        if active_only:
            query["isActive"] = True
        return list(User.collection().find(query).sort("name", 1))

    @staticmethod
    def touch_login(user_id):
        User.collection().update_one(
            {"_id": to_object_id(user_id)},
            {"$set": {"lastLoginAt": datetime.utcnow()}},
        )

    @staticmethod
    def get_tab_order(user):
        prefs = user.get("dashboardPreferences") or {}
        return prefs.get("tabOrder") or list(DEFAULT_TAB_ORDER)

    @staticmethod
    def set_tab_order(user_id, tab_order):
        User.collection().update_one(
            {"_id": to_object_id(user_id)},
            {"$set": {"dashboardPreferences.tabOrder": tab_order, "updatedAt": datetime.utcnow()}},
        )

    @staticmethod
    def bulk_update(user_ids, updates):
        """Apply the same field updates to many users; report what changed."""
        results = {"successful": [], "failed": [], "skipped": []}

        for user_id in user_ids:
            try:
                user = User.find_by_id(user_id)
            except BadRequest as e:
                results["failed"].append({"userId": user_id, "error": e.message})
                continue

            if not user:
                results["failed"].append({"userId": user_id, "error": "User not found"})
                continue

            changes = {k: v for k, v in updates.items() if user.get(k) != v}
            if not changes:
                results["skipped"].append({
                    "userId": user_id,
                    "username": user.get("gitlabUsername"),
                    "reason": "No changes needed",
                })
                continue

            changes["updatedAt"] = datetime.utcnow()
            User.collection().update_one(
                {"_id": user["_id"]},
                {"$set": changes, "$inc": {"sessionVersion": 1}},
            )
            changes.pop("updatedAt")
            results["successful"].append({
                "userId": user_id,
                "username": user.get("gitlabUsername"),
                "changes": changes,
            })

        return results


def search_regex(term):
    return {"$regex": re.escape(term.strip()), "$options": "i"}
