import re
from datetime import datetime

from models.roles import INTERN, POC, role_variants
from utils.db import mongo
from utils.ids import id_query, is_valid_id, to_object_id


class College:

    @staticmethod
    def collection():
        return mongo.db.colleges

    def __init__(self, name, description="", location="", website="",
                 super_mentor_username=None, created_by=None, created_at=None, updated_at=None):
        self.name = name.strip()
        self.description = (description or "").strip()
        self.location = (location or "").strip()
        self.website = (website or "").strip()
        self.super_mentor_username = super_mentor_username.lower() if super_mentor_username else "unassigned"
        self.created_by = created_by
        self.created_at = created_at or datetime.utcnow()
        self.updated_at = updated_at or datetime.utcnow()

    def to_dict(self):
        return {
            "name": self.name,
            "description": self.description,
            "location": self.location,
            "website": self.website,
            "superMentorUsername": self.super_mentor_username,
            "isActive": True,
            "createdBy": self.created_by,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }

    def save(self):
        return self.collection().insert_one(self.to_dict())

    @staticmethod
    def find_by_id(college_id):
        return College.collection().find_one({"_id": to_object_id(college_id, "college ID")})

    @staticmethod
    def find_by_name(name, active_only=True, exclude_id=None):
        query = {"name": {"$regex": f"^{re.escape(name.strip())}$", "$options": "i"}}
        if active_only:
            query["isActive"] = True
        if exclude_id is not None:
            query["_id"] = {"$ne": to_object_id(exclude_id)}
        return College.collection().find_one(query)

    @staticmethod
    def resolve(ref):
        """Find a college from an id, an id string, a name, or a populated document."""
        if not ref:
            return None
        if isinstance(ref, dict):
            ref = ref.get("_id") or ref.get("name")
        college = College.find_by_id(ref) if is_valid_id(ref) else None
        if college is None and isinstance(ref, str):
            college = College.find_by_name(ref, active_only=False)
        return college

    @staticmethod
    def get_all_active():
        return list(College.collection().find({"isActive": True}).sort("name", 1))

    @staticmethod
    def intern_count(college_id):
        query = {"role": {"$in": role_variants(INTERN)}, "isActive": True}
        query.update(id_query("college", college_id))
        return mongo.db.users.count_documents(query)

    @staticmethod
    def active_user_count(college_id):
        query = {"isActive": True}
        query.update(id_query("college", college_id))
        return mongo.db.users.count_documents(query)

    @staticmethod
    def find_super_mentor(username):
        if not username or username == "unassigned":
            return None
        return mongo.db.users.find_one({
            "gitlabUsername": username.lower(),
            "role": {"$in": role_variants(POC)},
            "isActive": True,
        })
