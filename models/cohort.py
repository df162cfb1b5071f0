import logging
from datetime import datetime

from utils.db import mongo
from utils.errors import BadRequest, NotFound
from utils.ids import id_query, optional_object_id, same_id, to_object_id

logger = logging.getLogger(__name__)

DEFAULT_CAPACITY = 50


class Cohort:

    @staticmethod
    def collection():
        return mongo.db.cohorts

    def __init__(self, name, start_date, end_date, description="", college_id=None,
                 mentor_id=None, max_interns=DEFAULT_CAPACITY, created_by="system",
                 created_at=None, updated_at=None):
        if end_date < start_date:
            raise BadRequest("End date cannot be before start date")
        self.name = name.strip()
        self.description = description or ""
        self.start_date = start_date
        self.end_date = end_date
        self.college_id = optional_object_id(college_id, "college ID")
        self.mentor_id = optional_object_id(mentor_id, "mentor ID")
        self.max_interns = int(max_interns or DEFAULT_CAPACITY)
        self.created_by = created_by
        self.created_at = created_at or datetime.utcnow()
        self.updated_at = updated_at or datetime.utcnow()

    def to_dict(self):
        return {
            "name": self.name,
            "description": self.description,
            "startDate": self.start_date,
            "endDate": self.end_date,
            "collegeId": self.college_id,
            "mentorId": self.mentor_id,
            "maxInterns": self.max_interns,
            "memberCount": 0,
            "createdBy": self.created_by,
            "isActive": True,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }

    def save(self):
        return self.collection().insert_one(self.to_dict())

    @staticmethod
    def find_by_id(cohort_id):
        return Cohort.collection().find_one({"_id": to_object_id(cohort_id, "cohort ID")})

    @staticmethod
    def count_members(cohort_id):
        query = {"isActive": True}
        query.update(id_query("cohortId", cohort_id))
        return mongo.db.users.count_documents(query)

    @staticmethod
    def update_member_count(cohort_id):
        count = Cohort.count_members(cohort_id)
        Cohort.collection().update_one(
            {"_id": to_object_id(cohort_id)},
            {"$set": {"memberCount": count, "updatedAt": datetime.utcnow()}},
        )
        return count

    @staticmethod
    def sync_all_member_counts():
        """Recount members of every cohort; returns how many counts were wrong."""
        results = {"cohortsProcessed": 0, "assignmentsFixed": 0, "errors": []}
        for cohort in Cohort.collection().find({}):
            actual = Cohort.count_members(cohort["_id"])
            if cohort.get("memberCount") != actual:
                Cohort.collection().update_one(
                    {"_id": cohort["_id"]},
                    {"$set": {"memberCount": actual, "updatedAt": datetime.utcnow()}},
                )
                logger.info("Fixed cohort %s: %s -> %s members",
                            cohort.get("name"), cohort.get("memberCount"), actual)
                results["assignmentsFixed"] += 1
            results["cohortsProcessed"] += 1
        return results

    @staticmethod
    def deactivate(cohort_id):
        oid = to_object_id(cohort_id, "cohort ID")
        result = Cohort.collection().update_one(
            {"_id": oid},
            {"$set": {"isActive": False, "updatedAt": datetime.utcnow()}},
        )
        if result.matched_count == 0:
            raise NotFound("Cohort not found")
        released = mongo.db.users.update_many(
            id_query("cohortId", oid),
            {"$set": {"cohortId": None, "updatedAt": datetime.utcnow()}},
        )
        return released.modified_count

    @staticmethod
    def change_members(cohort_id, user_ids, action="assign"):
        """
        Assign users to, or remove them from, a cohort.

        Every user lands in exactly one of success / failed / skipped.
        The stored member count is recomputed when anything changed.
        """
        cohort = Cohort.find_by_id(cohort_id)
        if not cohort:
            raise NotFound("Cohort not found", details=f"No cohort found with ID: {cohort_id}")

        results = {"success": [], "failed": [], "skipped": [], "totalProcessed": 0}
        capacity = cohort.get("maxInterns") or DEFAULT_CAPACITY
        members = Cohort.count_members(cohort["_id"])

        for user_id in user_ids:
            results["totalProcessed"] += 1
            try:
                user = mongo.db.users.find_one({"_id": to_object_id(user_id, "user ID")})
            except BadRequest as e:
                results["failed"].append({"userId": user_id, "username": "unknown", "error": e.message})
                continue

            if not user:
                results["failed"].append({"userId": user_id, "username": "unknown", "error": "User not found"})
                continue

            username = user.get("gitlabUsername")
            if not user.get("isActive", True):
                results["failed"].append({"userId": user_id, "username": username, "error": "User is not active"})
                continue

            original = user.get("cohortId")

            if action == "assign":
                if same_id(original, cohort["_id"]):
                    results["skipped"].append({
                        "userId": user_id,
                        "username": username,
                        "reason": f"Already assigned to cohort {cohort['name']}",
                    })
                    continue
                if members >= capacity:
                    results["failed"].append({
                        "userId": user_id,
                        "username": username,
                        "error": f"Cohort {cohort['name']} is at capacity ({capacity})",
                    })
                    continue
                new_value = cohort["_id"]
                members += 1
                message = f"User {username} ({user.get('name')}) - ASSIGNED TO COHORT: {cohort['name']}"
                if original:
                    old = Cohort.collection().find_one({"_id": original})
                    message += f" (moved from {old['name'] if old else 'unknown cohort'})"

            elif action == "remove":
                if not original:
                    results["skipped"].append({
                        "userId": user_id,
                        "username": username,
                        "reason": "User is not assigned to any cohort",
                    })
                    continue
                if not same_id(original, cohort["_id"]):
                    results["failed"].append({
                        "userId": user_id,
                        "username": username,
                        "error": "User is not assigned to the specified cohort",
                    })
                    continue
                new_value = None
                members -= 1
                message = f"User {username} ({user.get('name')}) - REMOVED FROM COHORT: {cohort['name']}"

            else:
                results["failed"].append({"userId": user_id, "username": username, "error": f"Unknown action: {action}"})
                continue

            mongo.db.users.update_one(
                {"_id": user["_id"]},
                {"$set": {"cohortId": new_value, "updatedAt": datetime.utcnow()}},
            )
            if original and not same_id(original, new_value):
                Cohort.update_member_count(original)

            logger.info(message)
            results["success"].append({
                "userId": user_id,
                "username": username,
                "name": user.get("name"),
                "cohortChange": {"from": original, "to": new_value, "cohortName": cohort["name"] if new_value else None},
                "message": message,
            })

        if results["success"]:
            Cohort.update_member_count(cohort["_id"])

        return cohort, results
