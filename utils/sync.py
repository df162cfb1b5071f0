"""
Data-integrity maintenance for users and cohorts.

Each action returns a plain dict describing what it looked at and what it
fixed, so the admin UI can show it as-is.
"""

import logging
from datetime import datetime, timedelta

from models.cohort import Cohort
from models.college import College
from utils.db import mongo
from utils.errors import BadRequest, NotFound
from utils.ids import optional_object_id, ref_to_str, same_id, to_object_id

logger = logging.getLogger(__name__)


def sync_stats(now=None):
    now = now or datetime.utcnow()
    users = mongo.db.users
    user_stats = {
        "totalUsers": users.count_documents({}),
        "activeUsers": users.count_documents({"isActive": True}),
        "inactiveUsers": users.count_documents({"isActive": {"$ne": True}}),
        "usersWithCohorts": users.count_documents({"cohortId": {"$ne": None}}),
        "usersWithoutCohorts": users.count_documents({"cohortId": None}),
        "recentlyUpdated": users.count_documents({"updatedAt": {"$gte": now - timedelta(days=1)}}),
    }

    cohorts = list(Cohort.collection().find({}, {"memberCount": 1}))
    cohort_stats = {
        "totalCohorts": len(cohorts),
        "totalMemberCount": sum(c.get("memberCount") or 0 for c in cohorts),
    }
    return {"userStats": user_stats, "cohortStats": cohort_stats, "lastSyncCheck": now}


def full_sync():
    results = {"usersProcessed": 0, "cohortsUpdated": 0, "inconsistenciesFixed": 0, "errors": []}
    cohort_ids = {str(c["_id"]) for c in Cohort.collection().find({}, {"_id": 1})}

    for user in mongo.db.users.find({}):
        update = {}
        if user.get("cohortId") and ref_to_str(user["cohortId"]) not in cohort_ids:
            logger.warning("User %s assigned to missing cohort %s", user.get("gitlabUsername"), user["cohortId"])
            update["cohortId"] = None
            results["inconsistenciesFixed"] += 1
        if not user.get("updatedAt"):
            update["updatedAt"] = datetime.utcnow()
        if not user.get("isActive", True) and user.get("reactivatedAt") and not user.get("lastTokenRefresh"):
            update["lastTokenRefresh"] = datetime.utcnow()

        if update:
            mongo.db.users.update_one({"_id": user["_id"]}, {"$set": update})
        results["usersProcessed"] += 1

    counts = Cohort.sync_all_member_counts()
    results["cohortsUpdated"] = counts["assignmentsFixed"]
    results["errors"].extend(counts["errors"])

    logger.info("Full sync: %s users, %s cohorts updated, %s fixes",
                results["usersProcessed"], results["cohortsUpdated"], results["inconsistenciesFixed"])
    return results


def sync_user(user_id, data, actor="system"):
    if not user_id:
        raise BadRequest("userId is required for sync_user")
    user = mongo.db.users.find_one({"_id": to_object_id(user_id, "user ID")})
    if not user:
        raise NotFound("User not found")

    data = dict(data or {})
    original = {"isActive": user.get("isActive", True), "cohortId": user.get("cohortId"), "role": user.get("role")}
    now = datetime.utcnow()
    update = {k: v for k, v in data.items() if k in ("name", "email", "role", "isActive", "assignedTechLead")}
    update["updatedAt"] = now

    if "isActive" in data and bool(data["isActive"]) != original["isActive"]:
        update["isActive"] = bool(data["isActive"])
        update["lastTokenRefresh"] = now
        if update["isActive"]:
            update.update({
                "reactivatedAt": now,
                "reactivatedReason": data.get("reactivationReason") or "Admin sync",
                "reactivatedBy": data.get("reactivatedBy") or actor,
                "deactivatedAt": None,
                "deactivatedReason": None,
                "deactivatedBy": None,
            })
        else:
            update.update({
                "deactivatedAt": now,
                "deactivatedReason": data.get("deactivationReason") or "Admin sync",
                "deactivatedBy": data.get("deactivatedBy") or actor,
            })

    if "cohortId" in data and not same_id(data["cohortId"], original["cohortId"]):
        new_cohort = optional_object_id(data["cohortId"], "cohort ID")
        if new_cohort and not Cohort.find_by_id(new_cohort):
            raise NotFound("Cohort not found")
        update["cohortId"] = new_cohort

    mongo.db.users.update_one({"_id": user["_id"]}, {"$set": update})
    updated = mongo.db.users.find_one({"_id": user["_id"]}, {"password": 0})

    for cohort_id in {ref_to_str(c) for c in (original["cohortId"], updated.get("cohortId")) if c}:
        Cohort.update_member_count(cohort_id)

    logger.info("User %s synced", updated.get("gitlabUsername"))
    return {
        "user": updated,
        "changes": {
            "from": original,
            "to": {"isActive": updated.get("isActive"), "cohortId": updated.get("cohortId"), "role": updated.get("role")},
        },
    }


def sync_cohort_assignments():
    return Cohort.sync_all_member_counts()


def fix_inactive_users():
    results = {"usersFixed": 0, "errors": []}
    query = {"isActive": False, "$or": [{"deactivatedAt": None}, {"deactivatedAt": {"$exists": False}}]}
    for user in mongo.db.users.find(query):
        mongo.db.users.update_one(
            {"_id": user["_id"]},
            {"$set": {
                "deactivatedAt": user.get("updatedAt") or datetime.utcnow(),
                "deactivatedReason": "System cleanup",
                "deactivatedBy": "system",
                "lastTokenRefresh": datetime.utcnow(),
                "updatedAt": datetime.utcnow(),
            }},
        )
        logger.info("Fixed inactive user %s", user.get("gitlabUsername"))
        results["usersFixed"] += 1
    return results


def validate_data_integrity():
    issues = []
    cohort_ids = {str(c["_id"]) for c in Cohort.collection().find({}, {"_id": 1})}
    projection = {"gitlabUsername": 1, "name": 1, "cohortId": 1, "college": 1}

    invalid_cohorts = [
        u for u in mongo.db.users.find({"cohortId": {"$ne": None}}, projection)
        if ref_to_str(u["cohortId"]) not in cohort_ids
    ]
    if invalid_cohorts:
        issues.append({"type": "invalid_cohort_references", "count": len(invalid_cohorts), "users": invalid_cohorts})

    wrong_counts = []
    for cohort in Cohort.collection().find({}):
        actual = Cohort.count_members(cohort["_id"])
        if cohort.get("memberCount") != actual:
            wrong_counts.append({
                "_id": cohort["_id"],
                "name": cohort.get("name"),
                "memberCount": cohort.get("memberCount"),
                "actualCount": actual,
            })
    if wrong_counts:
        issues.append({"type": "incorrect_member_counts", "count": len(wrong_counts), "cohorts": wrong_counts})

    dangling_colleges = [
        u for u in mongo.db.users.find({"college": {"$nin": [None, ""]}}, projection)
        if not College.resolve(u["college"])
    ]
    if dangling_colleges:
        issues.append({"type": "invalid_college_references", "count": len(dangling_colleges), "users": dangling_colleges})

    return {"valid": not issues, "issues": issues, "summary": f"Found {len(issues)} integrity issues"}


ACTIONS = {
    "full_sync": lambda user_id, data, actor: full_sync(),
    "sync_user": sync_user,
    "sync_cohort_assignments": lambda user_id, data, actor: sync_cohort_assignments(),
    "fix_inactive_users": lambda user_id, data, actor: fix_inactive_users(),
    "validate_data_integrity": lambda user_id, data, actor: validate_data_integrity(),
}


def run_sync(action, user_id=None, data=None, actor="system"):
    handler = ACTIONS.get(action)
    if handler is None:
        raise BadRequest(f"Unknown sync action: {action}")
    logger.info("Sync request: %s (user %s)", action, user_id or "-")
    return handler(user_id, data, actor)
