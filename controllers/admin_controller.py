from datetime import datetime

from flask import Blueprint, current_app, jsonify, request

from models.log import Log
from models.roles import ROLES, role_variants
from utils.auth import role_required
from utils.db import mongo

admin_bp = Blueprint("admin", __name__, url_prefix="/api/admin")

TREND_MONTHS = 6


def _month_starts(now, months):
    """First day of each of the last `months` months, oldest first."""
    year, month = now.year, now.month
    starts = []
    for _ in range(months):
        starts.append(datetime(year, month, 1))
        month -= 1
        if month == 0:
            year, month = year - 1, 12
    return list(reversed(starts))


def registration_trend(now=None, months=TREND_MONTHS):
    now = now or datetime.utcnow()
    starts = _month_starts(now, months)
    trend = []
    for i, start in enumerate(starts):
        end = starts[i + 1] if i + 1 < len(starts) else None
        query = {"createdAt": {"$gte": start}}
        if end:
            query["createdAt"]["$lt"] = end
        trend.append({"month": start.strftime("%Y-%m"), "count": mongo.db.users.count_documents(query)})
    return trend


# ==========================================================
# DASHBOARD STATS
# ==========================================================
@admin_bp.route("/dashboard-stats", methods=["GET"])
@role_required("admin")
def dashboard_stats():
    users = mongo.db.users
    by_role = {
        role: users.count_documents({"role": {"$in": role_variants(role)}, "isActive": True})
        for role in ROLES
    }
    total_users = users.count_documents({})
    active_users = users.count_documents({"isActive": True})

    health = round(active_users / total_users * 100, 1) if total_users else 100.0

    return jsonify({
        "users": {
            "total": total_users,
            "active": active_users,
            "inactive": total_users - active_users,
            "byRole": by_role,
        },
        "colleges": mongo.db.colleges.count_documents({"isActive": True}),
        "cohorts": {
            "total": mongo.db.cohorts.count_documents({}),
            "active": mongo.db.cohorts.count_documents({"isActive": True}),
        },
        "tasks": mongo.db.tasks.count_documents({"isActive": True}),
        "systemHealth": {
            "activeUserRatio": health,
            "status": "healthy" if health >= 80 else "warning" if health >= 50 else "critical",
        },
        "registrationTrend": registration_trend(),
    })


# ==========================================================
# ACTIVITY LOGS
# ==========================================================
@admin_bp.route("/activity-logs", methods=["GET"])
@role_required("admin")
def activity_logs():
    limit_max = current_app.config.get("ACTIVITY_LOG_LIMIT", 100)
    try:
        limit = min(int(request.args.get("limit", limit_max)), limit_max)
    except ValueError:
        return jsonify({"error": "limit must be a number"}), 400

    logs = Log.recent(limit=max(limit, 1), collection_name=request.args.get("collection"))
    return jsonify({"logs": logs, "total": len(logs)})
