import logging
from collections import Counter, defaultdict
from datetime import datetime, timedelta

from flask import Blueprint, jsonify, request, session

from models.attendance import DATE_FORMAT, STATUSES, Attendance
from models.authorized_ip import AuthorizedIP
from models.college import College
from models.users import User
from utils.auth import login_required, role_required
from utils.ids import id_query, ref_to_str
from utils.reports import EXPORTERS

logger = logging.getLogger(__name__)

attendance_bp = Blueprint("attendance", __name__, url_prefix="/api/attendance")
admin_attendance_bp = Blueprint("admin_attendance", __name__, url_prefix="/api/admin/attendance")


def _client_ip(data):
    return (data.get("clientIP") or request.headers.get("X-Forwarded-For", "").split(",")[0]
            or request.remote_addr or "").strip()


def _date_range(default_days=30):
    today = datetime.utcnow()
    start = request.args.get("startDate") or (today - timedelta(days=default_days)).strftime(DATE_FORMAT)
    end = request.args.get("endDate") or today.strftime(DATE_FORMAT)
    return start, end


def _admin_query():
    start, end = _date_range()
    query = {"date": {"$gte": start, "$lte": end}}

    college_id = request.args.get("collegeId")
    if college_id and college_id != "all":
        query.update(id_query("college", college_id))

    cohort_id = request.args.get("cohortId")
    if cohort_id and cohort_id != "all":
        member_query = id_query("cohortId", cohort_id)
        members = User.collection().find(member_query, {"_id": 1})
        query["userId"] = {"$in": [str(m["_id"]) for m in members]}

    return query, start, end


# ==========================================================
# CHECK-IN / CHECK-OUT
# ==========================================================
@attendance_bp.route("/checkin-checkout", methods=["POST"])
@login_required
def checkin_checkout():
    data = request.get_json(silent=True) or {}
    action = data.get("action")
    if action not in ("checkin", "checkout"):
        return jsonify({"error": "Action must be 'checkin' or 'checkout'"}), 400

    ip_address = _client_ip(data)
    if not AuthorizedIP.is_authorized(ip_address):
        logger.warning("Attendance from unauthorized IP %s by %s", ip_address, session.get("user_id"))
        return jsonify({
            "error": "Attendance can only be recorded from an authorized network",
            "ipAddress": ip_address,
        }), 403

    user = User.find_by_id(session["user_id"])
    if not user:
        return jsonify({"error": "User not found"}), 404

    now = datetime.utcnow()
    status = Attendance.today_status(user["_id"], now)

    if action == "checkin" and status["hasCheckedIn"]:
        return jsonify({"error": "You have already checked in today", "todayStatus": status}), 400
    if action == "checkout":
        if not status["hasCheckedIn"]:
            return jsonify({"error": "You must check in before checking out", "todayStatus": status}), 400
        if status["hasCheckedOut"]:
            return jsonify({"error": "You have already checked out today", "todayStatus": status}), 400

    Attendance(
        user_id=user["_id"],
        action=action,
        user_name=user.get("name"),
        user_role=user.get("role"),
        ip_address=ip_address,
        college=user.get("college"),
        location=data.get("location"),
        device_info=data.get("deviceInfo") or request.headers.get("User-Agent"),
        timestamp=now,
    ).save()

    streak = Attendance.update_streak(user["_id"], now) if action == "checkin" else user.get("attendanceStreak", 0)
    logger.info("%s %s at %s", user.get("gitlabUsername"), action, now.isoformat())

    return jsonify({
        "success": True,
        "message": "Checked in successfully" if action == "checkin" else "Checked out successfully",
        "todayStatus": Attendance.today_status(user["_id"], now),
        "streak": streak,
    })


# ==========================================================
# MARK ATTENDANCE (single daily mark)
# ==========================================================
@attendance_bp.route("/mark", methods=["POST"])
@login_required
def mark_attendance():
    data = request.get_json(silent=True) or {}
    status = data.get("status", "present")
    if status not in STATUSES:
        return jsonify({"error": f"Invalid status: {status}"}), 400

    ip_address = _client_ip(data)
    if not AuthorizedIP.is_authorized(ip_address):
        return jsonify({
            "error": "Attendance can only be recorded from an authorized network",
            "ipAddress": ip_address,
        }), 403

    user = User.find_by_id(session["user_id"])
    if not user:
        return jsonify({"error": "User not found"}), 404

    now = datetime.utcnow()
    today = Attendance.records_for_day(user["_id"], now.strftime(DATE_FORMAT))
    if any(r.get("action") == "mark" for r in today):
        return jsonify({"error": "Attendance already marked for today"}), 400

    Attendance(
        user_id=user["_id"],
        action="mark",
        user_name=user.get("name"),
        user_role=user.get("role"),
        status=status,
        ip_address=ip_address,
        college=user.get("college"),
        timestamp=now,
    ).save()

    return jsonify({
        "success": True,
        "message": "Attendance marked successfully",
        "streak": Attendance.update_streak(user["_id"], now),
    })


# ==========================================================
# OWN HISTORY
# ==========================================================
@attendance_bp.route("", methods=["GET"])
@login_required
def my_attendance():
    start, end = _date_range()
    records = list(
        Attendance.collection()
        .find({"userId": session["user_id"], "date": {"$gte": start, "$lte": end}})
        .sort("timestamp", -1)
    )
    present_days = {r["date"] for r in records if r.get("status") == "present"}

    user = User.find_by_id(session["user_id"]) or {}
    return jsonify({
        "records": records,
        "summary": {
            "startDate": start,
            "endDate": end,
            "presentDays": len(present_days),
            "streak": user.get("attendanceStreak", 0),
        },
        "todayStatus": Attendance.today_status(session["user_id"]),
    })


# ==========================================================
# ADMIN ANALYTICS
# ==========================================================
@admin_attendance_bp.route("/analytics", methods=["GET"])
@role_required("admin")
def analytics():
    query, start, end = _admin_query()
    records = list(Attendance.collection().find(query))

    by_date = defaultdict(Counter)
    by_status = Counter()
    by_college = Counter()
    colleges = {}
    users = set()

    for record in records:
        status = record.get("status") or "present"
        by_date[record["date"]][status] += 1
        by_status[status] += 1
        users.add(record.get("userId"))

        key = ref_to_str(record.get("college"))
        if key not in colleges:
            college = College.resolve(record.get("college"))
            colleges[key] = college["name"] if college else "Unassigned"
        by_college[colleges[key]] += 1

    return jsonify({
        "startDate": start,
        "endDate": end,
        "totalRecords": len(records),
        "uniqueUsers": len(users),
        "byDate": [{"date": d, **dict(by_date[d])} for d in sorted(by_date)],
        "byStatus": dict(by_status),
        "byCollege": dict(by_college),
    })


# ==========================================================
# EXPORT
# ==========================================================
@admin_attendance_bp.route("/export/<fmt>", methods=["GET"])
@role_required("admin")
def export(fmt):
    exporter = EXPORTERS.get(fmt.lower())
    if exporter is None:
        return jsonify({"error": f"Unsupported export format: {fmt}"}), 400

    query, start, end = _admin_query()
    records = list(Attendance.collection().find(query).sort([("date", -1), ("timestamp", 1)]))
    logger.info("Exporting %s attendance records as %s", len(records), fmt)
    return exporter(records, filename=f"attendance_{start}_{end}.{fmt.lower()}")
