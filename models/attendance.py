from datetime import datetime, timedelta

from utils.db import mongo
from utils.ids import to_object_id

STATUSES = ["present", "absent", "late", "excused"]

DATE_FORMAT = "%Y-%m-%d"


class Attendance:
    @staticmethod
    def collection():
        return mongo.db.attendance

    def __init__(self, user_id, action, user_name=None, user_role=None, status="present",
                 ip_address=None, college=None, location=None, device_info=None,
                 recorded_by=None, timestamp=None):
        self.user_id = str(user_id)
        self.action = action
        self.user_name = user_name
        self.user_role = user_role
        self.status = status or "present"  # present | absent | late | excused
        self.ip_address = ip_address
        self.college = college
        self.location = location
        self.device_info = device_info
        self.recorded_by = recorded_by or "self"
        self.timestamp = timestamp or datetime.utcnow()
        self.date = self.timestamp.strftime(DATE_FORMAT)

    def to_dict(self):
        return {
            "userId": self.user_id,
            "userName": self.user_name,
            "userRole": self.user_role,
            "action": self.action,
            "timestamp": self.timestamp,
            "date": self.date,
            "status": self.status,
            "ipAddress": self.ip_address,
            "college": self.college,
            "location": self.location,
            "deviceInfo": self.device_info,
            "recordedBy": self.recorded_by,
        }

    def save(self):
        return Attendance.collection().insert_one(self.to_dict())

    @staticmethod
    def records_for_day(user_id, day):
        return list(
            Attendance.collection()
            .find({"userId": str(user_id), "date": day})
            .sort("timestamp", 1)
        )

    @staticmethod
    def today_status(user_id, now=None):
        now = now or datetime.utcnow()
        records = Attendance.records_for_day(user_id, now.strftime(DATE_FORMAT))
        checkin = next((r for r in records if r.get("action") == "checkin"), None)
        checkout = next((r for r in records if r.get("action") == "checkout"), None)
        marked = any(r.get("action") in ("mark", "import") for r in records)

        total_minutes = 0
        if checkin and checkout:
            total_minutes = minutes_between(checkin["timestamp"], checkout["timestamp"])

        if checkin and checkout:
            status = "complete"
        elif checkin or marked:
            status = "partial"
        else:
            status = "none"

        return {
            "hasCheckedIn": checkin is not None,
            "hasCheckedOut": checkout is not None,
            "checkinTime": checkin["timestamp"] if checkin else None,
            "checkoutTime": checkout["timestamp"] if checkout else None,
            "totalHours": f"{total_minutes / 60:.2f}",
            "duration": format_duration(total_minutes) if total_minutes else "-",
            "status": status,
        }

    @staticmethod
    def update_streak(user_id, now=None):
        """Count consecutive present days ending today and store it on the user."""
        now = now or datetime.utcnow()
        since = (now - timedelta(days=30)).strftime(DATE_FORMAT)
        days = set(
            Attendance.collection().distinct(
                "date",
                {"userId": str(user_id), "status": "present", "date": {"$gte": since}},
            )
        )
        streak = consecutive_days(days, now.date())

        mongo.db.users.update_one(
            {"_id": to_object_id(user_id)},
            {"$set": {"attendanceStreak": streak, "lastAttendance": now}},
        )
        return streak


def consecutive_days(day_strings, today):
    streak = 0
    day = today
    while day.strftime(DATE_FORMAT) in day_strings:
        streak += 1
        day -= timedelta(days=1)
    return streak


def minutes_between(start, end):
    if end < start:
        end += timedelta(days=1)
    return int((end - start).total_seconds() // 60)


def format_duration(minutes):
    h, mm = divmod(int(minutes), 60)
    return f"{h}h {mm}m"
