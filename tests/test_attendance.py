from datetime import datetime, timedelta

from models.attendance import Attendance, consecutive_days, format_duration, minutes_between

OFFICE_IP = "10.0.0.1"


def _checkin(client, action="checkin", ip=OFFICE_IP):
    return client.post("/api/attendance/checkin-checkout", json={"action": action, "clientIP": ip})


def test_checkin_then_checkout(intern_client, db):
    client, intern = intern_client

    resp = _checkin(client)
    assert resp.status_code == 200
    status = resp.get_json()["todayStatus"]
    assert status["hasCheckedIn"] is True
    assert status["status"] == "partial"

    assert _checkin(client).status_code == 400

    resp = _checkin(client, "checkout")
    assert resp.status_code == 200
    assert resp.get_json()["todayStatus"]["status"] == "complete"
    assert _checkin(client, "checkout").status_code == 400

    assert db.attendance.count_documents({"userId": str(intern["_id"])}) == 2


def test_checkout_requires_checkin(intern_client):
    client, _ = intern_client
    resp = _checkin(client, "checkout")
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "You must check in before checking out"


def test_unauthorized_network_is_refused(intern_client, db):
    client, _ = intern_client
    resp = _checkin(client, ip="8.8.8.8")
    assert resp.status_code == 403
    assert db.attendance.count_documents({}) == 0


def test_invalid_action(intern_client):
    client, _ = intern_client
    assert _checkin(client, "lunch").status_code == 400


def test_streak_counts_consecutive_present_days(intern_client, db):
    client, intern = intern_client
    today = datetime.utcnow()
    for days_ago in (1, 2, 4):
        Attendance(intern["_id"], "mark", timestamp=today - timedelta(days=days_ago)).save()

    resp = _checkin(client)
    assert resp.get_json()["streak"] == 3
    assert db.users.find_one({"_id": intern["_id"]})["attendanceStreak"] == 3


def test_mark_once_per_day(intern_client):
    client, _ = intern_client
    resp = client.post("/api/attendance/mark", json={"status": "late", "clientIP": OFFICE_IP})
    assert resp.status_code == 200
    resp = client.post("/api/attendance/mark", json={"status": "present", "clientIP": OFFICE_IP})
    assert resp.status_code == 400
    resp = client.post("/api/attendance/mark", json={"status": "sleeping", "clientIP": OFFICE_IP})
    assert resp.status_code == 400


def test_own_history(intern_client):
    client, _ = intern_client
    _checkin(client)
    data = client.get("/api/attendance").get_json()
    assert len(data["records"]) == 1
    assert data["summary"]["presentDays"] == 1
    assert data["todayStatus"]["hasCheckedIn"] is True


def test_helpers():
    assert consecutive_days({"2025-01-05", "2025-01-04", "2025-01-02"}, datetime(2025, 1, 5).date()) == 2
    assert minutes_between(datetime(2025, 1, 1, 9), datetime(2025, 1, 1, 17, 30)) == 510
    assert format_duration(510) == "8h 30m"


# -----------------------------
# ADMIN
# -----------------------------
def _seed(db, make_user, make_college):
    college = make_college("Example College")
    jane = make_user("jane", college=college["_id"])
    john = make_user("john")
    Attendance(jane["_id"], "mark", user_name="Jane", college=college["_id"],
               timestamp=datetime(2025, 1, 6, 9)).save()
    Attendance(john["_id"], "mark", user_name="John", status="late",
               timestamp=datetime(2025, 1, 6, 10)).save()
    Attendance(jane["_id"], "mark", user_name="Jane", college=college["_id"],
               timestamp=datetime(2025, 1, 7, 9)).save()
    return college


def test_analytics(admin_client, db, make_user, make_college):
    college = _seed(db, make_user, make_college)
    data = admin_client.get("/api/admin/attendance/analytics?startDate=2025-01-01&endDate=2025-01-31").get_json()
    assert data["totalRecords"] == 3
    assert data["uniqueUsers"] == 2
    assert data["byStatus"] == {"present": 2, "late": 1}
    assert data["byCollege"] == {"Example College": 2, "Unassigned": 1}
    assert data["byDate"][0] == {"date": "2025-01-06", "present": 1, "late": 1}

    data = admin_client.get(
        f"/api/admin/attendance/analytics?startDate=2025-01-01&endDate=2025-01-31&collegeId={college['_id']}"
    ).get_json()
    assert data["totalRecords"] == 2


def test_exports(admin_client, db, make_user, make_college):
    _seed(db, make_user, make_college)
    query = "?startDate=2025-01-01&endDate=2025-01-31"

    resp = admin_client.get(f"/api/admin/attendance/export/csv{query}")
    assert resp.status_code == 200
    assert resp.mimetype == "text/csv"
    lines = resp.data.decode().splitlines()
    assert lines[0] == "Date,Name,Role,Action,Status,Time,IP Address"
    assert len(lines) == 4

    resp = admin_client.get(f"/api/admin/attendance/export/xlsx{query}")
    assert resp.status_code == 200
    assert resp.data[:2] == b"PK"

    resp = admin_client.get(f"/api/admin/attendance/export/pdf{query}")
    assert resp.data.startswith(b"%PDF")

    assert admin_client.get("/api/admin/attendance/export/doc").status_code == 400
