from datetime import datetime

from models.cohort import Cohort


def _assign(client, cohort, users, action="assign"):
    return client.post("/api/admin/cohorts/assign-users", json={
        "cohortId": str(cohort["_id"]),
        "userIds": [str(u["_id"]) if isinstance(u, dict) else u for u in users],
        "action": action,
    })


def test_create_cohort_validates_dates(admin_client, db):
    resp = admin_client.post("/api/admin/cohorts", json={"name": "Batch 1", "startDate": "2025-06-01", "endDate": "2025-01-01"})
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "End date cannot be before start date"

    resp = admin_client.post("/api/admin/cohorts", json={"name": "Batch 1", "startDate": "2025-01-01", "endDate": "2025-06-01"})
    assert resp.status_code == 201
    assert resp.get_json()["cohort"]["maxInterns"] == 50
    assert db.cohorts.count_documents({}) == 1


def test_create_cohort_missing_fields(admin_client):
    resp = admin_client.post("/api/admin/cohorts", json={"name": "Batch 1"})
    assert resp.status_code == 400
    assert resp.get_json()["details"] == ["startDate", "endDate"]


def test_assign_users_reports_each_user(admin_client, db, make_cohort, make_user):
    cohort = make_cohort(max_interns=2)
    jane = make_user("jane")
    john = make_user("john")
    gone = make_user("gone", is_active=False)

    resp = _assign(admin_client, cohort, [jane, john, gone, "not-an-id"])
    assert resp.status_code == 200
    results = resp.get_json()["results"]
    assert [r["username"] for r in results["success"]] == ["jane", "john"]
    assert {r["error"] for r in results["failed"]} == {"User is not active", "Invalid user ID"}
    assert results["totalProcessed"] == 4
    assert db.cohorts.find_one({"_id": cohort["_id"]})["memberCount"] == 2


def test_assign_skips_members_and_enforces_capacity(admin_client, make_cohort, make_user):
    cohort = make_cohort(max_interns=1)
    jane = make_user("jane", cohort_id=cohort["_id"])
    john = make_user("john")

    results = _assign(admin_client, cohort, [jane, john]).get_json()["results"]
    assert results["skipped"][0]["username"] == "jane"
    assert "at capacity" in results["failed"][0]["error"]
    assert results["success"] == []


def test_remove_requires_membership_of_that_cohort(admin_client, db, make_cohort, make_user):
    batch1 = make_cohort("Batch 1")
    batch2 = make_cohort("Batch 2")
    jane = make_user("jane", cohort_id=batch1["_id"])
    john = make_user("john", cohort_id=batch2["_id"])
    mary = make_user("mary")

    results = _assign(admin_client, batch1, [jane, john, mary], action="remove").get_json()["results"]
    assert [r["username"] for r in results["success"]] == ["jane"]
    assert results["failed"][0]["error"] == "User is not assigned to the specified cohort"
    assert results["skipped"][0]["reason"] == "User is not assigned to any cohort"
    assert db.users.find_one({"_id": jane["_id"]})["cohortId"] is None


def test_moving_user_between_cohorts_recounts_both(admin_client, db, make_cohort, make_user):
    batch1 = make_cohort("Batch 1")
    batch2 = make_cohort("Batch 2")
    jane = make_user("jane", cohort_id=batch1["_id"])
    Cohort.update_member_count(batch1["_id"])

    _assign(admin_client, batch2, [jane])
    assert db.cohorts.find_one({"_id": batch1["_id"]})["memberCount"] == 0
    assert db.cohorts.find_one({"_id": batch2["_id"]})["memberCount"] == 1


def test_assign_users_validates_payload(admin_client, make_cohort):
    cohort = make_cohort()
    resp = admin_client.post("/api/admin/cohorts/assign-users", json={"cohortId": str(cohort["_id"]), "userIds": []})
    assert resp.status_code == 400
    resp = admin_client.post("/api/admin/cohorts/assign-users", json={
        "cohortId": str(cohort["_id"]), "userIds": ["x"], "action": "promote",
    })
    assert resp.status_code == 400


def test_delete_cohort_releases_members(admin_client, db, make_cohort, make_user):
    cohort = make_cohort()
    jane = make_user("jane", cohort_id=cohort["_id"])

    resp = admin_client.delete(f"/api/admin/cohorts/{cohort['_id']}")
    assert resp.status_code == 200
    assert resp.get_json()["usersReleased"] == 1
    assert db.cohorts.find_one({"_id": cohort["_id"]})["isActive"] is False
    assert db.users.find_one({"_id": jane["_id"]})["cohortId"] is None


def test_cohort_members_and_listing(admin_client, make_cohort, make_user):
    cohort = make_cohort()
    make_user("jane", cohort_id=cohort["_id"])
    make_user("john", cohort_id=str(cohort["_id"]))
    make_user("gone", cohort_id=cohort["_id"], is_active=False)

    data = admin_client.get(f"/api/admin/cohorts/{cohort['_id']}/members").get_json()
    assert data["total"] == 2

    listing = admin_client.get("/api/admin/cohorts").get_json()
    assert listing["total"] == 1


def test_update_cohort_rejects_reversed_dates(admin_client, make_cohort):
    cohort = make_cohort()
    resp = admin_client.put(f"/api/admin/cohorts/{cohort['_id']}", json={"endDate": "2024-01-01"})
    assert resp.status_code == 400


def test_cohort_capacity_must_be_a_positive_number(admin_client, db, make_cohort):
    payload = {"name": "Batch 2", "startDate": "2025-01-01", "endDate": "2025-06-01"}
    for bad in ("many", 0, -5):
        resp = admin_client.post("/api/admin/cohorts", json=dict(payload, maxInterns=bad))
        assert resp.status_code == 400
    assert db.cohorts.count_documents({}) == 0

    resp = admin_client.post("/api/admin/cohorts", json=dict(payload, maxInterns="12"))
    assert resp.status_code == 201
    assert resp.get_json()["cohort"]["maxInterns"] == 12

    cohort = make_cohort()
    assert admin_client.put(f"/api/admin/cohorts/{cohort['_id']}", json={"maxInterns": 0}).status_code == 400
    assert admin_client.put(f"/api/admin/cohorts/{cohort['_id']}", json={"maxInterns": "x"}).status_code == 400
    assert db.cohorts.find_one({"_id": cohort["_id"]})["maxInterns"] == 50


def test_responses_carry_plain_ids_and_iso_dates(admin_client, make_cohort):
    cohort = make_cohort(start=datetime(2025, 1, 6))
    resp = admin_client.get(f"/api/admin/cohorts/{cohort['_id']}")

    body = resp.get_data(as_text=True)
    assert "$oid" not in body
    assert "$date" not in body

    data = resp.get_json()["cohort"]
    assert data["_id"] == str(cohort["_id"])
    assert data["startDate"] == "2025-01-06T00:00:00"
