from bson import ObjectId


def _sync(client, action, **extra):
    return client.post("/api/admin/sync", json=dict(extra, action=action))


def test_sync_stats(admin_client, make_user, make_cohort):
    cohort = make_cohort()
    make_user("jane", cohort_id=cohort["_id"])
    make_user("gone", is_active=False)

    data = admin_client.get("/api/admin/sync").get_json()
    assert data["userStats"]["totalUsers"] == 3
    assert data["userStats"]["inactiveUsers"] == 1
    assert data["userStats"]["usersWithCohorts"] == 1
    assert data["userStats"]["usersWithoutCohorts"] == 2
    assert data["cohortStats"]["totalCohorts"] == 1


def test_unknown_action_is_bad_request(admin_client):
    resp = _sync(admin_client, "reticulate_splines")
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "Unknown sync action: reticulate_splines"


def test_full_sync_clears_missing_cohorts_and_recounts(admin_client, db, make_user, make_cohort):
    cohort = make_cohort()
    jane = make_user("jane", cohort_id=cohort["_id"])
    lost = make_user("lost", cohort_id=ObjectId())

    result = _sync(admin_client, "full_sync").get_json()["result"]
    assert result["inconsistenciesFixed"] == 1
    assert result["cohortsUpdated"] == 1
    assert db.users.find_one({"_id": lost["_id"]})["cohortId"] is None
    assert db.users.find_one({"_id": jane["_id"]})["cohortId"] == cohort["_id"]
    assert db.cohorts.find_one({"_id": cohort["_id"]})["memberCount"] == 1


def test_sync_user_deactivation(admin_client, db, make_user, make_cohort):
    cohort = make_cohort()
    jane = make_user("jane", cohort_id=cohort["_id"])

    resp = _sync(admin_client, "sync_user", userId=str(jane["_id"]), data={"isActive": False})
    changes = resp.get_json()["result"]["changes"]
    assert changes["from"]["isActive"] is True
    assert changes["to"]["isActive"] is False

    stored = db.users.find_one({"_id": jane["_id"]})
    assert stored["deactivatedReason"] == "Admin sync"
    assert stored["lastTokenRefresh"] is not None
    assert db.cohorts.find_one({"_id": cohort["_id"]})["memberCount"] == 0


def test_sync_user_errors(admin_client):
    assert _sync(admin_client, "sync_user").status_code == 400
    assert _sync(admin_client, "sync_user", userId=str(ObjectId())).status_code == 404


def test_fix_inactive_users(admin_client, db, make_user):
    make_user("gone", is_active=False)
    make_user("done", is_active=False, deactivatedAt="2025-01-01")

    result = _sync(admin_client, "fix_inactive_users").get_json()["result"]
    assert result["usersFixed"] == 1
    assert db.users.find_one({"gitlabUsername": "gone"})["deactivatedReason"] == "System cleanup"


def test_validate_data_integrity(admin_client, make_user, make_cohort, make_college):
    make_college("Example College")
    cohort = make_cohort()
    make_user("jane", cohort_id=cohort["_id"], college="Example College")
    make_user("lost", cohort_id=ObjectId())
    make_user("stray", college="Nowhere University")

    result = _sync(admin_client, "validate_data_integrity").get_json()["result"]
    assert result["valid"] is False
    kinds = {issue["type"]: issue["count"] for issue in result["issues"]}
    assert kinds == {
        "invalid_cohort_references": 1,
        "incorrect_member_counts": 1,
        "invalid_college_references": 1,
    }


def test_clean_database_is_valid(admin_client):
    result = _sync(admin_client, "validate_data_integrity").get_json()["result"]
    assert result == {"valid": True, "issues": [], "summary": "Found 0 integrity issues"}
