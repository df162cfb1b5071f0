from models.roles import INTERN, POC, TECH_LEAD


def test_create_college_and_reject_duplicates(admin_client, db):
    body = {"name": "Example College", "description": "Engineering", "location": "Pune"}
    resp = admin_client.post("/api/admin/colleges", json=body)
    assert resp.status_code == 201
    assert resp.get_json()["college"]["superMentorUsername"] == "unassigned"

    resp = admin_client.post("/api/admin/colleges", json=dict(body, name="example college"))
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "College already exists"


def test_create_college_missing_fields(admin_client):
    resp = admin_client.post("/api/admin/colleges", json={"name": "Example College"})
    assert resp.status_code == 400


def test_create_college_with_unknown_super_mentor(admin_client):
    resp = admin_client.post("/api/admin/colleges", json={
        "name": "X", "description": "d", "location": "l", "superMentorUsername": "ghost",
    })
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "Super-mentor not found"


def test_list_colleges_with_counts(admin_client, make_college, make_user):
    college = make_college("Example College", super_mentor="poc_alice")
    make_user("poc_alice", role=POC, college=college["_id"], name="Alice")
    make_user("jane", college=college["_id"])
    make_user("john", college=str(college["_id"]), role="intern")
    make_college("Closed College", is_active=False)

    colleges = admin_client.get("/api/admin/colleges").get_json()["colleges"]
    assert len(colleges) == 1
    assert colleges[0]["superMentorName"] == "Alice"
    assert colleges[0]["internCount"] == 2


def test_update_moves_super_mentor(admin_client, db, make_college, make_user):
    college = make_college("Example College", super_mentor="poc_old")
    old = make_user("poc_old", role=POC, college=college["_id"])
    new = make_user("poc_new", role=POC)

    resp = admin_client.put(f"/api/admin/colleges/{college['_id']}", json={
        "name": "Example College", "superMentorUsername": "poc_new",
    })
    assert resp.status_code == 200
    assert db.users.find_one({"_id": new["_id"]})["college"] == college["_id"]
    assert db.users.find_one({"_id": old["_id"]})["college"] is None


def test_update_rejects_super_mentor_of_other_college(admin_client, make_college, make_user):
    make_college("First College", super_mentor="poc_busy")
    make_user("poc_busy", role=POC)
    second = make_college("Second College")

    resp = admin_client.put(f"/api/admin/colleges/{second['_id']}", json={
        "name": "Second College", "superMentorUsername": "poc_busy",
    })
    assert resp.status_code == 400
    assert "already assigned" in resp.get_json()["error"]


def test_delete_refused_with_active_users(admin_client, db, make_college, make_user):
    college = make_college()
    make_user("jane", college=college["_id"])

    resp = admin_client.delete(f"/api/admin/colleges/{college['_id']}")
    assert resp.status_code == 400

    db.users.update_many({}, {"$set": {"isActive": False}})
    resp = admin_client.delete(f"/api/admin/colleges/{college['_id']}")
    assert resp.status_code == 200
    assert db.colleges.find_one({"_id": college["_id"]})["isActive"] is False


def test_college_users_grouped_by_role(admin_client, make_college, make_user, db):
    college = make_college()
    mentor = make_user("mentor_raj", role=TECH_LEAD, college=college["_id"])
    make_user("poc_alice", role="super-mentor", college=college["_id"])
    make_user("jane", role=INTERN, college=college["_id"], assignedTechLead=mentor["_id"])
    make_user("john", role=INTERN, college=college["_id"])

    data = admin_client.get(f"/api/admin/colleges/{college['_id']}/users").get_json()
    assert data["stats"] == {
        "total": 4,
        "superMentors": 1,
        "mentors": 1,
        "interns": 2,
        "assignedInterns": 1,
        "unassignedInterns": 1,
    }


def test_non_admin_is_forbidden(poc_client):
    client, _ = poc_client
    assert client.get("/api/admin/colleges").status_code == 403


def test_unknown_college_is_404(admin_client):
    assert admin_client.get("/api/admin/colleges/64b7f0000000000000000000").status_code == 404
