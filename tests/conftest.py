"""
Shared fixtures: a Flask app on an in-memory Mongo, plus logged-in clients.
"""

from datetime import datetime

import mongomock
import pytest
from werkzeug.security import generate_password_hash

from app import create_app
from config import TestConfig
from models.roles import ADMIN, INTERN, POC
from models.users import DEFAULT_TAB_ORDER
from utils.db import mongo


@pytest.fixture
def app():
    app = create_app(TestConfig)
    mongo.cx = mongomock.MongoClient()
    mongo.db = mongo.cx["MentorshipAdminTest"]
    with app.app_context():
        yield app


@pytest.fixture
def db(app):
    return mongo.db


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def make_user(db):
    def _make_user(username, role=INTERN, college=None, cohort_id=None, is_active=True, **extra):
        doc = {
            "gitlabUsername": username,
            "gitlabId": f"test_{username}",
            "name": extra.pop("name", username.title()),
            "email": extra.pop("email", f"{username}@example.com"),
            "role": role,
            "college": college,
            "cohortId": cohort_id,
            "assignedTechLead": None,
            "isActive": is_active,
            "sessionVersion": 1,
            "dashboardPreferences": {"tabOrder": list(DEFAULT_TAB_ORDER)},
            "createdAt": datetime.utcnow(),
            "updatedAt": datetime.utcnow(),
        }
        doc.update(extra)
        doc["_id"] = db.users.insert_one(doc).inserted_id
        return doc
    return _make_user


@pytest.fixture
def make_college(db):
    def _make_college(name="Example College", super_mentor="unassigned", is_active=True):
        doc = {
            "name": name,
            "description": f"{name} description",
            "location": "Pune",
            "website": "",
            "superMentorUsername": super_mentor,
            "isActive": is_active,
            "createdAt": datetime.utcnow(),
            "updatedAt": datetime.utcnow(),
        }
        doc["_id"] = db.colleges.insert_one(doc).inserted_id
        return doc
    return _make_college


@pytest.fixture
def make_cohort(db):
    def _make_cohort(name="Batch 1", max_interns=50, college_id=None, start=datetime(2025, 1, 6)):
        doc = {
            "name": name,
            "description": "",
            "startDate": start,
            "endDate": datetime(2025, 6, 30),
            "collegeId": college_id,
            "maxInterns": max_interns,
            "memberCount": 0,
            "isActive": True,
            "createdAt": datetime.utcnow(),
            "updatedAt": datetime.utcnow(),
        }
        doc["_id"] = db.cohorts.insert_one(doc).inserted_id
        return doc
    return _make_cohort


def _login(client, user):
    with client.session_transaction() as sess:
        sess["user_id"] = str(user["_id"])
        sess["user_name"] = user.get("name")
        sess["gitlab_username"] = user.get("gitlabUsername")
        sess["role"] = user.get("role")
        sess["college_id"] = str(user["college"]) if user.get("college") else None
        sess["session_version"] = user.get("sessionVersion", 1)
    return client


@pytest.fixture
def login():
    return _login


@pytest.fixture
def admin(make_user):
    return make_user("admin", role=ADMIN, password=generate_password_hash("secret"))


@pytest.fixture
def admin_client(client, admin):
    return _login(client, admin)


@pytest.fixture
def poc_client(app, make_user, make_college):
    college = make_college("POC College")
    poc = make_user("poc_alice", role=POC, college=college["_id"])
    return _login(app.test_client(), poc), college


@pytest.fixture
def intern_client(app, make_user):
    intern = make_user("intern_bob", role=INTERN)
    return _login(app.test_client(), intern), intern
