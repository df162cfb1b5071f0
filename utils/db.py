"""
utils/db.py
-----------------
This module initializes and manages the MongoDB connection
for the entire Flask application.
"""

import logging

import pymongo
from flask_pymongo import PyMongo

logger = logging.getLogger(__name__)

# Create a global MongoDB instance
mongo = PyMongo()


def init_db_connection(app):
    """
    Initialize MongoDB connection with Flask app.
    MONGO_URI must already be loaded into app.config.
    """
    mongo.init_app(app)
    logger.info("MongoDB connection initialized for %s", app.config.get("MONGO_URI"))
    return mongo


def ensure_indexes():
    """Create the indexes the admin queries rely on. Safe to call repeatedly."""
    mongo.db.users.create_index("gitlabUsername", unique=True)
    mongo.db.users.create_index("role")
    mongo.db.users.create_index("college")
    mongo.db.users.create_index("cohortId")
    mongo.db.colleges.create_index("name")
    mongo.db.cohorts.create_index("collegeId")
    mongo.db.cohorts.create_index("isActive")
    mongo.db.tasks.create_index([("cohortId", pymongo.ASCENDING), ("weekNumber", pymongo.ASCENDING)])
    mongo.db.attendance.create_index([("userId", pymongo.ASCENDING), ("date", pymongo.DESCENDING)])
    mongo.db.authorized_ips.create_index("ip", unique=True)
    mongo.db.task_drafts.create_index("userId", unique=True)
    logger.info("Database indexes ensured")
