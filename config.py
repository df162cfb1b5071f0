import os
from datetime import timedelta


def _env_list(name):
    raw = os.getenv(name, "")
    return [item.strip() for item in raw.split(",") if item.strip()]


class Config:
    MONGO_URI = os.getenv("MONGO_URI", "mongodb://localhost:27017/MentorshipAdmin")
    SECRET_KEY = os.getenv("SECRET_KEY", "change-me-in-production")
    PERMANENT_SESSION_LIFETIME = timedelta(hours=int(os.getenv("SESSION_HOURS", "12")))

    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    # Wi-Fi networks attendance may be marked from (merged with the DB list)
    AUTHORIZED_IPS = _env_list("AUTHORIZED_IPS")
    # When no authorized IPs exist at all, accept any address
    ALLOW_ANY_IP = os.getenv("ALLOW_ANY_IP", "false").lower() == "true"

    # Bulk import uploads
    MAX_CONTENT_LENGTH = 5 * 1024 * 1024

    ACTIVITY_LOG_LIMIT = 100


class TestConfig(Config):
    TESTING = True
    MONGO_URI = "mongodb://localhost:27017/MentorshipAdminTest"
    SECRET_KEY = "test-secret"
    AUTHORIZED_IPS = ["10.0.0.1"]
    ALLOW_ANY_IP = False
    LOG_LEVEL = "WARNING"
