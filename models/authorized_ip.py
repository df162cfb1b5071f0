from datetime import datetime

from flask import current_app

from utils.db import mongo


class AuthorizedIP:

    @staticmethod
    def collection():
        return mongo.db.authorized_ips

    def __init__(self, ip, description=None, location=None, added_by=None, added_at=None):
        self.ip = ip.strip()
        self.description = description or "No description"
        self.location = location or None
        self.added_by = added_by
        self.added_at = added_at or datetime.utcnow()

    def to_dict(self):
        return {
            "ip": self.ip,
            "description": self.description,
            "location": self.location,
            "addedBy": self.added_by,
            "addedAt": self.added_at,
            "isActive": True,
            "source": "admin",
        }

    def save(self):
        return self.collection().insert_one(self.to_dict())

    @staticmethod
    def environment_entries():
        return [
            {
                "ip": ip,
                "description": "Environment IP",
                "addedBy": "System",
                "isActive": True,
                "source": "environment",
            }
            for ip in current_app.config.get("AUTHORIZED_IPS", [])
        ]

    @staticmethod
    def list_all():
        """Stored entries first, then environment entries; first occurrence of an ip wins."""
        seen = set()
        merged = []
        for entry in list(AuthorizedIP.collection().find({})) + AuthorizedIP.environment_entries():
            if entry["ip"] in seen:
                continue
            seen.add(entry["ip"])
            merged.append(entry)
        return merged

    @staticmethod
    def active_ips():
        stored = [r["ip"] for r in AuthorizedIP.collection().find({"isActive": True}, {"ip": 1})]
        return list(dict.fromkeys(current_app.config.get("AUTHORIZED_IPS", []) + stored))

    @staticmethod
    def is_authorized(ip):
        allowed = AuthorizedIP.active_ips()
        if not allowed:
            return bool(current_app.config.get("ALLOW_ANY_IP"))
        return ip in allowed
