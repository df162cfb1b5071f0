import logging
from datetime import datetime

from utils.db import mongo

logger = logging.getLogger(__name__)


class Log:

    @staticmethod
    def collection():
        return mongo.db.activity_logs

    def __init__(self, action, collection_name, performed_by, document_id=None,
                 changes=None, timestamp=None):
        self.timestamp = timestamp or datetime.utcnow()
        self.action = action  # "CREATE", "UPDATE", "DELETE", "ASSIGN", "SYNC", "IMPORT"
        self.collection_name = collection_name
        self.performed_by = performed_by
        self.document_id = str(document_id) if document_id is not None else None
        self.changes = changes

    def to_dict(self):
        return {
            "timestamp": self.timestamp,
            "action": self.action,
            "collection": self.collection_name,
            "performedBy": self.performed_by,
            "documentId": self.document_id,
            "changes": self.changes,
        }

    def save(self):
        return Log.collection().insert_one(self.to_dict())

    @staticmethod
    def record(action, collection_name, performed_by, document_id=None, changes=None):
        logger.info("%s %s %s by %s", action, collection_name, document_id or "-", performed_by)
        return Log(action, collection_name, performed_by, document_id, changes).save()

    @staticmethod
    def recent(limit=100, collection_name=None):
        query = {"collection": collection_name} if collection_name else {}
        return list(Log.collection().find(query).sort("timestamp", -1).limit(limit))
