import logging

from bson.errors import InvalidId
from flask import jsonify
from werkzeug.exceptions import HTTPException

logger = logging.getLogger(__name__)


class APIError(Exception):
    status_code = 500
    message = "Internal server error"

    def __init__(self, message=None, details=None, code=None):
        super().__init__(message or self.message)
        self.message = message or self.message
        self.details = details
        self.code = code

    def to_dict(self):
        body = {"error": self.message}
        if self.details is not None:
            body["details"] = self.details
        if self.code:
            body["code"] = self.code
        return body


class BadRequest(APIError):
    status_code = 400
    message = "Bad request"


class Conflict(BadRequest):
    message = "Already exists"


class Unauthorized(APIError):
    status_code = 401
    message = "Unauthorized"


class Forbidden(APIError):
    status_code = 403
    message = "Forbidden"


class NotFound(APIError):
    status_code = 404
    message = "Not found"


def register_error_handlers(app):

    @app.errorhandler(APIError)
    def handle_api_error(error):
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(InvalidId)
    def handle_invalid_id(error):
        return jsonify({"error": "Invalid ID", "details": str(error)}), 400

    @app.errorhandler(HTTPException)
    def handle_http_error(error):
        return jsonify({"error": error.description or error.name}), error.code

    @app.errorhandler(Exception)
    def handle_unexpected(error):
        logger.exception("Unhandled error: %s", error)
        return jsonify({"error": "Internal server error"}), 500
