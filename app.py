from flask import Flask, jsonify, request

from config import Config
from utils.auth import refresh_session
from utils.db import ensure_indexes, init_db_connection
from utils.errors import register_error_handlers
from utils.logger import configure_logging
from utils.serializers import MongoJSONProvider

# Import controllers
from controllers.auth_controller import auth_bp
from controllers.admin_controller import admin_bp
from controllers.colleges_controller import colleges_bp
from controllers.cohorts_controller import cohorts_bp
from controllers.users_controller import users_bp, preferences_bp
from controllers.tasks_controller import tasks_bp
from controllers.attendance_controller import attendance_bp, admin_attendance_bp
from controllers.authorized_ips_controller import authorized_ips_bp
from controllers.sync_controller import sync_bp
from controllers.import_controller import import_bp
from controllers.poc_controller import poc_bp

BLUEPRINTS = [
    auth_bp,
    admin_bp,
    colleges_bp,
    cohorts_bp,
    users_bp,
    preferences_bp,
    tasks_bp,
    attendance_bp,
    admin_attendance_bp,
    authorized_ips_bp,
    sync_bp,
    import_bp,
    poc_bp,
]

# Endpoints reachable without a session
PUBLIC_ENDPOINTS = ["auth.login", "auth.logout", "health", "static"]


def create_app(config_class=Config):
    app = Flask(__name__)               # Initialize Flask app
    app.config.from_object(config_class)  # Load configuration from Config class
    configure_logging(app)
    init_db_connection(app)             # Initialize MongoDB connection
    # after init_app, which installs its own BSON provider
    app.json = MongoJSONProvider(app)   # ObjectId / datetime in jsonify()
    register_error_handlers(app)

    # Register Blueprints
    for blueprint in BLUEPRINTS:
        app.register_blueprint(blueprint)

    @app.route("/health")
    def health():
        return jsonify({"status": "ok"})

    # Global before_request: block all routes except the public ones if not logged in
    @app.before_request
    def require_login():
        if request.endpoint in PUBLIC_ENDPOINTS:
            return None
        if not refresh_session():
            return jsonify({"error": "Unauthorized"}), 401
        return None

    if not app.config.get("TESTING"):
        with app.app_context():
            ensure_indexes()

    return app


# Run the app
if __name__ == "__main__":
    create_app().run(debug=True)
