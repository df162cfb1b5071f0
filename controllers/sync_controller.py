from datetime import datetime

from flask import Blueprint, jsonify, request

from models.log import Log
from utils.auth import current_actor, role_required
from utils.sync import run_sync, sync_stats

sync_bp = Blueprint("sync", __name__, url_prefix="/api/admin/sync")


# Sync status
@sync_bp.route("", methods=["GET"])
@role_required("admin")
def status():
    return jsonify(sync_stats())


# Run a sync action
@sync_bp.route("", methods=["POST"])
@role_required("admin")
def run():
    data = request.get_json(silent=True) or {}
    action = data.get("action")
    if not action:
        return jsonify({"error": "action is required"}), 400

    result = run_sync(action, data.get("userId"), data.get("data"), current_actor())
    Log.record("SYNC", "users", current_actor(), data.get("userId"), {"action": action})

    return jsonify({
        "success": True,
        "action": action,
        "result": result,
        "timestamp": datetime.utcnow(),
    })
