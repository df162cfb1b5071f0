import logging
from datetime import datetime

from flask import Blueprint, jsonify, request

from models.authorized_ip import AuthorizedIP
from models.log import Log
from utils.auth import current_actor, role_required
from utils.errors import Conflict
from utils.ids import to_object_id
from utils.validation import is_valid_ipv4

logger = logging.getLogger(__name__)

authorized_ips_bp = Blueprint("authorized_ips", __name__, url_prefix="/api/admin/authorized-ips")


# -----------------------------
# VIEW AUTHORIZED IPS
# -----------------------------
@authorized_ips_bp.route("", methods=["GET"])
@role_required("admin")
def list_ips():
    ips = AuthorizedIP.list_all()
    return jsonify({"authorizedIPs": ips, "total": len(ips)})


# -----------------------------
# ADD AUTHORIZED IP
# -----------------------------
@authorized_ips_bp.route("", methods=["POST"])
@role_required("admin")
def add_ip():
    data = request.get_json(silent=True) or {}
    ip = (data.get("ip") or "").strip()

    if not ip:
        return jsonify({"error": "IP address is required"}), 400
    if not is_valid_ipv4(ip):
        return jsonify({"error": "Invalid IP address format"}), 400
    if any(entry["ip"] == ip for entry in AuthorizedIP.list_all()):
        raise Conflict("IP address already exists")

    result = AuthorizedIP(
        ip=ip,
        description=data.get("description"),
        location=data.get("location"),
        added_by=current_actor(),
    ).save()

    Log.record("CREATE", "authorized_ips", current_actor(), result.inserted_id, {"ip": ip})
    return jsonify({
        "success": True,
        "message": "IP address added successfully",
        "authorizedIP": AuthorizedIP.collection().find_one({"_id": result.inserted_id}),
    }), 201


# -----------------------------
# EDIT / UPDATE AUTHORIZED IP
# -----------------------------
@authorized_ips_bp.route("", methods=["PUT"])
@role_required("admin")
def update_ip():
    data = request.get_json(silent=True) or {}
    if not data.get("ipId"):
        return jsonify({"error": "IP ID is required"}), 400

    ip_id = to_object_id(data["ipId"], "IP ID")
    update_data = {}
    if "isActive" in data:
        update_data["isActive"] = bool(data["isActive"])
    if "description" in data:
        update_data["description"] = data["description"] or "No description"
    if "location" in data:
        update_data["location"] = data["location"] or None
    update_data["updatedAt"] = datetime.utcnow()
    update_data["updatedBy"] = current_actor()

    result = AuthorizedIP.collection().update_one({"_id": ip_id}, {"$set": update_data})
    if result.matched_count == 0:
        return jsonify({"error": "IP address not found"}), 404

    Log.record("UPDATE", "authorized_ips", current_actor(), ip_id, update_data)
    return jsonify({"success": True, "message": "IP address updated successfully"})


# -----------------------------
# DELETE AUTHORIZED IP
# -----------------------------
@authorized_ips_bp.route("", methods=["DELETE"])
@role_required("admin")
def delete_ip():
    ip_id = request.args.get("id")
    if not ip_id:
        return jsonify({"error": "IP ID is required"}), 400

    result = AuthorizedIP.collection().delete_one({"_id": to_object_id(ip_id, "IP ID")})
    if result.deleted_count == 0:
        return jsonify({"error": "IP address not found"}), 404

    Log.record("DELETE", "authorized_ips", current_actor(), ip_id)
    return jsonify({"success": True, "message": "IP address deleted successfully"})
