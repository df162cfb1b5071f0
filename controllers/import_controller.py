import logging

from flask import Blueprint, Response, jsonify, request

from models.log import Log
from utils.auth import current_actor, current_role, current_user_id, role_required
from utils.importer import IMPORT_TYPES, parse_file, process_import, template_csv

logger = logging.getLogger(__name__)

import_bp = Blueprint("bulk_import", __name__, url_prefix="/api/admin/bulk-import")


def _flag(value):
    if isinstance(value, bool):
        return value
    return str(value or "").lower() in ("true", "1", "yes")


# -----------------------------
# BULK IMPORT
# -----------------------------
@import_bp.route("", methods=["POST"])
@role_required("admin")
def bulk_import():
    if request.files:
        upload = request.files.get("file")
        if upload is None or not upload.filename:
            return jsonify({"error": "No file uploaded"}), 400
        import_type = request.form.get("importType")
        preview = _flag(request.form.get("preview"))
        rows = parse_file(upload.read(), upload.filename)
    else:
        data = request.get_json(silent=True) or {}
        # Older clients send {type, data}
        import_type = data.get("importType") or data.get("type")
        preview = _flag(data.get("preview"))
        rows = data.get("data")
        if not isinstance(rows, list):
            return jsonify({"error": "Data must be an array of rows"}), 400

    if import_type and import_type not in IMPORT_TYPES:
        return jsonify({"error": f"Invalid import type: {import_type}"}), 400
    if not rows:
        return jsonify({"error": "No rows to import"}), 400

    result = process_import(
        rows, import_type, preview, current_actor(),
        creator_id=current_user_id(), creator_role=current_role(),
    )
    if preview:
        return jsonify({"success": True, **result})

    Log.record("IMPORT", import_type or "users", current_actor(), None, {
        "successful": result["successful"],
        "failed": result["failed"],
        "skipped": result["skipped"],
    })
    return jsonify({
        "success": True,
        "message": f"Import completed: {result['successful']} successful, "
                   f"{result['failed']} failed, {result['skipped']} skipped",
        "results": result,
    })


# -----------------------------
# CSV TEMPLATES
# -----------------------------
@import_bp.route("/templates/<import_type>", methods=["GET"])
@role_required("admin")
def download_template(import_type):
    content = template_csv(import_type)
    return Response(
        content,
        mimetype="text/csv",
        headers={"Content-Disposition": f"attachment; filename={import_type}_template.csv"},
    )
