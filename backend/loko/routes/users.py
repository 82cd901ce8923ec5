# Overview: Flask API routes for user directories.

from flask import Blueprint, jsonify, current_app

from ..decorators import require_auth, require_permission, error_response
from ..services import auth_service


users_bp = Blueprint("users", __name__, url_prefix="/api/users")


@users_bp.get("/couriers")
@require_auth
@require_permission("VIEW_COURIERS")
def list_couriers_route():
    """Active couriers (id, name, email, phone) for sellers and admins picking one to assign."""
    try:
        couriers = auth_service.list_couriers()
        return jsonify({"success": True, "couriers": couriers, "count": len(couriers)}), 200
    except Exception:
        current_app.logger.exception("Failed to list couriers")
        return error_response("Internal server error", "INTERNAL_ERROR", 500)
