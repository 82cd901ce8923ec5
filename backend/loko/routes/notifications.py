# Overview: Flask API routes for notifications; the signed-in user's own inbox only.

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_auth, domain_error_response, error_response
from ..services import notification_service
from ..validation import NotFoundError, ValidationError


notifications_bp = Blueprint("notifications", __name__, url_prefix="/api/notifications")


@notifications_bp.get("")
@require_auth
def list_notifications_route():
    try:
        limit = request.args.get("limit", type=int)
        if limit is not None and limit < 1:
            raise ValidationError("limit must be >= 1")
        result = notification_service.list_for_user(g.actor.user_id, limit=limit)
        return jsonify({"success": True, **result}), 200
    except ValidationError as e:
        return domain_error_response(e)
    except Exception:
        current_app.logger.exception("Failed to list notifications")
        return error_response("Internal server error", "INTERNAL_ERROR", 500)


@notifications_bp.post("/<int:notification_id>/read")
@require_auth
def mark_read_route(notification_id: int):
    try:
        notification = notification_service.mark_read(g.actor.user_id, notification_id)
        return jsonify({"success": True, "notification": notification.to_dict()}), 200
    except NotFoundError as e:
        return domain_error_response(e)
    except Exception:
        current_app.logger.exception("Failed to mark notification read")
        return error_response("Internal server error", "INTERNAL_ERROR", 500)


@notifications_bp.post("/read-all")
@require_auth
def mark_all_read_route():
    try:
        updated = notification_service.mark_all_read(g.actor.user_id)
        return jsonify({"success": True, "updated": updated}), 200
    except Exception:
        current_app.logger.exception("Failed to mark notifications read")
        return error_response("Internal server error", "INTERNAL_ERROR", 500)


@notifications_bp.delete("/<int:notification_id>")
@require_auth
def delete_notification_route(notification_id: int):
    try:
        notification_service.delete_notification(g.actor.user_id, notification_id)
        return jsonify({"success": True}), 200
    except NotFoundError as e:
        return domain_error_response(e)
    except Exception:
        current_app.logger.exception("Failed to delete notification")
        return error_response("Internal server error", "INTERNAL_ERROR", 500)
