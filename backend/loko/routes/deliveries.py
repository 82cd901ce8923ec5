# Overview: Flask API routes for deliveries; parses input and returns JSON responses.

"""
Delivery API routes

- GET    /api/deliveries                 - List deliveries (filters: status, courier_id, client_id, search, limit)
- POST   /api/deliveries                 - Place an order (creates the delivery)
- GET    /api/deliveries/:id             - Delivery detail with proof and logs
- DELETE /api/deliveries/:id             - Cancel (CREATED only)
- POST   /api/deliveries/:id/assign      - Assign a courier
- POST   /api/deliveries/:id/status      - Advance status
- POST   /api/deliveries/:id/proof       - Submit proof of delivery

SECURITY:
- All routes require authentication
- The actor is taken from the authenticated session (g.actor), NOT from the
  request body
- Clients only see their own deliveries
- The confirmation code is only shown to the client who owns the delivery
  and to admins; the courier must obtain it from the recipient
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_auth, domain_error_response, error_response
from ..permissions import ROLE_CLIENT, ROLE_COURIER
from ..services import delivery_service
from ..services.delivery_service import DeliveryFilter, InternalError
from ..services.lifecycle_service import InvalidStateError
from ..services.permission_service import UnauthorizedError
from ..services.proof_service import InvalidConfirmationCodeError
from ..validation import NotFoundError, ValidationError


deliveries_bp = Blueprint("deliveries", __name__, url_prefix="/api/deliveries")

DOMAIN_ERRORS = (
    ValidationError,
    UnauthorizedError,
    NotFoundError,
    InvalidStateError,
    InvalidConfirmationCodeError,
    InternalError,
)


def _present(delivery: dict) -> dict:
    """Hide the confirmation code from everyone but the owning client and admins."""
    actor = g.actor
    if not (actor.is_admin or delivery.get("client_id") == actor.user_id):
        delivery = dict(delivery)
        delivery["confirmation_code"] = None
    return delivery


def _json_body() -> dict:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


@deliveries_bp.get("")
@require_auth
def list_deliveries_route():
    try:
        filters = DeliveryFilter.from_args(request.args)
        if g.actor.role == ROLE_CLIENT:
            filters = DeliveryFilter(
                status=filters.status,
                courier_id=filters.courier_id,
                client_id=g.actor.user_id,
                search=filters.search,
                limit=filters.limit,
            )
        rows = delivery_service.list_deliveries(filters)
        return jsonify({"success": True, "deliveries": [_present(d) for d in rows]}), 200
    except DOMAIN_ERRORS as e:
        return domain_error_response(e)
    except Exception:
        current_app.logger.exception("Failed to list deliveries")
        return error_response("Internal server error", "INTERNAL_ERROR", 500)


@deliveries_bp.post("")
@require_auth
def create_order_route():
    """
    Place an order.

    Request body:
        {
            "destination": {"latitude": 5.35, "longitude": -4.0, "description": "..."},
            "items": [{"product_id": "...", "name": "...", "price": 10, "quantity": 2}],
            "seller_id": "...",          // optional
            "idempotency_key": "..."     // optional, also read from Idempotency-Key header
        }

    Response (201, or 200 for a replayed idempotency key):
        {"success": true, "delivery_id": "...", "confirmation_code": "1234", ...}
    """
    try:
        data = _json_body()
        result = delivery_service.create_order(
            g.actor,
            data.get("destination"),
            data.get("items"),
            seller_id=data.get("seller_id"),
            idempotency_key=data.get("idempotency_key") or request.headers.get("Idempotency-Key"),
        )
        return jsonify({"success": True, **result.to_dict()}), 201 if result.created else 200
    except DOMAIN_ERRORS as e:
        return domain_error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create delivery")
        return error_response("Internal server error", "INTERNAL_ERROR", 500)


@deliveries_bp.get("/<delivery_id>")
@require_auth
def get_delivery_route(delivery_id: str):
    try:
        delivery = delivery_service.get_delivery(delivery_id)
        if g.actor.role == ROLE_CLIENT and delivery["client_id"] != g.actor.user_id:
            # Same answer as a missing delivery
            raise NotFoundError("Delivery not found")
        return jsonify({"success": True, "delivery": _present(delivery)}), 200
    except DOMAIN_ERRORS as e:
        return domain_error_response(e)
    except Exception:
        current_app.logger.exception("Failed to load delivery")
        return error_response("Internal server error", "INTERNAL_ERROR", 500)


@deliveries_bp.delete("/<delivery_id>")
@require_auth
def cancel_order_route(delivery_id: str):
    try:
        delivery_service.cancel_order(g.actor, delivery_id)
        return jsonify({"success": True}), 200
    except DOMAIN_ERRORS as e:
        return domain_error_response(e)
    except Exception:
        current_app.logger.exception("Failed to cancel delivery")
        return error_response("Internal server error", "INTERNAL_ERROR", 500)


@deliveries_bp.post("/<delivery_id>/assign")
@require_auth
def assign_courier_route(delivery_id: str):
    """
    Request body: {"courier_id": "..."}

    Couriers may omit courier_id to accept the delivery themselves.
    """
    try:
        data = _json_body()
        courier_id = data.get("courier_id") or (g.actor.user_id if g.actor.role == ROLE_COURIER else None)
        delivery = delivery_service.assign_courier(g.actor, delivery_id, courier_id)
        return jsonify({"success": True, "delivery": _present(delivery.to_dict())}), 200
    except DOMAIN_ERRORS as e:
        return domain_error_response(e)
    except Exception:
        current_app.logger.exception("Failed to assign courier")
        return error_response("Internal server error", "INTERNAL_ERROR", 500)


@deliveries_bp.post("/<delivery_id>/status")
@require_auth
def advance_status_route(delivery_id: str):
    """Request body: {"status": "IN_TRANSIT" | "ARRIVED_ZONE" | "FAILED"}"""
    try:
        data = _json_body()
        delivery = delivery_service.advance_status(g.actor, delivery_id, data.get("status"))
        return jsonify({"success": True, "delivery": _present(delivery.to_dict())}), 200
    except DOMAIN_ERRORS as e:
        return domain_error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update delivery status")
        return error_response("Internal server error", "INTERNAL_ERROR", 500)


@deliveries_bp.post("/<delivery_id>/proof")
@require_auth
def submit_proof_route(delivery_id: str):
    """
    Request body:
        {
            "otp": "1234",
            "latitude": 5.35,
            "longitude": -4.0,
            "photo_url": "...",   // optional
            "signature": "..."    // optional
        }

    otp must be a JSON string ("4821", not 4821). A number is rejected with
    400 VALIDATION_ERROR; the code is compared as an exact string.

    Error responses:
        400: Missing/invalid GPS, or otp not a string
        403: Not the assigned courier
        409: Delivery not ready for hand-off
        422: Wrong confirmation code
    """
    try:
        data = _json_body()
        result = delivery_service.submit_proof(
            g.actor,
            delivery_id,
            otp=data.get("otp"),
            latitude=data.get("latitude"),
            longitude=data.get("longitude"),
            photo_url=data.get("photo_url"),
            signature=data.get("signature"),
        )
        return jsonify({"success": True, **result.to_dict()}), 200
    except DOMAIN_ERRORS as e:
        return domain_error_response(e)
    except Exception:
        current_app.logger.exception("Failed to submit proof of delivery")
        return error_response("Internal server error", "INTERNAL_ERROR", 500)
