# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

"""
Authentication API routes

- POST /api/auth/register - Self-registration (client, courier or seller)
- POST /api/auth/login    - Email + password, returns a bearer token
- POST /api/auth/logout   - Revoke the current token
- GET  /api/auth/me       - Current user

Admins cannot self-register; they are created with `flask users create`.
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_auth, domain_error_response, error_response
from ..permissions import SELF_REGISTER_ROLES, ROLE_CLIENT, get_role_permissions
from ..services import auth_service
from ..services import session_service
from ..services.auth_service import PasswordValidationError
from ..validation import ValidationError


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


@auth_bp.post("/register")
def register_route():
    """
    Create an account.

    Request body:
        {
            "name": "...", "email": "...", "password": "...",
            "role": "client" | "courier" | "seller",
            "phone", "city", "neighborhood", "landmark",   // optional
            "latitude", "longitude"                        // optional, seller pickup location
        }
    """
    try:
        data = request.get_json(silent=True) or {}
        role = data.get("role") or ROLE_CLIENT
        if role not in SELF_REGISTER_ROLES:
            return error_response(
                f"role must be one of: {', '.join(sorted(SELF_REGISTER_ROLES))}",
                "VALIDATION_ERROR",
                400,
            )

        user = auth_service.create_user(
            data.get("name"),
            data.get("email"),
            data.get("password"),
            role,
            phone=data.get("phone"),
            city=data.get("city"),
            neighborhood=data.get("neighborhood"),
            landmark=data.get("landmark"),
            latitude=data.get("latitude"),
            longitude=data.get("longitude"),
        )
        return jsonify({"success": True, "user": user.to_dict()}), 201

    except PasswordValidationError as e:
        return error_response(str(e), "VALIDATION_ERROR", 400)
    except ValidationError as e:
        return domain_error_response(e)
    except Exception:
        current_app.logger.exception("Failed to register user")
        return error_response("Internal server error", "INTERNAL_ERROR", 500)


@auth_bp.post("/login")
def login_route():
    """
    Authenticate user and create session token.

    Token must be included in Authorization header for protected routes.
    """
    try:
        data = request.get_json(silent=True) or {}
        email = data.get("email")
        password = data.get("password")

        if not email or not password:
            return error_response("email and password required", "VALIDATION_ERROR", 400)

        user = auth_service.authenticate(email, password)
        if not user:
            current_app.logger.warning("Failed login for %s from %s", email, request.remote_addr)
            return error_response("Invalid credentials", "UNAUTHENTICATED", 401)

        session, token = session_service.create_session(
            user_id=user.id,
            user_agent=request.headers.get("User-Agent"),
            ip_address=request.remote_addr,
        )

        return jsonify({
            "success": True,
            "user": user.to_dict(),
            "permissions": sorted(get_role_permissions(user.role)),
            "token": token,
            "session": session.to_dict(),
        }), 200

    except Exception:
        current_app.logger.exception("Failed to login user")
        return error_response("Internal server error", "INTERNAL_ERROR", 500)


@auth_bp.post("/logout")
@require_auth
def logout_route():
    try:
        session_service.revoke_session(g.token)
        return jsonify({"success": True}), 200
    except Exception:
        current_app.logger.exception("Failed to logout user")
        return error_response("Internal server error", "INTERNAL_ERROR", 500)


@auth_bp.get("/me")
@require_auth
def me_route():
    user = g.current_user
    return jsonify({
        "success": True,
        "user": user.to_dict(),
        "permissions": sorted(get_role_permissions(user.role)),
    }), 200
