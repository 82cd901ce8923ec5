# Overview: Request and role decorators for API routes.

from functools import wraps
from flask import request, jsonify, g

from .services import permission_service, session_service
from .services.permission_service import Actor, UnauthorizedError


def error_response(message: str, code: str, status: int):
    return jsonify({"success": False, "error": message, "code": code}), status


def _bearer_token() -> str | None:
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        return None
    return auth_header.split(" ", 1)[1].strip() or None


def require_auth(f):
    """
    Require a valid bearer token.

    Sets the following Flask g attributes:
    - g.current_user: The authenticated User object
    - g.actor: The caller identity passed to services
    - g.session_context: The full SessionContext object

    Returns 401 for a missing, invalid, expired or revoked token, or a
    deactivated account.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        token = _bearer_token()
        if not token:
            return error_response("Authentication required", "UNAUTHENTICATED", 401)

        context = session_service.validate_session(token)
        if not context:
            return error_response("Invalid or expired token", "UNAUTHENTICATED", 401)

        g.current_user = context.user
        g.actor = Actor.from_user(context.user)
        g.session_context = context
        g.token = token

        return f(*args, **kwargs)

    return decorated_function


def require_permission(permission_code: str):
    """
    Require the signed-in role to grant a permission.

    Stack below @require_auth. Denials are logged by permission_service and
    answered with 403 UNAUTHORIZED.
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            actor = getattr(g, "actor", None)
            if actor is None:
                return error_response("Authentication required", "UNAUTHENTICATED", 401)

            try:
                permission_service.require_permission(actor, permission_code)
            except UnauthorizedError as e:
                return error_response(str(e), e.code, 403)

            return f(*args, **kwargs)

        return decorated_function

    return decorator


# HTTP status for each domain error code raised by the services
STATUS_BY_CODE = {
    "VALIDATION_ERROR": 400,
    "UNAUTHORIZED": 403,
    "NOT_FOUND": 404,
    "INVALID_STATE": 409,
    "INVALID_CONFIRMATION_CODE": 422,
    "INTERNAL_ERROR": 500,
}


def domain_error_response(exc: Exception):
    code = getattr(exc, "code", "INTERNAL_ERROR")
    return error_response(str(exc), code, STATUS_BY_CODE.get(code, 500))
