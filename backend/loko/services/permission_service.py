# Overview: Service-layer operations for permission; caller identity and role checks.

"""
Permission Checking for delivery operations

WHY: Every mutating delivery operation is gated on who is calling.
The caller identity is passed in explicitly as an Actor; nothing is read
from ambient request state, so services are callable from routes, CLI
commands and tests alike.

DESIGN PRINCIPLES:
- Fail closed: Deny by default, require explicit permission grant
- Log denials only: Permission grants are not logged
- Ownership checks (own delivery, assigned courier) live with the operation
"""

from dataclasses import dataclass

from flask import current_app

from ..models import User
from ..permissions import ROLE_ADMIN, get_role_permissions, validate_role


class UnauthorizedError(Exception):
    """Raised when the actor lacks permission for the requested mutation."""
    code = "UNAUTHORIZED"


@dataclass(frozen=True)
class Actor:
    """
    Verified caller identity.

    Built by the request layer from the session (or by CLI/tests directly)
    and passed explicitly into every service call.
    """
    user_id: str
    role: str

    @classmethod
    def from_user(cls, user: User) -> "Actor":
        return cls(user_id=user.id, role=user.role)

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN


def log_denial(actor: Actor | None, action: str, reason: str) -> None:
    """Record a denied operation for operator visibility."""
    current_app.logger.warning(
        "Permission denied: user=%s role=%s action=%s reason=%s",
        actor.user_id if actor else None,
        actor.role if actor else None,
        action,
        reason,
    )


def has_permission(actor: Actor, permission_code: str) -> bool:
    if actor is None or not validate_role(actor.role):
        return False
    return permission_code in get_role_permissions(actor.role)


def require_permission(actor: Actor, permission_code: str) -> None:
    """
    Require the actor's role to grant a permission.

    Raises UnauthorizedError (and logs the denial) otherwise.
    """
    if not has_permission(actor, permission_code):
        reason = f"Missing permission: {permission_code}"
        log_denial(actor, permission_code, reason)
        raise UnauthorizedError(reason)


def deny(actor: Actor, action: str, reason: str) -> None:
    """Log and raise an ownership-based denial."""
    log_denial(actor, action, reason)
    raise UnauthorizedError(reason)
