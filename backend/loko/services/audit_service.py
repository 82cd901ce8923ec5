# Overview: Service-layer operations for the delivery audit log; append-only, best-effort.

"""
Delivery Audit Log

Every successful lifecycle mutation (create, assign, status update, proof)
appends exactly one DeliveryLog row. Rows are written after the primary
transaction has committed, in their own commit. A failure here is logged and
swallowed; it never undoes or fails the operation that triggered it.

Cancellation writes nothing: the delivery and its logs are deleted together.
"""

from __future__ import annotations

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models import DeliveryLog


ACTION_CREATED = "CREATED"
ACTION_ASSIGNED = "ASSIGNED"
ACTION_STATUS_UPDATE = "STATUS_UPDATE"
ACTION_DELIVERED = "DELIVERED"

VALID_ACTIONS = {ACTION_CREATED, ACTION_ASSIGNED, ACTION_STATUS_UPDATE, ACTION_DELIVERED}


def append(
    delivery_id: str,
    action: str,
    user_id: str | None = None,
    details: str | None = None,
) -> DeliveryLog | None:
    """Append one audit row. Returns None (after logging) if the write fails."""
    try:
        entry = DeliveryLog(
            delivery_id=delivery_id,
            user_id=user_id,
            action=action,
            details=details,
        )
        db.session.add(entry)
        db.session.commit()
        return entry
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.warning(
            "Failed to write delivery log: delivery=%s action=%s", delivery_id, action, exc_info=True
        )
        return None


def list_for_delivery(delivery_id: str) -> list[DeliveryLog]:
    """Audit rows for one delivery, oldest first."""
    return (
        db.session.query(DeliveryLog)
        .filter(DeliveryLog.delivery_id == delivery_id)
        .order_by(DeliveryLog.id.asc())
        .all()
    )


def handle_event(event) -> None:
    """Event bus subscriber: one log row per delivery event."""
    append(event.delivery_id, event.audit_action, user_id=event.actor_id, details=event.audit_details())
