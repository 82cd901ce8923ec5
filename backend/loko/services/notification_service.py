# Overview: Service-layer operations for user notifications; best-effort emission and owner-only management.

from __future__ import annotations

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models import Notification, User
from ..validation import NotFoundError
from .events import CourierAssigned, DeliveryCompleted, DeliveryCreated, StatusChanged
from .lifecycle_service import STATUS_ARRIVED_ZONE, STATUS_FAILED, STATUS_IN_TRANSIT


TYPE_INFO = "info"
TYPE_SUCCESS = "success"
TYPE_WARNING = "warning"
TYPE_ERROR = "error"
VALID_TYPES = {TYPE_INFO, TYPE_SUCCESS, TYPE_WARNING, TYPE_ERROR}

SHORT_REF_LENGTH = 8


def delivery_link(delivery_id: str) -> str:
    return f"/deliveries/{delivery_id}"


def short_ref(delivery_id: str) -> str:
    return delivery_id[:SHORT_REF_LENGTH]


def notify(
    user_id: str,
    title: str,
    message: str,
    type: str = TYPE_INFO,
    link: str | None = None,
) -> Notification | None:
    """
    Write one notification for a user.

    Best-effort: a failed write is rolled back and logged, and None is
    returned. Unknown types fall back to "info".
    """
    if type not in VALID_TYPES:
        type = TYPE_INFO
    try:
        notification = Notification(
            user_id=user_id,
            title=title,
            message=message,
            type=type,
            link=link,
        )
        db.session.add(notification)
        db.session.commit()
        return notification
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.warning(
            "Failed to create notification: user=%s title=%r", user_id, title, exc_info=True
        )
        return None


def list_for_user(user_id: str, limit: int | None = None) -> dict:
    if limit is None:
        limit = current_app.config.get("NOTIFICATION_PAGE_SIZE", 20)
    rows = (
        db.session.query(Notification)
        .filter(Notification.user_id == user_id)
        .order_by(Notification.created_at.desc(), Notification.id.desc())
        .limit(limit)
        .all()
    )
    unread_count = (
        db.session.query(Notification)
        .filter(Notification.user_id == user_id, Notification.is_read.is_(False))
        .count()
    )
    return {
        "notifications": [n.to_dict() for n in rows],
        "unread_count": unread_count,
    }


def _get_owned(user_id: str, notification_id: int) -> Notification:
    notification = (
        db.session.query(Notification)
        .filter(Notification.id == notification_id, Notification.user_id == user_id)
        .first()
    )
    # Another user's notification is indistinguishable from a missing one
    if notification is None:
        raise NotFoundError("Notification not found")
    return notification


def mark_read(user_id: str, notification_id: int) -> Notification:
    notification = _get_owned(user_id, notification_id)
    notification.is_read = True
    db.session.commit()
    return notification


def mark_all_read(user_id: str) -> int:
    updated = (
        db.session.query(Notification)
        .filter(Notification.user_id == user_id, Notification.is_read.is_(False))
        .update({Notification.is_read: True}, synchronize_session=False)
    )
    db.session.commit()
    return updated


def delete_notification(user_id: str, notification_id: int) -> None:
    notification = _get_owned(user_id, notification_id)
    db.session.delete(notification)
    db.session.commit()


# =============================================================================
# EVENT SUBSCRIBER
# =============================================================================

def status_message(status: str) -> tuple[str, str] | None:
    """Client-facing text and type for a status change, or None to stay silent."""
    if status == STATUS_IN_TRANSIT:
        return "Your delivery is on the way!", TYPE_INFO
    elif status == STATUS_ARRIVED_ZONE:
        return "Your courier has arrived in your area.", TYPE_INFO
    elif status == STATUS_FAILED:
        return "Your delivery ran into a problem.", TYPE_ERROR
    # CREATED, ASSIGNED and DELIVERED have their own notifications (or none)
    return None


def _user_name(user_id: str | None) -> str:
    user = db.session.get(User, user_id) if user_id else None
    return user.name if user else "a client"


def handle_event(event) -> None:
    ref = short_ref(event.delivery_id)
    link = delivery_link(event.delivery_id)

    if isinstance(event, DeliveryCreated):
        if event.seller_id:
            notify(
                event.seller_id,
                "New order",
                f"A new order #{ref} was placed by {_user_name(event.client_id)}.",
                TYPE_INFO,
                link,
            )

    elif isinstance(event, CourierAssigned):
        notify(event.courier_id, "New mission", f"You have been assigned to delivery #{ref}.", TYPE_INFO, link)
        notify(
            event.client_id,
            "Courier assigned",
            f"A courier has been assigned to your delivery #{ref}.",
            TYPE_SUCCESS,
            link,
        )

    elif isinstance(event, StatusChanged):
        message = status_message(event.new_status)
        if message is not None:
            text, kind = message
            notify(event.client_id, "Delivery update", f"{text} (Delivery #{ref})", kind, link)

    elif isinstance(event, DeliveryCompleted):
        notify(
            event.client_id,
            "Delivery complete!",
            f"Your delivery #{ref} was completed successfully.",
            TYPE_SUCCESS,
            link,
        )
        if event.seller_id:
            notify(
                event.seller_id,
                "Delivery made",
                f"Order #{ref} was delivered to the client.",
                TYPE_SUCCESS,
                link,
            )
