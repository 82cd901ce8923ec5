# Overview: Domain events for the delivery lifecycle and the post-commit event bus.

"""
Delivery Domain Events

Lifecycle operations publish one event after their transaction commits.
Subscribers (audit log, notifications) are side effects: each one runs in
isolation, and a subscriber that raises is logged and skipped so the other
subscribers and the already-committed operation are unaffected.

The bus lives on the Flask app (app.extensions) so that each app instance,
including every test app, has its own subscriber list.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, ClassVar

from flask import current_app

from ..extensions import db


EXTENSION_KEY = "loko_event_bus"


@dataclass(frozen=True)
class DeliveryEvent:
    delivery_id: str
    actor_id: str | None
    client_id: str

    audit_action: ClassVar[str] = ""

    def audit_details(self) -> str | None:
        return None


@dataclass(frozen=True)
class DeliveryCreated(DeliveryEvent):
    seller_id: str | None = None

    audit_action: ClassVar[str] = "CREATED"

    def audit_details(self) -> str:
        return "Delivery created"


@dataclass(frozen=True)
class CourierAssigned(DeliveryEvent):
    courier_id: str = ""
    previous_courier_id: str | None = None

    audit_action: ClassVar[str] = "ASSIGNED"

    def audit_details(self) -> str:
        if self.previous_courier_id and self.previous_courier_id != self.courier_id:
            return f"Reassigned from courier {self.previous_courier_id} to courier {self.courier_id}"
        return f"Assigned to courier {self.courier_id}"


@dataclass(frozen=True)
class StatusChanged(DeliveryEvent):
    previous_status: str = ""
    new_status: str = ""

    audit_action: ClassVar[str] = "STATUS_UPDATE"

    def audit_details(self) -> str:
        return f"Status changed from {self.previous_status} to {self.new_status}"


@dataclass(frozen=True)
class DeliveryCompleted(DeliveryEvent):
    seller_id: str | None = None

    audit_action: ClassVar[str] = "DELIVERED"

    def audit_details(self) -> str:
        return "Proof of delivery submitted (GPS + OTP)"


Subscriber = Callable[[DeliveryEvent], None]


class EventBus:
    """Synchronous in-process dispatcher keyed by event type."""

    def __init__(self):
        self._subscribers: dict[type, list[Subscriber]] = {}

    def subscribe(self, event_type: type, handler: Subscriber) -> None:
        self._subscribers.setdefault(event_type, []).append(handler)

    def subscribe_all(self, handler: Subscriber) -> None:
        for event_type in (DeliveryCreated, CourierAssigned, StatusChanged, DeliveryCompleted):
            self.subscribe(event_type, handler)

    def subscribers_for(self, event_type: type) -> list[Subscriber]:
        return list(self._subscribers.get(event_type, []))

    def publish(self, event: DeliveryEvent) -> None:
        for handler in self.subscribers_for(type(event)):
            try:
                handler(event)
            except Exception:
                # Side effects never fail the committed operation
                db.session.rollback()
                current_app.logger.warning(
                    "Event subscriber %s failed for %s on delivery %s",
                    getattr(handler, "__qualname__", repr(handler)),
                    type(event).__name__,
                    event.delivery_id,
                    exc_info=True,
                )


def build_default_bus() -> EventBus:
    from . import audit_service, notification_service

    bus = EventBus()
    bus.subscribe_all(audit_service.handle_event)
    bus.subscribe_all(notification_service.handle_event)
    return bus


def get_event_bus() -> EventBus:
    bus = current_app.extensions.get(EXTENSION_KEY)
    if bus is None:
        bus = build_default_bus()
        current_app.extensions[EXTENSION_KEY] = bus
    return bus


def publish(event: DeliveryEvent) -> None:
    get_event_bus().publish(event)
