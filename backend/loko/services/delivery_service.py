# Overview: Service-layer operations for deliveries; orchestrates the delivery lifecycle.

"""
Delivery Lifecycle Orchestrator

================================================================================
PURPOSE: Single entry point for every delivery mutation and read
================================================================================

OPERATIONS:
    create_order    -> points + delivery + stock decrements, one transaction
    cancel_order    -> hard delete, CREATED only
    assign_courier  -> set courier, status ASSIGNED
    advance_status  -> IN_TRANSIT / ARRIVED_ZONE / FAILED
    submit_proof    -> proof row + DELIVERED, one transaction
    list_deliveries / get_delivery

FLOW (every mutation):
    1. Validate input (ValidationError, before any write)
    2. Check the actor (UnauthorizedError)
    3. Load + lock the delivery row, check its state (InvalidStateError)
    4. Write and commit (InternalError on persistence failure, rolled back)
    5. Publish a domain event; audit + notifications run best-effort

The caller identity is always passed in as an Actor. Nothing here reads the
request or the session user.
================================================================================
"""

from __future__ import annotations

from dataclasses import dataclass, field

from flask import current_app
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from ..extensions import db
from ..models import Delivery, DeliveryPoint, ProofOfDelivery, User
from ..permissions import ROLE_COURIER, ROLE_SELLER
from ..validation import (
    NotFoundError,
    ValidationError,
    escape_like,
    optional_text,
    parse_order_items,
    require_text,
)
from . import events, inventory_service, point_service, proof_service
from .concurrency import lock_for_update
from .inventory_service import StockAdjustment
from .lifecycle_service import (
    ASSIGN_ONLY_TARGETS,
    PROOF_ONLY_TARGETS,
    STATUS_ASSIGNED,
    STATUS_CREATED,
    STATUS_DELIVERED,
    VALID_STATUSES,
    InvalidStateError,
    can_assign,
    can_cancel,
    can_transition,
    ensure_transition,
    is_terminal,
)
from .permission_service import Actor, deny, require_permission


class InternalError(Exception):
    """A persistence failure; the transaction was rolled back."""
    code = "INTERNAL_ERROR"


@dataclass(frozen=True)
class OrderResult:
    delivery_id: str
    confirmation_code: str
    created: bool = True
    stock_adjustments: list[StockAdjustment] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "delivery_id": self.delivery_id,
            "confirmation_code": self.confirmation_code,
            "created": self.created,
            "stock_adjustments": [a.to_dict() for a in self.stock_adjustments],
        }


@dataclass(frozen=True)
class ProofResult:
    delivery_id: str
    status: str
    already_completed: bool = False

    def to_dict(self) -> dict:
        return {
            "delivery_id": self.delivery_id,
            "status": self.status,
            "already_completed": self.already_completed,
        }


@dataclass(frozen=True)
class DeliveryFilter:
    status: str | None = None
    courier_id: str | None = None
    client_id: str | None = None
    search: str | None = None
    limit: int | None = None

    @classmethod
    def from_args(cls, args) -> "DeliveryFilter":
        """Build from a query-string mapping (request.args)."""
        status = (args.get("status") or "").strip().upper() or None
        if status is not None and status not in VALID_STATUSES:
            raise ValidationError(
                f"Invalid status '{status}'. Must be one of: {', '.join(sorted(VALID_STATUSES))}"
            )
        limit = args.get("limit")
        if limit is not None and limit != "":
            try:
                limit = int(limit)
            except (TypeError, ValueError):
                raise ValidationError("limit must be an integer")
            if limit < 1:
                raise ValidationError("limit must be >= 1")
        else:
            limit = None
        return cls(
            status=status,
            courier_id=(args.get("courier_id") or "").strip() or None,
            client_id=(args.get("client_id") or "").strip() or None,
            search=(args.get("search") or "").strip() or None,
            limit=limit,
        )


def _strict() -> bool:
    return bool(current_app.config.get("DELIVERY_STRICT_TRANSITIONS", True))


def _commit(action: str) -> None:
    try:
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Failed to %s", action)
        raise InternalError(f"Failed to {action}") from exc


def _load_delivery(delivery_id, *, lock: bool = False) -> Delivery:
    if not isinstance(delivery_id, str) or not delivery_id.strip():
        raise ValidationError("delivery_id is required")
    query = db.session.query(Delivery).filter(Delivery.id == delivery_id.strip())
    if lock:
        query = lock_for_update(query)
    delivery = query.first()
    if delivery is None:
        raise NotFoundError("Delivery not found")
    return delivery


def _resolve_seller(seller_id: str | None, items) -> User | None:
    """Explicit seller wins, else the first item that names one."""
    candidate = seller_id
    if candidate is None:
        candidate = next((item.seller_id for item in items if item.seller_id), None)
    if candidate is None:
        return None
    seller = db.session.get(User, candidate)
    if seller is None:
        current_app.logger.warning("Seller %s not found; order placed without a seller", candidate)
        return None
    if seller.role != ROLE_SELLER:
        current_app.logger.warning(
            "User %s is not a seller (role=%s); order placed without a seller", candidate, seller.role
        )
        return None
    return seller


def _find_by_idempotency_key(client_id: str, key: str) -> Delivery | None:
    return (
        db.session.query(Delivery)
        .filter(Delivery.client_id == client_id, Delivery.idempotency_key == key)
        .first()
    )


# =============================================================================
# MUTATIONS
# =============================================================================

def create_order(
    actor: Actor,
    destination,
    items=None,
    seller_id: str | None = None,
    idempotency_key: str | None = None,
) -> OrderResult:
    """
    Place an order for actor and create its delivery in state CREATED.

    Everything (pickup point, destination point, delivery row, stock
    decrements) is written in one transaction. A failed stock decrement is
    logged and skipped; any other failure rolls the whole order back.

    With an idempotency_key, a repeat call by the same client returns the
    original delivery and writes nothing.
    """
    require_permission(actor, "CREATE_DELIVERY")

    if not isinstance(destination, dict):
        raise ValidationError("destination must be an object with latitude and longitude")
    latitude, longitude, description = point_service.normalize_point(
        destination.get("latitude"),
        destination.get("longitude"),
        destination.get("description"),
    )
    order_items = parse_order_items(items)
    seller_id = optional_text(seller_id, "seller_id", max_length=36)
    idempotency_key = optional_text(idempotency_key, "idempotency_key", max_length=64)

    if idempotency_key:
        existing = _find_by_idempotency_key(actor.user_id, idempotency_key)
        if existing is not None:
            current_app.logger.info(
                "Duplicate order for key %s; returning delivery %s", idempotency_key, existing.id
            )
            return OrderResult(existing.id, existing.confirmation_code, created=False)

    seller = _resolve_seller(seller_id, order_items)

    adjustments: list[StockAdjustment] = []
    try:
        pickup = point_service.create_pickup_point(seller) if seller else None
        drop_off = point_service.create_point(latitude, longitude, description)

        delivery = Delivery(
            status=STATUS_CREATED,
            client_id=actor.user_id,
            seller_id=seller.id if seller else None,
            delivery_point_id=drop_off.id,
            pickup_point_id=pickup.id if pickup else None,
            items=[item.to_dict() for item in order_items],
            confirmation_code=proof_service.generate_confirmation_code(),
            idempotency_key=idempotency_key,
        )
        db.session.add(delivery)
        db.session.flush()

        for item in order_items:
            if item.product_id:
                adjustments.append(inventory_service.decrement_stock(item.product_id, item.quantity))

        db.session.commit()
    except IntegrityError as exc:
        db.session.rollback()
        # Lost a race against the same idempotency key
        if idempotency_key:
            existing = _find_by_idempotency_key(actor.user_id, idempotency_key)
            if existing is not None:
                return OrderResult(existing.id, existing.confirmation_code, created=False)
        current_app.logger.exception("Failed to create delivery")
        raise InternalError("Failed to create delivery") from exc
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Failed to create delivery")
        raise InternalError("Failed to create delivery") from exc

    current_app.logger.info("Delivery %s created by %s", delivery.id, actor.user_id)

    events.publish(events.DeliveryCreated(
        delivery_id=delivery.id,
        actor_id=actor.user_id,
        client_id=delivery.client_id,
        seller_id=delivery.seller_id,
    ))

    return OrderResult(delivery.id, delivery.confirmation_code, stock_adjustments=adjustments)


def cancel_order(actor: Actor, delivery_id: str) -> None:
    """
    Delete a delivery that has not been assigned yet.

    Only the owning client or an admin may cancel. Logs and proof go with the
    delivery; points and stock are left as they are.
    """
    delivery = _load_delivery(delivery_id, lock=True)

    if not (actor.is_admin or delivery.client_id == actor.user_id):
        deny(actor, "CANCEL_DELIVERY", "Only the client who placed the order can cancel it")

    if not can_cancel(delivery.status):
        raise InvalidStateError(f"Cannot cancel a delivery in status '{delivery.status}'")

    db.session.delete(delivery)
    _commit("cancel delivery")
    current_app.logger.info("Delivery %s cancelled by %s", delivery_id, actor.user_id)


def assign_courier(actor: Actor, delivery_id: str, courier_id: str) -> Delivery:
    """
    Assign (or re-assign) a courier and move the delivery to ASSIGNED.

    Admins assign anyone to anything. Sellers assign on their own orders.
    Couriers can only accept a delivery for themselves.
    """
    require_permission(actor, "ASSIGN_DELIVERY")
    courier_id = require_text(courier_id, "courier_id", max_length=36)

    delivery = _load_delivery(delivery_id, lock=True)

    if actor.role == ROLE_SELLER and delivery.seller_id != actor.user_id:
        deny(actor, "ASSIGN_DELIVERY", "Sellers can only assign couriers to their own orders")
    if actor.role == ROLE_COURIER and courier_id != actor.user_id:
        deny(actor, "ASSIGN_DELIVERY", "Couriers can only assign themselves")

    courier = db.session.get(User, courier_id)
    if courier is None or courier.role != ROLE_COURIER or not courier.is_active:
        raise ValidationError("courier_id must reference an active courier")

    if _strict() and not can_assign(delivery.status):
        raise InvalidStateError(f"Cannot assign a courier to a delivery in status '{delivery.status}'")

    previous_courier_id = delivery.courier_id
    delivery.courier_id = courier.id
    delivery.status = STATUS_ASSIGNED
    _commit("assign courier")

    current_app.logger.info("Delivery %s assigned to courier %s", delivery.id, courier.id)

    events.publish(events.CourierAssigned(
        delivery_id=delivery.id,
        actor_id=actor.user_id,
        client_id=delivery.client_id,
        courier_id=courier.id,
        previous_courier_id=previous_courier_id,
    ))
    return delivery


def advance_status(actor: Actor, delivery_id: str, new_status: str) -> Delivery:
    """
    Move a delivery along its lifecycle (IN_TRANSIT, ARRIVED_ZONE, FAILED).

    Only the assigned courier or an admin may do this. ASSIGNED and
    DELIVERED are reached through assign_courier and submit_proof.
    """
    require_permission(actor, "UPDATE_DELIVERY_STATUS")

    if not isinstance(new_status, str) or new_status.strip().upper() not in VALID_STATUSES:
        raise ValidationError(
            f"Invalid status '{new_status}'. Must be one of: {', '.join(sorted(VALID_STATUSES))}"
        )
    new_status = new_status.strip().upper()

    delivery = _load_delivery(delivery_id, lock=True)

    if actor.role == ROLE_COURIER and delivery.courier_id != actor.user_id:
        deny(actor, "UPDATE_DELIVERY_STATUS", "Only the assigned courier can update this delivery")

    previous_status = delivery.status
    if _strict():
        if new_status in ASSIGN_ONLY_TARGETS:
            raise InvalidStateError("Use courier assignment to move a delivery to ASSIGNED")
        if new_status in PROOF_ONLY_TARGETS:
            raise InvalidStateError("Submit proof of delivery to move a delivery to DELIVERED")
        ensure_transition(previous_status, new_status)

    delivery.status = new_status
    _commit("update delivery status")

    current_app.logger.info(
        "Delivery %s status %s -> %s by %s", delivery.id, previous_status, new_status, actor.user_id
    )

    events.publish(events.StatusChanged(
        delivery_id=delivery.id,
        actor_id=actor.user_id,
        client_id=delivery.client_id,
        previous_status=previous_status,
        new_status=new_status,
    ))
    return delivery


def submit_proof(
    actor: Actor,
    delivery_id: str,
    otp: str | None,
    latitude,
    longitude,
    photo_url: str | None = None,
    signature: str | None = None,
) -> ProofResult:
    """
    Record proof of delivery and mark the delivery DELIVERED.

    Repeating the call on a completed delivery succeeds without validating
    or writing anything. A wrong confirmation code changes nothing.
    """
    require_permission(actor, "COMPLETE_DELIVERY")

    delivery = _load_delivery(delivery_id, lock=True)

    if actor.role == ROLE_COURIER and delivery.courier_id and delivery.courier_id != actor.user_id:
        deny(actor, "COMPLETE_DELIVERY", "Only the assigned courier can complete this delivery")

    if proof_service.is_completed(delivery):
        return ProofResult(delivery.id, delivery.status, already_completed=True)

    submission = proof_service.parse_submission(otp, latitude, longitude, photo_url, signature)
    proof_service.verify_confirmation_code(delivery, submission.otp)

    if _strict():
        if not can_transition(delivery.status, STATUS_DELIVERED):
            raise InvalidStateError(
                f"Cannot complete a delivery in status '{delivery.status}'"
            )
    elif is_terminal(delivery.status):
        raise InvalidStateError(f"Cannot complete a delivery in status '{delivery.status}'")

    proof = ProofOfDelivery(
        delivery_id=delivery.id,
        otp=submission.otp,
        photo_url=submission.photo_url,
        signature=submission.signature,
        latitude=submission.latitude,
        longitude=submission.longitude,
    )
    db.session.add(proof)
    delivery.status = STATUS_DELIVERED

    try:
        db.session.commit()
    except IntegrityError as exc:
        db.session.rollback()
        # A concurrent submission already stored the proof
        if db.session.query(ProofOfDelivery.id).filter_by(delivery_id=delivery_id).first():
            return ProofResult(delivery_id, STATUS_DELIVERED, already_completed=True)
        current_app.logger.exception("Failed to submit proof of delivery")
        raise InternalError("Failed to submit proof of delivery") from exc
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Failed to submit proof of delivery")
        raise InternalError("Failed to submit proof of delivery") from exc

    current_app.logger.info("Delivery %s delivered (proof by %s)", delivery.id, actor.user_id)

    events.publish(events.DeliveryCompleted(
        delivery_id=delivery.id,
        actor_id=actor.user_id,
        client_id=delivery.client_id,
        seller_id=delivery.seller_id,
    ))
    return ProofResult(delivery.id, STATUS_DELIVERED)


# =============================================================================
# READS
# =============================================================================

def list_deliveries(filters: DeliveryFilter | None = None) -> list[dict]:
    """Newest first, each with destination, pickup point and courier summary."""
    filters = filters or DeliveryFilter()

    query = db.session.query(Delivery).outerjoin(
        DeliveryPoint, Delivery.delivery_point_id == DeliveryPoint.id
    )
    if filters.status:
        query = query.filter(Delivery.status == filters.status)
    if filters.courier_id:
        query = query.filter(Delivery.courier_id == filters.courier_id)
    if filters.client_id:
        query = query.filter(Delivery.client_id == filters.client_id)
    if filters.search:
        pattern = f"%{escape_like(filters.search)}%"
        query = query.filter(or_(
            Delivery.id.ilike(pattern, escape="\\"),
            DeliveryPoint.description.ilike(pattern, escape="\\"),
        ))

    limit = filters.limit or current_app.config.get("DELIVERY_LIST_LIMIT", 200)
    rows = query.order_by(Delivery.created_at.desc(), Delivery.id.desc()).limit(limit).all()
    return [d.to_dict() for d in rows]


def get_delivery(delivery_id: str) -> dict:
    delivery = _load_delivery(delivery_id)
    data = delivery.to_dict()
    data["client"] = delivery.client.to_summary() if delivery.client else None
    data["seller"] = delivery.seller.to_summary() if delivery.seller else None
    data["proof"] = delivery.proof.to_dict() if delivery.proof else None
    data["logs"] = [log.to_dict() for log in delivery.logs]
    return data
