from __future__ import annotations

from ..extensions import db
from loko.time_utils import to_utc_z, utcnow
from .base import generate_id


class DeliveryPoint(db.Model):
    """
    Immutable geo-referenced location used as a pickup or drop-off.

    Points are written once by point_service and never updated; several
    deliveries may reference the same point.
    """
    __tablename__ = "delivery_points"

    id = db.Column(db.String(36), primary_key=True, default=generate_id)
    latitude = db.Column(db.Float, nullable=False)
    longitude = db.Column(db.Float, nullable=False)
    description = db.Column(db.String(512), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "description": self.description,
            "created_at": to_utc_z(self.created_at),
        }


class Delivery(db.Model):
    """
    One client order travelling from a seller to a destination point.

    LIFECYCLE (see lifecycle_service):
        CREATED -> ASSIGNED -> IN_TRANSIT -> ARRIVED_ZONE -> DELIVERED
        any non-terminal state -> FAILED

    `items` and `confirmation_code` are written at creation and never
    updated. The row is only physically deleted while still CREATED.
    """
    __tablename__ = "deliveries"
    __table_args__ = (
        db.UniqueConstraint("client_id", "idempotency_key", name="uq_deliveries_client_idempotency_key"),
        db.Index("ix_deliveries_status_created", "status", "created_at"),
    )

    id = db.Column(db.String(36), primary_key=True, default=generate_id)
    status = db.Column(db.String(16), nullable=False, default="CREATED", index=True)

    client_id = db.Column(db.String(36), db.ForeignKey("users.id"), nullable=False, index=True)
    courier_id = db.Column(db.String(36), db.ForeignKey("users.id"), nullable=True, index=True)
    seller_id = db.Column(db.String(36), db.ForeignKey("users.id"), nullable=True, index=True)

    delivery_point_id = db.Column(db.String(36), db.ForeignKey("delivery_points.id"), nullable=False)
    pickup_point_id = db.Column(db.String(36), db.ForeignKey("delivery_points.id"), nullable=True)

    # List of OrderItem dicts, frozen at creation
    items = db.Column(db.JSON, nullable=False, default=list)

    confirmation_code = db.Column(db.String(4), nullable=False)

    # Optional client-supplied key that makes order placement retry-safe
    idempotency_key = db.Column(db.String(64), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    destination = db.relationship("DeliveryPoint", foreign_keys=[delivery_point_id])
    pickup_point = db.relationship("DeliveryPoint", foreign_keys=[pickup_point_id])

    client = db.relationship("User", foreign_keys=[client_id])
    courier = db.relationship("User", foreign_keys=[courier_id])
    seller = db.relationship("User", foreign_keys=[seller_id])

    proof = db.relationship(
        "ProofOfDelivery",
        uselist=False,
        back_populates="delivery",
        cascade="all, delete-orphan",
    )
    logs = db.relationship(
        "DeliveryLog",
        back_populates="delivery",
        cascade="all, delete-orphan",
        order_by="DeliveryLog.id",
    )

    def __repr__(self) -> str:
        return f"<Delivery id={self.id} status={self.status} client_id={self.client_id}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "status": self.status,
            "client_id": self.client_id,
            "courier_id": self.courier_id,
            "seller_id": self.seller_id,
            "delivery_point_id": self.delivery_point_id,
            "pickup_point_id": self.pickup_point_id,
            "items": list(self.items or []),
            "confirmation_code": self.confirmation_code,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
            "destination": self.destination.to_dict() if self.destination else None,
            "pickup_point": self.pickup_point.to_dict() if self.pickup_point else None,
            "courier": self.courier.to_summary() if self.courier else None,
        }


class ProofOfDelivery(db.Model):
    """
    Hand-off evidence, at most one per delivery.

    Its existence alone marks the delivery as complete and is what makes
    repeated proof submissions idempotent.
    """
    __tablename__ = "proofs_of_delivery"

    id = db.Column(db.String(36), primary_key=True, default=generate_id)
    delivery_id = db.Column(db.String(36), db.ForeignKey("deliveries.id"), nullable=False, unique=True)

    otp = db.Column(db.String(16), nullable=True)
    photo_url = db.Column(db.String(1024), nullable=True)
    signature = db.Column(db.Text, nullable=True)
    latitude = db.Column(db.Float, nullable=False)
    longitude = db.Column(db.Float, nullable=False)

    delivered_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    delivery = db.relationship("Delivery", back_populates="proof")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "delivery_id": self.delivery_id,
            "otp": self.otp,
            "photo_url": self.photo_url,
            "signature": self.signature,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "delivered_at": to_utc_z(self.delivered_at),
        }


class DeliveryLog(db.Model):
    """Append-only audit trail of lifecycle actions (no updates/deletes)."""
    __tablename__ = "delivery_logs"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    delivery_id = db.Column(db.String(36), db.ForeignKey("deliveries.id"), nullable=False, index=True)
    user_id = db.Column(db.String(36), db.ForeignKey("users.id"), nullable=True)

    action = db.Column(db.String(32), nullable=False)
    details = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    delivery = db.relationship("Delivery", back_populates="logs")
    user = db.relationship("User")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "delivery_id": self.delivery_id,
            "user_id": self.user_id,
            "user": {"name": self.user.name, "role": self.user.role} if self.user else None,
            "action": self.action,
            "details": self.details,
            "created_at": to_utc_z(self.created_at),
        }
