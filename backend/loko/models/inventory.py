from __future__ import annotations

from ..extensions import db
from loko.time_utils import to_utc_z, utcnow
from .base import generate_id


class Product(db.Model):
    """
    Seller catalogue entry.

    `stock` is a plain counter decremented when orders are placed. It is the
    only contended shared value in the delivery flow and is not guarded
    against going negative (see inventory_service).
    """
    __tablename__ = "products"
    __table_args__ = (
        db.Index("ix_products_seller_active", "seller_id", "is_active"),
    )

    id = db.Column(db.String(36), primary_key=True, default=generate_id)
    seller_id = db.Column(db.String(36), db.ForeignKey("users.id"), nullable=True, index=True)

    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)

    # Authoritative storage in cents (frontend may only format for display)
    price_cents = db.Column(db.Integer, nullable=False, default=0)
    stock = db.Column(db.Integer, nullable=False, default=0)
    image = db.Column(db.String(512), nullable=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    seller = db.relationship("User", backref=db.backref("products", lazy=True))

    def __repr__(self) -> str:
        return f"<Product id={self.id} name={self.name!r} stock={self.stock}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "seller_id": self.seller_id,
            "name": self.name,
            "description": self.description,
            "price_cents": self.price_cents,
            "stock": self.stock,
            "image": self.image,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
