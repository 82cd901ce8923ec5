# Overview: Service-layer operations for inventory; best-effort stock decrements.

"""
Inventory Adjuster

Stock bookkeeping is deliberately best-effort during order placement:
- A missing or inactive product, or a failed UPDATE, is logged as a warning
  and reported in the returned StockAdjustment; it never raises and never
  rolls back the surrounding order.
- The decrement is a single `stock = stock - :qty` UPDATE so concurrent
  orders never lose updates, but stock is NOT prevented from going negative.
  Concurrent orders against the same product can race past zero; this is an
  accepted limitation at this layer.
"""

from __future__ import annotations

from dataclasses import dataclass

from flask import current_app
from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models import Product
from loko.time_utils import utcnow


@dataclass(frozen=True)
class StockAdjustment:
    product_id: str
    quantity: int
    applied: bool
    reason: str | None = None

    def to_dict(self) -> dict:
        return {
            "product_id": self.product_id,
            "quantity": self.quantity,
            "applied": self.applied,
            "reason": self.reason,
        }


def _skip(product_id: str, quantity: int, reason: str) -> StockAdjustment:
    current_app.logger.warning(
        "Could not update stock for product %s (qty %s): %s", product_id, quantity, reason
    )
    return StockAdjustment(product_id=product_id, quantity=quantity, applied=False, reason=reason)


def decrement_stock(product_id: str, quantity: int) -> StockAdjustment:
    """
    Decrement a product's stock inside the caller's transaction.

    Runs in a SAVEPOINT so a failing UPDATE only discards itself, not the
    order being placed.
    """
    row = (
        db.session.query(Product.id, Product.is_active)
        .filter(Product.id == product_id)
        .first()
    )
    if row is None:
        return _skip(product_id, quantity, "product not found")
    if not row.is_active:
        return _skip(product_id, quantity, "product is inactive")

    try:
        with db.session.begin_nested():
            result = db.session.execute(
                update(Product)
                .where(Product.id == product_id)
                .values(stock=Product.stock - quantity, updated_at=utcnow())
            )
    except SQLAlchemyError as exc:
        return _skip(product_id, quantity, f"update failed: {exc.__class__.__name__}")

    if result.rowcount == 0:
        # Deleted between the lookup and the update
        return _skip(product_id, quantity, "product not found")

    return StockAdjustment(product_id=product_id, quantity=quantity, applied=True)


def get_stock(product_id: str) -> int | None:
    value = db.session.query(Product.stock).filter(Product.id == product_id).scalar()
    return int(value) if value is not None else None

