# backend/loko/services/products_service.py
"""
Seller Catalogue Service

Sellers own their products: only the owning seller (or an admin) may edit
or withdraw one. Withdrawal is a soft delete (is_active = False) because
past orders keep pointing at the product for stock bookkeeping.

- list_seller_products: a seller's own catalogue, inactive rows included
- list_public_products: the storefront; active, in stock, with seller name
"""
from __future__ import annotations

from typing import Any

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models import Product, User
from ..permissions import ROLE_SELLER
from ..validation import NotFoundError, ValidationError, optional_text, require_text
from .delivery_service import InternalError
from .permission_service import Actor, deny, require_permission

PRODUCT_MUTABLE_FIELDS = {"name", "description", "price_cents", "stock", "image", "is_active"}

MIN_NAME_LENGTH = 2


def _non_negative_int(value: Any, field: str) -> int:
    # bool is an int subclass; reject it along with floats
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"{field} must be an integer")
    if value < 0:
        raise ValidationError(f"{field} must be >= 0")
    return value


def parse_product_patch(payload: Any, *, partial: bool) -> dict:
    """
    Validate a create (partial=False) or update (partial=True) payload.

    Unknown keys are ignored. On create, name is required and price_cents
    and stock default to 0.
    """
    if not isinstance(payload, dict):
        raise ValidationError("Request body must be a JSON object")

    patch: dict = {}
    if "name" in payload or not partial:
        name = require_text(payload.get("name"), "name", max_length=255)
        if len(name) < MIN_NAME_LENGTH:
            raise ValidationError(f"name must be at least {MIN_NAME_LENGTH} characters")
        patch["name"] = name
    if "description" in payload:
        patch["description"] = optional_text(payload.get("description"), "description")
    if "image" in payload:
        patch["image"] = optional_text(payload.get("image"), "image", max_length=512)
    for field in ("price_cents", "stock"):
        if field in payload:
            patch[field] = _non_negative_int(payload.get(field), field)
        elif not partial:
            patch[field] = 0
    if "is_active" in payload:
        if not isinstance(payload["is_active"], bool):
            raise ValidationError("is_active must be a boolean")
        patch["is_active"] = payload["is_active"]
    return patch


def apply_product_patch(p: Product, patch: dict) -> None:
    for k, v in patch.items():
        if k not in PRODUCT_MUTABLE_FIELDS:
            continue
        setattr(p, k, v)


def _commit(action: str) -> None:
    try:
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Failed to %s", action)
        raise InternalError(f"Failed to {action}") from exc


def _require_seller(seller_id) -> User:
    seller = db.session.get(User, seller_id) if seller_id else None
    if seller is None:
        raise NotFoundError("Seller not found")
    if seller.role != ROLE_SELLER:
        raise ValidationError("Products can only belong to a seller")
    return seller


def _load_owned(actor: Actor, product_id: str, action: str) -> Product:
    product = db.session.get(Product, product_id)
    if product is None:
        raise NotFoundError("Product not found")
    if not actor.is_admin and product.seller_id != actor.user_id:
        deny(actor, action, "Only the owning seller can change this product")
    return product


def add_product(seller_id: str, payload: dict) -> Product:
    """Insert a product for a seller. Used by create_product and the CLI."""
    patch = parse_product_patch(payload, partial=False)
    seller = _require_seller(seller_id)

    p = Product(seller_id=seller.id)
    apply_product_patch(p, patch)
    db.session.add(p)
    _commit("create product")

    current_app.logger.info("Product %s created for seller %s", p.id, seller.id)
    return p


def create_product(actor: Actor, payload: dict) -> Product:
    """
    Create a product owned by the calling seller.

    Admins must name the owning seller with seller_id.
    """
    require_permission(actor, "MANAGE_PRODUCTS")
    if actor.is_admin:
        seller_id = payload.get("seller_id") if isinstance(payload, dict) else None
        if not seller_id:
            raise ValidationError("seller_id is required")
    else:
        seller_id = actor.user_id
    return add_product(seller_id, payload)


def update_product(actor: Actor, product_id: str, payload: dict) -> Product:
    require_permission(actor, "MANAGE_PRODUCTS")
    patch = parse_product_patch(payload, partial=True)
    p = _load_owned(actor, product_id, "UPDATE_PRODUCT")

    apply_product_patch(p, patch)
    _commit("update product")
    return p


def delete_product(actor: Actor, product_id: str) -> Product:
    """Withdraw a product from sale. Repeating the call is harmless."""
    require_permission(actor, "MANAGE_PRODUCTS")
    p = _load_owned(actor, product_id, "DELETE_PRODUCT")

    if p.is_active:
        p.is_active = False
        _commit("delete product")
        current_app.logger.info("Product %s withdrawn by %s", p.id, actor.user_id)
    return p


def list_seller_products(seller_id: str) -> list[dict]:
    products = (
        db.session.query(Product)
        .filter(Product.seller_id == seller_id)
        .order_by(Product.created_at.desc(), Product.id.asc())
        .all()
    )
    return [p.to_dict() for p in products]


def list_public_products(seller_id: str | None = None) -> list[dict]:
    query = (
        db.session.query(Product, User.name)
        .outerjoin(User, Product.seller_id == User.id)
        .filter(Product.is_active.is_(True), Product.stock > 0)
    )
    if seller_id:
        query = query.filter(Product.seller_id == seller_id)
    rows = query.order_by(Product.created_at.desc(), Product.id.asc()).all()
    return [{**p.to_dict(), "seller_name": seller_name} for p, seller_name in rows]
