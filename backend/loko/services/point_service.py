# Overview: Service-layer operations for delivery points; immutable geo records.

from __future__ import annotations

from ..extensions import db
from ..models import DeliveryPoint, User
from ..validation import parse_latitude, parse_longitude, optional_text


DEFAULT_PICKUP_LABEL = "Seller point"


def normalize_point(latitude, longitude, description=None) -> tuple[float, float, str | None]:
    """
    Validate raw coordinates and description without writing anything.

    Raises ValidationError for missing, non-numeric or out-of-range values
    (latitude within +/-90, longitude within +/-180).
    """
    return (
        parse_latitude(latitude),
        parse_longitude(longitude),
        optional_text(description, "description", max_length=512),
    )


def create_point(latitude, longitude, description: str | None = None) -> DeliveryPoint:
    """
    Create an immutable location record in the caller's transaction.

    The point is flushed (so it has an id) but not committed; the caller owns
    the transaction boundary.
    """
    lat, lng, desc = normalize_point(latitude, longitude, description)
    point = DeliveryPoint(latitude=lat, longitude=lng, description=desc)
    db.session.add(point)
    db.session.flush()
    return point


def describe_pickup(seller: User) -> str:
    area = " ".join(p for p in (seller.city, seller.neighborhood) if p)
    landmark = seller.landmark or DEFAULT_PICKUP_LABEL
    if not area:
        return f"Pickup: {landmark}"
    return f"Pickup: {area} ({landmark})"


def create_pickup_point(seller: User) -> DeliveryPoint | None:
    """Pickup point from the seller's registered location, if it has one."""
    if seller is None or not seller.has_location:
        return None
    return create_point(seller.latitude, seller.longitude, describe_pickup(seller))
