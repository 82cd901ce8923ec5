from __future__ import annotations

from dataclasses import dataclass, asdict
from typing import Any


MAX_LATITUDE = 90.0
MAX_LONGITUDE = 180.0

# Sanity cap on a single order line; prevents nonsensical stock decrements
MAX_ITEM_QUANTITY = 10_000


class ValidationError(ValueError):
    """400-level input problem."""
    code = "VALIDATION_ERROR"


class NotFoundError(LookupError):
    """404-level: referenced delivery, user or notification is absent."""
    code = "NOT_FOUND"


def _to_text(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text if text else None


def parse_coordinate(value: Any, field: str, bound: float) -> float:
    """
    Coerce a latitude/longitude to float and range-check it.

    Rejects missing values, booleans (bool is an int subclass), non-numeric
    strings and NaN.
    """
    if value is None or isinstance(value, bool):
        raise ValidationError(f"{field} is required")
    if isinstance(value, str):
        if not value.strip():
            raise ValidationError(f"{field} is required")
        try:
            value = float(value)
        except ValueError:
            raise ValidationError(f"{field} must be a number")
    if not isinstance(value, (int, float)):
        raise ValidationError(f"{field} must be a number")
    number = float(value)
    if number != number:
        raise ValidationError(f"{field} must be a number")
    if number < -bound or number > bound:
        raise ValidationError(f"{field} must be between -{bound:g} and {bound:g}")
    return number


def parse_latitude(value: Any, field: str = "latitude") -> float:
    return parse_coordinate(value, field, MAX_LATITUDE)


def parse_longitude(value: Any, field: str = "longitude") -> float:
    return parse_coordinate(value, field, MAX_LONGITUDE)


def require_text(value: Any, field: str, *, max_length: int | None = None) -> str:
    if value is not None and not isinstance(value, str):
        raise ValidationError(f"{field} must be a string")
    text = _to_text(value)
    if text is None:
        raise ValidationError(f"{field} is required")
    if max_length and len(text) > max_length:
        raise ValidationError(f"{field} exceeds max length {max_length}")
    return text


def optional_text(value: Any, field: str, *, max_length: int | None = None) -> str | None:
    if value is not None and not isinstance(value, str):
        raise ValidationError(f"{field} must be a string")
    text = _to_text(value)
    if text is not None and max_length and len(text) > max_length:
        raise ValidationError(f"{field} exceeds max length {max_length}")
    return text


def escape_like(text: str, escape: str = "\\") -> str:
    """Make user text literal inside a LIKE pattern (use with escape=...)."""
    return (
        text.replace(escape, escape + escape)
        .replace("%", escape + "%")
        .replace("_", escape + "_")
    )


@dataclass(frozen=True)
class OrderItem:
    """
    One order line as frozen on the delivery.

    product_id is optional: free-form items (no catalogue entry) are allowed
    and simply skip the stock decrement.
    """
    name: str
    price: float
    quantity: int
    product_id: str | None = None
    image: str | None = None
    seller_id: str | None = None

    def to_dict(self) -> dict:
        return asdict(self)


def parse_order_item(raw: Any, index: int) -> OrderItem:
    if not isinstance(raw, dict):
        raise ValidationError(f"items[{index}] must be an object")

    name = require_text(raw.get("name"), f"items[{index}].name", max_length=255)

    price = raw.get("price", 0)
    if isinstance(price, bool) or not isinstance(price, (int, float)):
        raise ValidationError(f"items[{index}].price must be a number")
    if price < 0:
        raise ValidationError(f"items[{index}].price must be >= 0")

    quantity = raw.get("quantity")
    # Integers only; reject floats and bools explicitly
    if isinstance(quantity, bool) or not isinstance(quantity, int):
        raise ValidationError(f"items[{index}].quantity must be an integer")
    if quantity < 1:
        raise ValidationError(f"items[{index}].quantity must be >= 1")
    if quantity > MAX_ITEM_QUANTITY:
        raise ValidationError(f"items[{index}].quantity cannot exceed {MAX_ITEM_QUANTITY}")

    # Accept the legacy "id" key for the product reference
    product_id = raw.get("product_id", raw.get("id"))

    return OrderItem(
        name=name,
        price=float(price),
        quantity=quantity,
        product_id=optional_text(product_id, f"items[{index}].product_id", max_length=36),
        image=optional_text(raw.get("image"), f"items[{index}].image", max_length=512),
        seller_id=optional_text(raw.get("seller_id"), f"items[{index}].seller_id", max_length=36),
    )


def parse_order_items(raw_items: Any) -> list[OrderItem]:
    if raw_items is None:
        return []
    if not isinstance(raw_items, list):
        raise ValidationError("items must be a list")
    return [parse_order_item(raw, i) for i, raw in enumerate(raw_items)]
