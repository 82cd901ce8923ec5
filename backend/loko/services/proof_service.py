# Overview: Service-layer operations for proof of delivery; OTP and GPS verification.

"""
Proof-of-Delivery Validator

A delivery is handed off only when the courier is physically somewhere
(a valid GPS fix) and, when the delivery carries a confirmation code, the
recipient has read that code out. The code is a 4-digit string generated
when the order is placed and compared by exact string equality.

Photo and signature are opaque strings; they are stored, never inspected.
"""

from __future__ import annotations

import secrets
from dataclasses import dataclass

from ..models import Delivery
from ..validation import ValidationError, optional_text, parse_latitude, parse_longitude
from .lifecycle_service import STATUS_DELIVERED


CODE_MIN = 1000
CODE_MAX = 9999


class InvalidConfirmationCodeError(ValueError):
    """The submitted OTP does not match the delivery's confirmation code."""
    code = "INVALID_CONFIRMATION_CODE"


@dataclass(frozen=True)
class ProofSubmission:
    otp: str | None
    latitude: float
    longitude: float
    photo_url: str | None = None
    signature: str | None = None


def generate_confirmation_code() -> str:
    """Uniform 4-digit code in [1000, 9999] from a CSPRNG."""
    return str(secrets.randbelow(CODE_MAX - CODE_MIN + 1) + CODE_MIN)


def is_completed(delivery: Delivery) -> bool:
    return delivery.status == STATUS_DELIVERED or delivery.proof is not None


def parse_submission(otp, latitude, longitude, photo_url=None, signature=None) -> ProofSubmission:
    if otp is not None and not isinstance(otp, str):
        raise ValidationError("otp must be a string")
    return ProofSubmission(
        otp=otp,
        latitude=parse_latitude(latitude),
        longitude=parse_longitude(longitude),
        photo_url=optional_text(photo_url, "photo_url", max_length=1024),
        signature=optional_text(signature, "signature"),
    )


def verify_confirmation_code(delivery: Delivery, otp: str | None) -> None:
    """
    Raise InvalidConfirmationCodeError when a code is set and otp differs.

    Deliveries without a code (legacy rows) accept any otp.
    """
    expected = delivery.confirmation_code
    if not expected:
        return
    if otp != expected:
        raise InvalidConfirmationCodeError("Invalid confirmation code")
