# Overview: Service-layer operations for auth; password hashing and account creation.

"""
Authentication Service

WHY: Every delivery action must be attributable to a user. Uses bcrypt for
secure password hashing and validates password strength.

SECURITY NOTES:
- Passwords hashed with bcrypt (cost factor 12)
- Minimum 8 characters required
- Must contain uppercase, lowercase, digit, and special char
- Session tokens managed separately (see session_service.py)
- Emails are unique across the marketplace (case-insensitive)
"""

import bcrypt
import re

from flask import current_app

from ..extensions import db
from ..models import User
from ..permissions import VALID_ROLES, ROLE_CLIENT, ROLE_COURIER
from ..validation import ValidationError, optional_text, parse_latitude, parse_longitude, require_text
from loko.time_utils import utcnow


EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class PasswordValidationError(Exception):
    """Raised when password doesn't meet strength requirements."""
    pass


def validate_password_strength(password: str) -> None:
    """
    Validate password meets strength requirements.

    Requirements:
    - Minimum 8 characters
    - At least one uppercase letter
    - At least one lowercase letter
    - At least one digit
    - At least one special character (!@#$%^&*(),.'":{}|<>)

    Raises PasswordValidationError if requirements not met.
    """
    if not isinstance(password, str):
        raise PasswordValidationError("Password is required")

    if len(password) < 8:
        raise PasswordValidationError("Password must be at least 8 characters long")

    if not re.search(r'[A-Z]', password):
        raise PasswordValidationError("Password must contain at least one uppercase letter")

    if not re.search(r'[a-z]', password):
        raise PasswordValidationError("Password must contain at least one lowercase letter")

    if not re.search(r'\d', password):
        raise PasswordValidationError("Password must contain at least one digit")

    if not re.search(r"[!@#$%^&*(),.'\":{}|<>]", password):
        raise PasswordValidationError("Password must contain at least one special character")


def hash_password(password: str, *, rounds: int = 12) -> str:
    """
    Hash password using bcrypt (cost factor 12 by default).

    Password is validated for strength before hashing.
    """
    validate_password_strength(password)
    salt = bcrypt.gensalt(rounds=rounds)
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')  # Store as string in database


def verify_password(password: str, password_hash: str) -> bool:
    """
    Verify password against bcrypt hash.

    bcrypt.checkpw() is timing-safe. A malformed stored hash counts as a
    mismatch.
    """
    if not isinstance(password, str) or not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        return False


def normalize_email(email) -> str:
    email = require_text(email, "email", max_length=255).lower()
    if not EMAIL_RE.match(email):
        raise ValidationError("email is not valid")
    return email


def create_user(
    name: str,
    email: str,
    password: str,
    role: str = ROLE_CLIENT,
    *,
    phone: str | None = None,
    city: str | None = None,
    neighborhood: str | None = None,
    landmark: str | None = None,
    latitude=None,
    longitude=None,
    bcrypt_rounds: int | None = None,
) -> User:
    """
    Create new user with bcrypt password hashing.

    A seller's latitude/longitude is the pickup location used for their
    orders; both or neither must be given.

    Raises:
        ValidationError: bad name/email/role/coordinates, or email taken
        PasswordValidationError: If password doesn't meet requirements
    """
    name = require_text(name, "name", max_length=120)
    email = normalize_email(email)
    if role not in VALID_ROLES:
        raise ValidationError(f"Invalid role '{role}'. Must be one of: {', '.join(sorted(VALID_ROLES))}")

    if (latitude is None) != (longitude is None):
        raise ValidationError("latitude and longitude must be provided together")
    if latitude is not None:
        latitude = parse_latitude(latitude)
        longitude = parse_longitude(longitude)

    existing = db.session.query(User).filter(User.email == email).first()
    if existing:
        raise ValidationError("Email already registered")

    # Hash password with bcrypt (validates strength automatically)
    if bcrypt_rounds is None:
        bcrypt_rounds = current_app.config.get("BCRYPT_ROUNDS", 12)
    password_hash = hash_password(password, rounds=bcrypt_rounds)

    user = User(
        name=name,
        email=email,
        password_hash=password_hash,
        role=role,
        phone=optional_text(phone, "phone", max_length=32),
        city=optional_text(city, "city", max_length=120),
        neighborhood=optional_text(neighborhood, "neighborhood", max_length=120),
        landmark=optional_text(landmark, "landmark", max_length=255),
        latitude=latitude,
        longitude=longitude,
    )

    db.session.add(user)
    db.session.commit()
    return user


def authenticate(email: str, password: str) -> User | None:
    """
    Authenticate user with email and password.

    Returns User if credentials valid, None otherwise.
    Updates last_login_at timestamp on successful authentication.
    """
    if not isinstance(email, str) or not email.strip():
        return None

    user = db.session.query(User).filter(
        User.email == email.strip().lower(),
        User.is_active.is_(True),
    ).first()

    if not user:
        return None

    if verify_password(password, user.password_hash):
        user.last_login_at = utcnow()
        db.session.commit()
        return user

    return None


def list_couriers() -> list[dict]:
    """Active courier accounts with their contact details, by name."""
    couriers = (
        db.session.query(User)
        .filter(User.role == ROLE_COURIER, User.is_active.is_(True))
        .order_by(User.name.asc(), User.id.asc())
        .all()
    )
    return [
        {"id": c.id, "name": c.name, "email": c.email, "phone": c.phone}
        for c in couriers
    ]
