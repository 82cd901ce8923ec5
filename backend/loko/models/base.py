from __future__ import annotations

import uuid


def generate_id() -> str:
    """String primary key for marketplace entities (users, deliveries, points...)."""
    return str(uuid.uuid4())
