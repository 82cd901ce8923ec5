# Overview: Service-layer operations for lifecycle; delivery state machine rules.

"""
Delivery Lifecycle State Machine

================================================================================
PURPOSE: Enforce CREATED -> ASSIGNED -> IN_TRANSIT -> ARRIVED_ZONE -> DELIVERED
================================================================================

STATE MACHINE:
    CREATED -> ASSIGNED -> IN_TRANSIT -> ARRIVED_ZONE -> DELIVERED
       |          |            |              |
       +----------+------------+--------------+--> FAILED

    CREATED:      Order placed, no courier yet. Only state that may be cancelled.
    ASSIGNED:     Courier set (re-assignment allowed while still ASSIGNED)
    IN_TRANSIT:   Courier picked up the parcel
    ARRIVED_ZONE: Courier is in the destination area
    DELIVERED:    TERMINAL, proof of delivery recorded
    FAILED:       TERMINAL, escape hatch from any non-terminal state

RULES:
1. Cannot skip states, except the FAILED escape hatch
2. Cannot reverse states
3. DELIVERED and FAILED are terminal
4. DELIVERED is only reached through proof submission
5. ASSIGNED is only reached through courier assignment
================================================================================
"""

from __future__ import annotations
from typing import Literal


STATUS_CREATED = "CREATED"
STATUS_ASSIGNED = "ASSIGNED"
STATUS_IN_TRANSIT = "IN_TRANSIT"
STATUS_ARRIVED_ZONE = "ARRIVED_ZONE"
STATUS_DELIVERED = "DELIVERED"
STATUS_FAILED = "FAILED"

# Valid lifecycle states (must match models/deliveries.py)
VALID_STATUSES = {
    STATUS_CREATED,
    STATUS_ASSIGNED,
    STATUS_IN_TRANSIT,
    STATUS_ARRIVED_ZONE,
    STATUS_DELIVERED,
    STATUS_FAILED,
}
DeliveryStatus = Literal["CREATED", "ASSIGNED", "IN_TRANSIT", "ARRIVED_ZONE", "DELIVERED", "FAILED"]

TERMINAL_STATUSES = {STATUS_DELIVERED, STATUS_FAILED}

ALLOWED_TRANSITIONS: dict[str, set[str]] = {
    STATUS_CREATED: {STATUS_ASSIGNED, STATUS_FAILED},
    STATUS_ASSIGNED: {STATUS_IN_TRANSIT, STATUS_FAILED},
    STATUS_IN_TRANSIT: {STATUS_ARRIVED_ZONE, STATUS_FAILED},
    STATUS_ARRIVED_ZONE: {STATUS_DELIVERED, STATUS_FAILED},
    STATUS_DELIVERED: set(),  # Final state
    STATUS_FAILED: set(),  # Final state
}

# Targets owned by a dedicated operation rather than a plain status update
ASSIGN_ONLY_TARGETS = {STATUS_ASSIGNED}
PROOF_ONLY_TARGETS = {STATUS_DELIVERED}

# States from which a courier may be (re-)assigned
ASSIGNABLE_STATUSES = {STATUS_CREATED, STATUS_ASSIGNED}


class InvalidStateError(ValueError):
    """
    Raised when an operation is not permitted in the delivery's current state.

    This is a domain error, not a technical error. It indicates
    that the caller attempted an operation that violates lifecycle rules.
    """
    code = "INVALID_STATE"


def validate_status(status: str) -> None:
    """
    Validate that a status value is one of the allowed states.

    Raises:
        ValueError: If status is not in VALID_STATUSES
    """
    if status not in VALID_STATUSES:
        raise ValueError(
            f"Invalid status '{status}'. Must be one of: {', '.join(sorted(VALID_STATUSES))}"
        )


def is_terminal(status: str) -> bool:
    return status in TERMINAL_STATUSES


def can_transition(from_status: str, to_status: str) -> bool:
    """
    Check if a state transition is valid according to the lifecycle rules.

    Same-state writes are not transitions and return False; re-assignment is
    handled separately by the delivery service.

    Raises:
        ValueError: If either status is unknown
    """
    validate_status(from_status)
    validate_status(to_status)
    return to_status in ALLOWED_TRANSITIONS[from_status]


def ensure_transition(from_status: str, to_status: str) -> None:
    """Raise InvalidStateError unless from_status -> to_status is allowed."""
    if not can_transition(from_status, to_status):
        raise InvalidStateError(
            f"Cannot move delivery from '{from_status}' to '{to_status}'"
        )


def can_cancel(status: str) -> bool:
    """Only deliveries that have not been picked up by anyone can be cancelled."""
    return status == STATUS_CREATED


def can_assign(status: str) -> bool:
    return status in ASSIGNABLE_STATUSES

