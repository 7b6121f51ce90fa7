"""
Shipment lifecycle engine.

The status machine is the ``TRANSITIONS`` table below; adding a status is a
change to that table only. The engine appends to the status history and
never edits past entries, the tracking number, or the owner.
"""

import math
import secrets
import string
import time
from datetime import datetime, timedelta
from typing import Callable, Optional

from .errors import Conflict, InvalidState, InvalidTransition
from .models import Shipment, ShipmentStatus, StatusHistory, utcnow
from .policy import Actor, is_admin

PENDING = ShipmentStatus.PENDING.value
IN_TRANSIT = ShipmentStatus.IN_TRANSIT.value
DELIVERED = ShipmentStatus.DELIVERED.value
CANCELLED = ShipmentStatus.CANCELLED.value

TRANSITIONS: dict[str, frozenset[str]] = {
    PENDING: frozenset({IN_TRANSIT, CANCELLED}),
    IN_TRANSIT: frozenset({DELIVERED, CANCELLED}),
    DELIVERED: frozenset(),
    CANCELLED: frozenset(),
}

TERMINAL_STATUSES = frozenset(s for s, nxt in TRANSITIONS.items() if not nxt)
DELETABLE_STATUSES = frozenset({PENDING, CANCELLED})

TRACKING_PREFIX = "SHP"
TRACKING_SUFFIX_LENGTH = 6
TRACKING_ALLOCATION_ATTEMPTS = 5
_BASE36 = string.digits + string.ascii_uppercase

def allowed_transitions(current: str) -> frozenset[str]:
    return TRANSITIONS.get(current, frozenset())

def validate_transition(current: str, requested: str) -> bool:
    """
    Check a requested status change.

    Returns False for a self-transition (nothing to do), True when the
    change is allowed, and raises ``InvalidTransition`` otherwise.
    """
    if current == requested:
        return False
    if requested not in allowed_transitions(current):
        raise InvalidTransition(current, requested)
    return True

def append_history(
    shipment: Shipment,
    status: str,
    actor_id: Optional[int],
    notes: Optional[str] = None,
    now: Optional[datetime] = None,
) -> StatusHistory:
    entry = StatusHistory(
        status=status,
        changed_at=now or utcnow(),
        changed_by=actor_id,
        notes=notes or None,
    )
    shipment.status_history.append(entry)
    return entry

def start_history(shipment: Shipment, actor_id: int, now: Optional[datetime] = None) -> StatusHistory:
    """Record the creation status as the first history entry."""
    if not shipment.status:
        shipment.status = PENDING
    entry = append_history(shipment, shipment.status, actor_id, now=now)
    if shipment.status == DELIVERED and shipment.actual_delivery is None:
        shipment.actual_delivery = entry.changed_at
    return entry

def apply_transition(
    shipment: Shipment,
    requested: str,
    actor_id: int,
    notes: Optional[str] = None,
    now: Optional[datetime] = None,
) -> bool:
    """Move ``shipment`` to ``requested``. Returns False when it was a no-op."""
    if not validate_transition(shipment.status, requested):
        return False
    now = now or utcnow()
    shipment.status = requested
    shipment.updated_by = actor_id
    append_history(shipment, requested, actor_id, notes, now)
    if requested == DELIVERED and shipment.actual_delivery is None:
        shipment.actual_delivery = now
    return True

def ensure_deletable(shipment: Shipment, actor: Actor) -> None:
    if is_admin(actor.role):
        return
    if shipment.status not in DELETABLE_STATUSES:
        raise InvalidState("Can only delete pending or cancelled shipments")

def days_in_transit(shipment: Shipment, now: Optional[datetime] = None) -> int:
    if shipment.status == PENDING or shipment.created_at is None:
        return 0
    end = shipment.actual_delivery or now or utcnow()
    elapsed = abs(end - shipment.created_at)
    return math.ceil(elapsed / timedelta(days=1))

def is_overdue(shipment: Shipment, now: Optional[datetime] = None) -> bool:
    if shipment.status in TERMINAL_STATUSES or shipment.estimated_delivery is None:
        return False
    return (now or utcnow()) > shipment.estimated_delivery

def _to_base36(value: int) -> str:
    if value == 0:
        return "0"
    digits = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(_BASE36[rem])
    return "".join(reversed(digits))

def generate_tracking_number() -> str:
    """``SHP-<base36 ms timestamp>-<random suffix>``, all uppercase."""
    stamp = _to_base36(int(time.time() * 1000))
    suffix = "".join(secrets.choice(_BASE36) for _ in range(TRACKING_SUFFIX_LENGTH))
    return f"{TRACKING_PREFIX}-{stamp}-{suffix}"

def normalize_tracking_number(value: str) -> str:
    return value.strip().upper()

def allocate_tracking_number(
    exists: Callable[[str], bool],
    supplied: Optional[str] = None,
    attempts: int = TRACKING_ALLOCATION_ATTEMPTS,
) -> str:
    """
    Pick a tracking number not yet present in the store.

    ``exists`` is asked about every candidate. A supplied number that is
    already taken is rejected rather than retried.
    """
    if supplied:
        candidate = normalize_tracking_number(supplied)
        if exists(candidate):
            raise Conflict(f"Tracking number {candidate} already exists")
        return candidate
    for _ in range(attempts):
        candidate = generate_tracking_number()
        if not exists(candidate):
            return candidate
    raise Conflict("Could not allocate a unique tracking number")
