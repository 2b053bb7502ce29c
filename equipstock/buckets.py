"""
Bucket arithmetic — isolated, testable, reusable.

Equipment stock is split into four buckets plus a total:

    total = available + reserved + maintenance + damaged

Everything that changes the counters (ledger movements, unit status
transitions, adjustments) goes through the pure functions below, which
turn an event into a map of signed deltas. Services apply that map in a
single UPDATE, so a reader never sees a half-applied transition.

Examples:
    >>> plan_movement({'available': 10, ...}, 'RENTAL_OUT', 3)
    {'available': -3, 'reserved': 3}
    >>> bucket_delta('AVAILABLE', 'RETIRED')
    {'available': -1, 'total': -1}
"""

from dataclasses import dataclass
from datetime import date
from typing import Mapping

from equipstock.exceptions import InsufficientStock, InvalidTransition
from equipstock.models.enums import MovementType, UnitStatus

AVAILABLE = 'available'
RESERVED = 'reserved'
MAINTENANCE = 'maintenance'
DAMAGED = 'damaged'
TOTAL = 'total'

BUCKETS = (AVAILABLE, RESERVED, MAINTENANCE, DAMAGED)
COUNTERS = (TOTAL,) + BUCKETS


def field_for(counter: str) -> str:
    """Model field backing a counter ('available' -> 'available_stock')."""
    return f"{counter}_stock"


@dataclass(frozen=True)
class MovementRule:
    """
    Effect of one movement type on the counters.

    takes:   candidate buckets drained by the movement, in order of
             preference; the first one with enough capacity is used.
    credits: counters increased by the quantity.
    debits:  counters decreased by the quantity, besides the taken bucket.
    """

    takes: tuple[str, ...] = ()
    credits: tuple[str, ...] = ()
    debits: tuple[str, ...] = ()


MOVEMENT_RULES: dict[str, MovementRule] = {
    MovementType.PURCHASE: MovementRule(credits=(TOTAL, AVAILABLE)),
    MovementType.RENTAL_OUT: MovementRule(takes=(AVAILABLE,), credits=(RESERVED,)),
    MovementType.RENTAL_RETURN: MovementRule(takes=(RESERVED,), credits=(AVAILABLE,)),
    MovementType.ADJUSTMENT: MovementRule(credits=(TOTAL, AVAILABLE)),
    MovementType.DAMAGE: MovementRule(takes=(AVAILABLE, RESERVED), credits=(DAMAGED,)),
    MovementType.LOSS: MovementRule(takes=(AVAILABLE,), debits=(TOTAL,)),
    MovementType.MAINTENANCE_OUT: MovementRule(takes=(AVAILABLE,), credits=(MAINTENANCE,)),
    MovementType.MAINTENANCE_IN: MovementRule(takes=(MAINTENANCE,), credits=(AVAILABLE,)),
}


def _add(deltas: dict[str, int], counter: str, amount: int) -> None:
    deltas[counter] = deltas.get(counter, 0) + amount


def _prune(deltas: dict[str, int]) -> dict[str, int]:
    return {k: v for k, v in deltas.items() if v}


def plan_movement(snapshot: Mapping[str, int], movement_type: str, quantity: int,
                  source: str | None = None) -> dict[str, int]:
    """
    Compute the signed counter deltas for a ledger movement.

    Args:
        snapshot: Current counters ('total', 'available', ...)
        movement_type: One of MovementType
        quantity: Units moved. Only ADJUSTMENT accepts a negative value.
        source: Force the drained bucket (e.g. 'reserved' for damage found
            on return). Must be one of the rule's candidate buckets.

    Returns:
        Dict of counter -> signed delta (zero entries dropped)

    Raises:
        InvalidTransition: Unknown movement type or source not allowed
        InsufficientStock: The drained bucket lacks capacity, or the result
            would leave any counter negative
    """
    rule = MOVEMENT_RULES.get(movement_type)
    if rule is None:
        raise InvalidTransition(movement_type=str(movement_type))

    deltas: dict[str, int] = {}

    if rule.takes:
        candidates = rule.takes
        if source is not None:
            if source not in rule.takes:
                raise InvalidTransition(
                    movement_type=str(movement_type),
                    source=source,
                    allowed=list(rule.takes),
                )
            candidates = (source,)

        chosen = next((b for b in candidates if snapshot[b] >= quantity), None)
        if chosen is None:
            preferred = candidates[0]
            raise InsufficientStock(preferred, snapshot[preferred], quantity)
        _add(deltas, chosen, -quantity)

    for counter in rule.credits:
        _add(deltas, counter, quantity)
    for counter in rule.debits:
        _add(deltas, counter, -quantity)

    ensure_non_negative(snapshot, deltas)
    return _prune(deltas)


def apply_deltas(snapshot: Mapping[str, int], deltas: Mapping[str, int]) -> dict[str, int]:
    """Return a new snapshot with deltas applied (counters not touched are copied)."""
    return {c: snapshot[c] + deltas.get(c, 0) for c in COUNTERS}


def ensure_non_negative(snapshot: Mapping[str, int], deltas: Mapping[str, int]) -> None:
    """Raise InsufficientStock for the first counter the deltas would push below zero."""
    for counter in COUNTERS:
        delta = deltas.get(counter, 0)
        if snapshot[counter] + delta < 0:
            raise InsufficientStock(counter, snapshot[counter], -delta)


def is_balanced(snapshot: Mapping[str, int]) -> bool:
    """Does total equal the sum of the four buckets?"""
    return snapshot[TOTAL] == sum(snapshot[b] for b in BUCKETS)


# ══════════════════════════════════════════════════════════════
# UNIT STATUS TRANSITIONS
# ══════════════════════════════════════════════════════════════

STATUS_BUCKETS: dict[str, str | None] = {
    UnitStatus.AVAILABLE: AVAILABLE,
    UnitStatus.RENTED: RESERVED,
    UnitStatus.MAINTENANCE: MAINTENANCE,
    UnitStatus.DAMAGED: DAMAGED,
    UnitStatus.RETIRED: None,
}


def bucket_for_status(status: str | None) -> str | None:
    """Bucket counting units in this status. RETIRED (and None) count nowhere."""
    if status is None:
        return None
    return STATUS_BUCKETS[status]


def bucket_delta(old_status: str | None, new_status: str | None, qty: int = 1) -> dict[str, int]:
    """
    Net counter delta for `qty` units moving from old_status to new_status.

    None stands for "not registered" (unit creation or deletion). A status
    without bucket (RETIRED) is outside the total, so entering or leaving it
    moves the total as well.
    """
    deltas: dict[str, int] = {}

    old_bucket = bucket_for_status(old_status)
    if old_bucket:
        _add(deltas, old_bucket, -qty)
        _add(deltas, TOTAL, -qty)

    new_bucket = bucket_for_status(new_status)
    if new_bucket:
        _add(deltas, new_bucket, qty)
        _add(deltas, TOTAL, qty)

    return _prune(deltas)


def merge_deltas(*maps: Mapping[str, int]) -> dict[str, int]:
    """Combine several delta maps into a single net map."""
    merged: dict[str, int] = {}
    for deltas in maps:
        for counter, amount in deltas.items():
            _add(merged, counter, amount)
    return _prune(merged)


_UNIT_MOVEMENTS = {
    (UnitStatus.AVAILABLE, UnitStatus.RENTED): MovementType.RENTAL_OUT,
    (UnitStatus.RENTED, UnitStatus.AVAILABLE): MovementType.RENTAL_RETURN,
    (UnitStatus.AVAILABLE, UnitStatus.MAINTENANCE): MovementType.MAINTENANCE_OUT,
    (UnitStatus.MAINTENANCE, UnitStatus.AVAILABLE): MovementType.MAINTENANCE_IN,
}


def movement_type_for_transition(old_status: str | None, new_status: str | None) -> str:
    """Ledger type recorded for a unit transition (for history charts)."""
    if bucket_for_status(old_status) is None:
        return MovementType.PURCHASE
    if bucket_for_status(new_status) is None:
        return MovementType.LOSS
    if new_status == UnitStatus.DAMAGED:
        return MovementType.DAMAGE
    return _UNIT_MOVEMENTS.get((old_status, new_status), MovementType.ADJUSTMENT)


# ══════════════════════════════════════════════════════════════
# INTERVALS
# ══════════════════════════════════════════════════════════════

def intervals_overlap(start1: date, end1: date, start2: date, end2: date) -> bool:
    """Inclusive overlap: touching endpoints count as a conflict."""
    return start1 <= end2 and end1 >= start2
