"""Care booking lifecycle rules - who may move a booking to which status"""

from datetime import datetime, timezone
from typing import Dict, FrozenSet, Optional, Tuple

from local_yield.domain.exceptions import InvalidTransitionError, UnauthorizedError
from local_yield.domain.models import BookingStatus

SEEKER = "seeker"
CAREGIVER = "caregiver"
SYSTEM = "system"

# (from, to) -> parties allowed to cause it
BOOKING_TRANSITIONS: Dict[Tuple[BookingStatus, BookingStatus], FrozenSet[str]] = {
    (BookingStatus.REQUESTED, BookingStatus.ACCEPTED): frozenset({CAREGIVER}),
    (BookingStatus.REQUESTED, BookingStatus.DECLINED): frozenset({CAREGIVER}),
    (BookingStatus.REQUESTED, BookingStatus.CANCELED): frozenset({SEEKER, CAREGIVER}),
    (BookingStatus.ACCEPTED, BookingStatus.CANCELED): frozenset({SEEKER, CAREGIVER}),
    (BookingStatus.ACCEPTED, BookingStatus.COMPLETED): frozenset({SYSTEM}),
}


def party_of(booking, actor_id: str) -> Optional[str]:
    """Return the actor's role on this booking, or None if not a party"""
    if actor_id == booking.caregiver_id:
        return CAREGIVER
    if actor_id == booking.care_seeker_id:
        return SEEKER
    return None


def authorize_transition(
    booking,
    actor_id: str,
    new_status: BookingStatus,
    now: Optional[datetime] = None,
) -> BookingStatus:
    """
    Check that actor_id may move booking to new_status.

    Order of checks:
    1. Actor must be the seeker or the caregiver (UNAUTHORIZED)
    2. (current, new) must be in the transition table (INVALID_TRANSITION)
    3. Actor's party must be permitted for that transition (UNAUTHORIZED)
    4. Cancellation is only possible before the booking starts

    Returns the current status, which the caller uses as the compare-and-swap guard.
    """
    party = party_of(booking, actor_id)
    if party is None:
        raise UnauthorizedError("Actor is not a party to this booking")

    current = BookingStatus(booking.status)
    new_status = BookingStatus(new_status)
    allowed = BOOKING_TRANSITIONS.get((current, new_status))
    if allowed is None or allowed == frozenset({SYSTEM}):
        raise InvalidTransitionError(f"Invalid booking transition: {current.value} -> {new_status.value}")

    if party not in allowed:
        raise UnauthorizedError(f"Only the {' or '.join(sorted(allowed))} can set {new_status.value}")

    if new_status == BookingStatus.CANCELED:
        now = now or datetime.now(timezone.utc)
        if now >= as_utc(booking.start_at):
            raise InvalidTransitionError("Cannot cancel a booking after it has started")

    return current


def authorize_system_transition(booking, new_status: BookingStatus) -> BookingStatus:
    """System-triggered transitions (completion) skip party checks"""
    current = BookingStatus(booking.status)
    target = BookingStatus(new_status)
    allowed = BOOKING_TRANSITIONS.get((current, target))
    if allowed is None or SYSTEM not in allowed:
        raise InvalidTransitionError(f"Invalid booking transition: {current.value} -> {target.value}")
    return current


def as_utc(value: datetime) -> datetime:
    """SQLite hands back naive datetimes; treat them as UTC"""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def ranges_overlap(start_a: datetime, end_a: datetime, start_b: datetime, end_b: datetime) -> bool:
    """Inclusive overlap: touching endpoints count as overlapping"""
    return as_utc(start_a) <= as_utc(end_b) and as_utc(end_a) >= as_utc(start_b)
