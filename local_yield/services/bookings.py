"""Care booking lifecycle: request, accept/decline, cancel, complete"""

import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from local_yield.domain.bookings import as_utc, authorize_system_transition, authorize_transition
from local_yield.domain.exceptions import (
    CaregiverNotFoundError,
    CaregiverUnavailableError,
    InvalidTransitionError,
    NotFoundError,
    TransactionFailedError,
    ValidationError,
)
from local_yield.domain.geo import validate_zip
from local_yield.domain.models import BookingReceipt, BookingStatus, Capability, CreateBookingInput
from local_yield.infrastructure.database.models import CareBooking
from local_yield.infrastructure.database.repositories import AccountRepository, BookingRepository
from local_yield.infrastructure.observability.logging import log_booking_transition
from local_yield.infrastructure.observability.metrics import booking_transition_counter

logger = logging.getLogger(__name__)


def create_booking(db: Session, data: CreateBookingInput, request_id: Optional[str] = None) -> BookingReceipt:
    """
    Create a care booking in REQUESTED state.

    Overlap rule (inclusive, UTC): an existing REQUESTED/ACCEPTED booking for the
    caregiver conflicts when start_at <= existing.end_at and end_at >= existing.start_at.
    """
    bookings = BookingRepository(db)

    if data.idempotency_key:
        existing = bookings.find_by_idempotency_key(data.seeker_id, data.idempotency_key)
        if existing is not None:
            return BookingReceipt(booking_id=existing.id, replayed=True)

    start_at = as_utc(data.start_at)
    end_at = as_utc(data.end_at)
    if start_at >= end_at:
        raise ValidationError("End date must be after start date")
    if data.seeker_id == data.caregiver_id:
        raise ValidationError("Seeker and caregiver must be different users")
    if not validate_zip(data.location_zip):
        raise ValidationError("Must be a valid 5-digit ZIP code")

    if not AccountRepository(db).has_capability(data.caregiver_id, Capability.CAREGIVER):
        raise CaregiverNotFoundError("Caregiver not found")

    try:
        bookings.lock_caregiver(data.caregiver_id)
        if bookings.find_overlapping(data.caregiver_id, start_at, end_at) is not None:
            raise CaregiverUnavailableError("Caregiver is not available for the selected dates")
        booking = bookings.create_booking(data, start_at, end_at)
        booking_id = booking.id
        db.commit()
    except CaregiverUnavailableError:
        db.rollback()
        raise
    except IntegrityError as e:
        db.rollback()
        if data.idempotency_key:
            winner = bookings.find_by_idempotency_key(data.seeker_id, data.idempotency_key)
            if winner is not None:
                return BookingReceipt(booking_id=winner.id, replayed=True)
        raise TransactionFailedError("Booking could not be committed") from e

    booking_transition_counter.labels(to_status=BookingStatus.REQUESTED.value).inc()
    logger.info(
        "Booking requested",
        extra={"request_id": request_id, "booking_id": booking_id, "caregiver_id": data.caregiver_id},
    )
    return BookingReceipt(booking_id=booking_id)


def _apply(db: Session, booking: CareBooking, expected: BookingStatus, new_status: BookingStatus) -> CareBooking:
    if not BookingRepository(db).compare_and_set_status(booking.id, expected, new_status):
        db.rollback()
        raise InvalidTransitionError("Booking status changed concurrently")
    db.commit()
    db.refresh(booking)
    booking_transition_counter.labels(to_status=new_status.value).inc()
    return booking


def update_status(
    db: Session,
    booking_id: str,
    actor_id: str,
    new_status: BookingStatus,
    now: Optional[datetime] = None,
    request_id: Optional[str] = None,
) -> CareBooking:
    """Party-initiated transition (accept, decline, cancel)"""
    booking = BookingRepository(db).get(booking_id)
    if booking is None:
        raise NotFoundError("Booking not found")

    try:
        new_status = BookingStatus(new_status)
    except ValueError:
        raise ValidationError(f"Unknown booking status: {new_status}") from None

    current = authorize_transition(booking, actor_id, new_status, now=now)
    updated = _apply(db, booking, current, new_status)
    log_booking_transition(request_id, booking_id, actor_id, current.value, new_status.value)
    return updated


def complete_booking(db: Session, booking_id: str, request_id: Optional[str] = None) -> CareBooking:
    """System trigger for ACCEPTED -> COMPLETED; not a user action"""
    booking = BookingRepository(db).get(booking_id)
    if booking is None:
        raise NotFoundError("Booking not found")

    current = authorize_system_transition(booking, BookingStatus.COMPLETED)
    updated = _apply(db, booking, current, BookingStatus.COMPLETED)
    log_booking_transition(request_id, booking_id, "system", current.value, BookingStatus.COMPLETED.value)
    return updated


def get_booking_for_user(db: Session, booking_id: str, actor_id: str, is_admin: bool = False) -> CareBooking:
    booking = BookingRepository(db).get(booking_id)
    if booking is None or not (is_admin or actor_id in (booking.care_seeker_id, booking.caregiver_id)):
        raise NotFoundError("Booking not found")
    return booking


def list_bookings_for_user(db: Session, user_id: str) -> List[CareBooking]:
    return BookingRepository(db).list_for_user(user_id)
