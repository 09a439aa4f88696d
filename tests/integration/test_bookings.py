"""Integration tests for the care booking lifecycle"""

import pytest
from datetime import datetime, timedelta, timezone
from sqlalchemy.orm import Session
from local_yield.domain.exceptions import (
    CaregiverNotFoundError,
    CaregiverUnavailableError,
    InvalidTransitionError,
    NotFoundError,
    UnauthorizedError,
    ValidationError,
)
from local_yield.domain.models import BookingStatus, CreateBookingInput
from local_yield.infrastructure.database.models import CareBooking
from local_yield.services import bookings as booking_service

START = datetime.now(timezone.utc).replace(microsecond=0) + timedelta(days=7)


@pytest.fixture
def care_parties(make_account):
    make_account("seeker_1", "CARE_SEEKER", zip_code="60014")
    make_account("caregiver_1", "CAREGIVER", zip_code="60013")
    make_account("stranger", zip_code="60601")


def request(start=START, hours=4, **kwargs) -> CreateBookingInput:
    kwargs.setdefault("seeker_id", "seeker_1")
    kwargs.setdefault("caregiver_id", "caregiver_1")
    kwargs.setdefault("location_zip", "60014")
    return CreateBookingInput(start_at=start, end_at=start + timedelta(hours=hours), **kwargs)


def test_create_booking_starts_requested(db: Session, care_parties):
    receipt = booking_service.create_booking(db, request(species="dog", service_type="walk"))

    booking = db.get(CareBooking, receipt.booking_id)
    assert receipt.replayed is False
    assert booking.status == BookingStatus.REQUESTED.value
    assert booking.care_seeker_id == "seeker_1"
    assert booking.species == "dog"


def test_end_must_follow_start(db: Session, care_parties):
    with pytest.raises(ValidationError):
        booking_service.create_booking(db, request(hours=0))
    with pytest.raises(ValidationError):
        booking_service.create_booking(db, request(hours=-2))


def test_cannot_book_yourself(db: Session, care_parties):
    with pytest.raises(ValidationError):
        booking_service.create_booking(db, request(seeker_id="caregiver_1"))


def test_invalid_location_zip(db: Session, care_parties):
    with pytest.raises(ValidationError):
        booking_service.create_booking(db, request(location_zip="6001"))


def test_caregiver_must_hold_capability(db: Session, care_parties):
    with pytest.raises(CaregiverNotFoundError):
        booking_service.create_booking(db, request(caregiver_id="stranger"))


def test_overlapping_request_rejected(db: Session, care_parties, make_account):
    make_account("seeker_2", "CARE_SEEKER")
    booking_service.create_booking(db, request())

    with pytest.raises(CaregiverUnavailableError):
        booking_service.create_booking(db, request(start=START + timedelta(hours=2), seeker_id="seeker_2"))

    # Touching endpoints count as overlapping
    with pytest.raises(CaregiverUnavailableError):
        booking_service.create_booking(db, request(start=START + timedelta(hours=4), seeker_id="seeker_2"))


def test_declined_booking_frees_the_slot(db: Session, care_parties):
    receipt = booking_service.create_booking(db, request())
    booking_service.update_status(db, receipt.booking_id, "caregiver_1", BookingStatus.DECLINED)

    again = booking_service.create_booking(db, request())
    assert again.booking_id != receipt.booking_id


def test_idempotent_booking_request(db: Session, care_parties):
    first = booking_service.create_booking(db, request(idempotency_key="sit-1"))
    second = booking_service.create_booking(db, request(idempotency_key="sit-1"))

    assert second.booking_id == first.booking_id
    assert second.replayed is True
    assert db.query(CareBooking).count() == 1


def test_idempotency_key_is_scoped_to_seeker(db: Session, care_parties, make_account):
    """Two seekers may reuse the same key without replaying each other's booking"""
    make_account("seeker_2", "CARE_SEEKER")
    make_account("caregiver_2", "CAREGIVER")

    first = booking_service.create_booking(db, request(idempotency_key="k1"))
    second = booking_service.create_booking(
        db, request(seeker_id="seeker_2", caregiver_id="caregiver_2", idempotency_key="k1")
    )

    assert second.booking_id != first.booking_id
    assert second.replayed is False
    assert db.get(CareBooking, second.booking_id).care_seeker_id == "seeker_2"
    assert db.query(CareBooking).count() == 2


def test_caregiver_row_locked_before_overlap_check(db: Session, care_parties, monkeypatch):
    """The caregiver lock is taken before the overlap read so concurrent requests serialise"""
    calls = []
    repository = booking_service.BookingRepository
    original_lock = repository.lock_caregiver
    original_overlap = repository.find_overlapping

    def lock_caregiver(self, caregiver_id):
        calls.append(("lock", caregiver_id))
        return original_lock(self, caregiver_id)

    def find_overlapping(self, caregiver_id, start_at, end_at):
        calls.append(("overlap", caregiver_id))
        return original_overlap(self, caregiver_id, start_at, end_at)

    monkeypatch.setattr(repository, "lock_caregiver", lock_caregiver)
    monkeypatch.setattr(repository, "find_overlapping", find_overlapping)

    booking_service.create_booking(db, request())

    assert calls == [("lock", "caregiver_1"), ("overlap", "caregiver_1")]


def test_caregiver_accepts(db: Session, care_parties):
    receipt = booking_service.create_booking(db, request())

    booking = booking_service.update_status(db, receipt.booking_id, "caregiver_1", BookingStatus.ACCEPTED)

    assert booking.status == BookingStatus.ACCEPTED.value


def test_seeker_cannot_accept(db: Session, care_parties):
    receipt = booking_service.create_booking(db, request())
    with pytest.raises(UnauthorizedError):
        booking_service.update_status(db, receipt.booking_id, "seeker_1", BookingStatus.ACCEPTED)
    db.expire_all()
    assert db.get(CareBooking, receipt.booking_id).status == BookingStatus.REQUESTED.value


def test_stranger_cannot_touch_booking(db: Session, care_parties):
    receipt = booking_service.create_booking(db, request())
    with pytest.raises(UnauthorizedError):
        booking_service.update_status(db, receipt.booking_id, "stranger", BookingStatus.CANCELED)


def test_declined_is_terminal(db: Session, care_parties):
    receipt = booking_service.create_booking(db, request())
    booking_service.update_status(db, receipt.booking_id, "caregiver_1", BookingStatus.DECLINED)

    with pytest.raises(InvalidTransitionError):
        booking_service.update_status(db, receipt.booking_id, "caregiver_1", BookingStatus.ACCEPTED)


def test_seeker_cancels_accepted_booking(db: Session, care_parties):
    receipt = booking_service.create_booking(db, request())
    booking_service.update_status(db, receipt.booking_id, "caregiver_1", BookingStatus.ACCEPTED)

    booking = booking_service.update_status(db, receipt.booking_id, "seeker_1", BookingStatus.CANCELED)
    assert booking.status == BookingStatus.CANCELED.value


def test_cancel_after_start_rejected(db: Session, care_parties):
    receipt = booking_service.create_booking(db, request())
    booking_service.update_status(db, receipt.booking_id, "caregiver_1", BookingStatus.ACCEPTED)

    with pytest.raises(InvalidTransitionError):
        booking_service.update_status(
            db, receipt.booking_id, "seeker_1", BookingStatus.CANCELED, now=START + timedelta(hours=1)
        )


def test_user_cannot_complete_booking(db: Session, care_parties):
    receipt = booking_service.create_booking(db, request())
    booking_service.update_status(db, receipt.booking_id, "caregiver_1", BookingStatus.ACCEPTED)

    with pytest.raises(InvalidTransitionError):
        booking_service.update_status(db, receipt.booking_id, "caregiver_1", BookingStatus.COMPLETED)


def test_system_completes_accepted_booking(db: Session, care_parties):
    receipt = booking_service.create_booking(db, request())
    booking_service.update_status(db, receipt.booking_id, "caregiver_1", BookingStatus.ACCEPTED)

    booking = booking_service.complete_booking(db, receipt.booking_id)
    assert booking.status == BookingStatus.COMPLETED.value

    with pytest.raises(InvalidTransitionError):
        booking_service.complete_booking(db, receipt.booking_id)


def test_stale_status_loses_compare_and_swap(db: Session, other_session, care_parties):
    """Caregiver declines while the seeker's session still sees REQUESTED"""
    receipt = booking_service.create_booking(db, request())

    seeker_view = other_session()
    assert seeker_view.get(CareBooking, receipt.booking_id).status == BookingStatus.REQUESTED.value

    booking_service.update_status(db, receipt.booking_id, "caregiver_1", BookingStatus.DECLINED)

    with pytest.raises(InvalidTransitionError):
        booking_service.update_status(seeker_view, receipt.booking_id, "seeker_1", BookingStatus.CANCELED)

    db.expire_all()
    assert db.get(CareBooking, receipt.booking_id).status == BookingStatus.DECLINED.value


def test_unknown_booking(db: Session, care_parties):
    with pytest.raises(NotFoundError):
        booking_service.update_status(db, "missing", "seeker_1", BookingStatus.CANCELED)


def test_get_and_list_for_parties(db: Session, care_parties):
    receipt = booking_service.create_booking(db, request())

    assert booking_service.get_booking_for_user(db, receipt.booking_id, "caregiver_1").id == receipt.booking_id
    with pytest.raises(NotFoundError):
        booking_service.get_booking_for_user(db, receipt.booking_id, "stranger")

    assert [b.id for b in booking_service.list_bookings_for_user(db, "seeker_1")] == [receipt.booking_id]
    assert [b.id for b in booking_service.list_bookings_for_user(db, "caregiver_1")] == [receipt.booking_id]
    assert booking_service.list_bookings_for_user(db, "stranger") == []
