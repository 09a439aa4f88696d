"""Care booking endpoints"""

import logging
from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException
from sqlalchemy.orm import Session

from local_yield.api.dependencies import get_actor_id, get_actor_is_admin, get_event_client, get_request_id
from local_yield.api.v1.schemas import (
    BookingListResponse,
    BookingResponse,
    CreateBookingRequest,
    CreateBookingResponse,
    UpdateBookingStatusRequest,
)
from local_yield.domain.exceptions import DomainException
from local_yield.domain.models import BookingStatus, CreateBookingInput
from local_yield.infrastructure.clients.events import EventWebhookClient
from local_yield.infrastructure.database.session import get_db
from local_yield.services import bookings as booking_service

router = APIRouter()


def _booking_response(booking, actor_id: str) -> BookingResponse:
    return BookingResponse(
        booking_id=booking.id,
        care_seeker_id=booking.care_seeker_id,
        caregiver_id=booking.caregiver_id,
        status=booking.status,
        start_at=booking.start_at.isoformat(),
        end_at=booking.end_at.isoformat(),
        location_zip=booking.location_zip,
        species=booking.species,
        service_type=booking.service_type,
        notes=booking.notes,
        is_caregiver=booking.caregiver_id == actor_id,
        is_seeker=booking.care_seeker_id == actor_id,
    )


@router.post("/bookings", response_model=CreateBookingResponse)
def create_booking(
    request_body: CreateBookingRequest,
    background_tasks: BackgroundTasks,
    actor_id: str = Depends(get_actor_id),
    request_id: str = Depends(get_request_id),
    db: Session = Depends(get_db),
    event_client: EventWebhookClient = Depends(get_event_client),
):
    """Seeker requests care from a caregiver"""
    data = CreateBookingInput(
        seeker_id=actor_id,
        caregiver_id=request_body.caregiver_id,
        start_at=request_body.start_at,
        end_at=request_body.end_at,
        location_zip=request_body.location_zip,
        species=request_body.species,
        service_type=request_body.service_type,
        notes=request_body.notes,
        idempotency_key=request_body.idempotency_key,
    )
    try:
        receipt = booking_service.create_booking(db, data, request_id=request_id)
    except DomainException:
        db.rollback()
        raise
    except Exception as e:
        db.rollback()
        logging.error(f"Unexpected error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail={"code": "INTERNAL_ERROR", "message": "Internal server error"})

    if not receipt.replayed:
        background_tasks.add_task(
            event_client.publish,
            "booking.requested",
            {"booking_id": receipt.booking_id, "caregiver_id": data.caregiver_id, "seeker_id": actor_id},
        )
    return CreateBookingResponse(booking_id=receipt.booking_id, replayed=receipt.replayed)


@router.get("/bookings", response_model=BookingListResponse)
def list_bookings(actor_id: str = Depends(get_actor_id), db: Session = Depends(get_db)):
    """Bookings where the actor is the seeker or the caregiver"""
    bookings = booking_service.list_bookings_for_user(db, actor_id)
    return BookingListResponse(bookings=[_booking_response(b, actor_id) for b in bookings])


@router.get("/bookings/{booking_id}", response_model=BookingResponse)
def get_booking(
    booking_id: str,
    actor_id: str = Depends(get_actor_id),
    is_admin: bool = Depends(get_actor_is_admin),
    db: Session = Depends(get_db),
):
    booking = booking_service.get_booking_for_user(db, booking_id, actor_id, is_admin=is_admin)
    return _booking_response(booking, actor_id)


@router.patch("/bookings/{booking_id}/status", response_model=BookingResponse)
def update_booking_status(
    booking_id: str,
    request_body: UpdateBookingStatusRequest,
    background_tasks: BackgroundTasks,
    actor_id: str = Depends(get_actor_id),
    request_id: str = Depends(get_request_id),
    db: Session = Depends(get_db),
    event_client: EventWebhookClient = Depends(get_event_client),
):
    """Accept, decline or cancel. COMPLETED is a system event and is rejected here."""
    try:
        booking = booking_service.update_status(
            db, booking_id, actor_id, BookingStatus(request_body.status), request_id=request_id
        )
    except DomainException:
        db.rollback()
        raise
    except Exception as e:
        db.rollback()
        logging.error(f"Unexpected error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail={"code": "INTERNAL_ERROR", "message": "Internal server error"})

    background_tasks.add_task(
        event_client.publish,
        "booking.status_changed",
        {
            "booking_id": booking.id,
            "status": booking.status,
            "seeker_id": booking.care_seeker_id,
            "caregiver_id": booking.caregiver_id,
        },
    )
    return _booking_response(booking, actor_id)
