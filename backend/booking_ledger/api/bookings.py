"""
Booking endpoints. Every route requires a live session; ownership checks
happen in the ledger.
"""

from typing import List

import structlog
from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from booking_ledger.api.schemas import (
    BookingCreated,
    BookingDraft,
    BookingRead,
    BookingView,
    ErrorResponse,
    MessageResponse,
    ValidationErrorResponse,
)
from booking_ledger.core.exceptions import DomainException, ServiceException
from booking_ledger.core.ledger import BookingLedger
from booking_ledger.core.sessions import Identity, get_current_identity
from booking_ledger.db.session import get_db_session

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api", tags=["bookings"])


async def get_booking_ledger(
    request: Request,
    session: AsyncSession = Depends(get_db_session),
) -> BookingLedger:
    return BookingLedger(session, catalog=request.app.state.image_catalog)


@router.post("/bookings",
    response_model=BookingCreated,
    status_code=status.HTTP_201_CREATED,
    responses={
        201: {"description": "Booking stored"},
        400: {"model": ValidationErrorResponse, "description": "Missing required booking details"},
        401: {"model": ErrorResponse, "description": "User not logged in"},
        409: {"description": "Duplicate booking; body carries existingBookingId"},
        500: {"model": ErrorResponse, "description": "Error storing booking"}
    },
    summary="Create booking",
    description="Store a booking for the logged-in user unless it duplicates an existing one"
)
async def create_booking(
    draft: BookingDraft,
    identity: Identity = Depends(get_current_identity),
    ledger: BookingLedger = Depends(get_booking_ledger),
):
    try:
        booking_id = await ledger.create_booking(identity, draft)
        return BookingCreated(message="Booking stored successfully", booking_id=booking_id)
    except DomainException:
        raise
    except Exception as e:
        logger.error("booking_create_error", error=str(e), error_type=type(e).__name__)
        raise ServiceException("Error storing booking")


@router.get("/my-bookings",
    response_model=List[BookingView],
    responses={
        401: {"model": ErrorResponse, "description": "User not logged in"},
        500: {"model": ErrorResponse, "description": "Error fetching bookings"}
    },
    summary="List my bookings",
    description="Bookings owned by the logged-in user, formatted for display"
)
async def list_my_bookings(
    identity: Identity = Depends(get_current_identity),
    ledger: BookingLedger = Depends(get_booking_ledger),
):
    return await ledger.list_bookings(identity)


@router.get("/bookings/{booking_id}",
    response_model=BookingRead,
    responses={
        401: {"model": ErrorResponse, "description": "User not logged in"},
        403: {"model": ErrorResponse, "description": "Booking belongs to another user"},
        404: {"model": ErrorResponse, "description": "Booking not found"}
    },
    summary="Get booking",
    description="Full booking record, visible to its owner only"
)
async def get_booking(
    booking_id: str,
    identity: Identity = Depends(get_current_identity),
    ledger: BookingLedger = Depends(get_booking_ledger),
):
    booking = await ledger.get_booking(identity, booking_id)
    return BookingRead.model_validate(booking, from_attributes=True)


@router.post("/bookings/{booking_id}/cancel",
    response_model=MessageResponse,
    responses={
        401: {"model": ErrorResponse, "description": "User not logged in"},
        403: {"model": ErrorResponse, "description": "Booking belongs to another user"},
        404: {"model": ErrorResponse, "description": "Booking not found"},
        500: {"model": ErrorResponse, "description": "Error cancelling booking"}
    },
    summary="Cancel booking",
    description="Mark the booking's payment as Cancelled"
)
async def cancel_booking(
    booking_id: str,
    identity: Identity = Depends(get_current_identity),
    ledger: BookingLedger = Depends(get_booking_ledger),
):
    await ledger.cancel_booking(identity, booking_id)
    return MessageResponse(message="Booking cancelled successfully")
