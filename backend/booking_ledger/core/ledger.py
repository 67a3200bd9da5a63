"""
Booking ledger: create, list, view and cancel bookings for a session identity
"""

from datetime import datetime, timezone
from typing import List, Optional, Union
from uuid import UUID

import structlog
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from booking_ledger.core.booking_models import BookingDraft, BookingView
from booking_ledger.core.dedup import DedupEvaluator, TripKey, lookup_collision
from booking_ledger.core.exceptions import (
    BookingConflictException,
    ForbiddenException,
    NotFoundException,
    ServiceException,
    ValidationException,
)
from booking_ledger.core.presentation import DestinationImageCatalog, to_booking_view
from booking_ledger.core.sessions import Identity
from booking_ledger.db import crud
from booking_ledger.db.models import Booking, PaymentStatus

logger = structlog.get_logger(__name__)

REQUIRED_FIELDS = (
    "booking_reference",
    "destination",
    "traveler_name",
    "num_travelers",
    "pricing",
    "payment_info",
)

DUPLICATE_MESSAGE = "This booking already exists in your account"


def missing_fields(draft: BookingDraft) -> List[str]:
    """Required fields that are absent, blank, or zero (for num_travelers)"""
    missing = []
    for name in REQUIRED_FIELDS:
        value = getattr(draft, name)
        if value is None:
            missing.append(name)
        elif isinstance(value, str) and not value.strip():
            missing.append(name)
        elif name == "num_travelers" and value < 1:
            missing.append(name)
    return missing


def _parse_booking_id(booking_id: Union[str, UUID]) -> Optional[UUID]:
    if isinstance(booking_id, UUID):
        return booking_id
    try:
        return UUID(str(booking_id))
    except ValueError:
        return None


class BookingLedger:
    """Owns Booking records"""

    def __init__(
        self,
        session: AsyncSession,
        evaluator: Optional[DedupEvaluator] = None,
        catalog: Optional[DestinationImageCatalog] = None,
    ):
        self.session = session
        self.evaluator = evaluator or DedupEvaluator()
        self.catalog = catalog or DestinationImageCatalog()

    async def create_booking(self, identity: Identity, draft: BookingDraft) -> UUID:
        """Store a booking for the identity and return its id.

        The owner always comes from the identity. A collision on either
        uniqueness rule raises BookingConflictException carrying the id of
        the booking already in place, whether the evaluator finds it first
        or the storage constraint rejects the insert.
        """
        missing = missing_fields(draft)
        if missing:
            raise ValidationException(
                "Missing required booking details",
                details={"missing_fields": [self._wire_name(name) for name in missing]},
            )

        key = TripKey.build(
            identity.email,
            draft.destination,
            draft.departure_date,
            draft.return_date,
            draft.traveler_name,
        )

        try:
            collision = await self.evaluator.find_collision(self.session, draft.booking_reference, key)
            if collision is not None:
                logger.info(
                    "booking_duplicate_detected",
                    booking_reference=draft.booking_reference,
                    existing_booking_id=str(collision.booking_id),
                    rule=collision.rule.value,
                )
                raise BookingConflictException(DUPLICATE_MESSAGE, collision.booking_id, collision.rule.value)

            booking = Booking(
                booking_reference=draft.booking_reference,
                user_email=identity.email,
                destination=draft.destination,
                traveler_name=draft.traveler_name,
                departure_date=draft.departure_date,
                return_date=draft.return_date,
                num_travelers=draft.num_travelers,
                accommodation_type=draft.accommodation_type,
                flight_details=draft.flight_details.model_dump() if draft.flight_details else None,
                pricing=draft.pricing.model_dump(),
                payment_info=draft.payment_info.model_dump(),
                created_at=datetime.now(timezone.utc),
            )
            booking = await crud.insert_booking(self.session, booking)

        except IntegrityError:
            # Lost a race with a concurrent insert; the constraint held
            collision = await lookup_collision(self.session, draft.booking_reference, key)
            logger.warning(
                "booking_duplicate_rejected_by_storage",
                booking_reference=draft.booking_reference,
                existing_booking_id=str(collision.booking_id) if collision else None,
            )
            raise BookingConflictException(
                DUPLICATE_MESSAGE,
                collision.booking_id if collision else None,
                collision.rule.value if collision else None,
            )
        except SQLAlchemyError as e:
            logger.error("booking_store_failed", error=str(e), error_type=type(e).__name__)
            raise ServiceException("Error storing booking")

        logger.info(
            "booking_created",
            booking_id=str(booking.id),
            booking_reference=booking.booking_reference,
            user_email=identity.email,
        )
        return booking.id

    async def list_bookings(self, identity: Identity) -> List[BookingView]:
        try:
            bookings = await crud.get_bookings_for_owner(self.session, identity.email)
        except SQLAlchemyError as e:
            logger.error("booking_list_failed", error=str(e), error_type=type(e).__name__)
            raise ServiceException("Error fetching bookings")
        return [to_booking_view(booking, self.catalog) for booking in bookings]

    async def get_booking(self, identity: Identity, booking_id: Union[str, UUID]) -> Booking:
        """Load a booking owned by the identity"""
        parsed = _parse_booking_id(booking_id)
        if parsed is None:
            raise NotFoundException("Booking not found")

        try:
            booking = await crud.get_booking_by_id(self.session, parsed)
        except SQLAlchemyError as e:
            logger.error("booking_lookup_failed", error=str(e), error_type=type(e).__name__)
            raise ServiceException("Error fetching booking")

        if booking is None:
            raise NotFoundException("Booking not found")
        if booking.user_email != identity.email:
            logger.warning(
                "booking_access_denied",
                booking_id=str(booking.id),
                user_email=identity.email,
            )
            raise ForbiddenException("Unauthorized: This booking belongs to another user")
        return booking

    async def cancel_booking(self, identity: Identity, booking_id: Union[str, UUID]) -> Booking:
        """Move the booking's payment status to Cancelled.

        Cancelling an already cancelled booking succeeds and changes nothing.
        """
        booking = await self.get_booking(identity, booking_id)

        if booking.payment_status == PaymentStatus.CANCELLED.value:
            return booking

        booking_key = str(booking.id)
        # JSON columns are replaced, not mutated in place
        booking.payment_info = {
            **(booking.payment_info or {}),
            "payment_status": PaymentStatus.CANCELLED.value,
        }
        try:
            booking = await crud.save_booking(self.session, booking)
        except SQLAlchemyError as e:
            logger.error("booking_cancel_failed", booking_id=booking_key, error=str(e))
            raise ServiceException("Error cancelling booking")

        logger.info("booking_cancelled", booking_id=booking_key, user_email=identity.email)
        return booking

    @staticmethod
    def _wire_name(name: str) -> str:
        return BookingDraft.model_fields[name].alias or name
