"""
Duplicate booking detection.

Two bookings collide when they share a booking reference (regardless of
owner), or when the same owner books the same destination, dates and
traveler again. Both rules are checked with one OR query so a single read
sees either kind of collision. The unique column and unique index on the
bookings table enforce the same two rules; this module only lets the ledger
report which record is in the way before attempting the insert.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional
from uuid import UUID

from sqlalchemy import and_, func, or_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql.elements import ColumnElement

from booking_ledger.db import crud
from booking_ledger.db.models import Booking


class CollisionRule(str, Enum):
    REFERENCE = "booking_reference"
    TRIP = "owner_trip"


@dataclass(frozen=True)
class TripKey:
    """The per-owner uniqueness tuple. Absent dates are normalized to ''."""

    owner_email: str
    destination: str
    departure_date: str
    return_date: str
    traveler_name: str

    @classmethod
    def build(
        cls,
        owner_email: str,
        destination: str,
        departure_date: Optional[str],
        return_date: Optional[str],
        traveler_name: str,
    ) -> "TripKey":
        return cls(
            owner_email=owner_email,
            destination=destination,
            departure_date=departure_date or "",
            return_date=return_date or "",
            traveler_name=traveler_name,
        )

    @classmethod
    def of(cls, booking: Booking) -> "TripKey":
        return cls.build(
            booking.user_email,
            booking.destination,
            booking.departure_date,
            booking.return_date,
            booking.traveler_name,
        )


@dataclass(frozen=True)
class Collision:
    booking_id: UUID
    rule: CollisionRule


def classify(
    existing_reference: str,
    existing_key: TripKey,
    reference: str,
    key: TripKey,
) -> Optional[CollisionRule]:
    """Decide whether a candidate collides with an existing booking.

    A reference clash wins when both rules match.
    """
    if existing_reference == reference:
        return CollisionRule.REFERENCE
    if existing_key == key:
        return CollisionRule.TRIP
    return None


def collision_clause(reference: str, key: TripKey) -> ColumnElement:
    """SQL form of classify(): reference match OR full trip-tuple match"""
    return or_(
        Booking.booking_reference == reference,
        and_(
            Booking.user_email == key.owner_email,
            Booking.destination == key.destination,
            func.coalesce(Booking.departure_date, "") == key.departure_date,
            func.coalesce(Booking.return_date, "") == key.return_date,
            Booking.traveler_name == key.traveler_name,
        ),
    )


async def lookup_collision(session: AsyncSession, reference: str, key: TripKey) -> Optional[Collision]:
    existing = await crud.find_booking(session, collision_clause(reference, key))
    if existing is None:
        return None
    rule = classify(existing.booking_reference, TripKey.of(existing), reference, key)
    return Collision(booking_id=existing.id, rule=rule or CollisionRule.REFERENCE)


class DedupEvaluator:
    """Pre-insert duplicate check used by the booking ledger"""

    async def find_collision(self, session: AsyncSession, reference: str, key: TripKey) -> Optional[Collision]:
        return await lookup_collision(session, reference, key)
