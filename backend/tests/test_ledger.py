"""
Booking ledger: ownership, duplicate protection and cancellation.

The storage tests swap in an evaluator that never reports a collision, so
the unique column and unique index alone must keep duplicates out.
"""

import asyncio
import uuid
from typing import Optional
from uuid import UUID

import pytest

from booking_ledger.core.dedup import Collision, DedupEvaluator, TripKey
from booking_ledger.core.exceptions import (
    BookingConflictException,
    ForbiddenException,
    NotFoundException,
    ValidationException,
)
from booking_ledger.core.ledger import BookingLedger, missing_fields
from booking_ledger.db.models import BookingViewStatus


class BlindEvaluator(DedupEvaluator):
    async def find_collision(self, session, reference: str, key: TripKey) -> Optional[Collision]:
        return None


@pytest.mark.asyncio
async def test_create_and_list(db_session, alice, make_draft):
    ledger = BookingLedger(db_session)
    booking_id = await ledger.create_booking(alice, make_draft())
    assert isinstance(booking_id, UUID)

    views = await ledger.list_bookings(alice)
    assert len(views) == 1
    view = views[0]
    assert view.id == booking_id
    assert view.destination == "Paris, France"
    assert view.status is BookingViewStatus.CONFIRMED
    assert view.check_in == "2026-11-01"
    assert view.check_out == "2026-11-08"
    assert view.guests == 2
    assert view.price == 1700
    assert view.image_url == "/images/paris.png"


@pytest.mark.asyncio
async def test_owner_comes_from_session(db_session, alice, make_draft):
    ledger = BookingLedger(db_session)
    booking_id = await ledger.create_booking(alice, make_draft(userEmail="mallory@x.com"))

    booking = await ledger.get_booking(alice, booking_id)
    assert booking.user_email == "a@x.com"
    assert booking.pricing["total_amount"] == 1700
    assert booking.payment_info["payment_status"] == "Confirmed"


def test_missing_fields(make_draft):
    assert missing_fields(make_draft()) == []
    draft = make_draft(destination="  ", numTravelers=0, pricing=None, bookingReference=None)
    assert missing_fields(draft) == ["booking_reference", "destination", "num_travelers", "pricing"]


@pytest.mark.asyncio
async def test_create_rejects_missing_details(db_session, alice, make_draft):
    ledger = BookingLedger(db_session)
    with pytest.raises(ValidationException) as exc_info:
        await ledger.create_booking(alice, make_draft(travelerName="", paymentInfo=None))

    assert exc_info.value.message == "Missing required booking details"
    assert exc_info.value.details["missing_fields"] == ["travelerName", "paymentInfo"]
    assert await ledger.list_bookings(alice) == []


@pytest.mark.asyncio
async def test_duplicate_reference(db_session, alice, bob, make_draft):
    ledger = BookingLedger(db_session)
    first = await ledger.create_booking(alice, make_draft())

    for identity in (alice, bob):
        with pytest.raises(BookingConflictException) as exc_info:
            await ledger.create_booking(identity, make_draft(destination="Rome, Italy"))
        assert exc_info.value.existing_booking_id == first
        assert exc_info.value.rule == "booking_reference"
        assert exc_info.value.message == "This booking already exists in your account"


@pytest.mark.asyncio
async def test_duplicate_trip(db_session, alice, make_draft):
    ledger = BookingLedger(db_session)
    first = await ledger.create_booking(alice, make_draft())

    with pytest.raises(BookingConflictException) as exc_info:
        await ledger.create_booking(alice, make_draft(bookingReference="REF2"))
    assert exc_info.value.existing_booking_id == first
    assert exc_info.value.rule == "owner_trip"


@pytest.mark.asyncio
async def test_duplicate_trip_without_dates(db_session, alice, make_draft):
    ledger = BookingLedger(db_session)
    first = await ledger.create_booking(alice, make_draft(departureDate=None, returnDate=None))

    with pytest.raises(BookingConflictException) as exc_info:
        await ledger.create_booking(
            alice, make_draft(bookingReference="REF2", departureDate=None, returnDate=None)
        )
    assert exc_info.value.existing_booking_id == first


@pytest.mark.asyncio
async def test_same_trip_for_another_owner_is_allowed(db_session, alice, bob, make_draft):
    ledger = BookingLedger(db_session)
    await ledger.create_booking(alice, make_draft())
    await ledger.create_booking(bob, make_draft(bookingReference="REF2"))
    await ledger.create_booking(alice, make_draft(bookingReference="REF3", travelerName="Bob"))

    assert len(await ledger.list_bookings(alice)) == 2
    assert len(await ledger.list_bookings(bob)) == 1


@pytest.mark.asyncio
async def test_storage_rejects_duplicate_reference(db_session, alice, bob, make_draft):
    ledger = BookingLedger(db_session, evaluator=BlindEvaluator())
    first = await ledger.create_booking(alice, make_draft())

    with pytest.raises(BookingConflictException) as exc_info:
        await ledger.create_booking(bob, make_draft())
    assert exc_info.value.existing_booking_id == first
    assert await ledger.list_bookings(bob) == []


@pytest.mark.asyncio
async def test_storage_rejects_duplicate_trip(db_session, alice, make_draft):
    ledger = BookingLedger(db_session, evaluator=BlindEvaluator())
    first = await ledger.create_booking(alice, make_draft(returnDate=None))

    with pytest.raises(BookingConflictException) as exc_info:
        await ledger.create_booking(alice, make_draft(bookingReference="REF2", returnDate=None))
    assert exc_info.value.existing_booking_id == first
    assert len(await ledger.list_bookings(alice)) == 1


@pytest.mark.asyncio
@pytest.mark.parametrize("evaluator", [DedupEvaluator, BlindEvaluator])
async def test_concurrent_creates_store_one_booking(db_manager, alice, make_draft, evaluator):
    """Racing identical creates: exactly one wins, the rest see its id"""

    async def attempt():
        async with db_manager.get_session() as session:
            ledger = BookingLedger(session, evaluator=evaluator())
            try:
                return await ledger.create_booking(alice, make_draft())
            except BookingConflictException as e:
                return e

    results = await asyncio.gather(*(attempt() for _ in range(5)))

    created = [r for r in results if isinstance(r, UUID)]
    conflicts = [r for r in results if isinstance(r, BookingConflictException)]
    assert len(created) == 1
    assert len(conflicts) == 4
    assert all(c.existing_booking_id == created[0] for c in conflicts)

    async with db_manager.get_session() as session:
        views = await BookingLedger(session).list_bookings(alice)
    assert [v.id for v in views] == created


@pytest.mark.asyncio
async def test_get_booking_access(db_session, alice, bob, make_draft):
    ledger = BookingLedger(db_session)
    booking_id = await ledger.create_booking(alice, make_draft())

    assert (await ledger.get_booking(alice, str(booking_id))).id == booking_id

    with pytest.raises(ForbiddenException) as exc_info:
        await ledger.get_booking(bob, booking_id)
    assert exc_info.value.message == "Unauthorized: This booking belongs to another user"

    for missing in (uuid.uuid4(), "not-a-uuid"):
        with pytest.raises(NotFoundException) as exc_info:
            await ledger.get_booking(alice, missing)
        assert exc_info.value.message == "Booking not found"


@pytest.mark.asyncio
async def test_cancel_booking(db_session, alice, bob, make_draft):
    ledger = BookingLedger(db_session)
    booking_id = await ledger.create_booking(alice, make_draft())

    with pytest.raises(ForbiddenException):
        await ledger.cancel_booking(bob, booking_id)

    cancelled = await ledger.cancel_booking(alice, booking_id)
    assert cancelled.payment_info["payment_status"] == "Cancelled"
    assert cancelled.payment_info["transaction_id"] == "TX-1"

    again = await ledger.cancel_booking(alice, booking_id)
    assert again.payment_status == "Cancelled"

    views = await ledger.list_bookings(alice)
    assert views[0].status is BookingViewStatus.PENDING


@pytest.mark.asyncio
async def test_cancel_unknown_booking(db_session, alice):
    with pytest.raises(NotFoundException):
        await BookingLedger(db_session).cancel_booking(alice, uuid.uuid4())
