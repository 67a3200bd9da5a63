import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Dict, Any

from sqlmodel import SQLModel, Field
from sqlalchemy import JSON, Column, DateTime, Index, CheckConstraint, func
from uuid import UUID as PyUUID


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# Enums
class PaymentStatus(str, Enum):
    """Payment states the ledger knows by name; other strings pass through."""
    CONFIRMED = "Confirmed"
    CANCELLED = "Cancelled"


class BookingViewStatus(str, Enum):
    CONFIRMED = "confirmed"
    PENDING = "pending"


# Models
class User(SQLModel, table=True):
    __tablename__ = "users"

    __table_args__ = (
        CheckConstraint('length(username) > 0', name='check_username_not_empty'),
        CheckConstraint('length(email) > 0', name='check_email_not_empty'),
    )

    id: PyUUID = Field(default_factory=uuid.uuid4, primary_key=True)
    username: str = Field(
        index=True,
        unique=True,
        nullable=False,
        max_length=50,
        description="Unique username for login"
    )
    email: str = Field(
        index=True,
        unique=True,
        nullable=False,
        max_length=255,
        description="User's email address"
    )
    password_hash: str = Field(
        nullable=False,
        max_length=255,
        description="Hashed password secret"
    )
    created_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False),
        description="When the account was registered"
    )


class Booking(SQLModel, table=True):
    __tablename__ = "bookings"

    __table_args__ = (
        Index('idx_bookings_user_email', 'user_email'),
        Index('idx_bookings_created_at', 'created_at'),
        CheckConstraint('num_travelers >= 1', name='check_num_travelers_positive'),
        CheckConstraint('length(booking_reference) > 0', name='check_booking_reference_not_empty'),
        CheckConstraint('length(destination) > 0', name='check_destination_not_empty'),
        CheckConstraint('length(traveler_name) > 0', name='check_traveler_name_not_empty'),
    )

    id: PyUUID = Field(default_factory=uuid.uuid4, primary_key=True)
    booking_reference: str = Field(
        unique=True,
        nullable=False,
        max_length=100,
        description="Booking reference code, unique across all bookings"
    )
    user_email: str = Field(
        nullable=False,
        max_length=255,
        description="Owner email, copied from the session at creation"
    )
    destination: str = Field(max_length=255)
    traveler_name: str = Field(max_length=255)
    departure_date: Optional[str] = Field(default=None, max_length=50)
    return_date: Optional[str] = Field(default=None, max_length=50)
    num_travelers: int = Field(description="Number of travelers")
    accommodation_type: Optional[str] = Field(default=None, max_length=100)
    flight_details: Optional[Dict[str, Any]] = Field(
        default=None,
        sa_column=Column(JSON, nullable=True),
        description="Airline, flight number, departure, arrival and duration"
    )
    pricing: Dict[str, Any] = Field(
        sa_column=Column(JSON, nullable=False),
        description="Price breakdown including totalAmount"
    )
    payment_info: Dict[str, Any] = Field(
        sa_column=Column(JSON, nullable=False),
        description="Transaction id, method, date and payment status"
    )
    created_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False),
        description="When the booking was stored"
    )

    @property
    def payment_status(self) -> Optional[str]:
        return (self.payment_info or {}).get("payment_status")


# A user cannot book the same trip for the same traveler twice. Missing dates
# are folded to '' so they collide with each other like any other value.
Index(
    'uq_bookings_owner_trip',
    Booking.user_email,
    Booking.destination,
    func.coalesce(Booking.departure_date, ''),
    func.coalesce(Booking.return_date, ''),
    Booking.traveler_name,
    unique=True,
)


class AuthSession(SQLModel, table=True):
    __tablename__ = "auth_sessions"

    __table_args__ = (
        Index('idx_auth_sessions_expires_at', 'expires_at'),
    )

    token_digest: str = Field(
        primary_key=True,
        max_length=64,
        description="SHA-256 hex digest of the opaque session token"
    )
    username: str = Field(max_length=50)
    email: str = Field(max_length=255)
    issued_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )
    expires_at: datetime = Field(
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )
