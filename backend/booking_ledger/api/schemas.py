from typing import List, Optional, Dict, Any
from pydantic import BaseModel, Field
from uuid import UUID
from datetime import datetime

# Booking payloads live with the ledger; re-exported for the routers
from booking_ledger.core.booking_models import (  # noqa: F401
    BookingDraft,
    BookingView,
    CamelModel,
    FlightDetails,
    PaymentInfo,
    PricingDetails,
)


# ===== AUTH SCHEMAS =====

class SignupRequest(BaseModel):
    # Presence is checked by the identity store so that a missing field
    # produces the same message as an empty one
    username: Optional[str] = Field(None, max_length=50)
    # Stored exactly as sent; any non-blank address is accepted
    email: Optional[str] = Field(None, max_length=255)
    password: Optional[str] = Field(None, max_length=128)

class SignupResponse(CamelModel):
    message: str
    user_id: UUID

class LoginRequest(BaseModel):
    username: str = Field(..., min_length=1, max_length=50, description="Username")
    password: str = Field(..., min_length=1, description="Password")

class LoginResponse(BaseModel):
    message: str
    username: str
    redirect: Optional[str] = None

class AuthStatus(CamelModel):
    logged_in: bool
    username: Optional[str] = None
    email: Optional[str] = None

class MessageResponse(BaseModel):
    message: str


# ===== BOOKING SCHEMAS =====

class BookingCreated(CamelModel):
    message: str
    booking_id: UUID

class BookingRead(CamelModel):
    id: UUID = Field(alias="_id")
    booking_reference: str
    user_email: str
    destination: str
    traveler_name: str
    departure_date: Optional[str] = None
    return_date: Optional[str] = None
    num_travelers: int
    accommodation_type: Optional[str] = None
    flight_details: Optional[FlightDetails] = None
    pricing: PricingDetails
    payment_info: PaymentInfo
    created_at: datetime

class ErrorResponse(BaseModel):
    message: str
    code: str
    details: Optional[Dict[str, Any]] = None

class FieldError(BaseModel):
    field: str
    message: str

class ValidationErrorResponse(BaseModel):
    message: str
    code: str
    errors: List[FieldError]
