"""
Booking payloads shared by the ledger and the HTTP layer.

Field names are snake_case in Python and camelCase on the wire.
"""

from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from booking_ledger.db.models import BookingViewStatus


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class FlightDetails(CamelModel):
    airline: Optional[str] = None
    flight_number: Optional[str] = None
    departure: Optional[str] = None
    arrival: Optional[str] = None
    duration: Optional[str] = None

class PricingDetails(CamelModel):
    base_price: Optional[float] = None
    accommodation_price: Optional[float] = None
    activities_cost: Optional[float] = None
    flight_cost: Optional[float] = None
    total_amount: Optional[float] = None

class PaymentInfo(CamelModel):
    transaction_id: Optional[str] = None
    payment_method: Optional[str] = None
    payment_date: Optional[str] = None
    payment_status: Optional[str] = None

class BookingDraft(CamelModel):
    """Booking request body.

    Every field is optional here; the ledger reports missing required fields
    itself. Unknown keys (including any owner/userEmail) are dropped.
    """
    booking_reference: Optional[str] = Field(None, max_length=100)
    destination: Optional[str] = Field(None, max_length=255)
    traveler_name: Optional[str] = Field(None, max_length=255)
    departure_date: Optional[str] = Field(None, max_length=50)
    return_date: Optional[str] = Field(None, max_length=50)
    num_travelers: Optional[int] = Field(None, ge=0)
    accommodation_type: Optional[str] = Field(None, max_length=100)
    flight_details: Optional[FlightDetails] = None
    pricing: Optional[PricingDetails] = None
    payment_info: Optional[PaymentInfo] = None


class BookingView(CamelModel):
    id: UUID = Field(alias="_id")
    destination: str
    status: BookingViewStatus
    check_in: Optional[str] = None
    check_out: Optional[str] = None
    guests: int
    price: Optional[float] = None
    image_url: str

