"""
Booking view model: what /api/my-bookings returns for each stored booking
"""

import re
from typing import Dict, Mapping, Optional

from booking_ledger.core.booking_models import BookingView
from booking_ledger.db.models import Booking, BookingViewStatus, PaymentStatus

# Destination name -> image file under IMAGE_BASE_URL
DESTINATION_IMAGES: Dict[str, str] = {
    "Paris, France": "paris.png",
    "Tokyo, Japan": "tokyo.jpg",
    "Rome, Italy": "rome.png",
    "Barcelona, Spain": "barcelona.png",
    "Iceland": "iceland.png",
    "Ha Long Bay, Vietnam": "vietnam.png",
    "New York City, USA": "newyork.png",
    "Santorini, Greece": "greece.png",
    "Machu Picchu, Peru": "machu.png",
    "Maldives": "maldives.png",
    "Dubai, UAE": "dubai.png",
    "Bali, Indonesia": "bali.png",
    "Cape Town, South Africa": "capetwon.png",
    "Sydney, Australia": "sydney.png",
    "Swiss Alps, Switzerland": "swiss-alps.png",
    "Kyoto, Japan": "kyoto.png",
    "Marrakech, Morocco": "marrakech.png",
    "Rio de Janeiro, Brazil": "rio.png",
    "Amsterdam, Netherlands": "amsterdam.png",
    "Petra, Jordan": "petra.png",
    "Queenstown, New Zealand": "queenstown.png",
    "Amalfi Coast,Italy": "amalfi.png",
    "Havana, Cuba": "havana.png",
    "Cairo, Egypt": "cairo.png",
    "Seychelles": "seychelles.png",
    "Singapore": "singapore.png",
}

_WHITESPACE = re.compile(r"\s+")


class DestinationImageCatalog:
    """Static destination -> image lookup with a slug fallback"""

    def __init__(
        self,
        images: Optional[Mapping[str, str]] = None,
        base_url: str = "/images",
        fallback_extension: str = "jpg",
    ):
        self.images = dict(DESTINATION_IMAGES if images is None else images)
        self.base_url = base_url.rstrip("/")
        self.fallback_extension = fallback_extension.lstrip(".")

    def filename_for(self, destination: str) -> str:
        known = self.images.get(destination)
        if known:
            return known
        return f"{_WHITESPACE.sub('-', destination.lower())}.{self.fallback_extension}"

    def url_for(self, destination: str) -> str:
        return f"{self.base_url}/{self.filename_for(destination)}"


def derive_status(payment_status: Optional[str]) -> BookingViewStatus:
    """Only an exact "Confirmed" payment counts as confirmed"""
    if payment_status == PaymentStatus.CONFIRMED.value:
        return BookingViewStatus.CONFIRMED
    return BookingViewStatus.PENDING


def to_booking_view(booking: Booking, catalog: DestinationImageCatalog) -> BookingView:
    return BookingView(
        id=booking.id,
        destination=booking.destination,
        status=derive_status(booking.payment_status),
        check_in=booking.departure_date,
        check_out=booking.return_date,
        guests=booking.num_travelers,
        price=(booking.pricing or {}).get("total_amount"),
        image_url=catalog.url_for(booking.destination),
    )
