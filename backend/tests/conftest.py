"""
Shared fixtures: every test gets its own SQLite database file.
"""

import os

# Set before the app module is imported: no log file, no global metrics
os.environ.setdefault("LOG_FILE", "")
os.environ.setdefault("ENABLE_METRICS", "false")

from typing import Any, Dict

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient

from booking_ledger.core.booking_models import BookingDraft
from booking_ledger.core.sessions import Identity
from booking_ledger.core.settings import Settings
from booking_ledger.db.session import DatabaseManager
from booking_ledger.main import create_app

STRONG_PASSWORD = "Aa1!aa"


@pytest.fixture
def settings(tmp_path):
    return Settings(
        DB_URL=f"sqlite:///{tmp_path / 'ledger.db'}",
        LOG_FILE="",
        ENABLE_METRICS=False,
        SESSION_COOKIE_SECURE=False,
        ENVIRONMENT="test",
    )


@pytest_asyncio.fixture
async def db_manager(settings):
    manager = DatabaseManager(settings)
    await manager.initialize()
    await manager.init_db()
    yield manager
    await manager.close()


@pytest_asyncio.fixture
async def db_session(db_manager):
    async with db_manager.get_session() as session:
        yield session


@pytest.fixture
def alice():
    return Identity(username="alice", email="a@x.com")


@pytest.fixture
def bob():
    return Identity(username="bob", email="b@x.com")


def booking_payload(**overrides: Any) -> Dict[str, Any]:
    """Booking request body in wire (camelCase) form"""
    payload: Dict[str, Any] = {
        "bookingReference": "REF1",
        "destination": "Paris, France",
        "travelerName": "Alice",
        "departureDate": "2026-11-01",
        "returnDate": "2026-11-08",
        "numTravelers": 2,
        "accommodationType": "Hotel",
        "flightDetails": {
            "airline": "Air France",
            "flightNumber": "AF123",
            "departure": "08:00",
            "arrival": "10:30",
            "duration": "2h 30m",
        },
        "pricing": {
            "basePrice": 900,
            "accommodationPrice": 400,
            "activitiesCost": 100,
            "flightCost": 300,
            "totalAmount": 1700,
        },
        "paymentInfo": {
            "transactionId": "TX-1",
            "paymentMethod": "card",
            "paymentDate": "2026-10-19",
            "paymentStatus": "Confirmed",
        },
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def make_draft():
    def _make(**overrides: Any) -> BookingDraft:
        return BookingDraft.model_validate(booking_payload(**overrides))
    return _make


@pytest.fixture
def app(settings):
    return create_app(settings)


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def signup_and_login(client):
    """Register a user (if needed) and make the client act as them"""
    def _login(username: str, email: str, password: str = STRONG_PASSWORD):
        client.post("/signup", json={"username": username, "email": email, "password": password})
        client.cookies.clear()
        response = client.post("/login", json={"username": username, "password": password})
        assert response.status_code == 200, response.text
        return response
    return _login


@pytest.fixture
def payload_factory():
    return booking_payload
