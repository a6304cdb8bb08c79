# tests/conftest.py
from datetime import datetime, timedelta, timezone

import httpx
import pytest
from asgi_lifespan import LifespanManager
from httpx import ASGITransport, AsyncClient

from surplus.core.config import Settings
from surplus.core.states import AVAILABLE
from surplus.db import LISTINGS
from surplus.main import create_app
from surplus.repos.inmemory import InMemoryStore
from surplus.services.geolocate import Geocoder

# Nominatim answers the fake geocoder knows about
KNOWN_ADDRESSES = {
    "MG Road, Bengaluru": [{"lat": "12.9716", "lon": "77.5946"}],
}


@pytest.fixture(scope="session")
def anyio_backend():
    # keep AnyIO on asyncio for the whole test session
    return "asyncio"


@pytest.fixture
def settings():
    return Settings(_env_file=None, use_mongo=False, default_radius_km=10.0)


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def geocoder(settings):
    def handler(request: httpx.Request) -> httpx.Response:
        q = request.url.params.get("q", "")
        return httpx.Response(200, json=KNOWN_ADDRESSES.get(q, []))

    return Geocoder(settings, client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))


@pytest.fixture
async def test_client(settings, store, geocoder):
    app = create_app(settings, store=store, geocoder=geocoder)
    async with LifespanManager(app):
        transport = ASGITransport(app=app, raise_app_exceptions=True)
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            yield ac
    await geocoder.aclose()


@pytest.fixture
def make_listing(store):
    """Insert a listing document straight into the store and return its id."""

    async def _make(**overrides):
        now = datetime.now(timezone.utc)
        doc = {
            "donor_id": "hotel1",
            "donor_name": "Grand Hotel",
            "food_item": "Rice",
            "quantity": 10,
            "unit": "kg",
            "production_time": now,
            "expiry_time": now + timedelta(hours=6),
            "notes": "",
            "location": {"latitude": 12.97, "longitude": 77.59},
            "status": AVAILABLE,
            "created_at": now,
        }
        doc.update(overrides)
        return await store.insert(LISTINGS, doc)

    return _make
