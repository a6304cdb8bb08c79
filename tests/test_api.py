import pytest
from asgi_lifespan import LifespanManager
from httpx import ASGITransport, AsyncClient

from surplus.core.errors import StoreError
from surplus.db import PROFILES
from surplus.main import create_app
from surplus.repos.inmemory import InMemoryStore

pytestmark = pytest.mark.anyio

LISTING = {
    "food_item": "Rice",
    "quantity": 10,
    "unit": "kg",
    "production_time": "2026-10-18T10:00:00Z",
    "expiry_time": "2026-10-18T16:00:00Z",
    "notes": "veg",
    "location": {"latitude": 12.97, "longitude": 77.59},
}


async def _hotel(ac: AsyncClient, email="grand@grandhotel.com"):
    r = await ac.post("/api/profiles", json={
        "email": email,
        "user_type": "hotel",
        "address": "MG Road, Bengaluru",
        "business_name": "Grand Hotel",
        "phone": "555-0100",
    })
    assert r.status_code == 201, r.text
    return {"X-User-Id": r.json()["id"]}


async def _ngo(ac: AsyncClient, email="hh@helpinghands.org", **extra):
    r = await ac.post("/api/profiles", json={
        "email": email,
        "user_type": "ngo",
        "address": "MG Road, Bengaluru",
        "organization_name": "Helping Hands",
        "registration_number": "NGO-42",
        "contact_person": "Asha",
        **extra,
    })
    assert r.status_code == 201, r.text
    return {"X-User-Id": r.json()["id"]}


async def _post_listing(ac: AsyncClient, headers, **overrides):
    r = await ac.post("/api/listings", headers=headers, json={**LISTING, **overrides})
    assert r.status_code == 201, r.text
    return r.json()


async def test_health(test_client: AsyncClient):
    r = await test_client.get("/health")
    assert r.json() == {"ok": True}


async def test_full_claim_flow(test_client: AsyncClient):
    hotel = await _hotel(test_client)
    ngo = await _ngo(test_client)
    listing = await _post_listing(test_client, hotel)
    assert listing["status"] == "available"

    r = await test_client.post(f"/api/listings/{listing['id']}/claim", headers=ngo, json={"quantity": 10})
    assert r.status_code == 200, r.text
    assert r.json()["status"] == "requested"
    assert r.json()["remaining_quantity"] == 0

    r = await test_client.post(f"/api/listings/{listing['id']}/claim", headers=ngo, json={"quantity": 1})
    assert r.status_code == 409

    mine = (await test_client.get("/api/listings/mine", headers=hotel)).json()
    assert mine[0]["requested_by_org"] == "Helping Hands"
    assert mine[0]["requested_quantity"] == 10


async def test_partial_claim_flow(test_client: AsyncClient):
    hotel = await _hotel(test_client)
    ngo = await _ngo(test_client)
    listing = await _post_listing(test_client, hotel)

    r = await test_client.post(
        f"/api/listings/{listing['id']}/claim", headers=ngo, json={"quantity": "4", "notes": "urgent"}
    )
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["status"] == "partially_requested"
    assert body["remaining_quantity"] == 6

    got = (await test_client.get(f"/api/listings/{listing['id']}", headers=ngo)).json()
    assert got["quantity"] == 6
    assert got["request_notes"] == "urgent"


@pytest.mark.parametrize("quantity", [15, 0, -3, "lots"])
async def test_bad_quantities_are_422(test_client: AsyncClient, quantity):
    hotel = await _hotel(test_client)
    ngo = await _ngo(test_client)
    listing = await _post_listing(test_client, hotel)

    r = await test_client.post(f"/api/listings/{listing['id']}/claim", headers=ngo, json={"quantity": quantity})
    assert r.status_code == 422
    assert "quantity" in r.json()["detail"]


async def test_unknown_listing_is_404(test_client: AsyncClient):
    ngo = await _ngo(test_client)
    r = await test_client.post("/api/listings/missing/claim", headers=ngo, json={"quantity": 1})
    assert r.status_code == 404
    assert r.json() == {"detail": "Listing not found"}


async def test_caller_identity_and_role_checks(test_client: AsyncClient):
    hotel = await _hotel(test_client)
    ngo = await _ngo(test_client)
    listing = await _post_listing(test_client, hotel)

    assert (await test_client.get("/api/listings")).status_code == 401
    assert (await test_client.get("/api/listings", headers={"X-User-Id": "ghost"})).status_code == 401
    r = await test_client.post(f"/api/listings/{listing['id']}/claim", headers=hotel, json={"quantity": 1})
    assert r.status_code == 403
    r = await test_client.post("/api/listings", headers=ngo, json=LISTING)
    assert r.status_code == 403


async def test_browse_filters_by_explicit_center_and_radius(test_client: AsyncClient):
    hotel = await _hotel(test_client)
    ngo = await _ngo(test_client)
    near = await _post_listing(test_client, hotel)
    far = await _post_listing(test_client, hotel, location={"latitude": 12.90, "longitude": 77.50})

    r = await test_client.get(
        "/api/listings", headers=ngo, params={"lat": 12.97, "lng": 77.59, "radius_km": 10, "food_type": "all"}
    )
    assert r.status_code == 200, r.text
    assert [x["id"] for x in r.json()] == [near["id"]]
    assert r.json()[0]["distance_km"] == 0

    r = await test_client.get("/api/listings", headers=ngo, params={"lat": 12.97, "lng": 77.59, "radius_km": 15})
    assert [x["id"] for x in r.json()] == [near["id"], far["id"]]
    assert r.json()[1]["distance_km"] == pytest.approx(12.48, abs=0.05)


async def test_browse_uses_geocoded_profile_address(test_client: AsyncClient):
    hotel = await _hotel(test_client)
    ngo = await _ngo(test_client)  # MG Road resolves through the fake geocoder
    near = await _post_listing(test_client, hotel)
    await _post_listing(test_client, hotel, location={"latitude": 13.2, "longitude": 77.7})

    r = await test_client.get("/api/listings", headers=ngo)
    assert [x["id"] for x in r.json()] == [near["id"]]


async def test_browse_without_location_skips_distance(test_client: AsyncClient):
    hotel = await _hotel(test_client)
    ngo = await _ngo(test_client, address="Somewhere unknown")
    await _post_listing(test_client, hotel)
    await _post_listing(test_client, hotel, food_item="Dal", location={"latitude": 28.61, "longitude": 77.21})

    r = await test_client.get("/api/listings", headers=ngo)
    assert len(r.json()) == 2
    assert all(x["distance_km"] is None for x in r.json())

    r = await test_client.get("/api/listings", headers=ngo, params={"food_type": "Dal"})
    assert [x["food_item"] for x in r.json()] == ["Dal"]

    r = await test_client.get("/api/listings/food-types", headers=ngo)
    assert r.json() == {"food_types": ["all", "Dal", "Rice"]}


async def test_browse_rejects_half_a_center(test_client: AsyncClient):
    ngo = await _ngo(test_client)
    r = await test_client.get("/api/listings", headers=ngo, params={"lat": 12.97})
    assert r.status_code == 422


async def test_claimed_listings_drop_out_of_browse(test_client: AsyncClient):
    hotel = await _hotel(test_client)
    ngo = await _ngo(test_client)
    listing = await _post_listing(test_client, hotel)
    await test_client.post(f"/api/listings/{listing['id']}/claim", headers=ngo, json={"quantity": 2})

    r = await test_client.get("/api/listings", headers=ngo)
    assert r.json() == []


async def test_listing_validation(test_client: AsyncClient):
    hotel = await _hotel(test_client)
    bad = {**LISTING, "expiry_time": "2026-10-18T09:00:00Z"}
    assert (await test_client.post("/api/listings", headers=hotel, json=bad)).status_code == 422
    bad = {**LISTING, "unit": "litres"}
    assert (await test_client.post("/api/listings", headers=hotel, json=bad)).status_code == 422

    listing = await _post_listing(test_client, hotel, food_item="Butter Roti", unit=None)
    assert listing["unit"] == "pieces"


async def test_units_lookup(test_client: AsyncClient):
    r = await test_client.get("/api/listings/units", params={"food_item": "Roti"})
    assert r.json() == {"food_item": "Roti", "units": ["pieces", "dozen"], "default": "pieces"}


async def test_duplicate_email_is_422(test_client: AsyncClient):
    await _hotel(test_client)
    r = await test_client.post("/api/profiles", json={
        "email": "grand@grandhotel.com",
        "user_type": "ngo",
        "address": "x",
        "organization_name": "o",
        "registration_number": "r",
        "contact_person": "c",
    })
    assert r.status_code == 422


async def test_profile_lookup(test_client: AsyncClient):
    headers = await _ngo(test_client, location={"lat": 12.9, "lng": 77.6})
    r = await test_client.get(f"/api/profiles/{headers['X-User-Id']}")
    assert r.status_code == 200
    assert r.json()["location"] == {"latitude": 12.9, "longitude": 77.6}
    assert (await test_client.get("/api/profiles/nobody")).status_code == 404


class DownStore(InMemoryStore):
    async def update_fields(self, collection, doc_id, fields, expect=None):
        raise StoreError("store unavailable")


async def test_store_outage_is_503(settings, geocoder):
    app = create_app(settings, store=DownStore(), geocoder=geocoder)
    async with LifespanManager(app):
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
            hotel = await _hotel(ac)
            ngo = await _ngo(ac)
            listing = await _post_listing(ac, hotel)
            r = await ac.post(f"/api/listings/{listing['id']}/claim", headers=ngo, json={"quantity": 1})
    assert r.status_code == 503
    assert r.json() == {"detail": "store unavailable"}
    await geocoder.aclose()


@pytest.mark.parametrize("location", [[12.9, 77.5], "12.9,77.5", {"lat": 500, "lng": 77.5}, {"lat": "abc", "lng": 1}])
async def test_malformed_profile_location_is_422(test_client: AsyncClient, location):
    r = await test_client.post("/api/profiles", json={
        "email": "hh@helpinghands.org",
        "user_type": "ngo",
        "address": "MG Road, Bengaluru",
        "organization_name": "Helping Hands",
        "registration_number": "NGO-42",
        "contact_person": "Asha",
        "location": location,
    })
    assert r.status_code == 422


async def test_malformed_listing_location_is_422(test_client: AsyncClient):
    hotel = await _hotel(test_client)
    r = await test_client.post("/api/listings", headers=hotel, json={**LISTING, "location": [12.97, 77.59]})
    assert r.status_code == 422


async def test_stored_documents_with_unusable_locations_still_load(test_client: AsyncClient, store, make_listing):
    hotel = await _hotel(test_client)
    await store.update_fields(PROFILES, hotel["X-User-Id"], {"location": [12.97, 77.59]})
    await make_listing(donor_id=hotel["X-User-Id"], location=[12.97, 77.59])
    await make_listing(donor_id=hotel["X-User-Id"], location={"lat": "north", "lng": 77.59})

    r = await test_client.get("/api/listings/mine", headers=hotel)
    assert r.status_code == 200, r.text
    assert [x["location"] for x in r.json()] == [None, None]

    r = await test_client.get(f"/api/profiles/{hotel['X-User-Id']}")
    assert r.status_code == 200
    assert r.json()["location"] is None
