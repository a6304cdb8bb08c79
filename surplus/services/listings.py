# surplus/services/listings.py
from datetime import datetime, timezone
from typing import List

from pymongo import DESCENDING

from surplus.core.errors import NotFoundError, ValidationError
from surplus.core.logging import get_logger
from surplus.core.states import AVAILABLE
from surplus.db import LISTINGS
from surplus.repos.base import DocumentStore
from surplus.schemas import HotelProfile, Listing, ListingIn
from surplus.services.units import default_unit

log = get_logger(__name__)

NEWEST_FIRST = ("created_at", DESCENDING)


async def create_listing(store: DocumentStore, donor, payload: ListingIn) -> Listing:
    if not isinstance(donor, HotelProfile):
        raise ValidationError("Only hotel accounts can post listings")

    doc = {
        "donor_id": donor.id,
        "donor_name": donor.business_name or "Unknown Hotel",
        "donor_address": payload.donor_address or donor.address,
        "food_item": payload.food_item,
        "quantity": payload.quantity,
        "unit": payload.unit or default_unit(payload.food_item),
        "production_time": payload.production_time,
        "expiry_time": payload.expiry_time,
        "notes": payload.notes,
        "location": payload.location.model_dump() if payload.location else None,
        "status": AVAILABLE,
        "created_at": datetime.now(timezone.utc),
    }
    doc["_id"] = await store.insert(LISTINGS, doc)
    log.info("listing.created", listing_id=doc["_id"], donor_id=donor.id, quantity=payload.quantity)
    return Listing.from_doc(doc)


async def get_listing(store: DocumentStore, listing_id: str) -> Listing:
    doc = await store.get_by_id(LISTINGS, listing_id)
    if not doc:
        raise NotFoundError("Listing not found")
    return Listing.from_doc(doc)


async def list_active_listings(store: DocumentStore) -> List[Listing]:
    """Every available listing, regardless of donor."""
    docs = await store.query(LISTINGS, {"status": AVAILABLE}, sort=NEWEST_FIRST)
    return [Listing.from_doc(d) for d in docs]


async def list_own_listings(store: DocumentStore, donor_id: str) -> List[Listing]:
    """The donor's listings in any state."""
    docs = await store.query(LISTINGS, {"donor_id": donor_id}, sort=NEWEST_FIRST)
    return [Listing.from_doc(d) for d in docs]
