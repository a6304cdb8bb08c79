# surplus/routers/listings.py
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from surplus.core.config import Settings
from surplus.core.errors import ValidationError
from surplus.deps import (
    current_hotel,
    current_ngo,
    current_profile,
    get_claims,
    get_geocoder,
    get_settings,
    get_store,
)
from surplus.repos.base import DocumentStore
from surplus.schemas import ClaimIn, ClaimResult, FoodTypesOut, GeoPoint, Listing, ListingIn, ListingWithDistance
from surplus.services import listings as svc
from surplus.services.claims import ClaimWorkflow
from surplus.services.geolocate import Geocoder, resolve_viewer_location
from surplus.services.proximity import (
    ALL_FOOD_TYPES,
    distance_between,
    filter_by_radius,
    food_types,
    sort_by_distance,
)
from surplus.services.units import default_unit, units_for

router = APIRouter(prefix="/api/listings", tags=["listings"])


def _with_distance(listing: Listing, center: Optional[GeoPoint]) -> ListingWithDistance:
    d = None
    if center is not None and listing.location is not None:
        d = round(distance_between(center, listing.location), 3)
    return ListingWithDistance(**listing.model_dump(), distance_km=d)


@router.post("", response_model=Listing, status_code=status.HTTP_201_CREATED)
async def create_listing(
    body: ListingIn,
    donor=Depends(current_hotel),
    store: DocumentStore = Depends(get_store),
):
    return await svc.create_listing(store, donor, body)


@router.get("", response_model=List[ListingWithDistance])
async def browse_listings(
    food_type: str = Query(ALL_FOOD_TYPES),
    radius_km: Optional[float] = Query(None),
    lat: Optional[float] = Query(None, ge=-90, le=90),
    lng: Optional[float] = Query(None, ge=-180, le=180),
    viewer=Depends(current_profile),
    store: DocumentStore = Depends(get_store),
    settings: Settings = Depends(get_settings),
    geocoder: Optional[Geocoder] = Depends(get_geocoder),
):
    if (lat is None) != (lng is None):
        raise ValidationError("lat and lng must be given together")
    if lat is not None:
        center = GeoPoint(latitude=lat, longitude=lng)
    else:
        center = await resolve_viewer_location(viewer, geocoder)

    radius = settings.default_radius_km if radius_km is None else radius_km
    active = await svc.list_active_listings(store)
    kept = filter_by_radius(active, center, radius, food_type)
    ordered = sort_by_distance(kept, center) if center is not None else list(kept)
    return [_with_distance(x, center) for x in ordered]


@router.get("/mine", response_model=List[Listing])
async def my_listings(donor=Depends(current_hotel), store: DocumentStore = Depends(get_store)):
    return await svc.list_own_listings(store, donor.id)


@router.get("/food-types", response_model=FoodTypesOut)
async def list_food_types(_viewer=Depends(current_profile), store: DocumentStore = Depends(get_store)):
    return {"food_types": food_types(await svc.list_active_listings(store))}


@router.get("/units")
async def list_units(food_item: str = Query(..., min_length=1)):
    return {"food_item": food_item, "units": units_for(food_item), "default": default_unit(food_item)}


@router.get("/{listing_id}", response_model=Listing)
async def get_listing(listing_id: str, _viewer=Depends(current_profile), store: DocumentStore = Depends(get_store)):
    return await svc.get_listing(store, listing_id)


@router.post("/{listing_id}/claim", response_model=ClaimResult)
async def claim_listing(
    listing_id: str,
    body: ClaimIn,
    ngo=Depends(current_ngo),
    claims: ClaimWorkflow = Depends(get_claims),
):
    return await claims.submit_claim(
        listing_id,
        requester_id=ngo.id,
        requester_org_name=ngo.organization_name,
        requested_quantity=body.quantity,
        notes=body.notes,
    )
