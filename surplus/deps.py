# surplus/deps.py
from typing import Optional, Union

from fastapi import Depends, Header, HTTPException, Request

from surplus.core.config import Settings
from surplus.core.errors import NotFoundError
from surplus.core.logging import bind_context
from surplus.repos.base import DocumentStore
from surplus.schemas import HotelProfile, NgoProfile
from surplus.services.claims import ClaimWorkflow
from surplus.services.geolocate import Geocoder
from surplus.services.profiles import get_profile


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_store(request: Request) -> DocumentStore:
    return request.app.state.store


def get_claims(request: Request) -> ClaimWorkflow:
    return request.app.state.claims


def get_geocoder(request: Request) -> Optional[Geocoder]:
    return request.app.state.geocoder


async def current_profile(
    x_user_id: Optional[str] = Header(None),
    store: DocumentStore = Depends(get_store),
) -> Union[HotelProfile, NgoProfile]:
    """The caller, as identified by the auth gateway's X-User-Id header."""
    if not x_user_id:
        raise HTTPException(status_code=401, detail="Missing X-User-Id header")
    try:
        profile = await get_profile(store, x_user_id)
    except NotFoundError:
        raise HTTPException(status_code=401, detail="Unknown user")
    bind_context(user_id=profile.id, user_type=profile.user_type)
    return profile


async def current_hotel(profile=Depends(current_profile)) -> HotelProfile:
    if not isinstance(profile, HotelProfile):
        raise HTTPException(status_code=403, detail="Only hotel accounts can do this")
    return profile


async def current_ngo(profile=Depends(current_profile)) -> NgoProfile:
    if not isinstance(profile, NgoProfile):
        raise HTTPException(status_code=403, detail="Only NGO accounts can do this")
    return profile
