# surplus/services/profiles.py
from datetime import datetime, timezone
from typing import Union

from pydantic import TypeAdapter

from surplus.core.errors import DuplicateError, NotFoundError, ValidationError
from surplus.core.logging import get_logger
from surplus.db import PROFILES
from surplus.repos.base import DocumentStore
from surplus.schemas import HotelProfile, HotelProfileIn, NgoProfile, NgoProfileIn, Profile, lift_stored_location

log = get_logger(__name__)

_profile_adapter = TypeAdapter(Profile)


def _to_profile(doc: dict) -> Union[HotelProfile, NgoProfile]:
    doc = lift_stored_location(doc)
    doc["id"] = str(doc.pop("_id"))
    return _profile_adapter.validate_python(doc)


async def create_profile(
    store: DocumentStore, payload: Union[HotelProfileIn, NgoProfileIn]
) -> Union[HotelProfile, NgoProfile]:
    email = str(payload.email).lower()
    if await store.query(PROFILES, {"email": email}):
        raise ValidationError("Email already registered")

    doc = payload.model_dump()
    doc["email"] = email
    doc["created_at"] = datetime.now(timezone.utc)
    try:
        doc["_id"] = await store.insert(PROFILES, doc)
    except DuplicateError:
        # a concurrent registration took the email first
        raise ValidationError("Email already registered") from None
    log.info("profile.created", profile_id=doc["_id"], user_type=payload.user_type)
    return _to_profile(doc)


async def get_profile(store: DocumentStore, profile_id: str) -> Union[HotelProfile, NgoProfile]:
    doc = await store.get_by_id(PROFILES, profile_id)
    if not doc:
        raise NotFoundError("Profile not found")
    return _to_profile(doc)
