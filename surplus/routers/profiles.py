# surplus/routers/profiles.py
from fastapi import APIRouter, Body, Depends, status

from surplus.deps import get_store
from surplus.repos.base import DocumentStore
from surplus.schemas import Profile, ProfileIn
from surplus.services import profiles as svc

router = APIRouter(prefix="/api/profiles", tags=["profiles"])


@router.post("", response_model=Profile, status_code=status.HTTP_201_CREATED)
async def create_profile(body: ProfileIn = Body(...), store: DocumentStore = Depends(get_store)):
    return await svc.create_profile(store, body)


@router.get("/{profile_id}", response_model=Profile)
async def get_profile(profile_id: str, store: DocumentStore = Depends(get_store)):
    return await svc.get_profile(store, profile_id)
