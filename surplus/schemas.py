from datetime import datetime
from typing import Annotated, Any, List, Literal, Optional, Union

from pydantic import BaseModel, EmailStr, Field, model_validator

from surplus.core.states import AVAILABLE

Unit = Literal["kg", "g", "pieces", "dozen", "portions"]
ListingStatus = Literal["available", "requested", "partially_requested"]


# --------------------------
# Location
# --------------------------
class GeoPoint(BaseModel):
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)

    @classmethod
    def coerce(cls, value: Any) -> Optional["GeoPoint"]:
        """Accept the shapes older documents carry: {latitude, longitude} or {lat, lng}."""
        if value is None or isinstance(value, GeoPoint):
            return value
        if isinstance(value, dict):
            lat = value.get("latitude", value.get("lat"))
            lng = value.get("longitude", value.get("lng", value.get("lon")))
            if lat is None or lng is None:
                return None
            return cls(latitude=float(lat), longitude=float(lng))
        # anything else is left for the field itself to reject
        return value


def stored_location(value: Any) -> Optional[GeoPoint]:
    """Location read back from the store; unusable shapes read as no location."""
    try:
        point = GeoPoint.coerce(value)
    except ValueError:
        return None
    return point if isinstance(point, GeoPoint) else None


def _lift_location(data: Any, coerce=GeoPoint.coerce) -> Any:
    if not isinstance(data, dict):
        return data
    data = dict(data)
    # flat latitude/longitude keys on the document itself
    if data.get("location") is None and "latitude" in data and "longitude" in data:
        data["location"] = {"latitude": data.pop("latitude"), "longitude": data.pop("longitude")}
    if data.get("location") is not None:
        data["location"] = coerce(data["location"])
    return data


def lift_stored_location(doc: dict) -> dict:
    return _lift_location(doc, stored_location)


# --------------------------
# Listings
# --------------------------
class ListingIn(BaseModel):
    food_item: str = Field(..., min_length=1)
    quantity: float = Field(..., gt=0)
    unit: Optional[Unit] = None
    production_time: datetime
    expiry_time: datetime
    notes: str = ""
    donor_address: Optional[str] = None
    location: Optional[GeoPoint] = None

    @model_validator(mode="after")
    def check_fields(self):
        self.food_item = self.food_item.strip()
        if not self.food_item:
            raise ValueError("food_item must not be blank")
        if self.expiry_time <= self.production_time:
            raise ValueError("expiry_time must be after production_time")
        return self


class Listing(BaseModel):
    id: str
    donor_id: str
    donor_name: Optional[str] = None
    donor_address: Optional[str] = None
    food_item: str
    quantity: float
    unit: Unit
    production_time: Optional[datetime] = None
    expiry_time: Optional[datetime] = None
    notes: str = ""
    location: Optional[GeoPoint] = None
    status: ListingStatus = AVAILABLE
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    requested_by: Optional[str] = None
    requested_by_org: Optional[str] = None
    requested_quantity: Optional[float] = None
    request_notes: Optional[str] = None
    requested_at: Optional[datetime] = None

    @model_validator(mode="before")
    @classmethod
    def normalize_location(cls, data: Any) -> Any:
        return _lift_location(data)

    @classmethod
    def from_doc(cls, doc: dict) -> "Listing":
        doc = lift_stored_location(doc)
        doc["id"] = str(doc.pop("_id", doc.get("id")))
        return cls.model_validate(doc)


class ListingWithDistance(Listing):
    distance_km: Optional[float] = None


# --------------------------
# Profiles
# --------------------------
class ProfileBase(BaseModel):
    email: EmailStr
    address: str = Field(..., min_length=1)
    location: Optional[GeoPoint] = None

    @model_validator(mode="before")
    @classmethod
    def normalize_location(cls, data: Any) -> Any:
        return _lift_location(data)


class HotelProfileIn(ProfileBase):
    user_type: Literal["hotel"]
    business_name: str = Field(..., min_length=1)
    phone: str = Field(..., min_length=1)


class NgoProfileIn(ProfileBase):
    user_type: Literal["ngo"]
    organization_name: str = Field(..., min_length=1)
    registration_number: str = Field(..., min_length=1)
    contact_person: str = Field(..., min_length=1)


ProfileIn = Annotated[Union[HotelProfileIn, NgoProfileIn], Field(discriminator="user_type")]


class HotelProfile(HotelProfileIn):
    id: str
    created_at: Optional[datetime] = None


class NgoProfile(NgoProfileIn):
    id: str
    created_at: Optional[datetime] = None


Profile = Annotated[Union[HotelProfile, NgoProfile], Field(discriminator="user_type")]


# --------------------------
# Claims
# --------------------------
class ClaimIn(BaseModel):
    # raw value; parsed by the claim workflow so bad input maps to one error type
    quantity: Union[int, float, str]
    notes: str = ""


class ClaimResult(BaseModel):
    listing_id: str
    status: ListingStatus
    remaining_quantity: float
    requested_quantity: float
    unit: Unit
    message: str = ""


class FoodTypesOut(BaseModel):
    food_types: List[str]
