# surplus/services/proximity.py
from collections.abc import Sequence
from math import atan2, cos, radians, sin, sqrt
from typing import Iterable, Iterator, List, Optional

from surplus.core.errors import ValidationError
from surplus.schemas import GeoPoint, Listing

EARTH_RADIUS_KM = 6371.0
ALL_FOOD_TYPES = "all"


def distance_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle (haversine) distance in km between two points given in degrees."""
    dlat = radians(lat2 - lat1)
    dlon = radians(lon2 - lon1)
    s = sin(dlat / 2) ** 2 + cos(radians(lat1)) * cos(radians(lat2)) * sin(dlon / 2) ** 2
    s = min(s, 1.0)
    return 2 * EARTH_RADIUS_KM * atan2(sqrt(s), sqrt(1 - s))


def distance_between(a: GeoPoint, b: GeoPoint) -> float:
    return distance_km(a.latitude, a.longitude, b.latitude, b.longitude)


class RadiusFilter:
    """Re-iterable view over the listings that pass the food-type and radius checks.

    Nothing is evaluated until iteration; each iteration re-runs the checks over
    the same input, in input order.
    """

    def __init__(
        self,
        listings: Iterable[Listing],
        center: Optional[GeoPoint],
        radius_km: float,
        food_type: str = ALL_FOOD_TYPES,
    ):
        if center is not None and radius_km < 0:
            raise ValidationError("radius_km must not be negative")
        # one-shot iterators are materialized so the view can be iterated again
        self._listings = listings if isinstance(listings, Sequence) else tuple(listings)
        self.center = center
        self.radius_km = radius_km
        self.food_type = food_type

    def keeps(self, listing: Listing) -> bool:
        if self.food_type != ALL_FOOD_TYPES and listing.food_item != self.food_type:
            return False
        # listings without a location always pass the distance check
        if self.center is None or listing.location is None:
            return True
        return distance_between(self.center, listing.location) <= self.radius_km

    def __iter__(self) -> Iterator[Listing]:
        return (listing for listing in self._listings if self.keeps(listing))


def filter_by_radius(
    listings: Iterable[Listing],
    center: Optional[GeoPoint],
    radius_km: float,
    food_type: str = ALL_FOOD_TYPES,
) -> RadiusFilter:
    return RadiusFilter(listings, center, radius_km, food_type)


def sort_by_distance(listings: Iterable[Listing], center: GeoPoint) -> List[Listing]:
    """Nearest first; listings without a location go last, keeping their order."""
    listings = list(listings)
    located = [x for x in listings if x.location is not None]
    unlocated = [x for x in listings if x.location is None]
    located.sort(key=lambda x: distance_between(center, x.location))
    return located + unlocated


def food_types(listings: Iterable[Listing]) -> List[str]:
    seen = dict.fromkeys(x.food_item for x in listings)
    return [ALL_FOOD_TYPES, *seen]
