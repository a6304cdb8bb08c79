# surplus/services/geolocate.py
from __future__ import annotations

from typing import Optional, Tuple, Union

import httpx

from surplus.core.config import Settings
from surplus.core.logging import get_logger
from surplus.schemas import GeoPoint, HotelProfile, NgoProfile

log = get_logger(__name__)


class GeocodeError(Exception):
    pass


class Geocoder:
    """Address -> (lat, lng) through Nominatim, OpenCage or Google, chosen by settings."""

    def __init__(self, settings: Settings, client: Optional[httpx.AsyncClient] = None):
        self.settings = settings
        self.client = client or httpx.AsyncClient(timeout=settings.geocode_timeout)

    async def aclose(self) -> None:
        await self.client.aclose()

    async def geocode(self, address: str) -> Tuple[float, float]:
        """Returns (lat, lng). Raises GeocodeError on failure."""
        a = (address or "").strip()
        if not a:
            raise GeocodeError("Empty address")
        try:
            return await self._lookup(a)
        except httpx.HTTPError as ex:
            raise GeocodeError(f"Geocoder request failed: {ex}") from ex
        except (KeyError, IndexError, TypeError, ValueError) as ex:
            raise GeocodeError(f"Unexpected geocoder response: {ex}") from ex

    async def _lookup(self, a: str) -> Tuple[float, float]:
        s = self.settings
        if s.geocoder == "opencage":
            if not s.opencage_key:
                raise GeocodeError("OPENCAGE_KEY not set")
            r = await self.client.get(
                "https://api.opencagedata.com/geocode/v1/json",
                params={"q": a, "key": s.opencage_key, "limit": 1},
            )
            r.raise_for_status()
            js = r.json()
            if not js.get("results"):
                raise GeocodeError("No results")
            g = js["results"][0]["geometry"]
            return float(g["lat"]), float(g["lng"])

        if s.geocoder == "google":
            if not s.google_maps_key:
                raise GeocodeError("GOOGLE_MAPS_KEY not set")
            r = await self.client.get(
                "https://maps.googleapis.com/maps/api/geocode/json",
                params={"address": a, "key": s.google_maps_key},
            )
            r.raise_for_status()
            js = r.json()
            if not js.get("results"):
                raise GeocodeError("No results")
            loc = js["results"][0]["geometry"]["location"]
            return float(loc["lat"]), float(loc["lng"])

        # Nominatim (no key); their usage policy wants a UA with contact details
        headers = {"User-Agent": f"SurplusShare/1.0 (+{s.admin_contact})"}
        r = await self.client.get(
            "https://nominatim.openstreetmap.org/search",
            params={"q": a, "format": "json", "limit": 1},
            headers=headers,
        )
        r.raise_for_status()
        js = r.json()
        if not js:
            raise GeocodeError("No results")
        return float(js[0]["lat"]), float(js[0]["lon"])


async def resolve_viewer_location(
    profile: Union[HotelProfile, NgoProfile],
    geocoder: Optional[Geocoder] = None,
) -> Optional[GeoPoint]:
    """The viewer's coordinates, or None when they cannot be determined.

    Uses the location stored on the profile, else geocodes the profile address.
    """
    if profile.location is not None:
        return profile.location
    if geocoder is None:
        return None
    try:
        lat, lng = await geocoder.geocode(profile.address)
    except GeocodeError as ex:
        log.warning("geolocate.failed", profile_id=profile.id, error=str(ex))
        return None
    return GeoPoint(latitude=lat, longitude=lng)
