from functools import lru_cache
from typing import List, Literal, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    app_name: str = "Surplus Share API"

    # in-memory store unless USE_MONGO=1
    use_mongo: bool = False
    mongo_uri: str = "mongodb://localhost:27017"
    mongo_db: str = "surplus"

    default_radius_km: float = 10.0

    # nominatim | opencage | google
    geocoder: Literal["nominatim", "opencage", "google"] = "nominatim"
    opencage_key: Optional[str] = None
    google_maps_key: Optional[str] = None
    geocode_timeout: float = 12.0
    admin_contact: str = "mailto:admin@example.com"

    log_level: str = "INFO"
    log_json: bool = False

    cors_origins: List[str] = ["*"]

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


@lru_cache
def get_settings() -> Settings:
    return Settings()
