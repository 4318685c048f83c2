# backend/app/config.py

from pathlib import Path
from zoneinfo import ZoneInfo

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

BASE_DIR = Path(__file__).resolve().parents[2]  # /photobooking


class GeocodeFallback(BaseModel):
    """Known-address coordinates used when the geocoder fails."""
    match: str
    latitude: float
    longitude: float


class Settings(BaseSettings):
    database_url: str = "sqlite:///./data/sqlite/photobooking.db"
    redis_url: str = "redis://localhost:6379/0"
    log_level: str = "INFO"

    # ===== Business rules =====
    business_timezone: str = "America/New_York"
    cutoff_hour: int = 17
    slot_step_minutes: int = 30
    max_range_days: int = 62
    default_range_days: int = 30
    traffic_aware_recalc: bool = True
    # "candidate" = slot start/end as routing basis, "adjacent" = neighbour event time
    adjacent_gap_basis: str = "candidate"

    # ===== Staff calendars (first entry is the primary photographer) =====
    staff_calendars: list[str] = Field(default_factory=list)
    google_service_account_file: str = ""

    # ===== Maps =====
    routes_api_key: str = ""
    office_address: str = "825 Parkway St Suite 8, Jupiter, FL 33477"
    office_latitude: float = 26.9342
    office_longitude: float = -80.0942
    geocode_fallbacks: list[GeocodeFallback] = Field(default_factory=list)
    travel_cache_backend: str = "memory"  # memory | redis
    travel_cache_ttl_seconds: int = 30 * 60

    # ===== Timeouts (seconds) =====
    calendar_timeout: float = 10.0
    maps_timeout: float = 8.0
    db_timeout: float = 5.0
    redis_socket_timeout: float = 2.0

    model_config = SettingsConfigDict(
        env_file=BASE_DIR / ".env",
        extra="ignore",
    )

    @property
    def resolved_database_url(self) -> str:
        url = self.database_url
        if url.startswith("sqlite:///./"):
            relative_path = url.replace("sqlite:///./", "")
            absolute_path = BASE_DIR / relative_path
            return f"sqlite:///{absolute_path}"
        return url

    @property
    def tz(self) -> ZoneInfo:
        return ZoneInfo(self.business_timezone)

    @property
    def primary_calendar(self) -> str | None:
        return self.staff_calendars[0] if self.staff_calendars else None


settings = Settings()
