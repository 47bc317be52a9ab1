import secrets
from pathlib import Path
from zoneinfo import ZoneInfo

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Static GTFS feed (zip archive) and realtime trip updates (JSON)
    GTFS_STATIC_URL: str = ""  # Required via .env
    GTFS_RT_URL: str = "https://gtfs.bus-tracker.fr/gtfs-rt/tcar/trip-updates.json"

    # Line served by this process
    TARGET_ROUTE_ID: str = "TCAR:90"

    # Snapshot refresh
    REFRESH_ENABLED: bool = True
    REFRESH_INTERVAL_HOURS: float = 24
    REFRESH_TIMEOUT_SECONDS: int = 600
    HTTP_TIMEOUT_SECONDS: float = 120.0
    GTFS_WORK_DIR: Path = Path("gtfs_data")

    # Arrival projection
    TIMEZONE: str = "Europe/Paris"
    ARRIVALS_LIMIT: int = 5

    # Environment
    ENVIRONMENT: str = "development"
    DEBUG: bool = False  # Default to False for security
    LOG_LEVEL: str = "INFO"

    # Admin token for /admin endpoints
    ADMIN_TOKEN: str = ""

    @property
    def tz(self) -> ZoneInfo:
        return ZoneInfo(self.TIMEZONE)

    @property
    def refresh_interval_seconds(self) -> int:
        return int(self.REFRESH_INTERVAL_HOURS * 3600)

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT == "production"

    def validate_production_settings(self) -> None:
        """Validate critical settings for production environment.

        Raises ValueError if production settings are invalid.
        """
        errors = []

        if self.is_production:
            if not self.ADMIN_TOKEN or len(self.ADMIN_TOKEN) < 32:
                errors.append(
                    "ADMIN_TOKEN must be set to a secure value (min 32 chars) in production"
                )

            if not self.GTFS_STATIC_URL:
                errors.append("GTFS_STATIC_URL must be set in production")

            if self.DEBUG:
                errors.append("DEBUG must be False in production")

            if self.REFRESH_INTERVAL_HOURS <= 0:
                errors.append("REFRESH_INTERVAL_HOURS must be positive")

        if errors:
            raise ValueError(
                "Production configuration errors:\n" + "\n".join(f"  - {e}" for e in errors)
            )

    def validate_development_settings(self) -> None:
        """Set sensible defaults for development if not configured."""
        if not self.ADMIN_TOKEN:
            self.ADMIN_TOKEN = secrets.token_urlsafe(32)
            print(f"WARNING: Using auto-generated ADMIN_TOKEN for development: {self.ADMIN_TOKEN}")

        if not self.GTFS_STATIC_URL:
            print("WARNING: GTFS_STATIC_URL is not set, the schedule will stay unloaded")

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


# Create settings instance
settings = Settings()

# Validate based on environment
if settings.is_production:
    settings.validate_production_settings()
else:
    settings.validate_development_settings()
