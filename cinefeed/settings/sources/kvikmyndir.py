"""Showtimes provider configuration settings.

Primary source: REST API serving daily showtimes, upcoming
releases, genres and theaters.
"""

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ShowtimesSettings(BaseSettings):
    """Showtimes provider configuration.

    Attributes:
        base_url: Provider API base URL.
        api_key: Provider API key (sent as ``key`` query parameter).
        max_days: Last day offset walked by the orchestrator.
        step_delay: Fixed pause between provider steps (seconds).
        upcoming_count: Number of upcoming releases requested.
    """

    base_url: str = Field(
        default="https://api.kvikmyndir.is",
        alias="SHOWTIMES_BASE_URL",
    )
    api_key: str = Field(default="", alias="SHOWTIMES_API_KEY")

    # Endpoints
    showtimes_path: str = Field(default="/showtimes/date", alias="SHOWTIMES_PATH")
    upcoming_path: str = Field(default="/upcoming", alias="SHOWTIMES_UPCOMING_PATH")
    genres_path: str = Field(default="/genres", alias="SHOWTIMES_GENRES_PATH")
    theaters_path: str = Field(default="/theaters", alias="SHOWTIMES_THEATERS_PATH")

    # Day walk
    max_days: int = Field(default=4, alias="SHOWTIMES_MAX_DAYS")
    step_delay: float = Field(default=10.0, alias="SHOWTIMES_STEP_DELAY")
    upcoming_count: int = Field(default=50, alias="SHOWTIMES_UPCOMING_COUNT")

    # Collections
    upcoming_collection: str = Field(default="upcoming", alias="SHOWTIMES_UPCOMING_COLLECTION")
    extra_images_collection: str = Field(
        default="extraimages",
        alias="SHOWTIMES_EXTRA_IMAGES_COLLECTION",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @property
    def is_configured(self) -> bool:
        """Check if the provider API key is configured."""
        return bool(self.api_key)

    @field_validator("max_days")
    @classmethod
    def validate_max_days(cls, v: int) -> int:
        """Provider only serves a handful of days ahead."""
        if v < 0 or v > 4:
            raise ValueError("SHOWTIMES_MAX_DAYS must be between 0 and 4")
        return v

    @field_validator("step_delay")
    @classmethod
    def validate_step_delay(cls, v: float) -> float:
        """Reject negative delays."""
        if v < 0:
            raise ValueError("SHOWTIMES_STEP_DELAY cannot be negative")
        return v

    @staticmethod
    def day_collection(day: int) -> str:
        """Collection holding showtimes for a day offset."""
        return f"movies{day}"
