"""TMDB API configuration settings.

Secondary source: REST API used to enrich showtimes with
posters, backdrops and extra images.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class TMDBSettings(BaseSettings):
    """TMDB API configuration.

    Attributes:
        api_key: TMDB API key (enrichment is skipped without it).
        base_url: TMDB API base URL.
        image_base_url: TMDB image CDN base URL.
        language: Language for API responses.
    """

    api_key: str = Field(default="", alias="TMDB_API_KEY")
    base_url: str = Field(
        default="https://api.themoviedb.org/3",
        alias="TMDB_BASE_URL",
    )
    image_base_url: str = Field(
        default="https://image.tmdb.org/t/p/w500",
        alias="TMDB_IMAGE_BASE_URL",
    )
    language: str = Field(default="en-US", alias="TMDB_LANGUAGE")

    # Rate limiting
    requests_per_period: int = Field(default=30, alias="TMDB_REQUESTS_PER_PERIOD")
    period_seconds: int = Field(default=10, alias="TMDB_PERIOD_SECONDS")
    min_request_delay: float = Field(default=0.25, alias="TMDB_MIN_REQUEST_DELAY")

    # Enrichment
    max_extra_images: int = Field(default=10, alias="TMDB_MAX_EXTRA_IMAGES")
    download_posters: bool = Field(default=False, alias="TMDB_DOWNLOAD_POSTERS")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @property
    def is_configured(self) -> bool:
        """Check if TMDB API key is configured."""
        return bool(self.api_key and self.api_key != "your_api_key_here")

    def image_url(self, path: str | None) -> str | None:
        """Build a full CDN URL from a TMDB image path."""
        if not path:
            return None
        return f"{self.image_base_url}{path}"
