"""API configuration settings.

FastAPI settings for the reporting surface.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class APISettings(BaseSettings):
    """FastAPI configuration.

    Attributes:
        host: API host address.
        port: API port.
        reload: Enable auto-reload in development.
        recent_events_limit: Events shown in the analytics dashboard.
    """

    host: str = Field(default="0.0.0.0", alias="API_HOST")
    port: int = Field(default=8000, alias="API_PORT")
    reload: bool = Field(default=False, alias="API_RELOAD")
    title: str = Field(default="cinefeed API", alias="API_TITLE")
    version: str = Field(default="1.0.0", alias="API_VERSION")
    recent_events_limit: int = Field(default=50, alias="API_RECENT_EVENTS_LIMIT")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )
