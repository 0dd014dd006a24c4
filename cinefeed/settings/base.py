"""Base configuration settings.

Filesystem locations, logging and HTTP defaults shared by every
provider client.
"""

from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_PROJECT_ROOT = Path(__file__).parent.parent.parent


def _resolve(path: str) -> Path:
    """Absolute paths as given, relative ones under the project root."""
    candidate = Path(path).expanduser()
    return candidate if candidate.is_absolute() else _PROJECT_ROOT / candidate


# =============================================================================
# PATH SETTINGS
# =============================================================================


class PathsSettings(BaseSettings):
    """Where snapshots and posters are written.

    Attributes:
        data_root: Snapshot directory override (CINEFEED_DATA_DIR).
    """

    data_root: str = Field(default="data", alias="CINEFEED_DATA_DIR")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @property
    def data_dir(self) -> Path:
        """JSON snapshots written after each ingestion step."""
        return _resolve(self.data_root)

    @property
    def posters_dir(self) -> Path:
        """Downloaded poster images, one '<imdbid>.jpg' per film."""
        return self.data_dir / "posters"

    def snapshot_path(self, name: str) -> Path:
        """Snapshot file of a collection: '<data_dir>/<name>.json'."""
        return self.data_dir / f"{name}.json"

    def ensure_directories(self) -> None:
        """Create the snapshot and poster directories."""
        self.posters_dir.mkdir(parents=True, exist_ok=True)


# =============================================================================
# LOGGING SETTINGS
# =============================================================================


class LoggingSettings(BaseSettings):
    """Logging configuration.

    Attributes:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        log_dir: Log files directory, relative to the project root
            unless absolute.
    """

    level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_dir: str = Field(default="logs", alias="LOG_DIR")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @field_validator("level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Normalize to upper case and reject unknown levels."""
        v_upper = v.upper()
        if v_upper not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Invalid LOG_LEVEL '{v}'")
        return v_upper

    @property
    def directory(self) -> Path:
        """Resolved log directory."""
        return _resolve(self.log_dir)


# =============================================================================
# ETL SETTINGS
# =============================================================================


class ETLSettings(BaseSettings):
    """HTTP defaults for provider requests.

    Attributes:
        fetch_timeout: Timeout applied to every provider request (seconds).
        user_agent: HTTP User-Agent sent to providers.
    """

    fetch_timeout: float = Field(default=30.0, alias="FETCH_TIMEOUT")
    user_agent: str = Field(default="cinefeed-ETL/1.0", alias="USER_AGENT")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )
