"""Showtimes provider endpoints and payload decoding.

Builds request URLs for the primary provider and turns raw
response bodies into item lists, separating "nothing to ingest"
from malformed payloads.
"""

import json
from typing import Any
from urllib.parse import urlencode

from cinefeed.exceptions import ParseError
from cinefeed.settings import ShowtimesSettings, settings


class ShowtimesEndpoints:
    """URL builder for the showtimes provider.

    Attributes:
        cfg: Provider settings.
    """

    def __init__(self, cfg: ShowtimesSettings | None = None) -> None:
        self.cfg = cfg or settings.showtimes

    def showtimes(self, day: int) -> str:
        """Showtimes for a day offset (0 = today)."""
        return self._build(f"{self.cfg.showtimes_path}/", key=self.cfg.api_key, dagur=day)

    def upcoming(self) -> str:
        """Upcoming releases, bounded to upcoming_count items."""
        return self._build(
            f"{self.cfg.upcoming_path}/",
            count=self.cfg.upcoming_count,
            key=self.cfg.api_key,
        )

    def genres(self) -> str:
        """Genre reference list."""
        return self._build(self.cfg.genres_path, key=self.cfg.api_key)

    def theaters(self) -> str:
        """Theater reference list."""
        return self._build(self.cfg.theaters_path, key=self.cfg.api_key)

    def _build(self, path: str, **params: Any) -> str:
        base = self.cfg.base_url.rstrip("/")
        return f"{base}{path}?{urlencode(params)}"


def decode_items(payload: str | bytes | None, url: str | None = None) -> list[dict[str, Any]] | None:
    """Decode a provider payload into a list of item dicts.

    Args:
        payload: Raw response body.
        url: Source URL, attached to ParseError for context.

    Returns:
        List of items, or None when the payload carries nothing
        (blank body, JSON null, empty list or empty object).

    Raises:
        ParseError: If the body is not valid JSON or not a list of objects.
    """
    if payload is None:
        return None
    if isinstance(payload, bytes):
        payload = payload.decode("utf-8", errors="replace")
    if not payload.strip():
        return None

    try:
        data = json.loads(payload)
    except json.JSONDecodeError as e:
        raise ParseError(f"Invalid JSON payload: {e}", url=url) from e

    if not data:
        return None
    if not isinstance(data, list):
        raise ParseError(f"Expected a JSON list, got {type(data).__name__}", url=url)
    if not all(isinstance(item, dict) for item in data):
        raise ParseError("Expected a list of JSON objects", url=url)

    return data
