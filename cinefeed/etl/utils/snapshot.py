"""Local JSON snapshots of every ingested collection.

Snapshots are a best-effort artifact: a failed write is logged and
never interrupts ingestion.
"""

import json
from pathlib import Path
from typing import Any

from cinefeed.etl.utils.logger import setup_logger


class SnapshotWriter:
    """Write and read back JSON snapshots of ingested payloads."""

    def __init__(self) -> None:
        self._logger = setup_logger("cinefeed.snapshot")

    def write_json(self, data: Any, path: Path) -> bool:
        """Serialize data to a JSON file.

        Args:
            data: JSON-serializable payload (datetimes are stringified).
            path: Target file path; parent directories are created.

        Returns:
            True if the file was written, False on failure.
        """
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            self._write(path, data)
        except (OSError, TypeError, ValueError) as e:
            self._logger.error(f"Snapshot write failed for {path}: {e}")
            return False

        self._logger.debug(f"Snapshot saved: {path.name}")
        return True

    def read_json(self, path: Path) -> Any | None:
        """Load a snapshot written by write_json.

        Args:
            path: Source file path.

        Returns:
            Deserialized data or None if missing or corrupted.
        """
        if not path.exists():
            return None

        try:
            with open(path, encoding="utf-8") as f:
                return json.load(f)
        except json.JSONDecodeError as e:
            self._logger.warning(f"Invalid snapshot file {path}: {e}")
            return None

    @staticmethod
    def _write(path: Path, data: Any) -> None:
        """Write through a temp file so readers never see half a snapshot."""
        tmp_path = path.with_suffix(path.suffix + ".tmp")
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, ensure_ascii=False, default=str)
        tmp_path.replace(path)
