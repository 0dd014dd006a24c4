"""ETL utilities package: logging, snapshots and key normalization."""

from cinefeed.etl.utils.logger import setup_logger
from cinefeed.etl.utils.normalize import clean_property_names
from cinefeed.etl.utils.snapshot import SnapshotWriter

__all__ = ["SnapshotWriter", "clean_property_names", "setup_logger"]
