"""cinefeed: cinema showtimes ingestion and API usage analytics."""

__version__ = "0.1.0"
