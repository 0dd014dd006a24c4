"""Showtimes ingestion: extraction, aggregation and orchestration.

Submodules are imported explicitly (``cinefeed.etl.pipeline``,
``cinefeed.etl.aggregation``...) so that the database layer can use
``cinefeed.etl.utils`` without loading the whole pipeline.
"""
