"""Reporting API (FastAPI)."""
