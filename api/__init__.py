"""
Social Sentiment Graph API.

FastAPI backend exposing entity seeding, sentiment aggregation,
post ingestion and keyword graph endpoints.
"""

from .main import app

__all__ = ["app"]
