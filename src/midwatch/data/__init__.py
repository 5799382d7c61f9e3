"""Observation persistence layer.

Provides SQLite database management, the typed observation store, and the
windowed query service.
"""

from midwatch.data.database import PriceDatabase
from midwatch.data.query import PriceQueryService
from midwatch.data.store import ObservationStore

__all__ = ["ObservationStore", "PriceDatabase", "PriceQueryService"]
