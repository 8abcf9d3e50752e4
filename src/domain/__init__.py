"""Domain models for the price ingestor and the user service.

These are in-memory (Pydantic) models, kept independent from the SQLAlchemy
persistence models in ``db.models``.
"""

__all__ = [
    "prices",
    "users",
]
