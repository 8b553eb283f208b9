"""
Shared SQLAlchemy DeclarativeBase for all models.

All models MUST use this shared Base class so that metadata.create_all()
sees every table.
"""

from sqlalchemy.orm import DeclarativeBase

from ..metadata import metadata


class Base(DeclarativeBase):
    """Shared declarative base for all Courier models."""

    metadata = metadata
