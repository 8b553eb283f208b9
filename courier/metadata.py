"""
Shared SQLAlchemy metadata for Courier models.

Kept separate from database.py so models can import it without pulling in
the engine machinery.
"""

from sqlalchemy import MetaData

metadata = MetaData()
