# backend/metrics_seed/db/base.py

"""
Single source of truth for the SQLAlchemy Declarative Base.

IMPORTANT:
- This file must NOT import metrics_seed.models.
  The models module registers its tables on Base.metadata, not the other way round.
"""

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Base class whose metadata holds every table the seeder manages."""
    pass
