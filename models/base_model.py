#!/usr/bin/env python3
"""
Shared SQLAlchemy base and mixins for the lodge members API.

Notes:
- Every timestamp in the database is naive UTC (see utcnow()).
- Token tables are keyed by the SHA-256 hex digest of the raw value, so they
  declare their own primary keys instead of inheriting one here.
- Persistence goes through DBStorage and the stores; models do not save themselves.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Column, DateTime
from sqlalchemy.orm import declarative_base

# Declarative base for all models
Base = declarative_base()


def utcnow() -> datetime:
    """Current time as naive UTC, the representation stored in every column."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class BaseModel:
    """
    Base mixin for all persistent models.

    - created_at defaults to the insert time
    - kwargs constructor that ignores a stray __class__ key
    """

    created_at = Column(DateTime, default=utcnow, nullable=False)

    def __init__(self, *args, **kwargs):
        for key, value in kwargs.items():
            if key != "__class__":
                setattr(self, key, value)

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}>"
