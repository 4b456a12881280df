"""
Base model class that provides common fields for all database entities.
"""

from datetime import datetime, timezone
from sqlalchemy import Column, String, DateTime
from sqlalchemy.orm import declarative_base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# Create the base class for all our models
Base = declarative_base()

class BaseModel(Base):
    """
    Abstract base model that provides common fields for all entities.

    Attributes:
        id: Primary key (uuid string assigned by the domain layer)
        created_at: Timestamp when the record was created
        updated_at: Timestamp when the record was last updated
    """
    __abstract__ = True

    id = Column(String(36), primary_key=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False, index=True)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False)

    # String representation for debugging purposes
    def __repr__(self) -> str:
        cls = self.__class__.__name__
        return f"<{cls}(id={getattr(self, 'id', None)})>"
