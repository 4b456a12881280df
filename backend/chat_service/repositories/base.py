"""
Base repository class that provides a consistent interface for all data access operations.
"""

from contextlib import contextmanager
from typing import TypeVar, Generic, Type, Optional, Generator, Callable
from sqlalchemy.orm import Session
import logging

from ..database import SessionLocal, get_db_context
from ..models.base import BaseModel as DBBaseModel

# Type variable for generic repository
T = TypeVar('T', bound=DBBaseModel)

logger = logging.getLogger(__name__)

class BaseRepository(Generic[T]):
    """
    Base repository with common lookups.

    Repositories own their unit of work: each public call opens a session from
    `session_factory`, commits on success and rolls back on error, so a caller
    never holds a database session across calls.
    """

    def __init__(self, model: Type[T], session_factory: Optional[Callable[[], Session]] = None):
        """Initialize repository with a specific model and session factory."""
        self.model = model
        self.session_factory = session_factory or SessionLocal

    @contextmanager
    def _session(self) -> Generator[Session, None, None]:
        """One transaction per repository call."""
        with get_db_context(self.session_factory) as db:
            yield db

    def get(self, db: Session, id: str) -> Optional[T]:
        """Get a single record by ID."""
        try:
            return db.query(self.model).filter(self.model.id == id).first()
        except Exception as e:
            logger.error(f"Error getting {self.model.__name__} with id {id}: {e}")
            raise
