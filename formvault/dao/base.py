"""Base DAO abstract class."""

from abc import ABC
from typing import Generic, TypeVar

from formvault.database import Database

# Type variable for Pydantic domain models
T = TypeVar("T")


class BaseDAO(ABC, Generic[T]):
    """Abstract base class for Data Access Objects.

    DAOs handle all database operations and MUST return Pydantic domain models,
    never SQLAlchemy ORM objects.
    """

    def __init__(self, database: Database):
        """Initialize DAO with database connection.

        Args:
            database: Database instance for session management.
        """
        self._db = database

    @property
    def db(self) -> Database:
        """Get the database instance."""
        return self._db
