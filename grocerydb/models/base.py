"""SQLAlchemy base and helper utilities."""

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


class NamedMixin:
    """Marker for catalog tables identified by a unique ``name`` column."""

    def __repr__(self) -> str:
        return f"<{type(self).__name__}(id={self.id}, name='{self.name}')>"
