"""Working-set tables: the shopping list and the checklist."""

from sqlalchemy import Integer, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base


class ListItem(Base):
    """An item marked on the shopping list."""

    __tablename__ = "list"

    item_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("items.id"), primary_key=True
    )

    def __repr__(self) -> str:
        return f"<ListItem(item_id={self.item_id})>"


class ListRecipe(Base):
    """A recipe marked on the shopping list."""

    __tablename__ = "list_recipes"

    id: Mapped[int] = mapped_column(
        Integer, ForeignKey("recipes.id"), primary_key=True
    )

    def __repr__(self) -> str:
        return f"<ListRecipe(id={self.id})>"


class ChecklistItem(Base):
    """An item to verify or cross off, independent of the list."""

    __tablename__ = "checklist"

    item_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("items.id"), primary_key=True
    )

    def __repr__(self) -> str:
        return f"<ChecklistItem(item_id={self.item_id})>"
