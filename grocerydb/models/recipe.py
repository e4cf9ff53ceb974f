"""Recipe table and the item-recipe junction."""

from sqlalchemy import Integer, String, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, NamedMixin


class Recipe(NamedMixin, Base):
    """A named dish. Its ingredients live in ``items_recipes``."""

    __tablename__ = "recipes"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)


class ItemRecipe(Base):
    """Junction table linking ingredient items to recipes."""

    __tablename__ = "items_recipes"

    item_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("items.id"), primary_key=True
    )
    recipe_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("recipes.id"), primary_key=True
    )

    def __repr__(self) -> str:
        return f"<ItemRecipe(item_id={self.item_id}, recipe_id={self.recipe_id})>"
