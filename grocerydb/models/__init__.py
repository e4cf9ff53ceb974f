"""Database models for the grocery database."""

from .base import Base
from .item import Item, Section, ItemSection
from .recipe import Recipe, ItemRecipe
from .shopping_list import ListItem, ListRecipe, ChecklistItem

__all__ = [
    # Base
    "Base",
    # Catalog
    "Item",
    "Recipe",
    "Section",
    # Junctions
    "ItemRecipe",
    "ItemSection",
    # Working sets
    "ListItem",
    "ListRecipe",
    "ChecklistItem",
]
