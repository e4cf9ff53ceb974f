"""Document and value types shared by both storage backends.

``Groceries`` and ``ShoppingList`` are the on-disk shape of ``groceries.json``
and ``list.json``. ``GroceryItem`` and ``ShoppingList`` are also what the read
operations of every backend return.
"""

from __future__ import annotations

from pydantic import BaseModel, Field


# Sections a brand new groceries document starts with
DEFAULT_SECTIONS = ("fresh", "pantry", "dairy", "protein", "freezer")


class GroceryItem(BaseModel):
    name: str = Field(min_length=1)
    section: str | None = None
    recipes: list[str] | None = None

    def add_recipe(self, recipe: str) -> None:
        if self.recipes is None:
            self.recipes = []
        if recipe not in self.recipes:
            self.recipes.append(recipe)

    def remove_recipe(self, recipe: str) -> None:
        if self.recipes and recipe in self.recipes:
            self.recipes.remove(recipe)
            if not self.recipes:
                self.recipes = None


class Groceries(BaseModel):
    """The item catalog document."""

    collection: list[GroceryItem] = Field(default_factory=list)
    sections: list[str] = Field(default_factory=lambda: list(DEFAULT_SECTIONS))
    recipes: list[str] = Field(default_factory=list)

    def get(self, name: str) -> GroceryItem | None:
        for item in self.collection:
            if item.name == name:
                return item
        return None

    def upsert(self, name: str) -> GroceryItem:
        """Return the catalog entry for ``name``, creating it if absent."""
        item = self.get(name)
        if item is None:
            item = GroceryItem(name=name)
            self.collection.append(item)
        return item

    def all_recipes(self) -> list[str]:
        """Recipe list plus recipes that are only referenced by items."""
        recipes = list(self.recipes)
        for item in self.collection:
            for recipe in item.recipes or []:
                if recipe not in recipes:
                    recipes.append(recipe)
        return recipes

    def ingredients(self, recipe: str) -> set[str]:
        return {
            item.name
            for item in self.collection
            if item.recipes and recipe in item.recipes
        }


class ShoppingList(BaseModel):
    """The current list document: list items, list recipes and the checklist."""

    checklist: list[GroceryItem] = Field(default_factory=list)
    recipes: list[str] = Field(default_factory=list)
    items: list[GroceryItem] = Field(default_factory=list)
