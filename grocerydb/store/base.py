"""The operation set every storage backend implements."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable

from ..errors import ConstraintViolation
from ..schemas import GroceryItem, ShoppingList


def require_name(name: str, kind: str = "item") -> str:
    """Reject blank names before they reach a backend."""
    if not isinstance(name, str) or not name.strip():
        raise ConstraintViolation(f"{kind} name must not be blank")
    return name


class Storage(ABC):
    """A grocery store backend.

    Every mutating operation is atomic: it is either fully applied or, when
    it raises, leaves no trace. Read operations return fresh value objects
    the caller may keep or modify.
    """

    # --- Catalog writes ---

    @abstractmethod
    def add_item(self, name: str, section: str | None = None) -> None:
        """Upsert an item; with ``section``, make that its one section."""

    @abstractmethod
    def add_recipe(self, recipe: str, ingredients: Iterable[str]) -> None:
        """Upsert a recipe and link every ingredient item to it."""

    @abstractmethod
    def delete_recipe(self, recipe: str) -> None:
        """Remove a recipe, its ingredient links and its list mark."""

    # --- Working-set writes ---

    @abstractmethod
    def add_checklist_item(self, name: str) -> None:
        ...

    @abstractmethod
    def delete_checklist_item(self, name: str) -> None:
        ...

    @abstractmethod
    def clear_checklist(self) -> None:
        ...

    @abstractmethod
    def add_list_item(self, name: str) -> None:
        ...

    @abstractmethod
    def delete_list_item(self, name: str) -> None:
        ...

    @abstractmethod
    def add_list_recipe(self, recipe: str) -> None:
        """Put a recipe and all of its ingredients on the list.

        Raises:
            RecipeIngredientsNotFound: If the recipe has no recorded ingredients.
        """

    @abstractmethod
    def refresh_list(self) -> None:
        """Clear list items and list recipes; the checklist and catalog stay."""

    # --- Reads ---

    @abstractmethod
    def recipe_ingredients(self, recipe: str) -> set[str] | None:
        """Ingredient names of ``recipe``, or None if there is no such recipe."""

    @abstractmethod
    def items(self) -> list[GroceryItem]:
        ...

    @abstractmethod
    def recipes(self) -> list[str]:
        ...

    @abstractmethod
    def sections(self) -> list[str]:
        """Known section names.

        A new document store starts with the default sections of a new
        groceries document. A new relational store starts with none and
        gains sections as items are filed under them or migrated in.
        """

    @abstractmethod
    def checklist(self) -> list[GroceryItem]:
        ...

    @abstractmethod
    def list_items(self) -> list[GroceryItem]:
        ...

    @abstractmethod
    def list_recipes(self) -> list[str]:
        ...

    @abstractmethod
    def list(self) -> ShoppingList:
        """Items, recipes and checklist of the current list."""

    # --- Lifecycle ---

    def check_health(self) -> bool:
        return True

    def close(self) -> None:
        pass

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
