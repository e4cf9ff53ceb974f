"""Document storage backend: two JSON files held wholly in memory."""

from __future__ import annotations

import logging
import os
import tempfile
import threading
from collections.abc import Iterable
from contextlib import contextmanager
from pathlib import Path
from typing import Generator, TypeVar

from pydantic import BaseModel, ValidationError

from ..config import Settings
from ..errors import RecipeIngredientsNotFound, StoreIoError
from ..schemas import Groceries, GroceryItem, ShoppingList
from .base import Storage, require_name

logger = logging.getLogger(__name__)

DocumentT = TypeVar("DocumentT", bound=BaseModel)


# =============================================================================
# Document IO
# =============================================================================


def read_document(path: Path, model: type[DocumentT]) -> DocumentT | None:
    """Parse the JSON document at ``path``, or return None if there is none."""
    try:
        raw = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return None
    except OSError as e:
        raise StoreIoError(f"cannot read {path}: {e}") from e
    try:
        return model.model_validate_json(raw)
    except ValidationError as e:
        raise StoreIoError(f"invalid document {path}: {e}") from e


def _stage(path: Path, payload: str) -> str:
    """Write ``payload`` to a synced temporary file beside ``path``."""
    tmp_name = None
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with tempfile.NamedTemporaryFile(
            "w",
            encoding="utf-8",
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
        ) as tmp:
            tmp_name = tmp.name
            tmp.write(payload)
            tmp.flush()
            os.fsync(tmp.fileno())
    except OSError as e:
        if tmp_name is not None:
            _discard(tmp_name)
        raise StoreIoError(f"cannot write {path}: {e}") from e
    return tmp_name


def _discard(tmp_name: str) -> None:
    if os.path.exists(tmp_name):
        os.unlink(tmp_name)


def _previous_text(path: Path) -> str | None:
    try:
        return path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return None
    except OSError as e:
        raise StoreIoError(f"cannot read {path}: {e}") from e


def _restore(path: Path, text: str | None) -> None:
    if text is None:
        path.unlink(missing_ok=True)
        return
    tmp_name = _stage(path, text)
    try:
        os.replace(tmp_name, path)
    except OSError:
        _discard(tmp_name)
        raise


def write_documents(documents: list[tuple[Path, BaseModel]]) -> None:
    """Replace every path with its document, or leave all of them as they were.

    Each new content goes to a temporary file in the target's directory and
    is then renamed over the target, so a crash never leaves a truncated
    file. Every file is staged before the first rename. If a later rename
    fails, the targets already replaced get their previous content back.
    """
    previous = {path: _previous_text(path) for path, _ in documents}

    staged: list[tuple[Path, str]] = []
    try:
        for path, document in documents:
            staged.append((path, _stage(path, document.model_dump_json(indent=2))))
    except StoreIoError:
        for _, tmp_name in staged:
            _discard(tmp_name)
        raise

    replaced: list[Path] = []
    try:
        for path, tmp_name in staged:
            os.replace(tmp_name, path)
            replaced.append(path)
    except OSError as e:
        for _, tmp_name in staged:
            _discard(tmp_name)
        for done in replaced:
            try:
                _restore(done, previous[done])
            except (OSError, StoreIoError) as restore_error:
                logger.error(f"Could not restore {done}: {restore_error}")
        raise StoreIoError(f"cannot write {path}: {e}") from e


# =============================================================================
# Store
# =============================================================================


class JsonStore(Storage):
    """Storage over ``groceries.json`` and ``list.json``.

    Both documents are loaded once and rewritten whole on every change.
    Operations from threads of one process are serialized by the store's
    lock. Concurrent processes sharing the files are not coordinated: the
    last save wins.
    """

    def __init__(self, groceries_path: Path | str, list_path: Path | str):
        self.groceries_path = Path(groceries_path)
        self.list_path = Path(list_path)
        self._lock = threading.RLock()
        self._groceries = read_document(self.groceries_path, Groceries) or Groceries()
        self._list = read_document(self.list_path, ShoppingList) or ShoppingList()
        logger.info(f"Loaded {len(self._groceries.collection)} items from {self.groceries_path}")

    @classmethod
    def from_settings(cls, settings: Settings) -> "JsonStore":
        return cls(settings.groceries_path, settings.list_path)

    @contextmanager
    def _transaction(self) -> Generator[tuple[Groceries, ShoppingList], None, None]:
        """Yield working copies of both documents and commit them on success.

        The lock is held from the copy to the swap. In-memory state is only
        swapped once every changed document is on disk.
        """
        with self._lock:
            groceries = self._groceries.model_copy(deep=True)
            shopping_list = self._list.model_copy(deep=True)
            yield groceries, shopping_list
            changed = []
            if groceries != self._groceries:
                changed.append((self.groceries_path, groceries))
            if shopping_list != self._list:
                changed.append((self.list_path, shopping_list))
            if changed:
                write_documents(changed)
            self._groceries, self._list = groceries, shopping_list

    # --- Catalog writes ---

    def add_item(self, name: str, section: str | None = None) -> None:
        require_name(name)
        if section is not None:
            require_name(section, "section")
        with self._transaction() as (groceries, _):
            item = groceries.upsert(name)
            if section is not None:
                item.section = section
                if section not in groceries.sections:
                    groceries.sections.append(section)

    def add_recipe(self, recipe: str, ingredients: Iterable[str]) -> None:
        require_name(recipe, "recipe")
        names = sorted({require_name(ingredient) for ingredient in ingredients})
        with self._transaction() as (groceries, _):
            if recipe not in groceries.recipes:
                groceries.recipes.append(recipe)
            for name in names:
                groceries.upsert(name).add_recipe(recipe)

    def delete_recipe(self, recipe: str) -> None:
        with self._transaction() as (groceries, shopping_list):
            if recipe in groceries.recipes:
                groceries.recipes.remove(recipe)
            for item in groceries.collection:
                item.remove_recipe(recipe)
            if recipe in shopping_list.recipes:
                shopping_list.recipes.remove(recipe)

    # --- Working-set writes ---

    def add_checklist_item(self, name: str) -> None:
        require_name(name)
        with self._transaction() as (groceries, shopping_list):
            item = groceries.upsert(name)
            _mark(shopping_list.checklist, item)

    def delete_checklist_item(self, name: str) -> None:
        with self._transaction() as (_, shopping_list):
            shopping_list.checklist = [i for i in shopping_list.checklist if i.name != name]

    def clear_checklist(self) -> None:
        with self._transaction() as (_, shopping_list):
            shopping_list.checklist = []

    def add_list_item(self, name: str) -> None:
        require_name(name)
        with self._transaction() as (groceries, shopping_list):
            item = groceries.upsert(name)
            _mark(shopping_list.items, item)

    def delete_list_item(self, name: str) -> None:
        with self._transaction() as (_, shopping_list):
            shopping_list.items = [i for i in shopping_list.items if i.name != name]

    def add_list_recipe(self, recipe: str) -> None:
        with self._transaction() as (groceries, shopping_list):
            ingredients = groceries.ingredients(recipe)
            if not ingredients:
                raise RecipeIngredientsNotFound(recipe)
            if recipe not in groceries.recipes:
                groceries.recipes.append(recipe)
            if recipe not in shopping_list.recipes:
                shopping_list.recipes.append(recipe)
            for name in sorted(ingredients):
                _mark(shopping_list.items, groceries.upsert(name))

    def refresh_list(self) -> None:
        with self._transaction() as (_, shopping_list):
            shopping_list.items = []
            shopping_list.recipes = []

    # --- Reads ---

    def recipe_ingredients(self, recipe: str) -> set[str] | None:
        with self._lock:
            ingredients = self._groceries.ingredients(recipe)
            if not ingredients and recipe not in self._groceries.recipes:
                return None
            return ingredients

    def items(self) -> list[GroceryItem]:
        with self._lock:
            return [item.model_copy(deep=True) for item in self._groceries.collection]

    def recipes(self) -> list[str]:
        with self._lock:
            return self._groceries.all_recipes()

    def sections(self) -> list[str]:
        with self._lock:
            return list(self._groceries.sections)

    def checklist(self) -> list[GroceryItem]:
        with self._lock:
            return self._current(self._list.checklist)

    def list_items(self) -> list[GroceryItem]:
        with self._lock:
            return self._current(self._list.items)

    def list_recipes(self) -> list[str]:
        with self._lock:
            return list(self._list.recipes)

    def list(self) -> ShoppingList:
        with self._lock:
            return ShoppingList(
                checklist=self.checklist(),
                recipes=self.list_recipes(),
                items=self.list_items(),
            )

    def _current(self, marked: list[GroceryItem]) -> list[GroceryItem]:
        """Marked entries as they currently read in the catalog."""
        return [
            (self._groceries.get(entry.name) or entry).model_copy(deep=True)
            for entry in marked
        ]


def _mark(marked: list[GroceryItem], item: GroceryItem) -> None:
    if all(entry.name != item.name for entry in marked):
        marked.append(item.model_copy(deep=True))
