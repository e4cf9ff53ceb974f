"""Relational storage backend on SQLAlchemy.

Every public operation runs in exactly one ``session_scope`` transaction.
Entities are created with insert-ignore statements and then looked up by
name, so "make sure this exists" is idempotent and never raises on
duplicates.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from contextlib import contextmanager
from typing import Generator

from sqlalchemy import func, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session

from ..config import Settings
from ..database import (
    check_database_health,
    create_db_engine,
    create_session_factory,
    dispose_engine,
    init_schema,
    session_scope,
)
from ..errors import RecipeIngredientsNotFound, StoreIoError
from ..models import (
    Base,
    ChecklistItem,
    Item,
    ItemRecipe,
    ItemSection,
    ListItem,
    ListRecipe,
    Recipe,
    Section,
)
from ..schemas import GroceryItem, ShoppingList
from .base import Storage, require_name

logger = logging.getLogger(__name__)

_INSERT_BY_DIALECT = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


# =============================================================================
# Statement primitives (shared with the migration engine)
# =============================================================================


def insert_ignore(db_session: Session, model: type[Base], **values) -> None:
    """INSERT a row, doing nothing if it collides with a unique key."""
    dialect = db_session.get_bind().dialect.name
    insert = _INSERT_BY_DIALECT.get(dialect)
    if insert is None:
        raise StoreIoError(f"unsupported database dialect: {dialect}")
    db_session.execute(insert(model.__table__).values(**values).on_conflict_do_nothing())


def get_or_insert_id(db_session: Session, model: type[Item | Recipe | Section], name: str) -> int:
    """Make sure a catalog row named ``name`` exists and return its id."""
    insert_ignore(db_session, model, name=name)
    return db_session.scalars(select(model.id).where(model.name == name)).one()


def find_id(db_session: Session, model: type[Item | Recipe | Section], name: str) -> int | None:
    return db_session.scalars(select(model.id).where(model.name == name)).one_or_none()


def link_item_recipe(db_session: Session, item_id: int, recipe_id: int) -> None:
    insert_ignore(db_session, ItemRecipe, item_id=item_id, recipe_id=recipe_id)


def link_item_section(db_session: Session, item_id: int, section_id: int) -> None:
    insert_ignore(db_session, ItemSection, item_id=item_id, section_id=section_id)


# =============================================================================
# Store
# =============================================================================


class SqlStore(Storage):
    """Storage over a relational database.

    The engine, and with it the connection pool, belongs to this object and
    is shared by everything holding it. It lives until ``close()``.
    """

    def __init__(self, engine: Engine):
        self.engine = engine
        self._session_factory = create_session_factory(engine)

    @classmethod
    def from_settings(cls, settings: Settings) -> "SqlStore":
        return cls(create_db_engine(settings))

    def init_schema(self) -> None:
        init_schema(self.engine)

    @contextmanager
    def transaction(self) -> Generator[Session, None, None]:
        """One scoped transaction, for callers that compose the primitives."""
        with session_scope(self._session_factory) as db_session:
            yield db_session

    def check_health(self) -> bool:
        return check_database_health(self.engine)

    def close(self) -> None:
        dispose_engine(self.engine)

    def row_counts(self) -> dict[str, int]:
        """Number of rows in every table, keyed by table name."""
        with self.transaction() as db_session:
            return {
                table.name: db_session.execute(
                    select(func.count()).select_from(table)
                ).scalar_one()
                for table in Base.metadata.sorted_tables
            }

    # --- Catalog writes ---

    def add_item(self, name: str, section: str | None = None) -> None:
        require_name(name)
        if section is not None:
            require_name(section, "section")
        with self.transaction() as db_session:
            item_id = get_or_insert_id(db_session, Item, name)
            if section is not None:
                section_id = get_or_insert_id(db_session, Section, section)
                db_session.query(ItemSection).filter(
                    ItemSection.item_id == item_id,
                    ItemSection.section_id != section_id,
                ).delete(synchronize_session=False)
                link_item_section(db_session, item_id, section_id)
        logger.debug(f"Added item '{name}' (section={section})")

    def add_recipe(self, recipe: str, ingredients: Iterable[str]) -> None:
        require_name(recipe, "recipe")
        names = sorted({require_name(ingredient) for ingredient in ingredients})
        with self.transaction() as db_session:
            recipe_id = get_or_insert_id(db_session, Recipe, recipe)
            item_ids = [get_or_insert_id(db_session, Item, name) for name in names]
            for item_id in item_ids:
                link_item_recipe(db_session, item_id, recipe_id)
        logger.debug(f"Added recipe '{recipe}' with {len(names)} ingredients")

    def delete_recipe(self, recipe: str) -> None:
        with self.transaction() as db_session:
            recipe_id = find_id(db_session, Recipe, recipe)
            if recipe_id is None:
                return
            db_session.query(ItemRecipe).filter(
                ItemRecipe.recipe_id == recipe_id
            ).delete(synchronize_session=False)
            db_session.query(ListRecipe).filter(
                ListRecipe.id == recipe_id
            ).delete(synchronize_session=False)
            db_session.query(Recipe).filter(
                Recipe.id == recipe_id
            ).delete(synchronize_session=False)
        logger.debug(f"Deleted recipe '{recipe}'")

    # --- Working-set writes ---

    def add_checklist_item(self, name: str) -> None:
        require_name(name)
        with self.transaction() as db_session:
            item_id = get_or_insert_id(db_session, Item, name)
            insert_ignore(db_session, ChecklistItem, item_id=item_id)

    def delete_checklist_item(self, name: str) -> None:
        with self.transaction() as db_session:
            db_session.query(ChecklistItem).filter(
                ChecklistItem.item_id.in_(select(Item.id).where(Item.name == name))
            ).delete(synchronize_session=False)

    def clear_checklist(self) -> None:
        with self.transaction() as db_session:
            db_session.query(ChecklistItem).delete(synchronize_session=False)

    def add_list_item(self, name: str) -> None:
        require_name(name)
        with self.transaction() as db_session:
            item_id = get_or_insert_id(db_session, Item, name)
            insert_ignore(db_session, ListItem, item_id=item_id)

    def delete_list_item(self, name: str) -> None:
        with self.transaction() as db_session:
            db_session.query(ListItem).filter(
                ListItem.item_id.in_(select(Item.id).where(Item.name == name))
            ).delete(synchronize_session=False)

    def add_list_recipe(self, recipe: str) -> None:
        with self.transaction() as db_session:
            ingredients = self._recipe_ingredients(db_session, recipe)
            if not ingredients:
                raise RecipeIngredientsNotFound(recipe)

            recipe_id = get_or_insert_id(db_session, Recipe, recipe)
            insert_ignore(db_session, ListRecipe, id=recipe_id)
            for name in sorted(ingredients):
                item_id = get_or_insert_id(db_session, Item, name)
                insert_ignore(db_session, ListItem, item_id=item_id)
                link_item_recipe(db_session, item_id, recipe_id)
        logger.debug(f"Added recipe '{recipe}' to list ({len(ingredients)} items)")

    def refresh_list(self) -> None:
        with self.transaction() as db_session:
            db_session.query(ListItem).delete(synchronize_session=False)
            db_session.query(ListRecipe).delete(synchronize_session=False)
        logger.debug("Refreshed list")

    # --- Reads ---

    def recipe_ingredients(self, recipe: str) -> set[str] | None:
        with self.transaction() as db_session:
            return self._recipe_ingredients(db_session, recipe)

    def items(self) -> list[GroceryItem]:
        with self.transaction() as db_session:
            return self._load_items(db_session, db_session.query(Item))

    def recipes(self) -> list[str]:
        with self.transaction() as db_session:
            return list(db_session.scalars(select(Recipe.name).order_by(Recipe.id)))

    def sections(self) -> list[str]:
        with self.transaction() as db_session:
            return list(db_session.scalars(select(Section.name).order_by(Section.id)))

    def checklist(self) -> list[GroceryItem]:
        with self.transaction() as db_session:
            return self._checklist(db_session)

    def list_items(self) -> list[GroceryItem]:
        with self.transaction() as db_session:
            return self._list_items(db_session)

    def list_recipes(self) -> list[str]:
        with self.transaction() as db_session:
            return self._list_recipes(db_session)

    def list(self) -> ShoppingList:
        with self.transaction() as db_session:
            return ShoppingList(
                checklist=self._checklist(db_session),
                recipes=self._list_recipes(db_session),
                items=self._list_items(db_session),
            )

    # --- Helpers ---

    def _recipe_ingredients(self, db_session: Session, recipe: str) -> set[str] | None:
        recipe_id = find_id(db_session, Recipe, recipe)
        if recipe_id is None:
            return None
        return set(
            db_session.scalars(
                select(Item.name)
                .join(ItemRecipe, ItemRecipe.item_id == Item.id)
                .where(ItemRecipe.recipe_id == recipe_id)
            )
        )

    def _checklist(self, db_session: Session) -> list[GroceryItem]:
        query = db_session.query(Item).join(ChecklistItem, ChecklistItem.item_id == Item.id)
        return self._load_items(db_session, query)

    def _list_items(self, db_session: Session) -> list[GroceryItem]:
        query = db_session.query(Item).join(ListItem, ListItem.item_id == Item.id)
        return self._load_items(db_session, query)

    def _list_recipes(self, db_session: Session) -> list[str]:
        return list(
            db_session.scalars(
                select(Recipe.name)
                .join(ListRecipe, ListRecipe.id == Recipe.id)
                .order_by(Recipe.id)
            )
        )

    def _load_items(self, db_session: Session, query) -> list[GroceryItem]:
        """Run an ``Item`` query and attach section and recipe names."""
        rows = query.order_by(Item.id).all()
        if not rows:
            return []
        # Same source query as a subquery, so no parameter is bound per item
        ids = select(query.with_entities(Item.id).subquery().c.id)

        sections: dict[int, str] = {}
        for item_id, section in (
            db_session.query(ItemSection.item_id, Section.name)
            .join(Section, Section.id == ItemSection.section_id)
            .filter(ItemSection.item_id.in_(ids))
            .order_by(Section.id)
        ):
            sections.setdefault(item_id, section)

        recipes: dict[int, list[str]] = {}
        for item_id, recipe in (
            db_session.query(ItemRecipe.item_id, Recipe.name)
            .join(Recipe, Recipe.id == ItemRecipe.recipe_id)
            .filter(ItemRecipe.item_id.in_(ids))
            .order_by(Recipe.id)
        ):
            recipes.setdefault(item_id, []).append(recipe)

        return [
            GroceryItem(
                name=row.name,
                section=sections.get(row.id),
                recipes=recipes.get(row.id),
            )
            for row in rows
        ]
