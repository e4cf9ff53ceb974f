"""One-way migration of the JSON document store into the relational store.

The engine is idempotent by construction: every row goes in through
insert-ignore statements, so running it again over an already migrated
database changes nothing.
"""

import logging
from dataclasses import dataclass
from pathlib import Path

from sqlalchemy.exc import MultipleResultsFound, NoResultFound
from sqlalchemy.orm import Session

from .errors import MigrationAssertionFailure, NotFound
from .models import Item, Recipe, Section
from .schemas import Groceries, ShoppingList
from .store.json_store import read_document
from .store.sql import (
    SqlStore,
    get_or_insert_id,
    insert_ignore,
    link_item_recipe,
    link_item_section,
)

logger = logging.getLogger(__name__)


@dataclass
class MigrationReport:
    """What one migration run processed (not what it newly inserted)."""

    sections: int = 0
    recipes: int = 0
    items: int = 0
    item_recipes: int = 0
    item_sections: int = 0


def load_groceries(path: Path) -> Groceries:
    groceries = read_document(Path(path), Groceries)
    if groceries is None:
        raise NotFound(f"groceries document not found: {path}")
    return groceries


def load_list(path: Path) -> ShoppingList:
    """The list document, or an empty list if none was ever saved."""
    return read_document(Path(path), ShoppingList) or ShoppingList()


def collect_sections(groceries: Groceries) -> set[str]:
    sections = set(groceries.sections)
    for item in groceries.collection:
        if item.section:
            sections.add(item.section)
    return sections


def collect_recipes(groceries: Groceries, shopping_list: ShoppingList) -> set[str]:
    recipes = set(groceries.recipes)
    for item in groceries.collection:
        recipes.update(item.recipes or [])
    recipes.update(shopping_list.recipes)
    return recipes


def _unique_id(db_session: Session, model, name: str) -> int:
    try:
        return get_or_insert_id(db_session, model, name)
    except (NoResultFound, MultipleResultsFound) as e:
        raise MigrationAssertionFailure(
            f"expected exactly one {model.__tablename__} row named '{name}'"
        ) from e


def migrate_groceries(
    db_session: Session, groceries: Groceries, shopping_list: ShoppingList
) -> MigrationReport:
    """Replay both documents into the relational tables on ``db_session``."""
    report = MigrationReport()

    for name in sorted(collect_sections(groceries)):
        insert_ignore(db_session, Section, name=name)
        report.sections += 1

    for name in sorted(collect_recipes(groceries, shopping_list)):
        insert_ignore(db_session, Recipe, name=name)
        report.recipes += 1

    for item in groceries.collection:
        item_id = _unique_id(db_session, Item, item.name)
        report.items += 1

        for recipe in item.recipes or []:
            recipe_id = _unique_id(db_session, Recipe, recipe)
            link_item_recipe(db_session, item_id, recipe_id)
            report.item_recipes += 1

        if item.section:
            section_id = _unique_id(db_session, Section, item.section)
            link_item_section(db_session, item_id, section_id)
            report.item_sections += 1

    return report


def migrate_json_store_to_sql(
    groceries_path: Path, list_path: Path, store: SqlStore
) -> MigrationReport:
    """Migrate the documents at the given paths into ``store`` in one transaction."""
    groceries = load_groceries(groceries_path)
    shopping_list = load_list(list_path)
    logger.info(
        f"Migrating {len(groceries.collection)} items from {groceries_path} to SQL store"
    )

    with store.transaction() as db_session:
        report = migrate_groceries(db_session, groceries, shopping_list)

    logger.info(f"Migration finished: {report}")
    return report
