import pytest
from sqlalchemy.exc import MultipleResultsFound

from grocerydb import migrate
from grocerydb.errors import MigrationAssertionFailure, NotFound
from grocerydb.migrate import (
    MigrationReport,
    collect_recipes,
    collect_sections,
    load_groceries,
    load_list,
    migrate_json_store_to_sql,
)


def test_collect_names(documents):
    groceries_path, list_path = documents
    groceries = load_groceries(groceries_path)
    shopping_list = load_list(list_path)

    assert collect_sections(groceries) == {"fresh", "pantry", "dairy", "protein", "freezer"}
    assert collect_recipes(groceries, shopping_list) == {"soup", "stew", "pancakes", "tacos"}


def test_migration_report(documents, sql_store):
    report = migrate_json_store_to_sql(*documents, sql_store)

    assert report == MigrationReport(
        sections=5, recipes=4, items=5, item_recipes=4, item_sections=4
    )


def test_migration_rows(documents, sql_store):
    migrate_json_store_to_sql(*documents, sql_store)

    assert sql_store.row_counts() == {
        "items": 5,
        "recipes": 4,
        "sections": 5,
        "items_recipes": 4,
        "items_sections": 4,
        "list": 0,
        "list_recipes": 0,
        "checklist": 0,
    }


def test_migration_is_idempotent(documents, sql_store):
    migrate_json_store_to_sql(*documents, sql_store)
    once = sql_store.row_counts()

    migrate_json_store_to_sql(*documents, sql_store)

    assert sql_store.row_counts() == once


def test_migrated_data_reads_back(documents, sql_store):
    migrate_json_store_to_sql(*documents, sql_store)

    assert sql_store.recipe_ingredients("soup") == {"carrots", "onion"}
    assert sql_store.recipe_ingredients("stew") == {"carrots", "beef"}
    assert sql_store.recipe_ingredients("pancakes") == set()
    items = {item.name: item for item in sql_store.items()}
    assert items["carrots"].section == "fresh"
    assert items["carrots"].recipes == ["soup", "stew"]
    assert items["rice"].section is None
    assert items["rice"].recipes is None


def test_migration_merges_with_existing_rows(documents, sql_store):
    sql_store.add_recipe("soup", ["carrots", "leek"])

    migrate_json_store_to_sql(*documents, sql_store)

    counts = sql_store.row_counts()
    assert counts["items"] == 6
    assert counts["recipes"] == 4
    assert sql_store.recipe_ingredients("soup") == {"carrots", "onion", "leek"}


def test_migration_of_documents_written_by_json_store(json_store, sql_store):
    json_store.add_item("milk", section="dairy")
    json_store.add_recipe("pancakes", ["eggs", "milk", "flour"])
    json_store.add_list_recipe("pancakes")

    migrate_json_store_to_sql(json_store.groceries_path, json_store.list_path, sql_store)

    assert sorted(i.name for i in sql_store.items()) == sorted(i.name for i in json_store.items())
    assert sql_store.recipe_ingredients("pancakes") == json_store.recipe_ingredients("pancakes")
    assert "dairy" in sql_store.sections()


def test_missing_groceries_document(tmp_path, sql_store):
    with pytest.raises(NotFound):
        migrate_json_store_to_sql(tmp_path / "groceries.json", tmp_path / "list.json", sql_store)


def test_missing_list_document_is_empty(documents, sql_store):
    groceries_path, list_path = documents
    list_path.unlink()

    migrate_json_store_to_sql(groceries_path, list_path, sql_store)

    assert "tacos" not in sql_store.recipes()
    assert sql_store.row_counts()["recipes"] == 3


def test_ambiguous_lookup_aborts_migration(documents, sql_store, monkeypatch):
    def ambiguous(db_session, model, name):
        raise MultipleResultsFound("Multiple rows were found when exactly one was required")

    monkeypatch.setattr(migrate, "get_or_insert_id", ambiguous)

    with pytest.raises(MigrationAssertionFailure):
        migrate_json_store_to_sql(*documents, sql_store)

    assert all(count == 0 for count in sql_store.row_counts().values())
