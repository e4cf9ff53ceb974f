import json
from pathlib import Path

import pytest

from grocerydb.config import Settings
from grocerydb.store import JsonStore, SqlStore


GROCERIES = {
    "collection": [
        {"name": "carrots", "section": "fresh", "recipes": ["soup", "stew"]},
        {"name": "onion", "section": "fresh", "recipes": ["soup"]},
        {"name": "beef", "section": "protein", "recipes": ["stew"]},
        {"name": "milk", "section": "dairy"},
        {"name": "rice"},
    ],
    "sections": ["fresh", "pantry", "dairy", "protein", "freezer"],
    "recipes": ["soup", "stew", "pancakes"],
}

SHOPPING_LIST = {
    "checklist": [],
    "recipes": ["tacos"],
    "items": [{"name": "milk", "section": "dairy"}],
}


def make_sql_store(database_url: str = "sqlite://", **settings) -> SqlStore:
    store = SqlStore.from_settings(Settings(database_url=database_url, **settings))
    store.init_schema()
    return store


@pytest.fixture
def sql_store():
    store = make_sql_store()
    yield store
    store.close()


@pytest.fixture
def json_store(tmp_path: Path) -> JsonStore:
    return JsonStore(tmp_path / "groceries.json", tmp_path / "list.json")


@pytest.fixture(params=["sql", "json"])
def store(request, tmp_path: Path):
    """Each backend in turn, for properties both must satisfy."""
    if request.param == "sql":
        store = make_sql_store()
    else:
        store = JsonStore(tmp_path / "groceries.json", tmp_path / "list.json")
    yield store
    store.close()


@pytest.fixture
def documents(tmp_path: Path) -> tuple[Path, Path]:
    """A groceries.json / list.json pair in the legacy document format."""
    source = tmp_path / "source"
    source.mkdir()
    groceries_path = source / "groceries.json"
    list_path = source / "list.json"
    groceries_path.write_text(json.dumps(GROCERIES), encoding="utf-8")
    list_path.write_text(json.dumps(SHOPPING_LIST), encoding="utf-8")
    return groceries_path, list_path
