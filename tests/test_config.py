from pathlib import Path

import pytest
from pydantic import ValidationError

from grocerydb.config import Settings, StoreType, get_settings


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    for name in ["DATABASE_URL", "STORE_TYPE", "LOG_LEVEL", "GROCERIES_PATH", "LIST_PATH"]:
        monkeypatch.delenv(name, raising=False)


def test_defaults():
    settings = Settings(_env_file=None)

    assert settings.store_type is StoreType.SQLITE
    assert settings.database_url == "sqlite:///groceries.db"
    assert settings.groceries_path == Path("groceries.json")
    assert settings.list_path == Path("list.json")
    assert settings.pool_size == 5


def test_postgres_url_is_rewritten():
    settings = get_settings(database_url="postgres://user:pw@db/groceries")

    assert settings.database_url == "postgresql://user:pw@db/groceries"


def test_environment_is_read(monkeypatch):
    monkeypatch.setenv("STORE_TYPE", "json")
    monkeypatch.setenv("LIST_PATH", "/data/list.json")

    settings = get_settings()

    assert settings.store_type is StoreType.JSON
    assert settings.list_path == Path("/data/list.json")


def test_overrides_win_over_environment(monkeypatch):
    monkeypatch.setenv("DATABASE_URL", "sqlite:///env.db")

    assert get_settings(database_url="sqlite://").database_url == "sqlite://"


def test_empty_database_url_is_rejected():
    with pytest.raises(ValidationError):
        get_settings(database_url="  ")


def test_unknown_store_type_is_rejected():
    with pytest.raises(ValidationError):
        get_settings(store_type="mongo")


def test_log_level_is_normalized():
    assert get_settings(log_level="debug").log_level == "DEBUG"
