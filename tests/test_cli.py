import pytest

from grocerydb.cli import build_parser, main

from .conftest import make_sql_store


@pytest.fixture
def database_url(tmp_path):
    return f"sqlite:///{tmp_path / 'groceries.db'}"


def test_init_db(database_url, capsys):
    assert main(["--database-url", database_url, "init-db"]) == 0

    out = capsys.readouterr().out
    assert out.startswith("Schema ready: ")
    assert "items_recipes" in out


def test_migrate(database_url, documents, capsys):
    groceries_path, list_path = documents

    code = main([
        "--database-url", database_url,
        "migrate", "--groceries", str(groceries_path), "--list", str(list_path),
    ])

    assert code == 0
    out = capsys.readouterr().out
    assert "JSON to SQL data store migration successful" in out
    assert "  items: 5" in out
    assert "  recipes: 4" in out

    with make_sql_store(database_url) as store:
        assert store.recipe_ingredients("stew") == {"carrots", "beef"}


def test_migrate_missing_document(database_url, tmp_path, capsys):
    code = main([
        "--database-url", database_url,
        "migrate", "--groceries", str(tmp_path / "nothing.json"),
    ])

    assert code == 1
    assert "groceries document not found" in capsys.readouterr().err


def test_invalid_configuration(capsys):
    assert main(["--database-url", " ", "init-db"]) == 2
    assert "Invalid configuration" in capsys.readouterr().err


def test_serve_arguments():
    args = build_parser().parse_args(["serve", "--store", "json", "--port", "9000"])

    assert args.store == "json"
    assert args.port == 9000
    assert args.host == "127.0.0.1"


def test_command_is_required():
    with pytest.raises(SystemExit):
        build_parser().parse_args([])


def test_serve_refuses_in_memory_database(monkeypatch, capsys):
    served = []
    monkeypatch.setattr("uvicorn.run", lambda app, **kwargs: served.append(kwargs))

    assert main(["--database-url", "sqlite://", "serve", "--store", "sqlite"]) == 2
    assert served == []
    assert "in-memory database" in capsys.readouterr().err


def test_serve(database_url, monkeypatch):
    served = []
    monkeypatch.setattr("uvicorn.run", lambda app, **kwargs: served.append(kwargs))

    assert main(["--database-url", database_url, "serve", "--store", "sqlite", "--port", "9000"]) == 0
    assert served == [{"host": "127.0.0.1", "port": 9000}]
