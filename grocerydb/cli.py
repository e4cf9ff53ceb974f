"""Command line entry point: schema setup, migration and the HTTP server."""

import argparse
import logging
import sys
from pathlib import Path

from pydantic import ValidationError

from .config import LOG_FORMAT, StoreType, get_settings
from .database import is_memory_database
from .errors import StoreError
from .migrate import migrate_json_store_to_sql
from .store import SqlStore

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="grocerydb",
        description="Grocery items, recipes and shopping list storage",
    )
    parser.add_argument(
        "--database-url",
        help="SQLAlchemy URL of the relational store (default: $DATABASE_URL)",
    )
    parser.add_argument("--log-level", help="Logging level (default: $LOG_LEVEL)")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("init-db", help="Create or upgrade the relational schema")

    migrate = subparsers.add_parser(
        "migrate", help="Copy the JSON document store into the relational store"
    )
    migrate.add_argument("--groceries", type=Path, help="Path to groceries.json")
    migrate.add_argument("--list", dest="list_path", type=Path, help="Path to list.json")

    serve = subparsers.add_parser("serve", help="Run the HTTP API")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8000)
    serve.add_argument(
        "--store",
        choices=[store_type.value for store_type in StoreType],
        help="Backend to serve (default: $STORE_TYPE)",
    )
    return parser


def _settings_from_args(args):
    overrides = {}
    if args.database_url:
        overrides["database_url"] = args.database_url
    if args.log_level:
        overrides["log_level"] = args.log_level
    if getattr(args, "groceries", None):
        overrides["groceries_path"] = args.groceries
    if getattr(args, "list_path", None):
        overrides["list_path"] = args.list_path
    if getattr(args, "store", None):
        overrides["store_type"] = args.store
    return get_settings(**overrides)


def _open_sql_store(settings) -> SqlStore:
    store = SqlStore.from_settings(settings)
    store.init_schema()
    return store


def cmd_init_db(settings) -> int:
    with _open_sql_store(settings) as store:
        counts = store.row_counts()
    print(f"Schema ready: {', '.join(sorted(counts))}")
    return 0


def cmd_migrate(settings) -> int:
    with _open_sql_store(settings) as store:
        migrate_json_store_to_sql(settings.groceries_path, settings.list_path, store)
        counts = store.row_counts()
    print("JSON to SQL data store migration successful")
    for table, count in sorted(counts.items()):
        print(f"  {table}: {count}")
    return 0


def cmd_serve(settings, host: str, port: int) -> int:
    if settings.store_type is StoreType.SQLITE and is_memory_database(settings.database_url):
        print(
            "error: an in-memory database cannot be served; use a file or server URL",
            file=sys.stderr,
        )
        return 2

    import uvicorn

    from .main import create_app

    uvicorn.run(create_app(settings), host=host, port=port)
    return 0


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    try:
        settings = _settings_from_args(args)
    except ValidationError as e:
        print(f"Invalid configuration:\n{e}", file=sys.stderr)
        return 2

    logging.basicConfig(level=settings.log_level, format=LOG_FORMAT)

    try:
        if args.command == "init-db":
            return cmd_init_db(settings)
        if args.command == "migrate":
            return cmd_migrate(settings)
        return cmd_serve(settings, args.host, args.port)
    except StoreError as e:
        logger.error(f"{args.command} failed: {type(e).__name__}: {e}")
        print(f"error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
