"""HTTP API exposing the grocery store operations."""

import logging
import sys
from contextlib import asynccontextmanager

from fastapi import APIRouter, Depends, FastAPI, Request, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field, ValidationError

from . import __version__
from .config import LOG_FORMAT, Settings, get_settings
from .errors import (
    ConstraintViolation,
    MigrationAssertionFailure,
    NotFound,
    StoreError,
    StoreIoError,
)
from .migrate import migrate_json_store_to_sql
from .schemas import GroceryItem, ShoppingList
from .store import SqlStore, Storage, open_store

logger = logging.getLogger(__name__)

# Most specific first; the first matching kind decides the status code
ERROR_STATUS = (
    (NotFound, status.HTTP_404_NOT_FOUND),
    (ConstraintViolation, status.HTTP_409_CONFLICT),
    (StoreIoError, status.HTTP_503_SERVICE_UNAVAILABLE),
    (MigrationAssertionFailure, status.HTTP_500_INTERNAL_SERVER_ERROR),
)


def validate_environment() -> Settings:
    """Validate configuration on startup."""
    try:
        settings = get_settings()
        logger.info("Environment variables validated successfully")
        return settings
    except ValidationError as e:
        logger.error("ERROR: Missing or invalid environment variables:")
        logger.error(str(e))
        sys.exit(1)


# =============================================================================
# Request bodies
# =============================================================================


class ItemIn(BaseModel):
    name: str = Field(min_length=1)
    section: str | None = None


class NameIn(BaseModel):
    name: str = Field(min_length=1)


class RecipeIn(BaseModel):
    name: str = Field(min_length=1)
    ingredients: list[str] = Field(default_factory=list)


# =============================================================================
# Routes
# =============================================================================

router = APIRouter()


def get_store(request: Request) -> Storage:
    return request.app.state.store


@router.get("/")
def root():
    """Root endpoint."""
    return {
        "name": "grocerydb",
        "status": "running",
        "version": __version__,
    }


@router.get("/health")
def health_check(store: Storage = Depends(get_store)):
    """Health check endpoint. Verifies the backing store is reachable."""
    if store.check_health():
        return {"status": "healthy", "store": "connected"}
    return {"status": "unhealthy", "store": "disconnected"}


@router.get("/items", response_model=list[GroceryItem])
def read_items(store: Storage = Depends(get_store)):
    return store.items()


@router.post("/items", status_code=status.HTTP_201_CREATED)
def add_item(body: ItemIn, store: Storage = Depends(get_store)):
    store.add_item(body.name, section=body.section)
    return {"added": body.name}


@router.get("/sections", response_model=list[str])
def read_sections(store: Storage = Depends(get_store)):
    return store.sections()


@router.get("/recipes", response_model=list[str])
def read_recipes(store: Storage = Depends(get_store)):
    return store.recipes()


@router.post("/recipes", status_code=status.HTTP_201_CREATED)
def add_recipe(body: RecipeIn, store: Storage = Depends(get_store)):
    store.add_recipe(body.name, body.ingredients)
    return {"added": body.name}


@router.get("/recipes/{name}")
def read_recipe(name: str, store: Storage = Depends(get_store)):
    ingredients = store.recipe_ingredients(name)
    if ingredients is None:
        raise NotFound(f"no recipe named '{name}'")
    return {"recipe": name, "ingredients": sorted(ingredients)}


@router.delete("/recipes/{name}")
def delete_recipe(name: str, store: Storage = Depends(get_store)):
    store.delete_recipe(name)
    return {"deleted": name}


@router.get("/checklist", response_model=list[GroceryItem])
def read_checklist(store: Storage = Depends(get_store)):
    return store.checklist()


@router.post("/checklist", status_code=status.HTTP_201_CREATED)
def add_checklist_item(body: NameIn, store: Storage = Depends(get_store)):
    store.add_checklist_item(body.name)
    return {"added": body.name}


@router.delete("/checklist/{name}")
def delete_checklist_item(name: str, store: Storage = Depends(get_store)):
    store.delete_checklist_item(name)
    return {"deleted": name}


@router.delete("/checklist")
def clear_checklist(store: Storage = Depends(get_store)):
    store.clear_checklist()
    return {"cleared": "checklist"}


@router.get("/list", response_model=ShoppingList)
def read_list(store: Storage = Depends(get_store)):
    return store.list()


@router.post("/list/items", status_code=status.HTTP_201_CREATED)
def add_list_item(body: NameIn, store: Storage = Depends(get_store)):
    store.add_list_item(body.name)
    return {"added": body.name}


@router.delete("/list/items/{name}")
def delete_list_item(name: str, store: Storage = Depends(get_store)):
    store.delete_list_item(name)
    return {"deleted": name}


@router.post("/list/recipes", status_code=status.HTTP_201_CREATED)
def add_list_recipe(body: NameIn, store: Storage = Depends(get_store)):
    store.add_list_recipe(body.name)
    return {"added": body.name}


@router.post("/list/refresh")
def refresh_list(store: Storage = Depends(get_store)):
    store.refresh_list()
    return {"list": "empty"}


@router.post("/migrate")
def migrate(request: Request, store: Storage = Depends(get_store)):
    """Copy the JSON documents named in the settings into the relational store."""
    if not isinstance(store, SqlStore):
        raise ConstraintViolation("migration target must be a relational store")
    settings: Settings = request.app.state.settings
    report = migrate_json_store_to_sql(settings.groceries_path, settings.list_path, store)
    return {"migrated": vars(report), "row_counts": store.row_counts()}


# =============================================================================
# Application
# =============================================================================


async def store_error_handler(request: Request, exc: StoreError) -> JSONResponse:
    for kind, code in ERROR_STATUS:
        if isinstance(exc, kind):
            break
    else:
        code = status.HTTP_500_INTERNAL_SERVER_ERROR
    if code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {type(exc).__name__}: {exc}")
    return JSONResponse(
        status_code=code,
        content={"error": type(exc).__name__, "detail": str(exc)},
    )


def create_app(settings: Settings | None = None) -> FastAPI:
    """Build the API. Without ``settings`` they are read from the environment at startup."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan manager for startup and shutdown."""
        resolved = settings or validate_environment()
        logging.basicConfig(level=resolved.log_level, format=LOG_FORMAT)
        logger.info("Starting grocerydb...")

        app.state.settings = resolved
        app.state.store = open_store(resolved)
        logger.info("grocerydb started successfully")

        yield

        logger.info("Shutting down grocerydb...")
        app.state.store.close()
        logger.info("grocerydb shutdown complete")

    app = FastAPI(
        title="grocerydb",
        description="Grocery items, recipes and shopping list over a JSON or SQL store",
        version=__version__,
        lifespan=lifespan,
    )
    app.add_exception_handler(StoreError, store_error_handler)
    app.include_router(router)
    return app


app = create_app()
