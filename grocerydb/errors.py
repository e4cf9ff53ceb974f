"""Error kinds raised by the storage layer and the migration engine."""


class StoreError(Exception):
    """Base class for every storage failure."""


class NotFound(StoreError):
    """A referenced item, recipe, section or source document is absent."""


class ConstraintViolation(StoreError):
    """An operation would break a data-model invariant."""


class RecipeIngredientsNotFound(ConstraintViolation):
    """A recipe was put on the list without any recorded ingredients."""

    def __init__(self, recipe: str):
        self.recipe = recipe
        super().__init__(f"no ingredients recorded for recipe '{recipe}'")


class StoreIoError(StoreError):
    """File or database access failed, including connection pool exhaustion."""


class MigrationAssertionFailure(StoreError):
    """A name lookup that must match exactly one row did not."""
