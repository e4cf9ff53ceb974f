"""Operation contract, run against both backends."""

import pytest

from grocerydb.errors import ConstraintViolation, RecipeIngredientsNotFound
from grocerydb.schemas import ShoppingList


def _names(items):
    return sorted(item.name for item in items)


def test_add_item_is_idempotent(store):
    store.add_item("milk")
    store.add_item("milk")

    assert _names(store.items()) == ["milk"]


def test_items_round_trip_names(store):
    for name in ["Zucchini", "apples", "Apples", "bread"]:
        store.add_item(name)

    assert _names(store.items()) == ["Apples", "Zucchini", "apples", "bread"]


def test_add_item_after_recipe_does_not_duplicate(store):
    store.add_recipe("soup", {"carrot", "onion"})
    store.add_item("carrot")

    assert _names(store.items()) == ["carrot", "onion"]
    assert store.recipe_ingredients("soup") == {"carrot", "onion"}


def test_add_recipe(store):
    store.add_recipe("test recipe", ["ingredient 1", "ingredient 2"])

    assert store.recipes() == ["test recipe"]
    assert store.recipe_ingredients("test recipe") == {"ingredient 1", "ingredient 2"}
    ingredient = {item.name: item for item in store.items()}["ingredient 1"]
    assert ingredient.recipes == ["test recipe"]


def test_recipe_ingredients_unknown_recipe(store):
    assert store.recipe_ingredients("nothing") is None


def test_recipe_without_ingredients_is_found_but_empty(store):
    store.add_recipe("toast", [])

    assert store.recipe_ingredients("toast") == set()


def test_add_list_recipe(store):
    store.add_recipe("test recipe", ["ingredient 1", "ingredient 2"])

    store.add_list_recipe("test recipe")

    shopping_list = store.list()
    assert shopping_list.recipes == ["test recipe"]
    assert _names(shopping_list.items) == ["ingredient 1", "ingredient 2"]
    assert shopping_list.checklist == []


def test_add_list_recipe_unknown_recipe_fails(store):
    store.add_list_item("eggs")

    with pytest.raises(RecipeIngredientsNotFound):
        store.add_list_recipe("unknown recipe")

    assert _names(store.list_items()) == ["eggs"]
    assert store.list_recipes() == []
    assert "unknown recipe" not in store.recipes()


def test_add_list_recipe_without_ingredients_fails(store):
    store.add_recipe("toast", [])

    with pytest.raises(RecipeIngredientsNotFound):
        store.add_list_recipe("toast")

    assert store.list() == ShoppingList()


def test_refresh_list_keeps_checklist_and_catalog(store):
    store.add_recipe("stew", ["beef"])
    store.add_list_recipe("stew")
    store.add_list_item("eggs")
    store.add_checklist_item("eggs")

    store.refresh_list()

    shopping_list = store.list()
    assert shopping_list.items == []
    assert shopping_list.recipes == []
    assert _names(shopping_list.checklist) == ["eggs"]
    assert _names(store.items()) == ["beef", "eggs"]
    assert store.recipe_ingredients("stew") == {"beef"}


def test_delete_recipe(store):
    store.add_recipe("stew", {"beef"})
    store.add_list_recipe("stew")

    store.delete_recipe("stew")

    assert store.recipe_ingredients("stew") is None
    assert store.recipes() == []
    assert store.list_recipes() == []
    beef = store.items()[0]
    assert beef.name == "beef"
    assert beef.recipes is None


def test_delete_recipe_keeps_other_recipes(store):
    store.add_recipe("stew", ["beef", "carrot"])
    store.add_recipe("soup", ["carrot"])

    store.delete_recipe("stew")

    assert store.recipe_ingredients("soup") == {"carrot"}
    carrot = {item.name: item for item in store.items()}["carrot"]
    assert carrot.recipes == ["soup"]


def test_delete_unknown_recipe_is_a_no_op(store):
    store.add_recipe("stew", ["beef"])

    store.delete_recipe("soup")

    assert store.recipes() == ["stew"]


def test_checklist(store):
    store.add_checklist_item("test item")
    store.add_checklist_item("test item")
    assert _names(store.checklist()) == ["test item"]

    store.delete_checklist_item("test item")

    assert store.checklist() == []
    assert _names(store.items()) == ["test item"]


def test_clear_checklist(store):
    store.add_checklist_item("soap")
    store.add_checklist_item("foil")
    store.add_list_item("soap")

    store.clear_checklist()

    assert store.checklist() == []
    assert _names(store.list_items()) == ["soap"]


def test_delete_list_item(store):
    store.add_list_item("item 1")
    store.add_list_item("item 2")

    store.delete_list_item("item 1")

    assert _names(store.list_items()) == ["item 2"]
    assert _names(store.items()) == ["item 1", "item 2"]


def test_add_item_with_section(store):
    store.add_item("apples", section="produce")

    assert "produce" in store.sections()
    assert store.items()[0].section == "produce"


def test_add_item_moves_item_to_new_section(store):
    store.add_item("apples", section="produce")
    store.add_item("apples", section="fresh")
    store.add_item("apples")

    assert store.items()[0].section == "fresh"


def test_list_items_report_catalog_details(store):
    store.add_list_item("apples")
    store.add_item("apples", section="fresh")

    assert store.list_items()[0].section == "fresh"


@pytest.mark.parametrize("name", ["", "   "])
def test_blank_names_are_rejected(store, name):
    with pytest.raises(ConstraintViolation):
        store.add_item(name)
    with pytest.raises(ConstraintViolation):
        store.add_recipe("soup", [name])

    assert store.items() == []
    assert store.recipes() == []


def test_store_is_a_context_manager(store):
    with store as opened:
        opened.add_item("milk")
        assert opened.check_health()
