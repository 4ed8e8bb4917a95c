import pytest
from decimal import Decimal

from restaurant_inventory.core.exceptions import NotFound, ValidationFailure
from restaurant_inventory.services.requirements import (
    compute_order_requirement,
    compute_recipe_requirement,
    normalize_order_items,
)


def _totals(requirements):
    return {r.product_id: r.total_quantity_needed for r in requirements}


@pytest.mark.asyncio
async def test_recipe_requirement_scales_exactly(pizza_store):
    requirements = await compute_recipe_requirement(pizza_store, pizza_store.pizza_recipe, 3)

    assert _totals(requirements) == {
        pizza_store.flour: Decimal("0.375"),
        pizza_store.cheese: Decimal("0.15"),
    }
    dough = requirements[0]
    assert dough.ingredient_name == "Dough"
    assert dough.quantity_per_serving == Decimal("0.125")
    assert dough.current_quantity == Decimal("50")
    assert dough.unit_of_measure == "kg"


@pytest.mark.asyncio
async def test_recipe_requirement_skips_untracked_ingredients(pizza_store):
    requirements = await compute_recipe_requirement(pizza_store, pizza_store.pizza_recipe, 1)
    assert [r.ingredient_name for r in requirements] == ["Dough", "Mozzarella"]


@pytest.mark.asyncio
async def test_recipe_without_links_needs_nothing(store):
    recipe_id = store.add_recipe("Water")
    store.add_ingredient(recipe_id, "Tap water")
    assert await compute_recipe_requirement(store, recipe_id, 2) == []


@pytest.mark.asyncio
async def test_unknown_recipe_is_not_found(store):
    with pytest.raises(NotFound):
        await compute_recipe_requirement(store, 42, 1)


@pytest.mark.asyncio
@pytest.mark.parametrize("servings", [0, -1, 1.5, True, "2", None])
async def test_recipe_requirement_rejects_bad_servings(pizza_store, servings):
    with pytest.raises(ValidationFailure):
        await compute_recipe_requirement(pizza_store, pizza_store.pizza_recipe, servings)


@pytest.mark.asyncio
async def test_split_lines_consolidate_to_same_totals(pizza_store):
    split = await compute_order_requirement(pizza_store, [
        {"menu_item_id": pizza_store.pizza, "quantity": 2},
        {"menu_item_id": pizza_store.pizza, "quantity": 1},
    ])
    single = await compute_order_requirement(pizza_store, [{"menu_item_id": pizza_store.pizza, "quantity": 3}])

    assert _totals(split) == _totals(single)
    assert len(split) == 2


@pytest.mark.asyncio
async def test_shared_product_is_summed_across_recipes(pizza_store):
    bread_recipe = pizza_store.add_recipe("Garlic Bread")
    pizza_store.add_ingredient(bread_recipe, "Bread dough", product_id=pizza_store.flour, quantity_per_serving="0.2")
    bread = pizza_store.add_menu_item("Garlic Bread", recipe_id=bread_recipe)

    requirements = await compute_order_requirement(pizza_store, [
        {"menu_item_id": bread, "quantity": 2},
        {"menu_item_id": pizza_store.pizza, "quantity": 1},
    ])

    assert _totals(requirements) == {
        pizza_store.flour: Decimal("0.525"),
        pizza_store.cheese: Decimal("0.05"),
    }
    assert [r.product_id for r in requirements] == sorted(_totals(requirements))


@pytest.mark.asyncio
async def test_items_without_recipe_are_skipped(pizza_store):
    requirements = await compute_order_requirement(pizza_store, [
        {"menu_item_id": pizza_store.drink, "quantity": 4},
        {"menu_item_id": 999, "quantity": 1},
    ])
    assert requirements == []


@pytest.mark.asyncio
async def test_empty_order_needs_nothing(pizza_store):
    assert await compute_order_requirement(pizza_store, []) == []


@pytest.mark.asyncio
@pytest.mark.parametrize("items", [
    None,
    "pizza",
    {"menu_item_id": 1, "quantity": 1},
    [{"menu_item_id": 1, "quantity": 0}],
    [{"menu_item_id": 1}],
    [{"menu_item_id": "abc", "quantity": 1}],
])
async def test_order_requirement_rejects_malformed_items(pizza_store, items):
    with pytest.raises(ValidationFailure):
        await compute_order_requirement(pizza_store, items)


def test_normalize_reports_field_errors():
    with pytest.raises(ValidationFailure) as excinfo:
        normalize_order_items([{"menu_item_id": 1, "quantity": -2}])

    assert excinfo.value.code == "validation_error"
    assert excinfo.value.details[0]["loc"] == ("quantity",)
