"""
Requirement calculation: turns recipe per-serving coefficients into the
absolute product quantities an order consumes.
"""
import logging
from decimal import Decimal
from typing import Any, Dict, Iterable, List

from pydantic import ValidationError

from restaurant_inventory.core.exceptions import NotFound, ValidationFailure
from restaurant_inventory.schemas.inventory import OrderLine, ProductRequirement, RecipeProductLink
from restaurant_inventory.services.store import StockStore

log = logging.getLogger(__name__)


def normalize_order_items(order_items: Iterable[Any]) -> List[OrderLine]:
    """Validates raw line items ({menu_item_id, quantity}) into OrderLine models."""
    if order_items is None or isinstance(order_items, (str, bytes, dict)):
        raise ValidationFailure("Order items must be a list of {menu_item_id, quantity} objects")
    try:
        return [
            item if isinstance(item, OrderLine) else OrderLine.model_validate(item)
            for item in order_items
        ]
    except ValidationError as e:
        raise ValidationFailure(
            "Invalid order items",
            details=e.errors(include_url=False, include_context=False, include_input=False),
        ) from e
    except TypeError as e:
        raise ValidationFailure("Order items must be a list of {menu_item_id, quantity} objects") from e


def _validate_servings(servings: Any) -> int:
    if isinstance(servings, bool) or not isinstance(servings, int) or servings <= 0:
        raise ValidationFailure(f"Servings must be a positive integer, got {servings!r}")
    return servings


def _scale(links: List[RecipeProductLink], servings: int) -> List[ProductRequirement]:
    multiplier = Decimal(servings)
    return [
        ProductRequirement(
            product_id=link.product_id,
            quantity_per_serving=link.quantity_per_serving,
            total_quantity_needed=link.quantity_per_serving * multiplier,
            current_quantity=link.current_quantity,
            product_name=link.product_name,
            unit_of_measure=link.unit_of_measure,
            ingredient_name=link.ingredient_name,
        )
        for link in links
    ]


async def compute_recipe_requirement(store: StockStore, recipe_id: int, servings: int, conn: Any = None) -> List[ProductRequirement]:
    """
    Product quantities needed for ``servings`` of a recipe, one entry per linked
    ingredient in ingredient order. A recipe without product links needs nothing.
    """
    _validate_servings(servings)
    if not await store.recipe_exists(recipe_id, conn=conn):
        raise NotFound(f"Recipe with ID {recipe_id} does not exist")

    links = await store.get_recipe_product_links(recipe_id, conn=conn)
    return _scale(links, servings)


async def compute_order_requirement(store: StockStore, order_items: Iterable[Any], conn: Any = None) -> List[ProductRequirement]:
    """
    Consolidated product quantities for a set of order line items.

    Line items whose menu item is unknown or has no recipe are skipped. Totals
    for the same product are summed across lines and recipes with exact
    Decimal addition; the result is ordered by product_id, so it does not
    depend on the order of the input lines.
    """
    lines = normalize_order_items(order_items)

    links_by_recipe: Dict[int, List[RecipeProductLink]] = {}
    consolidated: Dict[int, ProductRequirement] = {}

    for line in lines:
        recipe_id = await store.get_recipe_id_for_menu_item(line.menu_item_id, conn=conn)
        if recipe_id is None:
            log.debug(f"Menu item {line.menu_item_id} has no recipe; no inventory impact.")
            continue

        if recipe_id not in links_by_recipe:
            links_by_recipe[recipe_id] = await store.get_recipe_product_links(recipe_id, conn=conn)

        for requirement in _scale(links_by_recipe[recipe_id], line.quantity):
            existing = consolidated.get(requirement.product_id)
            if existing is None:
                consolidated[requirement.product_id] = requirement
            else:
                consolidated[requirement.product_id] = existing.model_copy(update={
                    "total_quantity_needed": existing.total_quantity_needed + requirement.total_quantity_needed,
                })

    return [consolidated[product_id] for product_id in sorted(consolidated)]
