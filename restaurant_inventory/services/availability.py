from typing import Any, Iterable, List

from restaurant_inventory.schemas.inventory import AvailabilityResult, InsufficientItem, ProductRequirement
from restaurant_inventory.services.requirements import compute_order_requirement
from restaurant_inventory.services.store import StockStore


def evaluate_availability(requirements: List[ProductRequirement]) -> AvailabilityResult:
    """Compares each requirement against the stock it was read with."""
    insufficient_items = [
        InsufficientItem(
            product_id=req.product_id,
            product_name=req.product_name,
            ingredient_name=req.ingredient_name,
            required=req.total_quantity_needed,
            available=req.current_quantity,
            shortage=req.total_quantity_needed - req.current_quantity,
            unit=req.unit_of_measure,
        )
        for req in requirements
        if req.current_quantity < req.total_quantity_needed
    ]
    return AvailabilityResult(
        is_valid=not insufficient_items,
        insufficient_items=insufficient_items,
        requirements=requirements,
    )


async def check_availability(store: StockStore, order_items: Iterable[Any], conn: Any = None) -> AvailabilityResult:
    """
    Read-only stock check for an order. The answer is only good until the next
    write; the deduction engine re-checks inside its own transaction.
    """
    requirements = await compute_order_requirement(store, order_items, conn=conn)
    return evaluate_availability(requirements)
