"""
Order inventory deduction.

Every mutation runs inside one store transaction: a ledger row is appended for
each affected product and the same delta is applied to the product with an
in-database increment. Any failure rolls the whole call back.
"""
import asyncio
import logging
from typing import Any, Awaitable, Callable, Iterable, List, Optional, TypeVar

from pydantic import ValidationError

from restaurant_inventory.core.config import ENFORCE_ORDER_IDEMPOTENCY, TRANSACTION_TIMEOUT
from restaurant_inventory.core.exceptions import (
    DuplicateDeduction,
    InsufficientInventory,
    InventoryError,
    NegativeStock,
    NotFound,
    TransactionFailure,
    ValidationFailure,
)
from restaurant_inventory.models.inventory_transaction import ReferenceType, TransactionType
from restaurant_inventory.schemas.inventory import (
    DeductionError,
    DeductionResult,
    InventoryUpdate,
    LedgerEntry,
    MissingRecipeItem,
    OrderLine,
    RecipeCoverageResult,
)
from restaurant_inventory.services.availability import check_availability
from restaurant_inventory.services.requirements import compute_order_requirement, normalize_order_items
from restaurant_inventory.services.store import StockStore

log = logging.getLogger(__name__)

T = TypeVar("T")


def validate_reference_id(value: Any, name: str = "order_id", required: bool = True) -> Optional[int]:
    if value is None and not required:
        return None
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ValidationFailure(f"{name} must be a positive integer, got {value!r}")
    return value


async def run_in_transaction(store: StockStore, work: Callable[[Any], Awaitable[T]], timeout: Optional[float] = None) -> T:
    """
    Runs ``work(conn)`` inside a single store transaction bounded by ``timeout``.

    Engine errors pass through unchanged; anything else is wrapped in
    TransactionFailure with the original exception as its cause. In every
    failure case the transaction has already been rolled back.
    """
    if timeout is None:
        timeout = TRANSACTION_TIMEOUT
    if timeout <= 0:
        timeout = None

    async def _scoped() -> T:
        async with store.transaction() as conn:
            return await work(conn)

    try:
        return await asyncio.wait_for(_scoped(), timeout=timeout)
    except InventoryError:
        raise
    except asyncio.TimeoutError as e:
        log.error(f"Inventory transaction exceeded {timeout}s; rolled back.")
        raise TransactionFailure(f"Inventory transaction timed out after {timeout}s; nothing was changed") from e
    except Exception as e:
        log.error(f"Inventory transaction failed; rolled back. Cause: {e!r}")
        raise TransactionFailure("Inventory transaction failed; nothing was changed") from e


def _failure(error: InventoryError) -> DeductionResult:
    return DeductionResult(
        success=False,
        errors=[DeductionError(type=error.code, message=error.message, details=error.details)],
    )


async def deduct(
    store: StockStore,
    order_id: int,
    order_items: Iterable[Any],
    skip_inventory_check: bool = False,
    enforce_idempotency: Optional[bool] = None,
    timeout: Optional[float] = None,
) -> DeductionResult:
    """
    Deducts the products consumed by an order and logs one ``sale`` ledger row
    per product, all-or-nothing.

    With the availability check active, shortages are reported without touching
    the store, and the increments themselves refuse to go below zero so a
    concurrent order that drained stock after the check rolls this one back.
    ``skip_inventory_check=True`` disables both and may leave stock negative.

    Unless ``enforce_idempotency`` is False, an order that already has sale rows
    in the ledger is rejected as ``duplicate_deduction``.
    """
    if enforce_idempotency is None:
        enforce_idempotency = ENFORCE_ORDER_IDEMPOTENCY

    try:
        validate_reference_id(order_id)
        lines = normalize_order_items(order_items)
    except ValidationFailure as e:
        log.warning(f"Rejected deduction for order {order_id!r}: {e.message}")
        return _failure(e)

    log.info(f"Deducting inventory for order #{order_id} ({len(lines)} line items).")

    try:
        # A retry of a deducted order is a duplicate even if stock has since run short
        if enforce_idempotency:
            await _reject_duplicate(store, order_id)

        if not skip_inventory_check:
            availability = await check_availability(store, lines)
            if not availability.is_valid:
                raise InsufficientInventory([item.model_dump() for item in availability.insufficient_items])

        async def _apply(conn: Any) -> List[LedgerEntry]:
            return await _apply_order_deduction(
                store, conn, order_id, lines,
                guard_negative=not skip_inventory_check,
                enforce_idempotency=enforce_idempotency,
            )

        transactions = await run_in_transaction(store, _apply, timeout=timeout)

    except InsufficientInventory as e:
        log.warning(f"Insufficient inventory for order #{order_id}: {[item['product_name'] for item in e.items]}")
        return _failure(e)
    except DuplicateDeduction as e:
        log.warning(f"Duplicate deduction rejected for order #{order_id}: {e.existing_transaction_ids}")
        return _failure(e)
    except NegativeStock as e:
        log.warning(f"Stock for product {e.product_id} was consumed concurrently; order #{order_id} rolled back.")
        return _failure(e)
    except TransactionFailure as e:
        log.error(f"Inventory deduction failed for order #{order_id}: {e.message}", exc_info=e.__cause__)
        return _failure(e)
    except InventoryError as e:
        # Raised mid-apply, e.g. a linked product disappeared; already rolled back
        log.error(f"Inventory deduction failed for order #{order_id}: {e.message}")
        failure = TransactionFailure(f"Inventory transaction failed; nothing was changed: {e.message}")
        failure.__cause__ = e
        return _failure(failure)
    except Exception as e:
        log.exception(f"Unexpected error deducting inventory for order #{order_id}")
        failure = TransactionFailure("Inventory deduction failed; nothing was changed")
        failure.__cause__ = e
        return _failure(failure)

    log.info(f"Inventory deducted for order #{order_id}: {len(transactions)} ledger rows.")
    return DeductionResult(
        success=True,
        transactions=transactions,
        message=f"Successfully processed inventory deduction for order #{order_id}",
    )


async def _reject_duplicate(store: StockStore, order_id: int, conn: Any = None) -> None:
    existing = await store.find_transactions(ReferenceType.ORDER, order_id, TransactionType.SALE, conn=conn)
    if existing:
        raise DuplicateDeduction(order_id, [entry.id for entry in existing])


async def _apply_order_deduction(
    store: StockStore,
    conn: Any,
    order_id: int,
    lines: List[OrderLine],
    guard_negative: bool,
    enforce_idempotency: bool,
) -> List[LedgerEntry]:
    if enforce_idempotency:
        # Re-checked inside the transaction; the earlier read can be stale
        await _reject_duplicate(store, order_id, conn=conn)

    # Recomputed against the transaction's view of the links
    requirements = await compute_order_requirement(store, lines, conn=conn)

    created = []
    for requirement in requirements:
        delta = -abs(requirement.total_quantity_needed)
        entry = await store.record_transaction(
            product_id=requirement.product_id,
            transaction_type=TransactionType.SALE,
            quantity_change=delta,
            reference_type=ReferenceType.ORDER,
            reference_id=order_id,
            notes=f"Order #{order_id} - {requirement.ingredient_name} ({requirement.product_name})",
            conn=conn,
        )
        await store.increment_quantity(requirement.product_id, delta, conn, allow_negative=not guard_negative)
        created.append(entry)
    return created


async def process_existing_order(
    store: StockStore,
    order_id: int,
    skip_inventory_check: bool = False,
    enforce_idempotency: Optional[bool] = None,
    timeout: Optional[float] = None,
) -> DeductionResult:
    """Loads an order's line items from the store and deducts them."""
    try:
        validate_reference_id(order_id)
    except ValidationFailure as e:
        return _failure(e)

    order_items = await store.get_order_items(order_id)
    if not order_items:
        return DeductionResult(
            success=False,
            errors=[DeductionError(type="order_not_found", message=f"Order #{order_id} not found or has no items")],
        )
    return await deduct(
        store, order_id, order_items,
        skip_inventory_check=skip_inventory_check,
        enforce_idempotency=enforce_idempotency,
        timeout=timeout,
    )


async def validate_order_items_have_recipes(store: StockStore, order_items: Iterable[Any]) -> RecipeCoverageResult:
    """Reports line items that would be skipped by the requirement calculator."""
    lines = normalize_order_items(order_items)
    missing = []
    for line in lines:
        menu_item = await store.get_menu_item(line.menu_item_id)
        if menu_item is None:
            missing.append(MissingRecipeItem(menu_item_id=line.menu_item_id, error="Menu item not found"))
        elif menu_item.recipe_id is None:
            missing.append(MissingRecipeItem(
                menu_item_id=line.menu_item_id,
                menu_item_name=menu_item.name,
                error="Menu item has no associated recipe",
            ))
    return RecipeCoverageResult(is_valid=not missing, items_without_recipes=missing)


async def batch_adjust(
    store: StockStore,
    updates: Iterable[Any],
    reference_id: Optional[int] = None,
    reference_type: ReferenceType = ReferenceType.ORDER,
    timeout: Optional[float] = None,
) -> List[LedgerEntry]:
    """
    Applies arbitrary signed deltas ({product_id, quantity_change, notes,
    transaction_type}) in one transaction and returns the ledger rows.
    Raises NotFound for an unknown product and TransactionFailure for anything
    else that breaks; either way nothing is applied.
    """
    validate_reference_id(reference_id, name="reference_id", required=False)
    if updates is None or isinstance(updates, (str, bytes, dict)):
        raise ValidationFailure("Updates must be a list of {product_id, quantity_change} objects")
    try:
        parsed = [u if isinstance(u, InventoryUpdate) else InventoryUpdate.model_validate(u) for u in updates]
        reference_type = ReferenceType(reference_type)
    except ValidationError as e:
        raise ValidationFailure(
            "Invalid inventory updates",
            details=e.errors(include_url=False, include_context=False, include_input=False),
        ) from e
    except (TypeError, ValueError) as e:
        raise ValidationFailure(f"Invalid inventory updates: {e}") from e

    default_notes = (
        f"Batch update for order #{reference_id}" if reference_type == ReferenceType.ORDER and reference_id
        else "Batch inventory update"
    )

    async def _apply(conn: Any) -> List[LedgerEntry]:
        created = []
        for update in parsed:
            if await store.get_product(update.product_id, conn=conn) is None:
                raise NotFound(f"Product with ID {update.product_id} does not exist")
            entry = await store.record_transaction(
                product_id=update.product_id,
                transaction_type=update.transaction_type,
                quantity_change=update.quantity_change,
                reference_type=reference_type,
                reference_id=reference_id,
                notes=update.notes or default_notes,
                conn=conn,
            )
            await store.increment_quantity(update.product_id, update.quantity_change, conn)
            created.append(entry)
        return created

    log.info(f"Applying batch inventory update of {len(parsed)} rows (reference {reference_type.value} #{reference_id}).")
    return await run_in_transaction(store, _apply, timeout=timeout)
