"""Manual single-product stock movements and ledger reads."""
import logging
from decimal import Decimal, InvalidOperation
from typing import Any, List, Optional

from restaurant_inventory.core.exceptions import NotFound, ValidationFailure
from restaurant_inventory.models.inventory_transaction import ReferenceType, TransactionType
from restaurant_inventory.schemas.inventory import AdjustmentResult, LedgerEntry, QuantityChangeCheck
from restaurant_inventory.services.deduction import run_in_transaction, validate_reference_id
from restaurant_inventory.services.store import StockStore

log = logging.getLogger(__name__)

MAX_HISTORY_LIMIT = 1000

# Types whose rows only ever move stock in one direction
_OUTGOING_TYPES = (TransactionType.SALE, TransactionType.WASTE)


def _to_decimal(value: Any, name: str) -> Decimal:
    if isinstance(value, bool):
        raise ValidationFailure(f"{name} must be a number")
    try:
        quantity = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError) as e:
        raise ValidationFailure(f"{name} must be a number, got {value!r}") from e
    if not quantity.is_finite():
        raise ValidationFailure(f"{name} must be a finite number")
    return quantity


def _format_change(change: Decimal) -> str:
    text = format(change.normalize(), "f")
    return f"+{text}" if change > 0 else text


async def _apply_single(
    store: StockStore,
    product_id: int,
    transaction_type: TransactionType,
    quantity_change: Decimal,
    reference_type: Optional[ReferenceType],
    reference_id: Optional[int],
    notes: Optional[str],
    timeout: Optional[float],
) -> AdjustmentResult:

    async def _apply(conn: Any) -> AdjustmentResult:
        if await store.get_product(product_id, conn=conn) is None:
            raise NotFound(f"Product with ID {product_id} does not exist")
        entry = await store.record_transaction(
            product_id=product_id,
            transaction_type=transaction_type,
            quantity_change=quantity_change,
            reference_type=reference_type,
            reference_id=reference_id,
            notes=notes,
            conn=conn,
        )
        await store.increment_quantity(product_id, quantity_change, conn)
        product = await store.get_product(product_id, conn=conn)
        return AdjustmentResult(transaction=entry, product=product)

    result = await run_in_transaction(store, _apply, timeout=timeout)
    log.info(
        f"{transaction_type.value} of {_format_change(quantity_change)} recorded for product {product_id}; "
        f"now {result.product.current_quantity}."
    )
    return result


async def restock_product(
    store: StockStore,
    product_id: int,
    quantity: Any,
    reference_type: ReferenceType = ReferenceType.MANUAL,
    reference_id: Optional[int] = None,
    notes: Optional[str] = None,
    timeout: Optional[float] = None,
) -> AdjustmentResult:
    """Adds stock. The ledger row is always positive."""
    validate_reference_id(product_id, name="product_id")
    validate_reference_id(reference_id, name="reference_id", required=False)
    amount = abs(_to_decimal(quantity, "quantity"))
    if amount == 0:
        raise ValidationFailure("Restock quantity must be greater than zero")

    return await _apply_single(
        store, product_id, TransactionType.RESTOCK, amount,
        ReferenceType(reference_type), reference_id,
        notes or f"Restock: {_format_change(amount)} units",
        timeout,
    )


async def adjust_product_quantity(
    store: StockStore,
    product_id: int,
    quantity_change: Any,
    transaction_type: TransactionType = TransactionType.ADJUSTMENT,
    reference_type: ReferenceType = ReferenceType.MANUAL,
    reference_id: Optional[int] = None,
    notes: Optional[str] = None,
    timeout: Optional[float] = None,
) -> AdjustmentResult:
    """
    Records a signed manual change. ``waste`` and ``sale`` rows must be negative,
    ``restock`` rows positive; ``adjustment`` may go either way.
    """
    validate_reference_id(product_id, name="product_id")
    validate_reference_id(reference_id, name="reference_id", required=False)
    change = _to_decimal(quantity_change, "quantity_change")
    if change == 0:
        raise ValidationFailure("quantity_change must not be zero")
    try:
        transaction_type = TransactionType(transaction_type)
        reference_type = ReferenceType(reference_type)
    except ValueError as e:
        raise ValidationFailure(str(e)) from e

    if transaction_type in _OUTGOING_TYPES and change > 0:
        raise ValidationFailure(f"A {transaction_type.value} must have a negative quantity_change")
    if transaction_type == TransactionType.RESTOCK and change < 0:
        raise ValidationFailure("A restock must have a positive quantity_change")

    return await _apply_single(
        store, product_id, transaction_type, change, reference_type, reference_id,
        notes or f"Manual adjustment: {_format_change(change)} units",
        timeout,
    )


async def validate_quantity_change(store: StockStore, product_id: int, quantity_change: Any) -> QuantityChangeCheck:
    """Would applying ``quantity_change`` now leave the product at or above zero?"""
    validate_reference_id(product_id, name="product_id")
    change = _to_decimal(quantity_change, "quantity_change")
    product = await store.get_product(product_id)
    if product is None:
        return QuantityChangeCheck(is_valid=False, error="Product not found")

    new_quantity = product.current_quantity + change
    is_valid = new_quantity >= 0
    return QuantityChangeCheck(
        is_valid=is_valid,
        current_quantity=product.current_quantity,
        new_quantity=new_quantity,
        error=None if is_valid else "Quantity adjustment would result in negative inventory",
    )


async def get_transaction_history(
    store: StockStore,
    product_id: Optional[int] = None,
    transaction_type: Optional[TransactionType] = None,
    reference_type: Optional[ReferenceType] = None,
    limit: int = 100,
    offset: int = 0,
) -> List[LedgerEntry]:
    validate_reference_id(product_id, name="product_id", required=False)
    if isinstance(limit, bool) or not isinstance(limit, int) or not 1 <= limit <= MAX_HISTORY_LIMIT:
        raise ValidationFailure(f"limit must be between 1 and {MAX_HISTORY_LIMIT}")
    if isinstance(offset, bool) or not isinstance(offset, int) or offset < 0:
        raise ValidationFailure("offset must be a non-negative integer")
    try:
        transaction_type = TransactionType(transaction_type) if transaction_type is not None else None
        reference_type = ReferenceType(reference_type) if reference_type is not None else None
    except ValueError as e:
        raise ValidationFailure(str(e)) from e

    return await store.get_transaction_history(
        product_id=product_id,
        transaction_type=transaction_type,
        reference_type=reference_type,
        limit=limit,
        offset=offset,
    )
