import pytest
from decimal import Decimal

from restaurant_inventory.core.exceptions import NotFound, ValidationFailure
from restaurant_inventory.models.inventory_transaction import ReferenceType, TransactionType
from restaurant_inventory.services.adjustments import (
    adjust_product_quantity,
    get_transaction_history,
    restock_product,
    validate_quantity_change,
)
from restaurant_inventory.services.deduction import deduct


@pytest.mark.asyncio
async def test_restock_adds_positive_row(pizza_store):
    result = await restock_product(pizza_store, pizza_store.flour, 5)

    assert result.product.current_quantity == Decimal("55")
    assert result.transaction.transaction_type == TransactionType.RESTOCK
    assert result.transaction.quantity_change == Decimal("5")
    assert result.transaction.reference_type == ReferenceType.MANUAL
    assert result.transaction.notes == "Restock: +5 units"


@pytest.mark.asyncio
async def test_restock_uses_absolute_quantity_and_custom_notes(pizza_store):
    result = await restock_product(pizza_store, pizza_store.cheese, "-2.500", reference_id=3, notes="Supplier drop")

    assert result.transaction.quantity_change == Decimal("2.5")
    assert result.transaction.reference_id == 3
    assert result.transaction.notes == "Supplier drop"
    assert pizza_store.quantity_of(pizza_store.cheese) == Decimal("22.5")


@pytest.mark.asyncio
@pytest.mark.parametrize("quantity", [0, "abc", "NaN", True, None])
async def test_restock_rejects_bad_quantity(pizza_store, quantity):
    with pytest.raises(ValidationFailure):
        await restock_product(pizza_store, pizza_store.flour, quantity)
    assert pizza_store.ledger == []


@pytest.mark.asyncio
async def test_restock_unknown_product(pizza_store):
    with pytest.raises(NotFound):
        await restock_product(pizza_store, 404, 1)
    assert pizza_store.ledger == []


@pytest.mark.asyncio
async def test_manual_adjustment_either_direction(pizza_store):
    down = await adjust_product_quantity(pizza_store, pizza_store.flour, "-2.5")
    up = await adjust_product_quantity(pizza_store, pizza_store.flour, "1")

    assert down.transaction.transaction_type == TransactionType.ADJUSTMENT
    assert down.transaction.notes == "Manual adjustment: -2.5 units"
    assert up.transaction.notes == "Manual adjustment: +1 units"
    assert up.product.current_quantity == Decimal("48.5")


@pytest.mark.asyncio
async def test_waste_is_recorded(pizza_store):
    result = await adjust_product_quantity(
        pizza_store, pizza_store.cheese, "-0.75", transaction_type="waste", notes="Dropped tray"
    )
    assert result.transaction.transaction_type == TransactionType.WASTE
    assert result.product.current_quantity == Decimal("19.25")


@pytest.mark.asyncio
@pytest.mark.parametrize("change,transaction_type", [
    ("1", TransactionType.WASTE),
    ("1", TransactionType.SALE),
    ("-1", TransactionType.RESTOCK),
    ("0", TransactionType.ADJUSTMENT),
    ("-1", "theft"),
])
async def test_adjustment_direction_rules(pizza_store, change, transaction_type):
    with pytest.raises(ValidationFailure):
        await adjust_product_quantity(pizza_store, pizza_store.flour, change, transaction_type=transaction_type)
    assert pizza_store.transactions_opened == 0


@pytest.mark.asyncio
async def test_validate_quantity_change(pizza_store):
    ok = await validate_quantity_change(pizza_store, pizza_store.cheese, "-20")
    too_much = await validate_quantity_change(pizza_store, pizza_store.cheese, "-20.001")
    missing = await validate_quantity_change(pizza_store, 404, "-1")

    assert ok.is_valid is True
    assert ok.new_quantity == Decimal("0")
    assert too_much.is_valid is False
    assert too_much.current_quantity == Decimal("20")
    assert too_much.error == "Quantity adjustment would result in negative inventory"
    assert missing.is_valid is False
    assert missing.error == "Product not found"
    assert pizza_store.quantity_of(pizza_store.cheese) == Decimal("20")


@pytest.mark.asyncio
async def test_history_is_newest_first_and_filtered(pizza_store):
    await deduct(pizza_store, 1, [{"menu_item_id": pizza_store.pizza, "quantity": 1}])
    await restock_product(pizza_store, pizza_store.flour, 10)

    history = await get_transaction_history(pizza_store)
    flour_only = await get_transaction_history(pizza_store, product_id=pizza_store.flour)
    sales = await get_transaction_history(pizza_store, transaction_type="sale")
    page = await get_transaction_history(pizza_store, limit=1, offset=1)

    assert [e.transaction_type for e in history] == [
        TransactionType.RESTOCK, TransactionType.SALE, TransactionType.SALE,
    ]
    assert all(e.product_id == pizza_store.flour for e in flour_only)
    assert len(flour_only) == 2
    assert len(sales) == 2
    assert page == [history[1]]


@pytest.mark.asyncio
@pytest.mark.parametrize("kwargs", [
    {"limit": 0},
    {"limit": 1001},
    {"offset": -1},
    {"product_id": 0},
    {"reference_type": "invoice"},
])
async def test_history_rejects_bad_filters(pizza_store, kwargs):
    with pytest.raises(ValidationFailure):
        await get_transaction_history(pizza_store, **kwargs)
