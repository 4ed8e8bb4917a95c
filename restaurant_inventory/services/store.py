"""
Stock store: the only seam between the inventory engine and persistence.

Engine functions receive a ``StockStore`` explicitly. ``transaction()`` yields a
connection handle that must be passed back to every call made inside it so
the ledger inserts and quantity increments share one database transaction.
"""
from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Any, AsyncContextManager, List, Optional

from tortoise import timezone
from tortoise.expressions import F
from tortoise.transactions import in_transaction

from restaurant_inventory.core.exceptions import NegativeStock, NotFound
from restaurant_inventory.models.inventory_transaction import InventoryTransaction, ReferenceType, TransactionType
from restaurant_inventory.models.order import MenuItem, OrderItem
from restaurant_inventory.models.product import Product
from restaurant_inventory.models.recipe import Recipe, RecipeIngredientProduct
from restaurant_inventory.schemas.inventory import (
    LedgerEntry,
    MenuItemRef,
    OrderLine,
    ProductSnapshot,
    RecipeProductLink,
)


class StockStore(ABC):

    @abstractmethod
    def transaction(self) -> AsyncContextManager[Any]:
        """Async context manager; commits on clean exit, rolls back on any exception."""

    # --- Menu / recipe resolution ---

    @abstractmethod
    async def get_menu_item(self, menu_item_id: int, conn: Any = None) -> Optional[MenuItemRef]:
        ...

    async def get_recipe_id_for_menu_item(self, menu_item_id: int, conn: Any = None) -> Optional[int]:
        menu_item = await self.get_menu_item(menu_item_id, conn=conn)
        return menu_item.recipe_id if menu_item else None

    @abstractmethod
    async def recipe_exists(self, recipe_id: int, conn: Any = None) -> bool:
        ...

    @abstractmethod
    async def get_recipe_product_links(self, recipe_id: int, conn: Any = None) -> List[RecipeProductLink]:
        """Linked ingredients of a recipe in ingredient order, joined with current stock."""

    @abstractmethod
    async def get_order_items(self, order_id: int) -> List[OrderLine]:
        ...

    # --- Products ---

    @abstractmethod
    async def get_product(self, product_id: int, conn: Any = None) -> Optional[ProductSnapshot]:
        ...

    @abstractmethod
    async def list_products(self) -> List[ProductSnapshot]:
        """All products ordered by name."""

    @abstractmethod
    async def count_products(self) -> int:
        ...

    @abstractmethod
    async def increment_quantity(self, product_id: int, delta: Decimal, conn: Any, allow_negative: bool = True) -> Decimal:
        """
        Apply ``current_quantity = current_quantity + delta`` inside the store and
        return the resulting quantity. Raises NotFound for an unknown product and
        NegativeStock when ``allow_negative`` is False and the result is below zero.
        """

    # --- Ledger ---

    @abstractmethod
    async def record_transaction(
        self,
        product_id: int,
        transaction_type: TransactionType,
        quantity_change: Decimal,
        reference_type: Optional[ReferenceType],
        reference_id: Optional[int],
        notes: Optional[str],
        conn: Any,
    ) -> LedgerEntry:
        ...

    @abstractmethod
    async def find_transactions(
        self,
        reference_type: ReferenceType,
        reference_id: int,
        transaction_type: Optional[TransactionType] = None,
        conn: Any = None,
    ) -> List[LedgerEntry]:
        ...

    @abstractmethod
    async def get_transaction_history(
        self,
        product_id: Optional[int] = None,
        transaction_type: Optional[TransactionType] = None,
        reference_type: Optional[ReferenceType] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> List[LedgerEntry]:
        """Newest first."""

    @abstractmethod
    async def get_ledger_balance(self, product_id: int) -> Decimal:
        """Sum of every quantity_change recorded for the product."""


class TortoiseStockStore(StockStore):
    """StockStore over the Tortoise ORM models."""

    def __init__(self, connection_name: Optional[str] = None):
        self.connection_name = connection_name

    def transaction(self):
        return in_transaction(self.connection_name)

    async def get_menu_item(self, menu_item_id: int, conn: Any = None) -> Optional[MenuItemRef]:
        menu_item = await MenuItem.get_or_none(id=menu_item_id).using_db(conn)
        if not menu_item:
            return None
        return MenuItemRef(id=menu_item.id, name=menu_item.name, recipe_id=menu_item.recipe_id)

    async def recipe_exists(self, recipe_id: int, conn: Any = None) -> bool:
        return await Recipe.filter(id=recipe_id).using_db(conn).exists()

    async def get_recipe_product_links(self, recipe_id: int, conn: Any = None) -> List[RecipeProductLink]:
        links = await (
            RecipeIngredientProduct.filter(recipe_ingredient__recipe_id=recipe_id)
            .using_db(conn)
            .order_by("recipe_ingredient__order_index", "id")
            .prefetch_related("recipe_ingredient", "product")
        )
        return [
            RecipeProductLink(
                product_id=link.product_id,
                quantity_per_serving=link.quantity_per_serving,
                product_name=link.product.name,
                unit_of_measure=link.product.unit_of_measure,
                current_quantity=link.product.current_quantity,
                ingredient_name=link.recipe_ingredient.name,
            )
            for link in links
        ]

    async def get_order_items(self, order_id: int) -> List[OrderLine]:
        items = await OrderItem.filter(order_id=order_id).order_by("id")
        return [OrderLine(menu_item_id=item.menu_item_id, quantity=item.quantity) for item in items]

    async def get_product(self, product_id: int, conn: Any = None) -> Optional[ProductSnapshot]:
        product = await Product.get_or_none(id=product_id).using_db(conn)
        return ProductSnapshot.model_validate(product) if product else None

    async def list_products(self) -> List[ProductSnapshot]:
        products = await Product.all().order_by("name")
        return [ProductSnapshot.model_validate(p) for p in products]

    async def count_products(self) -> int:
        return await Product.all().count()

    async def increment_quantity(self, product_id: int, delta: Decimal, conn: Any, allow_negative: bool = True) -> Decimal:
        # Single UPDATE evaluated by the database; concurrent deltas serialize on the row lock
        updated = await Product.filter(id=product_id).using_db(conn).update(
            current_quantity=F("current_quantity") + delta,
            updated_at=timezone.now(),
        )
        if not updated:
            raise NotFound(f"Product with ID {product_id} does not exist")

        # Same transaction, so this sees our own write and nobody else's uncommitted one
        product = await Product.get(id=product_id).using_db(conn)
        if not allow_negative and product.current_quantity < 0:
            raise NegativeStock(product_id, product.current_quantity)
        return product.current_quantity

    async def record_transaction(
        self,
        product_id: int,
        transaction_type: TransactionType,
        quantity_change: Decimal,
        reference_type: Optional[ReferenceType],
        reference_id: Optional[int],
        notes: Optional[str],
        conn: Any,
    ) -> LedgerEntry:
        row = await InventoryTransaction.create(
            product_id=product_id,
            transaction_type=transaction_type,
            quantity_change=quantity_change,
            reference_type=reference_type,
            reference_id=reference_id,
            notes=notes,
            using_db=conn,
        )
        return LedgerEntry.model_validate(row)

    async def find_transactions(
        self,
        reference_type: ReferenceType,
        reference_id: int,
        transaction_type: Optional[TransactionType] = None,
        conn: Any = None,
    ) -> List[LedgerEntry]:
        query = InventoryTransaction.filter(reference_type=reference_type, reference_id=reference_id)
        if transaction_type is not None:
            query = query.filter(transaction_type=transaction_type)
        rows = await query.using_db(conn).order_by("id")
        return [LedgerEntry.model_validate(row) for row in rows]

    async def get_transaction_history(
        self,
        product_id: Optional[int] = None,
        transaction_type: Optional[TransactionType] = None,
        reference_type: Optional[ReferenceType] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> List[LedgerEntry]:
        filters = {}
        if product_id is not None:
            filters["product_id"] = product_id
        if transaction_type is not None:
            filters["transaction_type"] = transaction_type
        if reference_type is not None:
            filters["reference_type"] = reference_type

        rows = await (
            InventoryTransaction.filter(**filters)
            .order_by("-created_at", "-id")
            .offset(offset)
            .limit(limit)
        )
        return [LedgerEntry.model_validate(row) for row in rows]

    async def get_ledger_balance(self, product_id: int) -> Decimal:
        changes = await InventoryTransaction.filter(product_id=product_id).values_list("quantity_change", flat=True)
        return sum(changes, Decimal("0"))
