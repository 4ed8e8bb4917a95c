# restaurant_inventory/models/__init__.py
from .product import Product
from .recipe import Recipe, RecipeIngredient, RecipeIngredientProduct
from .order import MenuItem, Order, OrderItem, OrderStatus
from .inventory_transaction import InventoryTransaction, ReferenceType, TransactionType

# Export all models
__all__ = [
    "InventoryTransaction",
    "MenuItem",
    "Order",
    "OrderItem",
    "OrderStatus",
    "Product",
    "Recipe",
    "RecipeIngredient",
    "RecipeIngredientProduct",
    "ReferenceType",
    "TransactionType",
]
