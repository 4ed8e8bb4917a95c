import pytest

from restaurant_inventory.testing.memory_store import InMemoryStockStore


@pytest.fixture
def store():
    return InMemoryStockStore()


@pytest.fixture
def pizza_store():
    """Flour 50 kg and cheese 20 kg; one Pizza uses 0.125 kg flour and 0.05 kg cheese."""
    store = InMemoryStockStore()
    store.flour = store.add_product("Flour", "50", low_stock_threshold=10)
    store.cheese = store.add_product("Cheese", "20", low_stock_threshold=5)
    store.pizza_recipe = store.add_recipe("Margherita Pizza")
    store.add_ingredient(store.pizza_recipe, "Dough", product_id=store.flour, quantity_per_serving="0.125")
    store.add_ingredient(store.pizza_recipe, "Mozzarella", product_id=store.cheese, quantity_per_serving="0.05")
    store.add_ingredient(store.pizza_recipe, "Salt")  # not inventory-tracked
    store.pizza = store.add_menu_item("Pizza", recipe_id=store.pizza_recipe)
    store.drink = store.add_menu_item("Soft Drink")
    return store
