# scripts/seed_data.py
import asyncio
from decimal import Decimal

from tortoise import Tortoise

from restaurant_inventory.core.db import DB_URL, MODELS_MODULES
from restaurant_inventory.models import MenuItem, Product, Recipe, RecipeIngredient, RecipeIngredientProduct


async def init():
    await Tortoise.init(db_url=DB_URL, modules={"models": MODELS_MODULES})
    # safe in dev; tables normally exist already
    await Tortoise.generate_schemas()


async def seed():
    flour, _ = await Product.get_or_create(
        name="Flour", defaults={"unit_of_measure": "kg", "low_stock_threshold": 10, "cost_per_unit": Decimal("1.20")}
    )
    cheese, _ = await Product.get_or_create(
        name="Cheese", defaults={"unit_of_measure": "kg", "low_stock_threshold": 5, "cost_per_unit": Decimal("8.50")}
    )
    basil, _ = await Product.get_or_create(
        name="Basil", defaults={"unit_of_measure": "kg", "low_stock_threshold": 1, "cost_per_unit": Decimal("15.00")}
    )

    # Reset quantities so the script can be re-run
    flour.current_quantity = Decimal("50")
    cheese.current_quantity = Decimal("20")
    basil.current_quantity = Decimal("0")
    await flour.save(); await cheese.save(); await basil.save()
    print("Products:", flour.id, cheese.id, basil.id)

    pizza, _ = await Recipe.get_or_create(name="Margherita Pizza", defaults={"servings": 1, "category": "food"})
    dough, _ = await RecipeIngredient.get_or_create(
        recipe=pizza, name="Dough", defaults={"quantity": Decimal("0.125"), "unit": "kg", "order_index": 0}
    )
    topping, _ = await RecipeIngredient.get_or_create(
        recipe=pizza, name="Mozzarella", defaults={"quantity": Decimal("0.05"), "unit": "kg", "order_index": 1}
    )
    await RecipeIngredientProduct.get_or_create(
        recipe_ingredient=dough, product=flour, defaults={"quantity_per_serving": Decimal("0.125")}
    )
    await RecipeIngredientProduct.get_or_create(
        recipe_ingredient=topping, product=cheese, defaults={"quantity_per_serving": Decimal("0.05")}
    )

    m1, _ = await MenuItem.get_or_create(name="Pizza", defaults={"recipe": pizza, "price": Decimal("12.00"), "category": "Mains"})
    m2, _ = await MenuItem.get_or_create(name="Soft Drink", defaults={"price": Decimal("2.50"), "category": "Drinks"})
    print("Menu items:", m1.id, m2.id)
    print("Inventory seeded.")


async def main():
    await init()
    await seed()
    await Tortoise.close_connections()

if __name__ == "__main__":
    asyncio.run(main())
