from tortoise import fields, models


class Recipe(models.Model):
    id = fields.IntField(primary_key=True)
    name = fields.CharField(max_length=200)
    description = fields.TextField(null=True)
    category = fields.CharField(max_length=10) # 'food' or 'drink'
    servings = fields.IntField(null=True)
    created_at = fields.DatetimeField(auto_now_add=True)
    updated_at = fields.DatetimeField(auto_now=True)

    class Meta:
        table = "recipes"


class RecipeIngredient(models.Model):
    id = fields.IntField(primary_key=True)
    recipe = fields.ForeignKeyField("models.Recipe", related_name="ingredients", on_delete=fields.CASCADE)
    name = fields.CharField(max_length=100)
    quantity = fields.DecimalField(max_digits=10, decimal_places=3, null=True)
    unit = fields.CharField(max_length=50, null=True)
    notes = fields.TextField(null=True)
    order_index = fields.IntField(default=0)

    class Meta:
        table = "recipe_ingredients"
        indexes = [
            ("recipe_id",),
        ]


class RecipeIngredientProduct(models.Model):
    """Links one recipe ingredient to the inventory product it consumes.

    Ingredients without a link are not inventory-tracked.
    """
    id = fields.IntField(primary_key=True)
    recipe_ingredient = fields.ForeignKeyField(
        "models.RecipeIngredient", related_name="product_links", on_delete=fields.CASCADE
    )
    product = fields.ForeignKeyField("models.Product", related_name="recipe_links", on_delete=fields.CASCADE)
    quantity_per_serving = fields.DecimalField(max_digits=10, decimal_places=3)
    created_at = fields.DatetimeField(auto_now_add=True)

    class Meta:
        table = "recipe_ingredient_products"
        unique_together = (("recipe_ingredient", "product"),)
        indexes = [
            ("recipe_ingredient_id",),
            ("product_id",),
        ]
