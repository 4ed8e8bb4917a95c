from tortoise import fields, models

from restaurant_inventory.core.config import DEFAULT_LOW_STOCK_THRESHOLD


class Product(models.Model):
    """Inventory-tracked item. ``current_quantity`` only ever moves by ledger deltas."""
    id = fields.IntField(primary_key=True)
    name = fields.CharField(max_length=200, unique=True)
    description = fields.TextField(null=True)
    unit_of_measure = fields.CharField(max_length=50) # e.g. 'kg', 'l', 'pieces'
    current_quantity = fields.DecimalField(max_digits=10, decimal_places=3, default=0)
    low_stock_threshold = fields.IntField(default=DEFAULT_LOW_STOCK_THRESHOLD) # For low stock alert
    cost_per_unit = fields.DecimalField(max_digits=10, decimal_places=2, null=True)
    supplier_info = fields.TextField(null=True)
    created_at = fields.DatetimeField(auto_now_add=True)
    updated_at = fields.DatetimeField(auto_now=True)

    class Meta:
        table = "products"
        indexes = [
            ("current_quantity", "low_stock_threshold"),  # Alert scans
            ("unit_of_measure",),
        ]
