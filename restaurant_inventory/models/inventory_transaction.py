from enum import Enum
from tortoise import fields, models


class TransactionType(str, Enum):
    SALE = "sale"
    RESTOCK = "restock"
    ADJUSTMENT = "adjustment"
    WASTE = "waste"


class ReferenceType(str, Enum):
    ORDER = "order"
    MANUAL = "manual"
    RECIPE = "recipe"


class InventoryTransaction(models.Model):
    """
    Append-only ledger row explaining one change to one product's quantity.
    Rows are created once and never updated or deleted by the engine, so the
    sum of quantity_change for a product accounts for every movement of its stock.
    """
    id = fields.IntField(primary_key=True)
    product = fields.ForeignKeyField("models.Product", related_name="transactions", on_delete=fields.CASCADE)
    transaction_type = fields.CharEnumField(TransactionType, max_length=20)
    quantity_change = fields.DecimalField(max_digits=10, decimal_places=3) # negative = outgoing, positive = incoming
    reference_type = fields.CharEnumField(ReferenceType, max_length=20, null=True)
    reference_id = fields.IntField(null=True) # e.g. order id
    notes = fields.TextField(null=True)
    created_at = fields.DatetimeField(auto_now_add=True)

    class Meta:
        table = "inventory_transactions"
        indexes = [
            ("product_id",),
            ("transaction_type",),
            ("reference_type", "reference_id"),  # Idempotency lookups per order
            ("created_at",),
        ]
