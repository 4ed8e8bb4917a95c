from datetime import datetime
from decimal import Decimal
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from restaurant_inventory.models.inventory_transaction import ReferenceType, TransactionType


# ----------- Inputs -----------

class OrderLine(BaseModel):
    """A single order line item as the engine consumes it."""
    model_config = ConfigDict(extra="ignore")

    menu_item_id: int = Field(..., gt=0)
    quantity: int = Field(..., gt=0, description="Servings ordered.")


class InventoryUpdate(BaseModel):
    """One signed delta for batch_adjust."""
    product_id: int = Field(..., gt=0)
    quantity_change: Decimal = Field(..., max_digits=10, decimal_places=3)
    notes: Optional[str] = Field(None, max_length=1000)
    transaction_type: TransactionType = TransactionType.SALE

    @field_validator("quantity_change")
    @classmethod
    def _non_zero(cls, value: Decimal) -> Decimal:
        if value == 0:
            raise ValueError("quantity_change must not be zero")
        return value


# ----------- Store rows -----------

class ProductSnapshot(BaseModel):
    """Read-only view of a products row."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    unit_of_measure: str
    current_quantity: Decimal
    low_stock_threshold: int = 10
    cost_per_unit: Optional[Decimal] = None
    updated_at: Optional[datetime] = None


class RecipeProductLink(BaseModel):
    """A recipe ingredient joined with the product it draws from."""
    product_id: int
    quantity_per_serving: Decimal
    product_name: str
    unit_of_measure: str
    current_quantity: Decimal
    ingredient_name: Optional[str] = None


class MenuItemRef(BaseModel):
    id: int
    name: str
    recipe_id: Optional[int] = None


class LedgerEntry(BaseModel):
    """An inventory_transactions row."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    product_id: int
    transaction_type: TransactionType
    quantity_change: Decimal
    reference_type: Optional[ReferenceType] = None
    reference_id: Optional[int] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None


# ----------- Engine results -----------

class ProductRequirement(BaseModel):
    product_id: int
    quantity_per_serving: Decimal
    total_quantity_needed: Decimal
    current_quantity: Decimal
    product_name: str
    unit_of_measure: str
    ingredient_name: Optional[str] = None


class InsufficientItem(BaseModel):
    product_id: int
    product_name: str
    ingredient_name: Optional[str] = None
    required: Decimal
    available: Decimal
    shortage: Decimal
    unit: str


class AvailabilityResult(BaseModel):
    is_valid: bool
    insufficient_items: List[InsufficientItem] = Field(default_factory=list)
    requirements: List[ProductRequirement] = Field(default_factory=list)


class DeductionError(BaseModel):
    type: str
    message: str
    details: Optional[Any] = None


class DeductionResult(BaseModel):
    success: bool
    transactions: List[LedgerEntry] = Field(default_factory=list)
    errors: List[DeductionError] = Field(default_factory=list)
    message: Optional[str] = None


class MissingRecipeItem(BaseModel):
    menu_item_id: int
    menu_item_name: Optional[str] = None
    error: str


class RecipeCoverageResult(BaseModel):
    is_valid: bool
    items_without_recipes: List[MissingRecipeItem] = Field(default_factory=list)


class AdjustmentResult(BaseModel):
    transaction: LedgerEntry
    product: ProductSnapshot


class QuantityChangeCheck(BaseModel):
    is_valid: bool
    current_quantity: Optional[Decimal] = None
    new_quantity: Optional[Decimal] = None
    error: Optional[str] = None


# ----------- API request bodies -----------

class OrderItemsRequest(BaseModel):
    items: List[OrderLine] = Field(..., min_length=1)


class DeductRequest(OrderItemsRequest):
    skip_inventory_check: bool = Field(False, description="Deduct even if stock would go negative.")


class ProcessOrderRequest(BaseModel):
    skip_inventory_check: bool = False


class BatchAdjustRequest(BaseModel):
    reference_id: Optional[int] = Field(None, gt=0)
    reference_type: ReferenceType = ReferenceType.ORDER
    updates: List[InventoryUpdate] = Field(..., min_length=1)


class RestockRequest(BaseModel):
    quantity: Decimal = Field(..., gt=0, max_digits=10, decimal_places=3)
    notes: Optional[str] = Field(None, max_length=1000)
    reference_id: Optional[int] = Field(None, gt=0)


class AdjustmentRequest(BaseModel):
    quantity_change: Decimal = Field(..., max_digits=10, decimal_places=3)
    notes: Optional[str] = Field(None, max_length=1000)
    transaction_type: TransactionType = TransactionType.ADJUSTMENT

    @field_validator("quantity_change")
    @classmethod
    def _non_zero(cls, value: Decimal) -> Decimal:
        if value == 0:
            raise ValueError("quantity_change must not be zero")
        return value
