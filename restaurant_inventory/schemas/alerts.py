from decimal import Decimal
from typing import Annotated, Any, List, Literal

from pydantic import BaseModel, BeforeValidator, Field, PlainSerializer

AlertType = Literal["low_stock", "out_of_stock"]
Severity = Literal["low", "medium", "high", "critical"]


def _to_quantity(value: Any) -> Decimal:
    # JSON numbers arrive as int/float; strings and booleans are rejected, not parsed
    if isinstance(value, bool) or not isinstance(value, (int, float, Decimal)):
        raise ValueError("current_quantity must be a number")
    quantity = value if isinstance(value, Decimal) else Decimal(str(value))
    if not quantity.is_finite():
        raise ValueError("current_quantity must be finite")
    return quantity


# Decimal in Python, a JSON number on the wire
Quantity = Annotated[
    Decimal,
    BeforeValidator(_to_quantity),
    PlainSerializer(float, return_type=float, when_used="json"),
]


class Alert(BaseModel):
    """Fields every inventory alert carries."""
    id: int
    name: str
    current_quantity: Quantity
    unit_of_measure: str
    alert_type: AlertType
    severity: Severity
    message: str


class LowStockAlert(Alert):
    alert_type: Literal["low_stock"] = "low_stock"
    low_stock_threshold: int


class OutOfStockAlert(Alert):
    alert_type: Literal["out_of_stock"] = "out_of_stock"
    severity: Literal["critical"] = "critical"


class DashboardSummary(BaseModel):
    """Every field is required so a partial payload fails validation."""
    total_products: int = Field(..., ge=0)
    low_stock_count: int = Field(..., ge=0)
    out_of_stock_count: int = Field(..., ge=0)
    low_stock_alerts: List[LowStockAlert]
    out_of_stock_alerts: List[OutOfStockAlert]
    alert_summary: str
