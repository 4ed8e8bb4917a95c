"""
Low-stock and out-of-stock classification.

The classifiers are pure functions over anything shaped like a product (a
ProductSnapshot, an ORM row or a mapping). The ``get_*`` coroutines read the
store and build alert/dashboard models from them.
"""
import logging
from collections.abc import Mapping
from decimal import Decimal
from typing import Any, Iterable, List, Optional

from pydantic import ValidationError

from restaurant_inventory.schemas.alerts import Alert, DashboardSummary, LowStockAlert, OutOfStockAlert
from restaurant_inventory.services.store import StockStore

log = logging.getLogger(__name__)

CRITICAL_RATIO = Decimal("0.2")
HIGH_RATIO = Decimal("0.5")


def _field(product: Any, name: str) -> Any:
    if isinstance(product, Mapping):
        return product.get(name)
    return getattr(product, name, None)


def _as_decimal(value: Any) -> Optional[Decimal]:
    # Only real numbers count; strings and booleans are not quantities
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, Decimal):
        return value
    if isinstance(value, (int, float)):
        return Decimal(str(value))
    return None


def _format_quantity(value: Decimal) -> str:
    return format(value.normalize(), "f")


def is_low_stock(product: Any) -> bool:
    """True when 0 < current_quantity <= low_stock_threshold."""
    if product is None:
        return False
    quantity = _as_decimal(_field(product, "current_quantity"))
    threshold = _as_decimal(_field(product, "low_stock_threshold"))
    if quantity is None or threshold is None:
        return False
    return 0 < quantity <= threshold


def is_out_of_stock(product: Any) -> bool:
    """True only at exactly zero. Negative stock (a bypassed deduction) does not count."""
    if product is None:
        return False
    quantity = _as_decimal(_field(product, "current_quantity"))
    return quantity is not None and quantity == 0


def calculate_severity(current_quantity: Any, threshold: Any) -> str:
    quantity = _as_decimal(current_quantity)
    limit = _as_decimal(threshold)
    if quantity is None or limit is None:
        raise ValueError("current_quantity and threshold must be numbers")
    if limit <= 0:
        return "critical"
    ratio = quantity / limit
    if ratio <= CRITICAL_RATIO:
        return "critical"
    if ratio <= HIGH_RATIO:
        return "high"
    return "medium"


def low_stock_severity(product: Any) -> str:
    return calculate_severity(_field(product, "current_quantity"), _field(product, "low_stock_threshold"))


def out_of_stock_severity() -> str:
    return "critical"


def build_low_stock_alert(product: Any) -> LowStockAlert:
    quantity = _as_decimal(_field(product, "current_quantity"))
    name = _field(product, "name")
    unit = _field(product, "unit_of_measure")
    threshold = _field(product, "low_stock_threshold")
    return LowStockAlert(
        id=_field(product, "id"),
        name=name,
        current_quantity=quantity,
        low_stock_threshold=threshold,
        unit_of_measure=unit,
        severity=low_stock_severity(product),
        message=f"{name} is running low ({_format_quantity(quantity)} {unit} remaining, threshold: {threshold})",
    )


def build_out_of_stock_alert(product: Any) -> OutOfStockAlert:
    name = _field(product, "name")
    return OutOfStockAlert(
        id=_field(product, "id"),
        name=name,
        current_quantity=Decimal("0"),
        unit_of_measure=_field(product, "unit_of_measure"),
        severity=out_of_stock_severity(),
        message=f"{name} is out of stock",
    )


def _count_phrase(count: int, label: str) -> str:
    return f"{count} product{'s' if count > 1 else ''} {label}"


def build_alert_summary(low_stock_count: int, out_of_stock_count: int) -> str:
    """One-line dashboard text, out-of-stock first."""
    if low_stock_count + out_of_stock_count == 0:
        return "All products are adequately stocked"

    messages = []
    if out_of_stock_count > 0:
        messages.append(_count_phrase(out_of_stock_count, "out of stock"))
    if low_stock_count > 0:
        messages.append(_count_phrase(low_stock_count, "running low"))
    return ", ".join(messages)


def build_dashboard_summary(
    total_products: int,
    low_stock_alerts: List[LowStockAlert],
    out_of_stock_alerts: List[OutOfStockAlert],
) -> DashboardSummary:
    return DashboardSummary(
        total_products=total_products,
        low_stock_count=len(low_stock_alerts),
        out_of_stock_count=len(out_of_stock_alerts),
        low_stock_alerts=low_stock_alerts,
        out_of_stock_alerts=out_of_stock_alerts,
        alert_summary=build_alert_summary(len(low_stock_alerts), len(out_of_stock_alerts)),
    )


def classify_low_stock(products: Iterable[Any]) -> List[LowStockAlert]:
    """Low-stock alerts, lowest quantity first, then by name."""
    low = [p for p in products if is_low_stock(p)]
    low.sort(key=lambda p: (_as_decimal(_field(p, "current_quantity")), _field(p, "name")))
    return [build_low_stock_alert(p) for p in low]


def classify_out_of_stock(products: Iterable[Any]) -> List[OutOfStockAlert]:
    out = sorted((p for p in products if is_out_of_stock(p)), key=lambda p: _field(p, "name"))
    return [build_out_of_stock_alert(p) for p in out]


# ----------- Shape validation -----------

def validate_alert(alert: Any) -> bool:
    """Strict check of an alert payload; nothing is coerced."""
    try:
        Alert.model_validate(alert, strict=True)
    except ValidationError:
        return False
    return True


def validate_dashboard_summary(summary: Any) -> bool:
    try:
        DashboardSummary.model_validate(summary, strict=True)
    except ValidationError:
        return False
    return True


# ----------- Store-backed reads -----------

async def get_low_stock_alerts(store: StockStore) -> List[LowStockAlert]:
    products = await store.list_products()
    return classify_low_stock(products)


async def get_out_of_stock_alerts(store: StockStore) -> List[OutOfStockAlert]:
    products = await store.list_products()
    return classify_out_of_stock(products)


async def get_dashboard_summary(store: StockStore) -> DashboardSummary:
    products = await store.list_products()
    total_products = await store.count_products()
    summary = build_dashboard_summary(total_products, classify_low_stock(products), classify_out_of_stock(products))
    log.info(f"Dashboard summary: {summary.alert_summary}")
    return summary
