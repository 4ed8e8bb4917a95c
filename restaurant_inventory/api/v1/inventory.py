import logging
from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import JSONResponse

from restaurant_inventory.core.config import LOG_LEVEL
from restaurant_inventory.models.inventory_transaction import ReferenceType, TransactionType
from restaurant_inventory.schemas.inventory import (
    AdjustmentRequest,
    BatchAdjustRequest,
    DeductionResult,
    DeductRequest,
    OrderItemsRequest,
    ProcessOrderRequest,
    RestockRequest,
)
from restaurant_inventory.schemas.response import SuccessResponse, _rid
from restaurant_inventory.services import adjustments, alerts
from restaurant_inventory.services.availability import check_availability
from restaurant_inventory.services.deduction import (
    batch_adjust,
    deduct,
    process_existing_order,
    validate_order_items_have_recipes,
)
from restaurant_inventory.services.requirements import compute_order_requirement
from restaurant_inventory.services.store import StockStore, TortoiseStockStore

router = APIRouter()
logging.basicConfig(level=LOG_LEVEL, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
log = logging.getLogger("uvicorn")

# HTTP status for the first error of a failed deduction
DEDUCTION_ERROR_STATUS = {
    "validation_error": status.HTTP_400_BAD_REQUEST,
    "order_not_found": status.HTTP_404_NOT_FOUND,
    "insufficient_inventory": status.HTTP_409_CONFLICT,
    "duplicate_deduction": status.HTTP_409_CONFLICT,
    "processing_error": status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def get_store() -> StockStore:
    """Store handle for one request. Overridden in tests."""
    return TortoiseStockStore()


def _deduction_response(result: DeductionResult):
    if result.success:
        return SuccessResponse(data=result.model_dump(mode="json"))
    error_type = result.errors[0].type if result.errors else "processing_error"
    body = {
        "success": False,
        "data": result.model_dump(mode="json"),
        "request_id": _rid(),
    }
    return JSONResponse(status_code=DEDUCTION_ERROR_STATUS.get(error_type, 500), content=body)


# ----------- Order deduction -----------

@router.post("/requirements", response_model=SuccessResponse)
async def order_requirements_endpoint(request_data: OrderItemsRequest, store: StockStore = Depends(get_store)):
    """Consolidated product quantities an order would consume."""
    requirements = await compute_order_requirement(store, request_data.items)
    return SuccessResponse(data=[r.model_dump(mode="json") for r in requirements])


@router.post("/availability", response_model=SuccessResponse)
async def availability_endpoint(request_data: OrderItemsRequest, store: StockStore = Depends(get_store)):
    """Read-only stock check for an order."""
    result = await check_availability(store, request_data.items)
    return SuccessResponse(data=result.model_dump(mode="json"))


@router.post("/recipe-coverage", response_model=SuccessResponse)
async def recipe_coverage_endpoint(request_data: OrderItemsRequest, store: StockStore = Depends(get_store)):
    """Lists order items whose menu item has no recipe (no inventory impact)."""
    result = await validate_order_items_have_recipes(store, request_data.items)
    return SuccessResponse(data=result.model_dump(mode="json"))


@router.post("/orders/{order_id}/deduct", response_model=SuccessResponse)
async def deduct_order_endpoint(order_id: int, request_data: DeductRequest, store: StockStore = Depends(get_store)):
    """Atomically deducts the inventory an order consumes."""
    result = await deduct(
        store, order_id, request_data.items,
        skip_inventory_check=request_data.skip_inventory_check,
    )
    if result.success:
        log.info(f"Order {order_id}: {len(result.transactions)} inventory transactions recorded.")
    return _deduction_response(result)


@router.post("/orders/{order_id}/process", response_model=SuccessResponse)
async def process_order_endpoint(order_id: int, request_data: Optional[ProcessOrderRequest] = None,
                                 store: StockStore = Depends(get_store)):
    """Deducts inventory for an order already stored with its line items."""
    skip = request_data.skip_inventory_check if request_data else False
    result = await process_existing_order(store, order_id, skip_inventory_check=skip)
    return _deduction_response(result)


@router.post("/batch-adjust", status_code=status.HTTP_201_CREATED, response_model=SuccessResponse)
async def batch_adjust_endpoint(request_data: BatchAdjustRequest, store: StockStore = Depends(get_store)):
    """Applies several signed deltas in one transaction."""
    transactions = await batch_adjust(
        store, request_data.updates,
        reference_id=request_data.reference_id,
        reference_type=request_data.reference_type,
    )
    return SuccessResponse(data=[t.model_dump(mode="json") for t in transactions])


# ----------- Manual stock movements -----------

@router.post("/products/{product_id}/restock", status_code=status.HTTP_201_CREATED, response_model=SuccessResponse)
async def restock_endpoint(product_id: int, request_data: RestockRequest, store: StockStore = Depends(get_store)):
    result = await adjustments.restock_product(
        store, product_id, request_data.quantity,
        reference_id=request_data.reference_id,
        notes=request_data.notes,
    )
    return SuccessResponse(data=result.model_dump(mode="json"))


@router.post("/products/{product_id}/adjust", status_code=status.HTTP_201_CREATED, response_model=SuccessResponse)
async def adjust_endpoint(product_id: int, request_data: AdjustmentRequest, store: StockStore = Depends(get_store)):
    result = await adjustments.adjust_product_quantity(
        store, product_id, request_data.quantity_change,
        transaction_type=request_data.transaction_type,
        notes=request_data.notes,
    )
    return SuccessResponse(data=result.model_dump(mode="json"))


@router.get("/products/{product_id}/quantity-check", response_model=SuccessResponse)
async def quantity_check_endpoint(product_id: int, change: Decimal, store: StockStore = Depends(get_store)):
    """Would this change leave the product at or above zero?"""
    result = await adjustments.validate_quantity_change(store, product_id, change)
    return SuccessResponse(data=result.model_dump(mode="json"))


@router.get("/transactions", response_model=SuccessResponse)
async def transactions_endpoint(
    product_id: Optional[int] = None,
    transaction_type: Optional[TransactionType] = None,
    reference_type: Optional[ReferenceType] = None,
    limit: int = Query(100, ge=1, le=adjustments.MAX_HISTORY_LIMIT),
    offset: int = Query(0, ge=0),
    store: StockStore = Depends(get_store),
):
    """Ledger rows, newest first."""
    rows = await adjustments.get_transaction_history(
        store,
        product_id=product_id,
        transaction_type=transaction_type,
        reference_type=reference_type,
        limit=limit,
        offset=offset,
    )
    return SuccessResponse(data=[r.model_dump(mode="json") for r in rows])


# ----------- Alerts -----------

@router.get("/alerts/low-stock", response_model=SuccessResponse)
async def low_stock_alerts_endpoint(store: StockStore = Depends(get_store)):
    low_stock = await alerts.get_low_stock_alerts(store)
    return SuccessResponse(data=[a.model_dump(mode="json") for a in low_stock])


@router.get("/alerts/out-of-stock", response_model=SuccessResponse)
async def out_of_stock_alerts_endpoint(store: StockStore = Depends(get_store)):
    out_of_stock = await alerts.get_out_of_stock_alerts(store)
    return SuccessResponse(data=[a.model_dump(mode="json") for a in out_of_stock])


@router.get("/dashboard", response_model=SuccessResponse)
async def dashboard_endpoint(store: StockStore = Depends(get_store)):
    summary = await alerts.get_dashboard_summary(store)
    return SuccessResponse(data=summary.model_dump(mode="json"))
