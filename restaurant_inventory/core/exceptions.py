from typing import Any, Dict, List, Optional


class InventoryError(Exception):
    """Base class for every failure the inventory engine reports to its callers."""
    code = "inventory_error"
    status_code = 500

    def __init__(self, message: str, details: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> Dict[str, Any]:
        body = {"type": self.code, "message": self.message}
        if self.details is not None:
            body["details"] = self.details
        return body


class ValidationFailure(InventoryError):
    """Malformed input. Raised before the store is touched."""
    code = "validation_error"
    status_code = 400


class NotFound(InventoryError):
    """A referenced recipe, product or order does not exist."""
    code = "not_found"
    status_code = 404


class InsufficientInventory(InventoryError):
    code = "insufficient_inventory"
    status_code = 409

    def __init__(self, items: List[Dict[str, Any]], message: str = "Insufficient inventory for order"):
        super().__init__(message, details=items)
        self.items = items


class DuplicateDeduction(InventoryError):
    """The order already has sale rows in the ledger."""
    code = "duplicate_deduction"
    status_code = 409

    def __init__(self, order_id: int, existing_transaction_ids: List[int]):
        super().__init__(
            f"Inventory for order #{order_id} has already been deducted",
            details={"order_id": order_id, "existing_transactions": existing_transaction_ids},
        )
        self.order_id = order_id
        self.existing_transaction_ids = existing_transaction_ids


class NegativeStock(InventoryError):
    """An increment would leave a product below zero while the guard is active."""
    code = "insufficient_inventory"
    status_code = 409

    def __init__(self, product_id: int, resulting_quantity):
        super().__init__(
            f"Product {product_id} would drop to {resulting_quantity}",
            details={"product_id": product_id, "resulting_quantity": str(resulting_quantity)},
        )
        self.product_id = product_id
        self.resulting_quantity = resulting_quantity


class TransactionFailure(InventoryError):
    """Anything that broke the apply step. The transaction has been rolled back.

    The original exception is chained as ``__cause__`` for logging.
    """
    code = "processing_error"
    status_code = 500
