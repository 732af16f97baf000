"""Typed failures raised by the order engine.

Every error carries a stable ``code`` for clients, a human readable
``message`` and a ``transient`` flag telling the caller whether the same
request may simply be retried.
"""

from typing import Any, Dict, Optional


class OrderError(Exception):
    code = "order_error"
    transient = False

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": self.code,
            "message": self.message,
            "details": self.details,
            "retryable": self.transient,
        }


class EmptyCart(OrderError):
    code = "empty_cart"

    def __init__(self):
        super().__init__("Cart is empty. Cannot create an order.")


class InvalidQuantity(OrderError):
    code = "invalid_quantity"

    def __init__(self, product_id: int, quantity: int):
        super().__init__(
            f"Quantity {quantity} for product {product_id} is out of range.",
            {"product_id": product_id, "quantity": quantity},
        )
        self.product_id = product_id
        self.quantity = quantity


class ProductNotFound(OrderError):
    code = "product_not_found"

    def __init__(self, product_id: int):
        super().__init__(
            f"Product {product_id} not found.",
            {"product_id": product_id},
        )
        self.product_id = product_id


class InsufficientStock(OrderError):
    code = "insufficient_stock"

    def __init__(self, product_id: int, available: int, requested: int):
        super().__init__(
            f"Insufficient stock for product {product_id}. "
            f"Only {available} available, {requested} requested.",
            {"product_id": product_id, "available": available, "requested": requested},
        )
        self.product_id = product_id
        self.available = available
        self.requested = requested


class NotFound(OrderError):
    code = "not_found"

    def __init__(self, order_id: int):
        super().__init__(f"Order {order_id} not found.", {"order_id": order_id})
        self.order_id = order_id


class InvalidStatusTransition(OrderError):
    code = "invalid_status_transition"

    def __init__(self, current: str, requested: str):
        super().__init__(
            f"Cannot move order from {current} to {requested}.",
            {"current": current, "requested": requested},
        )
        self.current = current
        self.requested = requested


class TransactionAborted(OrderError):
    code = "transaction_aborted"
    transient = True

    def __init__(self, message: str = "The order transaction was aborted. Please retry."):
        super().__init__(message)


class StorageUnavailable(OrderError):
    code = "storage_unavailable"
    transient = True

    def __init__(self, message: str = "Order storage is temporarily unavailable."):
        super().__init__(message)


class StorageRejected(OrderError):
    code = "storage_rejected"

    def __init__(self, message: str = "Order storage rejected the write."):
        super().__init__(message)
