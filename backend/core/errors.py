"""Errors raised by the stock ledger.

Every error carries the HTTP status it maps to and a JSON-ready ``detail``
payload, so routers can surface it without re-deriving anything.
"""

from typing import Any, Dict, List, Optional
from uuid import UUID


class StockError(Exception):
    status_code: int = 400

    def __init__(self, message: str, **extra: Any):
        super().__init__(message)
        self.message = message
        self.extra = extra

    @property
    def detail(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"error": self.message}
        for key, value in self.extra.items():
            out[key] = str(value) if isinstance(value, UUID) else value
        return out


class MovementValidationError(StockError):
    status_code = 400


class ProductNotFound(StockError):
    status_code = 404

    def __init__(self, missing_products: List[UUID]):
        super().__init__(
            "Some products not found",
            missing_products=[str(p) for p in missing_products],
        )
        self.missing_products = list(missing_products)


class InsufficientStock(StockError):
    status_code = 400

    def __init__(
        self,
        *,
        product_id: UUID,
        product_name: str,
        current_stock: float,
        requested: float,
        is_sub_unit: bool = False,
        sub_unit_requested: Optional[float] = None,
        conversion_rate: Optional[float] = None,
    ):
        extra: Dict[str, Any] = {
            "product_id": product_id,
            "product_name": product_name,
            "current_stock": current_stock,
            "requested": requested,
            "is_sub_unit": is_sub_unit,
        }
        if is_sub_unit:
            extra["sub_unit_requested"] = sub_unit_requested
            extra["conversion_rate"] = conversion_rate
        super().__init__("Insufficient stock", **extra)
        self.product_id = product_id
        self.current_stock = current_stock
        self.requested = requested


class DuplicateProductInMovement(StockError):
    status_code = 400

    def __init__(self, duplicate_products: List[UUID]):
        super().__init__(
            "Each product may appear only once per stock entry",
            duplicate_products=[str(p) for p in duplicate_products],
        )
        self.duplicate_products = list(duplicate_products)


class StockEntryNotFound(StockError):
    status_code = 404

    def __init__(self, entry_id: UUID):
        super().__init__("Stock entry not found", id=entry_id)
        self.entry_id = entry_id


class PersistenceError(StockError):
    status_code = 500

    def __init__(self, message: str = "Internal server error"):
        super().__init__(message)
