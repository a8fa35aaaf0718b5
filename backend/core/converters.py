from typing import Dict

from core.errors import MovementValidationError
from db.product import Product
from db.stock import StockEntry


def to_main_unit_quantity(product: Product, quantity: float, is_sub_unit: bool = False) -> float:
    """Translate a quantity given in the product's main or sub unit into main units.

    ``1 main unit == conversion_rate sub units``, so ``q`` sub units are
    ``q / conversion_rate`` main units. Asking for a sub-unit conversion on a
    product without a usable sub unit is a data error, never a silent default.
    """
    if not is_sub_unit:
        return float(quantity)

    rate = product.conversion_rate
    if not product.has_sub_unit or not product.sub_unit or rate is None:
        raise MovementValidationError(
            f"Product '{product.name}' has no sub unit",
            product_id=product.id,
        )
    if float(rate) <= 0:
        raise MovementValidationError(
            f"Product '{product.name}' has an invalid conversion rate",
            product_id=product.id,
            conversion_rate=float(rate),
        )
    return float(quantity) / float(rate)


def stock_entry_to_schema(entry: StockEntry) -> Dict:
    """Convert a StockEntry (items + products + user loaded) to the API dict"""
    user = entry.created_by_user
    return {
        "id": entry.id,
        "type": entry.type,
        "notes": entry.notes,
        "created_at": entry.created_at.isoformat() if entry.created_at else None,
        "updated_at": entry.updated_at.isoformat() if entry.updated_at else None,
        "created_by_user_id": entry.created_by_user_id,
        "user_details": {"name": user.name or user.email} if user else None,
        "items": [
            {
                "product_id": it.product_id,
                "quantity": float(it.quantity),
                "is_sub_unit": bool(it.is_sub_unit),
                "applied_change": float(it.applied_change or 0),
                "previous_stock": float(it.previous_stock) if it.previous_stock is not None else None,
                "product_details": (
                    {
                        "id": it.product.id,
                        "name": it.product.name,
                        "current_stock": float(it.product.current_stock or 0),
                        "unit": it.product.unit,
                        "has_sub_unit": bool(it.product.has_sub_unit),
                        "sub_unit": (
                            {"unit": it.product.sub_unit, "conversion_rate": it.product.conversion_rate}
                            if it.product.has_sub_unit
                            else None
                        ),
                    }
                    if it.product
                    else None
                ),
            }
            for it in entry.items
        ],
    }
