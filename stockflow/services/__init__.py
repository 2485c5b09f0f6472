from stockflow.services.movement_service import log_movement, serialize_movements
from stockflow.services.purchase_service import create_purchase, delete_purchase
from stockflow.services.stock_service import apply_purchase, revert_purchase
from stockflow.services.tax_service import calculate_taxes, get_global_tax_config

__all__ = [
    "apply_purchase",
    "calculate_taxes",
    "create_purchase",
    "delete_purchase",
    "get_global_tax_config",
    "log_movement",
    "revert_purchase",
    "serialize_movements",
]
