import importlib

from stockflow.models.category import Category
from stockflow.models.movement import Movement
from stockflow.models.price_history import PriceHistory
from stockflow.models.product import Product
from stockflow.models.purchase import Purchase, PurchaseItem
from stockflow.models.tax_config import TaxChangeEntry, TaxConfig
from stockflow.models.unit_type import UnitType
from stockflow.models.user import User
from stockflow.models.user_settings import UserSettings


def import_all_models() -> None:
    for module_name in (
        "stockflow.models.category",
        "stockflow.models.movement",
        "stockflow.models.price_history",
        "stockflow.models.product",
        "stockflow.models.purchase",
        "stockflow.models.tax_config",
        "stockflow.models.unit_type",
        "stockflow.models.user",
        "stockflow.models.user_settings",
    ):
        importlib.import_module(module_name)


__all__ = [
    "Category",
    "Movement",
    "PriceHistory",
    "Product",
    "Purchase",
    "PurchaseItem",
    "TaxChangeEntry",
    "TaxConfig",
    "UnitType",
    "User",
    "UserSettings",
    "import_all_models",
]
