from stockflow.routers.admin import router as admin_router
from stockflow.routers.auth import router as auth_router
from stockflow.routers.categories import router as categories_router
from stockflow.routers.health import router as health_router
from stockflow.routers.movements import router as movements_router
from stockflow.routers.products import router as products_router
from stockflow.routers.purchases import router as purchases_router
from stockflow.routers.settings import router as settings_router
from stockflow.routers.tax import router as tax_router
from stockflow.routers.unit_types import router as unit_types_router

__all__ = [
    "admin_router",
    "auth_router",
    "categories_router",
    "health_router",
    "movements_router",
    "products_router",
    "purchases_router",
    "settings_router",
    "tax_router",
    "unit_types_router",
]
