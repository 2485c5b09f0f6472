ROLE_ADMIN = "admin"
ROLE_USER = "user"
USER_ROLES = (ROLE_USER, ROLE_ADMIN)
USER_STATUSES = ("active", "inactive", "suspended")

RECORD_STATUSES = ("active", "inactive")
PRODUCT_STATUSES = ("active", "inactive", "discontinued")
PURCHASE_STATUSES = ("Pending", "Completed", "Cancelled")
PAYMENT_METHODS = ("Cash", "Credit Card", "Bank Transfer", "Cheque", "Other")
PRICE_TYPES = ("costPrice", "sellingPrice")

PURCHASE_CODE_PREFIX = "PUR"
PURCHASE_CODE_LENGTH = 9

EVENT_TITLES = {
    "product.created": "Product Created",
    "product.updated": "Product Updated",
    "product.deleted": "Product Deleted",
    "stock.changed": "Stock Changed",
    "stock.refill": "Stock Refilled",
    "category.created": "Category Created",
    "category.updated": "Category Updated",
    "category.deleted": "Category Deleted",
    "unit_type.created": "Unit Type Created",
    "unit_type.updated": "Unit Type Updated",
    "unit_type.deleted": "Unit Type Deleted",
    "purchase.created": "Purchase Created",
    "purchase.updated": "Purchase Updated",
    "purchase.deleted": "Purchase Deleted",
    "settings.changed": "Settings Changed",
    "user.updated": "User Updated",
    "user.deleted": "User Deleted",
    "tax.created": "Tax Configuration Created",
    "tax.updated": "Tax Configuration Updated",
    "tax.deleted": "Tax Configuration Deactivated",
    "auth.login": "Login",
    "auth.logout": "Logout",
}
EVENT_TYPES = tuple(EVENT_TITLES)

STOCK_EVENT_TYPES = (
    "product.created",
    "product.updated",
    "stock.changed",
    "stock.refill",
    "purchase.created",
    "purchase.deleted",
)

# Fields tracked in product movement diffs.
PRODUCT_TRACKED_FIELDS = ("name", "sku", "quantity", "costPrice", "sellingPrice")

DEFAULT_PREFERENCES = {
    "lowStockThreshold": 10,
    "currency": "USD",
    "timezone": "UTC",
    "darkMode": False,
    "emailNotifications": True,
    "weeklyReports": True,
}

DEFAULT_GST = {
    "enabled": False,
    "rate": 18.0,
    "type": "exclusive",
    "description": "Goods and Services Tax",
}
DEFAULT_PLATFORM_FEE = {
    "enabled": False,
    "rate": 0.0,
    "type": "percentage",
    "description": "Platform transaction fee",
}
GST_TYPES = ("inclusive", "exclusive")
FEE_TYPES = ("percentage", "fixed")

REPORT_KINDS = ("users", "products", "categories", "unit-types", "movements")
