from datetime import date, datetime
from typing import List, Optional

from pydantic import Field

from stockflow.schemas.common import CamelModel, CategoryRef, UnitTypeRef


class ProductWrite(CamelModel):
    name: Optional[str] = None
    sku: Optional[str] = None
    description: Optional[str] = None
    category: Optional[int] = None
    unit_type: Optional[int] = None
    unit_size: Optional[float] = None
    quantity: Optional[int] = None
    cost_price: Optional[float] = None
    selling_price: Optional[float] = None
    supplier: Optional[str] = None
    supplier_contact: Optional[str] = None
    supplier_registration_number: Optional[str] = None
    purchase_date: Optional[date] = None
    expiry_date: Optional[date] = None
    min_stock_alert: Optional[int] = None
    images: Optional[List[str]] = None
    status: Optional[str] = None


class ProductUpdate(ProductWrite):
    version: Optional[int] = None
    reason: Optional[str] = None


class StockRefill(CamelModel):
    quantity: Optional[int] = None
    note: Optional[str] = None


class ProductRead(CamelModel):
    id: int
    user_id: str
    name: str
    sku: str
    description: str
    category: Optional[CategoryRef] = None
    unit_type: Optional[UnitTypeRef] = None
    unit_size: float
    quantity: int
    cost_price: float
    selling_price: float
    supplier: str
    supplier_contact: str
    supplier_registration_number: str
    purchase_date: Optional[date] = None
    expiry_date: Optional[date] = None
    min_stock_alert: int
    images: List[str] = Field(default_factory=list)
    status: str
    version: int
    created_at: datetime
    updated_at: datetime


class PriceHistoryRead(CamelModel):
    id: int
    product_id: int
    price_type: str
    old_price: float
    new_price: float
    change_amount: float
    change_percentage: Optional[float] = None
    reason: Optional[str] = None
    changed_by: dict
    created_at: datetime
