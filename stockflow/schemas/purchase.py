from datetime import datetime
from typing import List, Optional

from pydantic import Field

from stockflow.schemas.common import CamelModel


class PurchaseItemIn(CamelModel):
    product: Optional[int] = None
    quantity: Optional[int] = None


class PurchaseCreate(CamelModel):
    items: Optional[List[PurchaseItemIn]] = None
    total_amount: Optional[float] = None
    status: Optional[str] = None
    supplier: Optional[str] = None
    payment_method: Optional[str] = None
    notes: Optional[str] = None
    date: Optional[datetime] = None


class PurchaseUpdate(CamelModel):
    status: Optional[str] = None
    supplier: Optional[str] = None
    payment_method: Optional[str] = None
    notes: Optional[str] = None
    date: Optional[datetime] = None


class PurchaseItemRead(CamelModel):
    id: int
    product_id: Optional[int] = Field(default=None, alias="product")
    product_name: str
    product_sku: str
    quantity: int
    unit_price: float
    subtotal: float


class PurchaseRead(CamelModel):
    id: int
    user_id: str
    purchase_code: str = Field(alias="purchaseId")
    date: datetime
    items: List[PurchaseItemRead] = Field(default_factory=list)
    subtotal: float
    tax_details: dict
    total_amount: float
    status: str
    supplier: str
    payment_method: str
    notes: str
    created_at: datetime
    updated_at: datetime
