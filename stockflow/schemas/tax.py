from datetime import datetime
from typing import List, Optional

from pydantic import Field

from stockflow.schemas.common import CamelModel


class GstSettings(CamelModel):
    enabled: bool = False
    rate: float = 0
    type: str = "exclusive"
    description: Optional[str] = None


class PlatformFeeSettings(CamelModel):
    enabled: bool = False
    rate: float = 0
    type: str = "percentage"
    description: Optional[str] = None


class OtherTax(CamelModel):
    name: str = ""
    enabled: bool = True
    rate: float = 0
    type: str = "percentage"
    description: Optional[str] = None


class TaxConfigUpdate(CamelModel):
    gst: Optional[GstSettings] = None
    platform_fee: Optional[PlatformFeeSettings] = None
    other_taxes: Optional[List[OtherTax]] = None
    change_description: Optional[str] = None


class TaxCalculationRequest(CamelModel):
    subtotal: float


class TaxChangeRead(CamelModel):
    changed_by: str
    changed_by_email: Optional[str] = None
    change_date: datetime
    changes: dict
    description: Optional[str] = None


class TaxConfigRead(CamelModel):
    id: int
    is_global: bool
    gst: dict
    platform_fee: dict
    other_taxes: list
    status: str
    change_history: List[TaxChangeRead] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime
