from datetime import datetime
from typing import Optional

from stockflow.schemas.common import CamelModel


class UnitTypeWrite(CamelModel):
    name: Optional[str] = None
    abbreviation: Optional[str] = None
    description: Optional[str] = None
    status: Optional[str] = None


class UnitTypeRead(CamelModel):
    id: int
    user_id: str
    name: str
    abbreviation: str
    description: str
    status: str
    created_at: datetime
    updated_at: datetime
