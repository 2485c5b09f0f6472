from datetime import datetime
from typing import Optional

from stockflow.schemas.common import CamelModel


class CategoryWrite(CamelModel):
    name: Optional[str] = None
    description: Optional[str] = None
    status: Optional[str] = None


class CategoryRead(CamelModel):
    id: int
    user_id: str
    name: str
    description: str
    status: str
    created_at: datetime
    updated_at: datetime
