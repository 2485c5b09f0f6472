from datetime import datetime
from typing import Any, Dict, Optional

from stockflow.schemas.common import CamelModel


class SettingsUpdate(CamelModel):
    profile: Optional[Dict[str, Any]] = None
    preferences: Optional[Dict[str, Any]] = None


class SettingsRead(CamelModel):
    id: int
    user_id: str
    profile: dict
    preferences: dict
    created_at: datetime
    updated_at: datetime
