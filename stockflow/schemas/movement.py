from typing import Any, Dict, Optional

from stockflow.schemas.common import CamelModel


class MovementCreate(CamelModel):
    event_type: Optional[str] = None
    event_title: Optional[str] = None
    description: Optional[str] = None
    related_product: Optional[int] = None
    related_purchase: Optional[int] = None
    related_category: Optional[int] = None
    metadata: Optional[Dict[str, Any]] = None
    changes: Optional[Dict[str, Any]] = None


class MovementCorrection(CamelModel):
    description: Optional[str] = None
    event_title: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None
