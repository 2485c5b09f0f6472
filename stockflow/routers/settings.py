from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from stockflow.core.responses import success
from stockflow.core.security import Identity
from stockflow.dependencies import get_db, require_auth
from stockflow.schemas.settings import SettingsRead, SettingsUpdate
from stockflow.services import settings_service

router = APIRouter(prefix="/settings", tags=["Settings"])


@router.get("")
def get_settings(identity: Identity = Depends(require_auth), db: Session = Depends(get_db)):
    settings = settings_service.get_or_create_settings(db, identity)
    return success(SettingsRead.model_validate(settings).dump())


@router.api_route("", methods=["POST", "PUT"])
def update_settings(
    payload: SettingsUpdate,
    identity: Identity = Depends(require_auth),
    db: Session = Depends(get_db),
):
    settings = settings_service.update_settings(db, identity, payload)
    return success(
        SettingsRead.model_validate(settings).dump(),
        message="Settings updated successfully",
    )


__all__ = ["router"]
