from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from stockflow.core.responses import created, success
from stockflow.core.security import Identity
from stockflow.dependencies import get_db, require_auth
from stockflow.schemas.unit_type import UnitTypeRead, UnitTypeWrite
from stockflow.services import unit_type_service

router = APIRouter(prefix="/unit-types", tags=["Unit Types"])


def _unit_type(unit_type):
    return UnitTypeRead.model_validate(unit_type).dump()


@router.get("")
def list_unit_types(identity: Identity = Depends(require_auth), db: Session = Depends(get_db)):
    unit_types = unit_type_service.list_unit_types(db, identity)
    return success([_unit_type(u) for u in unit_types], count=len(unit_types))


@router.post("")
def create_unit_type(
    payload: UnitTypeWrite,
    identity: Identity = Depends(require_auth),
    db: Session = Depends(get_db),
):
    unit_type = unit_type_service.create_unit_type(db, identity, payload)
    return created(_unit_type(unit_type), message="Unit type created successfully")


@router.get("/{unit_type_id}")
def get_unit_type(
    unit_type_id: int,
    identity: Identity = Depends(require_auth),
    db: Session = Depends(get_db),
):
    return success(_unit_type(unit_type_service.get_unit_type(db, identity, unit_type_id)))


@router.put("/{unit_type_id}")
def update_unit_type(
    unit_type_id: int,
    payload: UnitTypeWrite,
    identity: Identity = Depends(require_auth),
    db: Session = Depends(get_db),
):
    unit_type = unit_type_service.update_unit_type(db, identity, unit_type_id, payload)
    return success(_unit_type(unit_type), message="Unit type updated successfully")


@router.delete("/{unit_type_id}")
def delete_unit_type(
    unit_type_id: int,
    identity: Identity = Depends(require_auth),
    db: Session = Depends(get_db),
):
    unit_type_service.delete_unit_type(db, identity, unit_type_id)
    return success(message="Unit type deleted successfully")


__all__ = ["router"]
