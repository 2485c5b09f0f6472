from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from stockflow.core.responses import created, success
from stockflow.core.security import Identity
from stockflow.dependencies import client_meta, get_db, require_admin, require_auth
from stockflow.schemas.movement import MovementCorrection, MovementCreate
from stockflow.services import movement_service

router = APIRouter(prefix="/movements", tags=["Movements"])


@router.get("")
def list_movements(
    event_type: Optional[str] = Query(None, alias="eventType"),
    user_id: Optional[str] = Query(None, alias="userId"),
    date_from: Optional[str] = Query(None, alias="dateFrom"),
    date_to: Optional[str] = Query(None, alias="dateTo"),
    limit: Optional[int] = Query(None),
    identity: Identity = Depends(require_auth),
    db: Session = Depends(get_db),
):
    movements = movement_service.list_movements(
        db,
        identity,
        event_type=event_type,
        user_id=user_id,
        date_from=date_from,
        date_to=date_to,
        limit=limit,
    )
    data = movement_service.serialize_movements(db, movements)
    return success(data, count=len(data))


@router.post("")
def create_movement(
    payload: MovementCreate,
    identity: Identity = Depends(require_auth),
    db: Session = Depends(get_db),
    meta: dict = Depends(client_meta),
):
    movement = movement_service.create_movement(db, payload, identity, **meta)
    data = movement_service.serialize_movements(db, [movement])[0]
    return created(data, message="Movement logged successfully")


@router.delete("")
def clear_movements(
    confirm: Optional[str] = Query(None),
    identity: Identity = Depends(require_admin),
    db: Session = Depends(get_db),
):
    deleted = movement_service.clear_movements(db, identity, confirm)
    return success(
        {"deletedCount": deleted},
        message="Deleted {} movements".format(deleted),
    )


@router.get("/{movement_id}")
def get_movement(
    movement_id: int,
    identity: Identity = Depends(require_auth),
    db: Session = Depends(get_db),
):
    movement = movement_service.get_movement(db, identity, movement_id)
    return success(movement_service.serialize_movements(db, [movement], detailed=True)[0])


@router.put("/{movement_id}")
def correct_movement(
    movement_id: int,
    payload: MovementCorrection,
    identity: Identity = Depends(require_auth),
    db: Session = Depends(get_db),
):
    movement = movement_service.correct_movement(db, identity, movement_id, payload)
    return success(
        movement_service.serialize_movements(db, [movement])[0],
        message="Movement updated successfully",
    )


@router.delete("/{movement_id}")
def delete_movement(
    movement_id: int,
    identity: Identity = Depends(require_admin),
    db: Session = Depends(get_db),
):
    movement_service.delete_movement(db, identity, movement_id)
    return success(message="Movement deleted successfully")


__all__ = ["router"]
