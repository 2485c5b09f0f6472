from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from stockflow.core.responses import created, success
from stockflow.core.security import Identity
from stockflow.dependencies import get_db, require_auth
from stockflow.schemas.purchase import PurchaseCreate, PurchaseRead, PurchaseUpdate
from stockflow.services import purchase_service

router = APIRouter(prefix="/purchases", tags=["Purchases"])


def _purchase(purchase):
    return PurchaseRead.model_validate(purchase).dump()


@router.get("")
def list_purchases(identity: Identity = Depends(require_auth), db: Session = Depends(get_db)):
    purchases = purchase_service.list_purchases(db, identity)
    return success([_purchase(p) for p in purchases], count=len(purchases))


@router.post("")
def create_purchase(
    payload: PurchaseCreate,
    identity: Identity = Depends(require_auth),
    db: Session = Depends(get_db),
):
    purchase = purchase_service.create_purchase(db, identity, payload)
    return created(_purchase(purchase), message="Purchase created successfully")


@router.get("/{purchase_id}")
def get_purchase(
    purchase_id: int,
    identity: Identity = Depends(require_auth),
    db: Session = Depends(get_db),
):
    return success(_purchase(purchase_service.get_purchase(db, identity, purchase_id)))


@router.put("/{purchase_id}")
def update_purchase(
    purchase_id: int,
    payload: PurchaseUpdate,
    identity: Identity = Depends(require_auth),
    db: Session = Depends(get_db),
):
    purchase = purchase_service.update_purchase(db, identity, purchase_id, payload)
    return success(_purchase(purchase), message="Purchase updated successfully")


@router.delete("/{purchase_id}")
def delete_purchase(
    purchase_id: int,
    identity: Identity = Depends(require_auth),
    db: Session = Depends(get_db),
):
    warnings = purchase_service.delete_purchase(db, identity, purchase_id)
    return success(message="Purchase deleted successfully", warnings=warnings)


__all__ = ["router"]
