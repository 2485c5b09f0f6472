from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from stockflow.core.responses import created, success
from stockflow.core.security import Identity
from stockflow.dependencies import get_db, require_auth
from stockflow.schemas.category import CategoryRead, CategoryWrite
from stockflow.services import category_service

router = APIRouter(prefix="/categories", tags=["Categories"])


def _category(category):
    return CategoryRead.model_validate(category).dump()


@router.get("")
def list_categories(identity: Identity = Depends(require_auth), db: Session = Depends(get_db)):
    categories = category_service.list_categories(db, identity)
    return success([_category(c) for c in categories], count=len(categories))


@router.post("")
def create_category(
    payload: CategoryWrite,
    identity: Identity = Depends(require_auth),
    db: Session = Depends(get_db),
):
    category = category_service.create_category(db, identity, payload)
    return created(_category(category), message="Category created successfully")


@router.get("/{category_id}")
def get_category(
    category_id: int,
    identity: Identity = Depends(require_auth),
    db: Session = Depends(get_db),
):
    return success(_category(category_service.get_category(db, identity, category_id)))


@router.put("/{category_id}")
def update_category(
    category_id: int,
    payload: CategoryWrite,
    identity: Identity = Depends(require_auth),
    db: Session = Depends(get_db),
):
    category = category_service.update_category(db, identity, category_id, payload)
    return success(_category(category), message="Category updated successfully")


@router.delete("/{category_id}")
def delete_category(
    category_id: int,
    identity: Identity = Depends(require_auth),
    db: Session = Depends(get_db),
):
    category_service.delete_category(db, identity, category_id)
    return success(message="Category deleted successfully")


__all__ = ["router"]
