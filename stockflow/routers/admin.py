from typing import Optional

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session

from stockflow.core.responses import success
from stockflow.core.security import Identity
from stockflow.dependencies import get_db, require_admin
from stockflow.schemas.user import AdminUserUpdate, UserRead
from stockflow.services import report_service, statistics_service, user_service

router = APIRouter(prefix="/admin", tags=["Admin"])


@router.get("/users")
def list_users(
    status: Optional[str] = Query(None),
    role: Optional[str] = Query(None),
    search: Optional[str] = Query(None),
    _identity: Identity = Depends(require_admin),
    db: Session = Depends(get_db),
):
    users = user_service.list_users(db, status=status, role=role, search=search)
    return success([UserRead.model_validate(u).dump() for u in users], count=len(users))


@router.put("/users")
def update_user(
    payload: AdminUserUpdate,
    identity: Identity = Depends(require_admin),
    db: Session = Depends(get_db),
):
    user = user_service.update_user(db, identity, payload)
    return success(UserRead.model_validate(user).dump(), message="User updated successfully")


@router.delete("/users")
def delete_user(
    user_id: Optional[int] = Query(None, alias="userId"),
    identity: Identity = Depends(require_admin),
    db: Session = Depends(get_db),
):
    user_service.delete_user(db, identity, user_id)
    return success(message="User deleted successfully")


@router.get("/statistics")
def statistics(_identity: Identity = Depends(require_admin), db: Session = Depends(get_db)):
    return success(statistics_service.collect_statistics(db))


@router.get("/reports/{kind}")
def export_report(
    kind: str,
    _identity: Identity = Depends(require_admin),
    db: Session = Depends(get_db),
):
    filename, content = report_service.build_report(db, kind)
    return Response(
        content=content,
        media_type=report_service.XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": 'attachment; filename="{}"'.format(filename)},
    )


__all__ = ["router"]
