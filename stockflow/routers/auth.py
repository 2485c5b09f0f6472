from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from stockflow.core.responses import created, success
from stockflow.core.security import Identity
from stockflow.dependencies import client_meta, get_db, require_auth
from stockflow.schemas.user import (
    ChangePasswordRequest,
    LoginRequest,
    SignupRequest,
    UserRead,
)
from stockflow.services import user_service

router = APIRouter(prefix="/auth", tags=["Auth"])


@router.post("/signup")
def signup(payload: SignupRequest, db: Session = Depends(get_db)):
    user, token = user_service.signup(db, payload)
    return created(
        {"user": UserRead.model_validate(user).dump(), "token": token},
        message="User registered successfully",
    )


@router.post("/login")
def login(
    payload: LoginRequest,
    db: Session = Depends(get_db),
    meta: dict = Depends(client_meta),
):
    user, token = user_service.login(db, payload, **meta)
    return success(
        {"user": UserRead.model_validate(user).dump(), "token": token},
        message="Login successful",
    )


@router.post("/admin-login")
def admin_login(
    payload: LoginRequest,
    db: Session = Depends(get_db),
    meta: dict = Depends(client_meta),
):
    identity, token = user_service.admin_login(db, payload, **meta)
    return success(
        {
            "user": {
                "id": identity.user_id,
                "email": identity.email,
                "name": identity.display_name,
                "role": identity.role,
            },
            "token": token,
        },
        message="Admin login successful",
    )


@router.get("/me")
def me(identity: Identity = Depends(require_auth), db: Session = Depends(get_db)):
    user = user_service.current_user(db, identity)
    if isinstance(user, dict):
        return success({"user": user})
    return success({"user": UserRead.model_validate(user).dump()})


@router.post("/change-password")
def change_password(
    payload: ChangePasswordRequest,
    identity: Identity = Depends(require_auth),
    db: Session = Depends(get_db),
):
    user_service.change_password(db, identity, payload)
    return success(message="Password changed successfully")


@router.post("/logout")
def logout(
    identity: Identity = Depends(require_auth),
    db: Session = Depends(get_db),
    meta: dict = Depends(client_meta),
):
    user_service.logout(db, identity, **meta)
    return success(message="Logged out successfully")


__all__ = ["router"]
