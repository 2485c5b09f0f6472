from datetime import datetime
from typing import Optional

from stockflow.schemas.common import CamelModel


class SignupRequest(CamelModel):
    email: Optional[str] = None
    password: Optional[str] = None
    name: Optional[str] = None
    company: Optional[str] = None


class LoginRequest(CamelModel):
    email: Optional[str] = None
    password: Optional[str] = None


class ChangePasswordRequest(CamelModel):
    current_password: Optional[str] = None
    new_password: Optional[str] = None


class AdminUserUpdate(CamelModel):
    user_id: Optional[int] = None
    role: Optional[str] = None
    status: Optional[str] = None
    name: Optional[str] = None
    email: Optional[str] = None
    company: Optional[str] = None


class UserRead(CamelModel):
    id: int
    email: str
    name: str
    company: str
    role: str
    status: str
    last_login: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime
