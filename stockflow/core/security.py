from __future__ import annotations

import hashlib
import hmac
import secrets
from dataclasses import dataclass
from datetime import timedelta
from typing import Optional

import jwt

from stockflow.config import get_settings
from stockflow.core.constants import ROLE_ADMIN, ROLE_USER
from stockflow.core.dates import utcnow
from stockflow.core.errors import NotAuthenticated


@dataclass(frozen=True)
class Identity:
    user_id: str
    email: Optional[str] = None
    role: str = ROLE_USER
    name: Optional[str] = None

    @property
    def is_admin(self) -> bool:
        """Role check for admin-only operations."""
        return self.role == ROLE_ADMIN

    @property
    def is_static_admin(self) -> bool:
        """The configured admin account, which spans every owner's data."""
        return self.is_admin and self.user_id == get_settings().ADMIN_USER_ID

    @property
    def display_name(self) -> str:
        return self.name or ("Admin" if self.is_admin else self.email or self.user_id)


def admin_identity() -> Identity:
    settings = get_settings()
    return Identity(
        user_id=settings.ADMIN_USER_ID,
        email=settings.ADMIN_EMAIL,
        role=ROLE_ADMIN,
        name=settings.ADMIN_NAME,
    )


def hash_password(password: str, salt: str, rounds: Optional[int] = None) -> str:
    if rounds is None:
        rounds = get_settings().PASSWORD_PBKDF2_ROUNDS
    digest = hashlib.pbkdf2_hmac(
        "sha256",
        password.encode("utf-8"),
        salt.encode("utf-8"),
        rounds,
    )
    return digest.hex()


def make_password(password: str) -> tuple[str, str]:
    salt = secrets.token_hex(16)
    return hash_password(password, salt), salt


def verify_password(password: str, password_hash: str, salt: str) -> bool:
    if not password_hash or not salt:
        return False
    return hmac.compare_digest(hash_password(password, salt), password_hash)


def verify_admin_credentials(email: str, password: str) -> bool:
    settings = get_settings()
    email = (email or "").strip()
    if not hmac.compare_digest(email.casefold(), settings.ADMIN_EMAIL.casefold()):
        return False

    if settings.ADMIN_PASSWORD_HASH:
        if not settings.ADMIN_PASSWORD_SALT:
            raise ValueError("Admin password salt is not configured.")
        return hmac.compare_digest(
            hash_password(password, settings.ADMIN_PASSWORD_SALT),
            settings.ADMIN_PASSWORD_HASH,
        )

    if settings.ADMIN_PASSWORD:
        return hmac.compare_digest(password, settings.ADMIN_PASSWORD)

    return False


def create_access_token(user_id: str, email: Optional[str], role: str = ROLE_USER) -> str:
    settings = get_settings()
    now = utcnow()
    payload = {
        "userId": user_id,
        "email": email,
        "role": role,
        "iat": now,
        "exp": now + timedelta(minutes=settings.JWT_EXPIRES_MINUTES),
    }
    if settings.JWT_AUDIENCE:
        payload["aud"] = settings.JWT_AUDIENCE
    if settings.JWT_ISSUER:
        payload["iss"] = settings.JWT_ISSUER
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def _get_bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    parts = authorization.split()
    if len(parts) == 2 and parts[0].lower() == "bearer":
        return parts[1]
    return None


def decode_token(token: str) -> dict:
    settings = get_settings()
    options = {"verify_aud": bool(settings.JWT_AUDIENCE)}
    try:
        return jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=[settings.JWT_ALGORITHM],
            audience=settings.JWT_AUDIENCE,
            issuer=settings.JWT_ISSUER,
            options=options,
        )
    except jwt.PyJWTError as exc:
        raise NotAuthenticated("Invalid token", str(exc)) from exc


def identity_from_header(authorization: Optional[str]) -> Identity:
    token = _get_bearer_token(authorization)
    if not token:
        raise NotAuthenticated("No token provided")

    payload = decode_token(token)
    user_id = payload.get("userId")
    if not user_id:
        raise NotAuthenticated("Invalid token")

    settings = get_settings()
    if user_id == settings.ADMIN_USER_ID and payload.get("email") == settings.ADMIN_EMAIL:
        return admin_identity()

    return Identity(
        user_id=str(user_id),
        email=payload.get("email"),
        role=payload.get("role") or ROLE_USER,
    )
