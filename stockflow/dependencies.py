from typing import Optional

from fastapi import Depends, Header, Request
from sqlalchemy.orm import Session

from stockflow.core.errors import Forbidden, NotAuthenticated
from stockflow.core.security import Identity, identity_from_header
from stockflow.database.session import get_db
from stockflow.models.user import User


def require_auth(
    authorization: Optional[str] = Header(None),
    db: Session = Depends(get_db),
) -> Identity:
    identity = identity_from_header(authorization)
    if identity.is_static_admin:
        return identity

    try:
        user_pk = int(identity.user_id)
    except ValueError:
        raise NotAuthenticated("Invalid token")

    user = db.get(User, user_pk)
    if user is None:
        raise NotAuthenticated("User no longer exists")
    if user.status != "active":
        raise Forbidden("Account is {}. Please contact support.".format(user.status))

    return Identity(
        user_id=identity.user_id,
        email=user.email,
        role=user.role,
        name=user.name,
    )


def require_admin(identity: Identity = Depends(require_auth)) -> Identity:
    if not identity.is_admin:
        raise Forbidden("Unauthorized. Admin access required.")
    return identity


def client_meta(request: Request) -> dict:
    """Caller address and agent, recorded on audit entries."""
    return {
        "ip_address": request.client.host if request.client else None,
        "user_agent": (request.headers.get("user-agent") or "")[:255] or None,
    }


__all__ = ["client_meta", "get_db", "require_admin", "require_auth"]
