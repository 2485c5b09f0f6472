import logging

from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError

from stockflow.config import get_settings
from stockflow.core.constants import USER_ROLES, USER_STATUSES
from stockflow.core.dates import utcnow
from stockflow.core.errors import (
    Conflict,
    Forbidden,
    NotAuthenticated,
    NotFound,
    ValidationFailed,
)
from stockflow.core.security import (
    Identity,
    admin_identity,
    create_access_token,
    make_password,
    verify_admin_credentials,
    verify_password,
)
from stockflow.models.user import User
from stockflow.services.movement_service import build_changes, log_movement

logger = logging.getLogger(__name__)

_PROFILE_FIELDS = ("name", "email", "role", "status", "company")


def _normalize_email(value):
    return (value or "").strip().lower()


def _require_credentials(payload):
    email = _normalize_email(payload.email)
    if not email:
        raise ValidationFailed("Email is required")
    if not payload.password:
        raise ValidationFailed("Password is required")
    return email, payload.password


def _check_password_length(password, label="Password"):
    min_length = get_settings().PASSWORD_MIN_LENGTH
    if not password or len(password) < min_length:
        raise ValidationFailed("{} must be at least {} characters".format(label, min_length))


def identity_for(user):
    return Identity(user_id=str(user.id), email=user.email, role=user.role, name=user.name)


def _ensure_active(user):
    if user.status != "active":
        raise Forbidden("Account is {}. Please contact support.".format(user.status))


def _profile(user):
    return {field: getattr(user, field) for field in _PROFILE_FIELDS}


def email_taken(db, email, exclude_id=None):
    stmt = select(User.id).where(func.lower(User.email) == email.lower())
    if exclude_id is not None:
        stmt = stmt.where(User.id != exclude_id)
    return db.execute(stmt.limit(1)).first() is not None


def signup(db, payload):
    email = _normalize_email(payload.email)
    if not email:
        raise ValidationFailed("Email is required")
    _check_password_length(payload.password)
    name = (payload.name or "").strip()
    if not name:
        raise ValidationFailed("Name is required")
    if email_taken(db, email):
        raise Conflict("User with this email already exists")

    password_hash, salt = make_password(payload.password)
    user = User(
        email=email,
        password_hash=password_hash,
        password_salt=salt,
        name=name,
        company=(payload.company or "").strip(),
        role="user",
        status="active",
    )
    db.add(user)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise Conflict("User with this email already exists", str(exc.orig)) from exc
    db.refresh(user)
    logger.info("Registered user %s", user.id)
    return user, create_access_token(str(user.id), user.email, user.role)


def login(db, payload, *, ip_address=None, user_agent=None):
    email, password = _require_credentials(payload)
    user = db.execute(select(User).where(User.email == email)).scalar_one_or_none()
    if user is None:
        raise NotAuthenticated("Invalid email or password")
    _ensure_active(user)
    if not verify_password(password, user.password_hash, user.password_salt):
        raise NotAuthenticated("Invalid email or password")

    user.last_login = utcnow()
    log_movement(
        db,
        "auth.login",
        "{} logged in".format(user.name),
        identity_for(user),
        related_user_id=str(user.id),
        ip_address=ip_address,
        user_agent=user_agent,
    )
    db.commit()
    db.refresh(user)
    return user, create_access_token(str(user.id), user.email, user.role)


def admin_login(db, payload, *, ip_address=None, user_agent=None):
    email, password = _require_credentials(payload)
    if not verify_admin_credentials(email, password):
        raise NotAuthenticated("Invalid admin credentials")

    identity = admin_identity()
    log_movement(
        db,
        "auth.login",
        "Admin logged in",
        identity,
        ip_address=ip_address,
        user_agent=user_agent,
    )
    db.commit()
    return identity, create_access_token(identity.user_id, identity.email, identity.role)


def logout(db, identity, *, ip_address=None, user_agent=None):
    log_movement(
        db,
        "auth.logout",
        "{} logged out".format(identity.display_name),
        identity,
        related_user_id=None if identity.is_static_admin else identity.user_id,
        ip_address=ip_address,
        user_agent=user_agent,
    )
    db.commit()


def get_user(db, user_id):
    user = db.get(User, user_id)
    if user is None:
        raise NotFound("User not found")
    return user


def current_user(db, identity):
    """The caller's profile; the static admin has no row and is described inline."""
    if identity.is_static_admin:
        return {
            "id": identity.user_id,
            "email": identity.email,
            "name": identity.display_name,
            "role": identity.role,
            "status": "active",
        }
    return get_user(db, int(identity.user_id))


def change_password(db, identity, payload):
    if identity.is_static_admin:
        raise Forbidden("Admin password is managed through configuration")
    if not payload.current_password:
        raise ValidationFailed("Current password is required")
    _check_password_length(payload.new_password, "New password")
    if payload.new_password == payload.current_password:
        raise ValidationFailed("New password must be different from current password")

    user = get_user(db, int(identity.user_id))
    _ensure_active(user)
    if not verify_password(payload.current_password, user.password_hash, user.password_salt):
        raise NotAuthenticated("Current password is incorrect")

    user.password_hash, user.password_salt = make_password(payload.new_password)
    db.commit()
    logger.info("Password changed for user %s", user.id)


def list_users(db, *, status=None, role=None, search=None):
    stmt = select(User)
    if status:
        stmt = stmt.where(User.status == status)
    if role:
        stmt = stmt.where(User.role == role)
    if search:
        pattern = "%{}%".format(search.strip().lower())
        stmt = stmt.where(
            or_(
                func.lower(User.name).like(pattern),
                func.lower(User.email).like(pattern),
                func.lower(User.company).like(pattern),
            )
        )
    stmt = stmt.order_by(User.created_at.desc(), User.id.desc())
    return list(db.execute(stmt).scalars().all())


def update_user(db, identity, payload):
    if not payload.user_id:
        raise ValidationFailed("User ID is required")
    values = payload.model_dump(exclude_unset=True, exclude={"user_id"})
    if values.get("role") is not None and values["role"] not in USER_ROLES:
        raise ValidationFailed("Invalid role: {}".format(values["role"]))
    if values.get("status") is not None and values["status"] not in USER_STATUSES:
        raise ValidationFailed("Invalid status: {}".format(values["status"]))

    user = get_user(db, payload.user_id)
    before = _profile(user)

    if values.get("email") is not None:
        email = _normalize_email(values["email"])
        if not email:
            raise ValidationFailed("Email is required")
        if email_taken(db, email, exclude_id=user.id):
            raise Conflict("User with this email already exists")
        user.email = email
    if values.get("name") is not None:
        name = values["name"].strip()
        if not name:
            raise ValidationFailed("Name is required")
        user.name = name
    for field in ("role", "status"):
        if values.get(field) is not None:
            setattr(user, field, values[field])
    if values.get("company") is not None:
        user.company = values["company"].strip()

    changes = build_changes(before, _profile(user))
    if changes is None:
        return user

    db.flush()
    log_movement(
        db,
        "user.updated",
        "Updated user: {} ({})".format(user.name, user.email),
        identity,
        related_user_id=str(user.id),
        metadata={"updatedFields": sorted(changes["after"])},
        changes=changes,
    )
    db.commit()
    db.refresh(user)
    return user


def delete_user(db, identity, user_id):
    if not user_id:
        raise ValidationFailed("User ID is required")
    if str(user_id) == identity.user_id:
        raise ValidationFailed("Cannot delete your own account")

    user = get_user(db, user_id)
    deleted = {"id": str(user.id), "name": user.name, "email": user.email, "role": user.role}
    db.delete(user)
    db.flush()
    log_movement(
        db,
        "user.deleted",
        "Deleted user: {} ({})".format(deleted["name"], deleted["email"]),
        identity,
        related_user_id=deleted["id"],
        metadata={"deletedUser": deleted},
    )
    db.commit()


__all__ = [
    "admin_login",
    "change_password",
    "current_user",
    "delete_user",
    "get_user",
    "identity_for",
    "list_users",
    "login",
    "logout",
    "signup",
    "update_user",
]
