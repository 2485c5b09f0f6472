import copy

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from stockflow.core.constants import DEFAULT_PREFERENCES
from stockflow.models.user_settings import UserSettings
from stockflow.services.movement_service import log_movement


def _find(db, user_id):
    return db.execute(
        select(UserSettings).where(UserSettings.user_id == user_id)
    ).scalar_one_or_none()


def _default_profile(identity):
    return {"name": identity.name or "", "email": identity.email or "", "company": ""}


def get_or_create_settings(db, identity):
    settings = _find(db, identity.user_id)
    if settings is not None:
        return settings

    settings = UserSettings(
        user_id=identity.user_id,
        profile=_default_profile(identity),
        preferences=copy.deepcopy(DEFAULT_PREFERENCES),
    )
    try:
        with db.begin_nested():
            db.add(settings)
    except IntegrityError:
        settings = _find(db, identity.user_id)
        if settings is None:
            raise
    db.commit()
    return settings


def update_settings(db, identity, payload):
    settings = get_or_create_settings(db, identity)

    changed = {}
    if payload.profile:
        merged = {**(settings.profile or {}), **payload.profile}
        changed["profile"] = sorted(
            key for key in payload.profile if (settings.profile or {}).get(key) != merged[key]
        )
        settings.profile = merged
    if payload.preferences:
        merged = {**(settings.preferences or {}), **payload.preferences}
        changed["preferences"] = sorted(
            key
            for key in payload.preferences
            if (settings.preferences or {}).get(key) != merged[key]
        )
        settings.preferences = merged

    changed = {section: keys for section, keys in changed.items() if keys}
    if not changed:
        return settings

    db.flush()
    log_movement(
        db,
        "settings.changed",
        "Updated settings ({})".format(
            ", ".join("{}.{}".format(section, key) for section, keys in changed.items() for key in keys)
        ),
        identity,
        metadata={"changedKeys": changed},
    )
    db.commit()
    db.refresh(settings)
    return settings


__all__ = ["get_or_create_settings", "update_settings"]
