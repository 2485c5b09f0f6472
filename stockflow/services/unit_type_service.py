from sqlalchemy import func, or_, select, update
from sqlalchemy.exc import IntegrityError

from stockflow.core.constants import RECORD_STATUSES
from stockflow.core.errors import Conflict, ValidationFailed
from stockflow.models.product import Product
from stockflow.models.unit_type import UnitType
from stockflow.services.movement_service import build_changes, log_movement
from stockflow.services.ownership import get_owned, owner_for_write, scope_to_owner

DUPLICATE_MESSAGE = "Unit type with this name or abbreviation already exists"


def _collides(db, owner_id, name, abbreviation, exclude_id=None):
    stmt = select(UnitType.id).where(
        UnitType.user_id == owner_id,
        or_(
            func.lower(UnitType.name) == name.lower(),
            func.lower(UnitType.abbreviation) == abbreviation.lower(),
        ),
    )
    if exclude_id is not None:
        stmt = stmt.where(UnitType.id != exclude_id)
    return db.execute(stmt.limit(1)).first() is not None


def _required_fields(payload):
    name = (payload.name or "").strip()
    abbreviation = (payload.abbreviation or "").strip().upper()
    if not name:
        raise ValidationFailed("Unit type name is required")
    if not abbreviation:
        raise ValidationFailed("Unit abbreviation is required")
    return name, abbreviation


def _status(value):
    if value is not None and value not in RECORD_STATUSES:
        raise ValidationFailed("Invalid unit type status: {}".format(value))
    return value


def _snapshot(unit_type):
    return {
        "name": unit_type.name,
        "abbreviation": unit_type.abbreviation,
        "description": unit_type.description,
        "status": unit_type.status,
    }


def _flush(db):
    try:
        db.flush()
    except IntegrityError as exc:
        db.rollback()
        raise Conflict(DUPLICATE_MESSAGE, str(exc.orig)) from exc


def list_unit_types(db, identity):
    stmt = scope_to_owner(select(UnitType), UnitType, identity).order_by(UnitType.name.asc())
    return list(db.execute(stmt).scalars().all())


def get_unit_type(db, identity, unit_type_id):
    return get_owned(db, UnitType, unit_type_id, identity, "Unit type not found")


def create_unit_type(db, identity, payload):
    name, abbreviation = _required_fields(payload)
    owner_id = owner_for_write(identity)
    if _collides(db, owner_id, name, abbreviation):
        raise Conflict(DUPLICATE_MESSAGE)

    unit_type = UnitType(
        user_id=owner_id,
        name=name,
        abbreviation=abbreviation,
        description=(payload.description or "").strip(),
        status=_status(payload.status) or "active",
    )
    db.add(unit_type)
    _flush(db)

    log_movement(
        db,
        "unit_type.created",
        'Created unit type "{}" ({})'.format(unit_type.name, unit_type.abbreviation),
        identity,
        metadata={"unitTypeId": unit_type.id, "unitTypeName": unit_type.name},
        changes={"before": None, "after": _snapshot(unit_type)},
    )
    db.commit()
    db.refresh(unit_type)
    return unit_type


def update_unit_type(db, identity, unit_type_id, payload):
    name, abbreviation = _required_fields(payload)
    unit_type = get_unit_type(db, identity, unit_type_id)
    if _collides(db, unit_type.user_id, name, abbreviation, exclude_id=unit_type.id):
        raise Conflict("Another unit type with this name or abbreviation already exists")

    before = _snapshot(unit_type)
    unit_type.name = name
    unit_type.abbreviation = abbreviation
    if payload.description is not None:
        unit_type.description = payload.description.strip()
    if payload.status is not None:
        unit_type.status = _status(payload.status)

    changes = build_changes(before, _snapshot(unit_type))
    if changes is None:
        return unit_type

    _flush(db)
    log_movement(
        db,
        "unit_type.updated",
        'Updated unit type "{}"'.format(unit_type.name),
        identity,
        metadata={"unitTypeId": unit_type.id, "unitTypeName": unit_type.name},
        changes=changes,
    )
    db.commit()
    db.refresh(unit_type)
    return unit_type


def delete_unit_type(db, identity, unit_type_id):
    unit_type = get_unit_type(db, identity, unit_type_id)
    snapshot = _snapshot(unit_type)
    unit_type_key = unit_type.id

    detached = db.execute(
        update(Product)
        .where(Product.unit_type_id == unit_type_key)
        .values(unit_type_id=None, version=Product.version + 1)
        .execution_options(synchronize_session="fetch")
    ).rowcount
    db.delete(unit_type)
    db.flush()
    log_movement(
        db,
        "unit_type.deleted",
        'Deleted unit type "{}"'.format(snapshot["name"]),
        identity,
        metadata={
            "unitTypeId": unit_type_key,
            "unitTypeName": snapshot["name"],
            "productsDetached": detached,
        },
        changes={"before": snapshot, "after": None},
    )
    db.commit()


__all__ = [
    "create_unit_type",
    "delete_unit_type",
    "get_unit_type",
    "list_unit_types",
    "update_unit_type",
]
