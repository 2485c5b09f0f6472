from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError

from stockflow.core.constants import RECORD_STATUSES
from stockflow.core.errors import Conflict, ValidationFailed
from stockflow.models.category import Category
from stockflow.models.product import Product
from stockflow.services.movement_service import build_changes, log_movement
from stockflow.services.ownership import get_owned, owner_for_write, scope_to_owner


def _name_taken(db, owner_id, name, exclude_id=None):
    stmt = select(Category.id).where(
        Category.user_id == owner_id,
        func.lower(Category.name) == name.lower(),
    )
    if exclude_id is not None:
        stmt = stmt.where(Category.id != exclude_id)
    return db.execute(stmt.limit(1)).first() is not None


def _required_name(value):
    name = (value or "").strip()
    if not name:
        raise ValidationFailed("Category name is required")
    return name


def _status(value):
    if value is not None and value not in RECORD_STATUSES:
        raise ValidationFailed("Invalid category status: {}".format(value))
    return value


def _snapshot(category):
    return {
        "name": category.name,
        "description": category.description,
        "status": category.status,
    }


def _flush(db, message):
    try:
        db.flush()
    except IntegrityError as exc:
        db.rollback()
        raise Conflict(message, str(exc.orig)) from exc


def list_categories(db, identity):
    stmt = scope_to_owner(select(Category), Category, identity).order_by(
        Category.created_at.desc(), Category.id.desc()
    )
    return list(db.execute(stmt).scalars().all())


def get_category(db, identity, category_id):
    return get_owned(db, Category, category_id, identity, "Category not found")


def create_category(db, identity, payload):
    name = _required_name(payload.name)
    owner_id = owner_for_write(identity)
    if _name_taken(db, owner_id, name):
        raise Conflict("Category with this name already exists")

    category = Category(
        user_id=owner_id,
        name=name,
        description=(payload.description or "").strip(),
        status=_status(payload.status) or "active",
    )
    db.add(category)
    _flush(db, "Category with this name already exists")

    log_movement(
        db,
        "category.created",
        'Created category "{}"'.format(category.name),
        identity,
        related_category_id=category.id,
        metadata={"categoryName": category.name},
        changes={"before": None, "after": _snapshot(category)},
    )
    db.commit()
    db.refresh(category)
    return category


def update_category(db, identity, category_id, payload):
    name = _required_name(payload.name)
    category = get_category(db, identity, category_id)
    if _name_taken(db, category.user_id, name, exclude_id=category.id):
        raise Conflict("Another category with this name already exists")

    before = _snapshot(category)
    category.name = name
    if payload.description is not None:
        category.description = payload.description.strip()
    if payload.status is not None:
        category.status = _status(payload.status)

    changes = build_changes(before, _snapshot(category))
    if changes is None:
        return category

    _flush(db, "Category with this name already exists")
    log_movement(
        db,
        "category.updated",
        'Updated category "{}"'.format(category.name),
        identity,
        related_category_id=category.id,
        metadata={"categoryName": category.name, "changedFields": sorted(changes["after"])},
        changes=changes,
    )
    db.commit()
    db.refresh(category)
    return category


def delete_category(db, identity, category_id):
    category = get_category(db, identity, category_id)
    snapshot = _snapshot(category)
    category_key = category.id

    # Products stay; they just lose the reference.
    detached = db.execute(
        update(Product)
        .where(Product.category_id == category_key)
        .values(category_id=None, version=Product.version + 1)
        .execution_options(synchronize_session="fetch")
    ).rowcount
    db.delete(category)
    db.flush()
    log_movement(
        db,
        "category.deleted",
        'Deleted category "{}"'.format(snapshot["name"]),
        identity,
        related_category_id=category_key,
        metadata={"categoryName": snapshot["name"], "productsDetached": detached},
        changes={"before": snapshot, "after": None},
    )
    db.commit()


__all__ = [
    "create_category",
    "delete_category",
    "get_category",
    "list_categories",
    "update_category",
]
