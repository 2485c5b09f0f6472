"""Append-only audit trail of state-changing events.

Mutation handlers call ``log_movement`` after their own writes are flushed.
The insert runs inside a SAVEPOINT, so a failing audit write is rolled back
on its own and reported to the operator log while the primary mutation goes
on to commit.
"""
import logging
from datetime import datetime, timezone

from sqlalchemy import delete, func, select

from stockflow.core.constants import EVENT_TITLES
from stockflow.core.dates import parse_bound
from stockflow.core.errors import Forbidden, NotFound, ValidationFailed
from stockflow.models.category import Category
from stockflow.models.movement import Movement
from stockflow.models.product import Product
from stockflow.models.purchase import Purchase
from stockflow.services.ownership import get_owned

logger = logging.getLogger(__name__)

_CORRECTABLE_FIELDS = ("description", "event_title", "metadata")


def diff_snapshots(before, after, fields=None):
    """Return ``(before, after)`` restricted to the keys whose values differ."""
    before = before or {}
    after = after or {}
    if fields is None:
        fields = sorted(set(before) | set(after))
    changed_before = {}
    changed_after = {}
    for field in fields:
        old_value = before.get(field)
        new_value = after.get(field)
        if old_value != new_value:
            changed_before[field] = old_value
            changed_after[field] = new_value
    return changed_before, changed_after


def build_changes(before, after, fields=None):
    changed_before, changed_after = diff_snapshots(before, after, fields)
    if not changed_before and not changed_after:
        return None
    return {"before": changed_before, "after": changed_after}


def log_movement(
    db,
    event_type,
    description,
    actor,
    *,
    title=None,
    related_product_id=None,
    related_purchase_id=None,
    related_category_id=None,
    related_user_id=None,
    metadata=None,
    changes=None,
    ip_address=None,
    user_agent=None,
):
    if event_type not in EVENT_TITLES:
        logger.error("Refusing to log movement with unknown event type %r", event_type)
        return None

    # Surface the caller's own write errors before the audit savepoint.
    db.flush()

    try:
        movement = Movement(
            event_type=event_type,
            event_title=title or EVENT_TITLES[event_type],
            description=description,
            user_id=actor.user_id,
            user_name=actor.display_name,
            user_email=actor.email,
            related_product_id=related_product_id,
            related_purchase_id=related_purchase_id,
            related_category_id=related_category_id,
            related_user_id=related_user_id,
            metadata_=dict(metadata or {}),
            changes=changes,
            ip_address=ip_address,
            user_agent=user_agent,
        )
        with db.begin_nested():
            db.add(movement)
    except Exception:
        logger.exception(
            "Failed to log movement %s: %s",
            event_type,
            description,
            extra={"event_type": event_type, "user_id": actor.user_id},
        )
        return None
    return movement


_REFERENCE_CHECKS = (
    ("related_product", Product, "Product not found"),
    ("related_purchase", Purchase, "Purchase not found"),
    ("related_category", Category, "Category not found"),
)


def _check_references(db, identity, payload):
    """Related records of a hand-written movement must belong to the caller."""
    for field, model, message in _REFERENCE_CHECKS:
        record_id = getattr(payload, field)
        if record_id is not None:
            get_owned(db, model, record_id, identity, message)


def create_movement(db, payload, actor, *, ip_address=None, user_agent=None):
    event_type = (payload.event_type or "").strip()
    title = (payload.event_title or "").strip()
    description = (payload.description or "").strip()
    if not event_type or not title or not description:
        raise ValidationFailed("Missing required fields: eventType, eventTitle, description")
    if event_type not in EVENT_TITLES:
        raise ValidationFailed("Unknown event type: {}".format(event_type))
    _check_references(db, actor, payload)

    movement = Movement(
        event_type=event_type,
        event_title=title,
        description=description,
        user_id=actor.user_id,
        user_name=actor.display_name,
        user_email=actor.email,
        related_product_id=payload.related_product,
        related_purchase_id=payload.related_purchase,
        related_category_id=payload.related_category,
        metadata_=dict(payload.metadata or {}),
        changes=payload.changes,
        ip_address=ip_address,
        user_agent=user_agent,
    )
    db.add(movement)
    db.commit()
    return movement


def _visible_statement(identity):
    stmt = select(Movement)
    if not identity.is_static_admin:
        stmt = stmt.where(Movement.user_id == identity.user_id)
    return stmt


def list_movements(
    db,
    identity,
    *,
    event_type=None,
    user_id=None,
    date_from=None,
    date_to=None,
    limit=None,
):
    stmt = _visible_statement(identity)
    if event_type and event_type != "all":
        stmt = stmt.where(Movement.event_type == event_type)
    if user_id:
        stmt = stmt.where(Movement.user_id == str(user_id))

    start = parse_bound(date_from, field="dateFrom")
    end = parse_bound(date_to, end_of_day=True, field="dateTo")
    if start is not None:
        stmt = stmt.where(Movement.created_at >= start)
    if end is not None:
        stmt = stmt.where(Movement.created_at <= end)

    stmt = stmt.order_by(Movement.created_at.desc(), Movement.id.desc())
    if limit:
        if limit < 0:
            raise ValidationFailed("limit must be positive")
        stmt = stmt.limit(limit)
    return list(db.execute(stmt).scalars().all())


def get_movement(db, identity, movement_id):
    movement = db.get(Movement, movement_id)
    if movement is None:
        raise NotFound("Movement not found")
    if not identity.is_static_admin and movement.user_id != identity.user_id:
        raise NotFound("Movement not found")
    return movement


def correct_movement(db, identity, movement_id, updates):
    movement = get_movement(db, identity, movement_id)
    values = updates.model_dump(exclude_unset=True)
    for field in _CORRECTABLE_FIELDS:
        if field not in values or values[field] is None:
            continue
        if field == "metadata":
            movement.metadata_ = dict(values[field])
        else:
            setattr(movement, field, values[field])
    movement.updated_at = datetime.now(timezone.utc)
    db.commit()
    return movement


def delete_movement(db, identity, movement_id):
    if not identity.is_admin:
        raise Forbidden("Unauthorized. Admin access required.")
    movement = db.get(Movement, movement_id)
    if movement is None:
        raise NotFound("Movement not found")
    db.delete(movement)
    db.commit()


def clear_movements(db, identity, confirm):
    if not identity.is_admin:
        raise Forbidden("Unauthorized. Admin access required.")
    if str(confirm).lower() != "true":
        raise ValidationFailed("Please confirm deletion by adding ?confirm=true")
    deleted = db.execute(delete(Movement)).rowcount or 0
    db.commit()
    return deleted


def count_by_type(db):
    rows = db.execute(
        select(Movement.event_type, func.count(Movement.id)).group_by(Movement.event_type)
    ).all()
    return {event_type: count for event_type, count in rows}


def _load_references(db, movements, *, detailed=False):
    product_ids = {m.related_product_id for m in movements if m.related_product_id}
    purchase_ids = {m.related_purchase_id for m in movements if m.related_purchase_id}
    category_ids = {m.related_category_id for m in movements if m.related_category_id}

    products = {}
    if product_ids:
        rows = db.execute(
            select(Product.id, Product.name, Product.sku, Product.quantity).where(
                Product.id.in_(product_ids)
            )
        ).all()
        for row in rows:
            ref = {"id": row.id, "name": row.name, "sku": row.sku}
            if detailed:
                ref["quantity"] = row.quantity
            products[row.id] = ref

    purchases = {}
    if purchase_ids:
        rows = db.execute(
            select(Purchase.id, Purchase.purchase_code, Purchase.total_amount).where(
                Purchase.id.in_(purchase_ids)
            )
        ).all()
        for row in rows:
            ref = {"id": row.id, "purchaseId": row.purchase_code}
            if detailed:
                ref["totalAmount"] = row.total_amount
            purchases[row.id] = ref

    categories = {}
    if category_ids:
        rows = db.execute(
            select(Category.id, Category.name).where(Category.id.in_(category_ids))
        ).all()
        categories = {row.id: {"id": row.id, "name": row.name} for row in rows}

    return products, purchases, categories


def _reference(refs, record_id):
    if record_id is None:
        return None
    # Deleted targets keep their id so history still points somewhere.
    return refs.get(record_id, {"id": record_id})


def movement_to_dict(movement, products=None, purchases=None, categories=None):
    return {
        "id": movement.id,
        "eventType": movement.event_type,
        "eventTitle": movement.event_title,
        "description": movement.description,
        "userId": movement.user_id,
        "userName": movement.user_name,
        "userEmail": movement.user_email,
        "relatedProduct": _reference(products or {}, movement.related_product_id),
        "relatedPurchase": _reference(purchases or {}, movement.related_purchase_id),
        "relatedCategory": _reference(categories or {}, movement.related_category_id),
        "relatedUser": movement.related_user_id,
        "metadata": movement.metadata_ or {},
        "changes": movement.changes,
        "ipAddress": movement.ip_address,
        "userAgent": movement.user_agent,
        "createdAt": movement.created_at,
        "updatedAt": movement.updated_at,
    }


def serialize_movements(db, movements, *, detailed=False):
    products, purchases, categories = _load_references(db, movements, detailed=detailed)
    return [movement_to_dict(m, products, purchases, categories) for m in movements]


__all__ = [
    "build_changes",
    "clear_movements",
    "correct_movement",
    "count_by_type",
    "create_movement",
    "delete_movement",
    "diff_snapshots",
    "get_movement",
    "list_movements",
    "log_movement",
    "movement_to_dict",
    "serialize_movements",
]
