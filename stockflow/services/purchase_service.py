import logging
import secrets
import string

from sqlalchemy import select

from stockflow.core.constants import (
    PAYMENT_METHODS,
    PURCHASE_CODE_LENGTH,
    PURCHASE_CODE_PREFIX,
    PURCHASE_STATUSES,
)
from stockflow.core.errors import Conflict, ValidationFailed
from stockflow.models.purchase import Purchase, PurchaseItem
from stockflow.services.movement_service import build_changes, log_movement
from stockflow.services.ownership import get_owned, owner_for_write, scope_to_owner
from stockflow.services.stock_service import apply_purchase, revert_purchase
from stockflow.services.tax_service import active_tax_config, calculate_taxes

logger = logging.getLogger(__name__)

_CODE_ALPHABET = string.ascii_uppercase + string.digits
_CODE_ATTEMPTS = 5

_EDITABLE = ("status", "supplier", "payment_method", "notes", "date")
_LABELS = {
    "status": "status",
    "supplier": "supplier",
    "payment_method": "paymentMethod",
    "notes": "notes",
    "date": "date",
}


def generate_purchase_code():
    suffix = "".join(secrets.choice(_CODE_ALPHABET) for _ in range(PURCHASE_CODE_LENGTH))
    return PURCHASE_CODE_PREFIX + suffix


def _unique_purchase_code(db):
    for _ in range(_CODE_ATTEMPTS):
        code = generate_purchase_code()
        taken = db.execute(
            select(Purchase.id).where(Purchase.purchase_code == code).limit(1)
        ).first()
        if taken is None:
            return code
        logger.warning("Purchase code collision on %s, retrying", code)
    raise Conflict("Could not allocate a unique purchase id")


def _validate_choice(value, allowed, label):
    if value is not None and value not in allowed:
        raise ValidationFailed(
            "Invalid {}. Must be one of: {}".format(label, ", ".join(allowed))
        )
    return value


def list_purchases(db, identity):
    stmt = scope_to_owner(select(Purchase), Purchase, identity)
    stmt = stmt.order_by(Purchase.created_at.desc(), Purchase.id.desc())
    return list(db.execute(stmt).scalars().all())


def get_purchase(db, identity, purchase_id):
    return get_owned(db, Purchase, purchase_id, identity, "Purchase not found")


def create_purchase(db, identity, payload):
    if not payload.items:
        raise ValidationFailed("At least one item is required")
    if not payload.total_amount or payload.total_amount <= 0:
        raise ValidationFailed("Total amount must be greater than 0")
    status = _validate_choice(payload.status, PURCHASE_STATUSES, "status") or "Completed"
    payment_method = (
        _validate_choice(payload.payment_method, PAYMENT_METHODS, "payment method") or "Cash"
    )

    prepared, stock_changes = apply_purchase(db, payload.items, identity)

    subtotal = sum(item["subtotal"] for item in prepared)
    taxes = calculate_taxes(subtotal, active_tax_config(db))

    purchase = Purchase(
        user_id=owner_for_write(identity),
        purchase_code=_unique_purchase_code(db),
        subtotal=subtotal,
        tax_details={
            "gst": taxes["gst"],
            "platformFee": taxes["platformFee"],
            "otherTaxes": taxes["otherTaxes"],
            "totalTax": taxes["totalTax"],
        },
        total_amount=payload.total_amount,
        status=status,
        supplier=(payload.supplier or "").strip() or "N/A",
        payment_method=payment_method,
        notes=payload.notes or "",
        items=[PurchaseItem(**item) for item in prepared],
    )
    if payload.date is not None:
        purchase.date = payload.date
    db.add(purchase)
    db.flush()

    for product_id, (product, before, after) in stock_changes.items():
        log_movement(
            db,
            "purchase.created",
            'Purchased {} units of "{}" ({} -> {}) in purchase {}'.format(
                after - before, product.name, before, after, purchase.purchase_code
            ),
            identity,
            related_product_id=product_id,
            related_purchase_id=purchase.id,
            related_category_id=product.category_id,
            metadata={
                "purchaseId": purchase.purchase_code,
                "productName": product.name,
                "sku": product.sku,
                "quantityChange": after - before,
                "totalAmount": purchase.total_amount,
                "itemCount": len(prepared),
            },
            changes={"before": {"quantity": before}, "after": {"quantity": after}},
        )

    db.commit()
    db.refresh(purchase)
    return purchase


def _jsonable(changes):
    # Purchase dates are the only non-JSON values that reach a diff.
    def convert(value):
        return value.isoformat() if hasattr(value, "isoformat") else value

    return {
        side: {key: convert(value) for key, value in values.items()}
        for side, values in changes.items()
    }


def update_purchase(db, identity, purchase_id, payload):
    purchase = get_purchase(db, identity, purchase_id)
    values = payload.model_dump(exclude_unset=True)
    _validate_choice(values.get("status"), PURCHASE_STATUSES, "status")
    _validate_choice(values.get("payment_method"), PAYMENT_METHODS, "payment method")

    before = {_LABELS[field]: getattr(purchase, field) for field in _EDITABLE}
    for field in _EDITABLE:
        if field in values and values[field] is not None:
            setattr(purchase, field, values[field])
    after = {_LABELS[field]: getattr(purchase, field) for field in _EDITABLE}

    changes = build_changes(before, after)
    if changes is None:
        return purchase

    db.flush()
    log_movement(
        db,
        "purchase.updated",
        "Updated purchase {} ({})".format(purchase.purchase_code, ", ".join(sorted(changes["after"]))),
        identity,
        related_purchase_id=purchase.id,
        metadata={"purchaseId": purchase.purchase_code},
        changes=_jsonable(changes),
    )
    db.commit()
    db.refresh(purchase)
    return purchase


def delete_purchase(db, identity, purchase_id):
    """Delete a purchase and take its stock back out.

    Returns the list of warnings for products whose stock could not be
    reduced by the full purchased quantity.
    """
    purchase = get_purchase(db, identity, purchase_id)
    code = purchase.purchase_code
    purchase_key = purchase.id
    names = {item.product_id: item.product_name for item in purchase.items}

    reverted = revert_purchase(db, purchase)
    db.delete(purchase)
    db.flush()

    warnings = []
    for record in reverted:
        name = names.get(record["productId"], record["productId"])
        if record["clamped"]:
            warnings.append(
                'Stock for "{}" was clamped at 0: tried to remove {} units but only {} were available'.format(
                    name, record["requested"], record["quantityBefore"]
                )
            )
        log_movement(
            db,
            "purchase.deleted",
            'Deleted purchase {}: "{}" stock {} -> {}'.format(
                code, name, record["quantityBefore"], record["quantityAfter"]
            ),
            identity,
            related_product_id=record["productId"],
            related_purchase_id=purchase_key,
            metadata={
                "purchaseId": code,
                "productName": name,
                "requested": record["requested"],
                "clamped": record["clamped"],
            },
            changes={
                "before": {"quantity": record["quantityBefore"]},
                "after": {"quantity": record["quantityAfter"]},
            },
        )

    if not reverted:
        log_movement(
            db,
            "purchase.deleted",
            "Deleted purchase {}".format(code),
            identity,
            related_purchase_id=purchase_key,
            metadata={"purchaseId": code, "clamped": False},
        )

    db.commit()
    return warnings


__all__ = [
    "create_purchase",
    "delete_purchase",
    "generate_purchase_code",
    "get_purchase",
    "list_purchases",
    "update_purchase",
]
