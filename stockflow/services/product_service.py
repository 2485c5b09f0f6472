from datetime import datetime, timezone

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm.exc import StaleDataError

from stockflow.config import get_settings
from stockflow.core.constants import PRODUCT_STATUSES, PRODUCT_TRACKED_FIELDS
from stockflow.core.errors import Conflict, ValidationFailed
from stockflow.models.category import Category
from stockflow.models.price_history import PriceHistory
from stockflow.models.product import Product
from stockflow.models.unit_type import UnitType
from stockflow.services.movement_service import build_changes, diff_snapshots, log_movement
from stockflow.services.ownership import get_owned, owner_for_write, scope_to_owner
from stockflow.services.stock_service import set_quantity

_PRICE_FIELDS = (("cost_price", "costPrice"), ("selling_price", "sellingPrice"))

# Updatable attribute -> name used in movement metadata.
_UPDATABLE = {
    "name": "name",
    "sku": "sku",
    "description": "description",
    "category_id": "category",
    "unit_type_id": "unitType",
    "unit_size": "unitSize",
    "quantity": "quantity",
    "cost_price": "costPrice",
    "selling_price": "sellingPrice",
    "supplier": "supplier",
    "supplier_contact": "supplierContact",
    "supplier_registration_number": "supplierRegistrationNumber",
    "purchase_date": "purchaseDate",
    "expiry_date": "expiryDate",
    "min_stock_alert": "minStockAlert",
    "images": "images",
    "status": "status",
}


def product_snapshot(product):
    return {
        "name": product.name,
        "sku": product.sku,
        "quantity": product.quantity,
        "costPrice": product.cost_price,
        "sellingPrice": product.selling_price,
    }


def _full_state(product):
    return {label: getattr(product, attr) for attr, label in _UPDATABLE.items()}


def _clean_text(value):
    return (value or "").strip()


def normalize_sku(value):
    return _clean_text(value).upper()


def _non_negative(value, label):
    if value is None:
        return None
    if value < 0:
        raise ValidationFailed("{} must be positive".format(label))
    return value


def _validate_status(value):
    if value is not None and value not in PRODUCT_STATUSES:
        raise ValidationFailed("Invalid product status: {}".format(value))
    return value


def sku_taken(db, owner_id, sku, exclude_id=None):
    stmt = select(Product.id).where(
        Product.user_id == owner_id,
        func.lower(Product.sku) == sku.lower(),
    )
    if exclude_id is not None:
        stmt = stmt.where(Product.id != exclude_id)
    return db.execute(stmt.limit(1)).first() is not None


def list_products(db, identity, *, low_stock=False):
    stmt = scope_to_owner(select(Product), Product, identity)
    if low_stock:
        stmt = stmt.where(Product.quantity <= Product.min_stock_alert)
    stmt = stmt.order_by(Product.created_at.desc(), Product.id.desc())
    return list(db.execute(stmt).unique().scalars().all())


def get_product(db, identity, product_id):
    return get_owned(db, Product, product_id, identity, "Product not found")


def _resolve_refs(db, identity, category_id, unit_type_id):
    if category_id is not None:
        get_owned(db, Category, category_id, identity, "Category not found")
    if unit_type_id is not None:
        get_owned(db, UnitType, unit_type_id, identity, "Unit type not found")


def _flush_product(db, sku):
    try:
        db.flush()
    except IntegrityError as exc:
        db.rollback()
        raise Conflict("Product with this SKU already exists", str(exc.orig)) from exc
    except StaleDataError as exc:
        db.rollback()
        raise Conflict("Product was modified by another request", sku) from exc


def record_price_change(db, product, price_type, old_price, new_price, identity, reason=None):
    """Append a price history row when a price actually moved."""
    old_price = float(old_price or 0.0)
    new_price = float(new_price)
    if old_price == new_price:
        return None
    change_amount = new_price - old_price
    entry = PriceHistory(
        product_id=product.id,
        user_id=product.user_id,
        price_type=price_type,
        old_price=old_price,
        new_price=new_price,
        change_amount=change_amount,
        change_percentage=(change_amount / old_price) * 100 if old_price > 0 else None,
        reason=reason,
        changed_by={
            "userId": identity.user_id,
            "userName": identity.display_name,
            "userEmail": identity.email,
        },
        created_at=datetime.now(timezone.utc),
    )
    db.add(entry)
    return entry


def create_product(db, identity, payload):
    name = _clean_text(payload.name)
    sku = normalize_sku(payload.sku)
    if not name:
        raise ValidationFailed("Product name is required")
    if not sku:
        raise ValidationFailed("SKU is required")
    if not payload.category:
        raise ValidationFailed("Category is required")
    if not payload.unit_type:
        raise ValidationFailed("Unit type is required")

    owner_id = owner_for_write(identity)
    _resolve_refs(db, identity, payload.category, payload.unit_type)
    if sku_taken(db, owner_id, sku):
        raise Conflict("Product with this SKU already exists")

    quantity = payload.quantity if payload.quantity is not None else 0
    if quantity < 0:
        raise ValidationFailed("Quantity cannot be negative")

    settings = get_settings()
    product = Product(
        user_id=owner_id,
        name=name,
        sku=sku,
        description=_clean_text(payload.description),
        category_id=payload.category,
        unit_type_id=payload.unit_type,
        unit_size=payload.unit_size or 1,
        quantity=quantity,
        cost_price=_non_negative(payload.cost_price, "Cost price") or 0,
        selling_price=_non_negative(payload.selling_price, "Selling price") or 0,
        supplier=_clean_text(payload.supplier),
        supplier_contact=_clean_text(payload.supplier_contact),
        supplier_registration_number=_clean_text(payload.supplier_registration_number),
        purchase_date=payload.purchase_date,
        expiry_date=payload.expiry_date,
        min_stock_alert=(
            payload.min_stock_alert
            if payload.min_stock_alert is not None
            else settings.DEFAULT_LOW_STOCK_THRESHOLD
        ),
        images=list(payload.images or []),
        status=_validate_status(payload.status) or "active",
    )
    db.add(product)
    _flush_product(db, sku)

    after = product_snapshot(product)
    log_movement(
        db,
        "product.created",
        'Added new product "{}" ({})'.format(product.name, product.sku),
        identity,
        related_product_id=product.id,
        related_category_id=product.category_id,
        metadata={"productName": product.name, "sku": product.sku},
        changes={"before": {"quantity": 0}, "after": after},
    )
    db.commit()
    db.refresh(product)
    return product


def _describe_update(product, changed_labels, quantity_only, before_quantity):
    if quantity_only:
        delta = product.quantity - before_quantity
        return 'Stock {} for "{}": {}{} units ({} -> {})'.format(
            "increased" if delta > 0 else "decreased",
            product.name,
            "+" if delta > 0 else "",
            delta,
            before_quantity,
            product.quantity,
        )
    return 'Updated product "{}" ({})'.format(product.name, ", ".join(changed_labels))


def update_product(db, identity, product_id, payload):
    product = get_product(db, identity, product_id)
    values = payload.model_dump(exclude_unset=True)

    expected_version = values.pop("version", None)
    reason = values.pop("reason", None)
    if expected_version is not None and expected_version != product.version:
        raise Conflict("Product was modified by another request")

    before_state = _full_state(product)
    before_snapshot = product_snapshot(product)
    owner_id = owner_for_write(identity, product)

    if "name" in values:
        name = _clean_text(values["name"])
        if not name:
            raise ValidationFailed("Product name is required")
        product.name = name

    if "sku" in values:
        sku = normalize_sku(values["sku"])
        if not sku:
            raise ValidationFailed("SKU is required")
        if sku.lower() != product.sku.lower() and sku_taken(db, owner_id, sku, exclude_id=product.id):
            raise Conflict("Another product with this SKU already exists")
        product.sku = sku

    if "category" in values or "unit_type" in values:
        _resolve_refs(db, identity, values.get("category"), values.get("unit_type"))
        if values.get("category"):
            product.category_id = values["category"]
        if values.get("unit_type"):
            product.unit_type_id = values["unit_type"]

    if "quantity" in values:
        set_quantity(product, values["quantity"])

    for attr, label in _PRICE_FIELDS:
        if attr in values and values[attr] is not None:
            setattr(product, attr, _non_negative(values[attr], label))

    for attr in ("description", "supplier", "supplier_contact", "supplier_registration_number"):
        if attr in values:
            setattr(product, attr, _clean_text(values[attr]))
    for attr in ("unit_size", "min_stock_alert", "purchase_date", "expiry_date"):
        if attr in values and (values[attr] is not None or attr.endswith("_date")):
            setattr(product, attr, values[attr])
    if "images" in values:
        product.images = list(values["images"] or [])
    if values.get("status") is not None:
        product.status = _validate_status(values["status"])

    changed_before, _ = diff_snapshots(before_state, _full_state(product))
    if not changed_before:
        return product

    for attr, price_type in _PRICE_FIELDS:
        record_price_change(
            db,
            product,
            price_type,
            before_snapshot[price_type],
            getattr(product, attr),
            identity,
            reason,
        )

    _flush_product(db, product.sku)

    changed_labels = sorted(changed_before)
    changes = build_changes(before_snapshot, product_snapshot(product), PRODUCT_TRACKED_FIELDS)
    quantity_only = changed_labels == ["quantity"]
    metadata = {
        "productName": product.name,
        "sku": product.sku,
        "changedFields": changed_labels,
    }
    if "quantity" in changed_before:
        metadata["quantityChange"] = product.quantity - before_snapshot["quantity"]

    log_movement(
        db,
        "stock.changed" if quantity_only else "product.updated",
        _describe_update(product, changed_labels, quantity_only, before_snapshot["quantity"]),
        identity,
        related_product_id=product.id,
        related_category_id=product.category_id,
        metadata=metadata,
        changes=changes,
    )
    db.commit()
    db.refresh(product)
    return product


def delete_product(db, identity, product_id):
    product = get_product(db, identity, product_id)
    snapshot = product_snapshot(product)
    product_key = product.id
    category_id = product.category_id

    db.delete(product)
    db.flush()
    log_movement(
        db,
        "product.deleted",
        'Deleted product "{}" ({})'.format(snapshot["name"], snapshot["sku"]),
        identity,
        related_product_id=product_key,
        related_category_id=category_id,
        metadata={"productName": snapshot["name"], "sku": snapshot["sku"]},
        changes={"before": snapshot, "after": None},
    )
    db.commit()


__all__ = [
    "create_product",
    "delete_product",
    "get_product",
    "list_products",
    "normalize_sku",
    "product_snapshot",
    "record_price_change",
    "sku_taken",
    "update_product",
]
