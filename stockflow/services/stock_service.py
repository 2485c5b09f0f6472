"""Stock consistency rules shared by product edits, refills and purchases.

Quantity deltas are applied with a single ``UPDATE ... SET quantity =
quantity + :delta`` so concurrent requests cannot lose each other's
increments. Decrements floor at zero. Absolute edits go through the ORM,
where the product's version column turns a concurrent edit into a conflict.
"""
import logging

from sqlalchemy import case, select, update

from stockflow.core.errors import NotFound, ValidationFailed
from stockflow.models.product import Product
from stockflow.services.movement_service import log_movement
from stockflow.services.ownership import get_owned

logger = logging.getLogger(__name__)


def _require_positive_int(value, error):
    if value is None or isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ValidationFailed(error)
    return value


def _locked_quantity(db, product_id):
    return db.execute(
        select(Product.quantity).where(Product.id == product_id).with_for_update()
    ).scalar_one_or_none()


def _apply_delta(db, product_id, new_quantity_expr, delta=None):
    """Run the UPDATE and report ``(before, after)`` for this statement alone.

    ``after`` comes back from RETURNING. With a plain ``delta`` the previous
    value is derived from it; a clamped expression needs the row locked and
    read first.
    """
    before = None
    if delta is None:
        before = _locked_quantity(db, product_id)
        if before is None:
            raise NotFound("Product not found: {}".format(product_id))
    after = db.execute(
        update(Product)
        .where(Product.id == product_id)
        .values(quantity=new_quantity_expr, version=Product.version + 1)
        .returning(Product.quantity)
        .execution_options(synchronize_session="fetch")
    ).scalar_one_or_none()
    if after is None:
        raise NotFound("Product not found: {}".format(product_id))
    if delta is not None:
        before = after - delta
    return before, after


def increment_stock(db, product_id, quantity):
    """Atomically add ``quantity`` units. Returns ``(before, after)``."""
    _require_positive_int(quantity, "Quantity must be a positive integer")
    return _apply_delta(db, product_id, Product.quantity + quantity, delta=quantity)


def decrement_stock(db, product_id, quantity):
    """Atomically remove ``quantity`` units, flooring at zero."""
    _require_positive_int(quantity, "Quantity must be a positive integer")
    floored = case(
        (Product.quantity - quantity < 0, 0),
        else_=Product.quantity - quantity,
    )
    return _apply_delta(db, product_id, floored)


def set_quantity(product, quantity):
    if quantity is None or isinstance(quantity, bool) or not isinstance(quantity, int):
        raise ValidationFailed("Quantity must be an integer")
    if quantity < 0:
        raise ValidationFailed("Quantity cannot be negative")
    product.quantity = quantity
    return product


def _collapse_items(items):
    """Merge repeated products so each product is touched once."""
    merged = {}
    for product_id, quantity in items:
        merged[product_id] = merged.get(product_id, 0) + quantity
    return merged


def apply_purchase(db, items, identity):
    """Price and book every purchase line, or none of them.

    Every line is validated and every product resolved before any stock is
    touched. Returns ``(prepared_items, stock_changes)`` where
    ``stock_changes`` maps product id to ``(product, before, after)``.
    The caller owns the transaction.
    """
    if not items:
        raise ValidationFailed("At least one item is required")

    resolved = []
    for item in items:
        if not item.product:
            raise ValidationFailed("Invalid item data")
        _require_positive_int(item.quantity, "Invalid item data")
        product = get_owned(
            db,
            Product,
            item.product,
            identity,
            "Product not found: {}".format(item.product),
        )
        resolved.append((product, item.quantity))

    prepared = []
    for product, quantity in resolved:
        unit_price = float(product.cost_price)
        prepared.append(
            {
                "product_id": product.id,
                "product_name": product.name,
                "product_sku": product.sku,
                "quantity": quantity,
                "unit_price": unit_price,
                "subtotal": quantity * unit_price,
            }
        )

    products_by_id = {product.id: product for product, _ in resolved}
    stock_changes = {}
    for product_id, quantity in _collapse_items(
        (product.id, quantity) for product, quantity in resolved
    ).items():
        before, after = increment_stock(db, product_id, quantity)
        stock_changes[product_id] = (products_by_id[product_id], before, after)

    return prepared, stock_changes


def revert_purchase(db, purchase):
    """Give back the stock a purchase booked, clamping at zero.

    Items whose product has since been deleted are skipped. Returns one
    record per affected product, with ``clamped`` set when fewer units than
    requested could be removed.
    """
    requested = _collapse_items(
        (item.product_id, item.quantity) for item in purchase.items if item.product_id
    )
    results = []
    for product_id, quantity in requested.items():
        try:
            before, after = decrement_stock(db, product_id, quantity)
        except NotFound:
            logger.info("Skipping stock reversal for missing product %s", product_id)
            continue
        results.append(
            {
                "productId": product_id,
                "requested": quantity,
                "quantityBefore": before,
                "quantityAfter": after,
                "clamped": before - quantity < 0,
            }
        )
    return results


def refill_stock(db, identity, product_id, payload):
    product = get_owned(db, Product, product_id, identity, "Product not found")
    quantity = _require_positive_int(payload.quantity, "Refill quantity must be a positive integer")

    before, after = increment_stock(db, product.id, quantity)
    db.refresh(product)

    metadata = {
        "productName": product.name,
        "sku": product.sku,
        "quantityChange": quantity,
        "previousQuantity": before,
        "newQuantity": after,
    }
    if payload.note:
        metadata["note"] = payload.note

    log_movement(
        db,
        "stock.refill",
        'Stock refilled for "{}": +{} units ({} -> {})'.format(product.name, quantity, before, after),
        identity,
        related_product_id=product.id,
        related_category_id=product.category_id,
        metadata=metadata,
        changes={"before": {"quantity": before}, "after": {"quantity": after}},
    )
    db.commit()
    return product


__all__ = [
    "apply_purchase",
    "decrement_stock",
    "increment_stock",
    "refill_stock",
    "revert_purchase",
    "set_quantity",
]
