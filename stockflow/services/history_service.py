"""Per-product stock and price history, with summary statistics."""
from sqlalchemy import select

from stockflow.config import get_settings
from stockflow.core.constants import PRICE_TYPES, STOCK_EVENT_TYPES
from stockflow.core.dates import parse_bound
from stockflow.core.errors import ValidationFailed
from stockflow.models.movement import Movement
from stockflow.models.price_history import PriceHistory
from stockflow.services.product_service import get_product


def _limit(value):
    if value is None:
        return get_settings().HISTORY_DEFAULT_LIMIT
    if value <= 0:
        raise ValidationFailed("limit must be positive")
    return value


def _between(stmt, column, start_date, end_date):
    start = parse_bound(start_date, field="startDate")
    end = parse_bound(end_date, end_of_day=True, field="endDate")
    if start is not None:
        stmt = stmt.where(column >= start)
    if end is not None:
        stmt = stmt.where(column <= end)
    return stmt


def _quantities(movement):
    changes = movement.changes or {}
    before = (changes.get("before") or {}).get("quantity")
    after = (changes.get("after") or {}).get("quantity")
    if before is None or after is None:
        return None
    return before, after


def stock_history(db, identity, product_id, *, start_date=None, end_date=None, limit=None):
    product = get_product(db, identity, product_id)

    stmt = select(Movement).where(
        Movement.related_product_id == product.id,
        Movement.event_type.in_(STOCK_EVENT_TYPES),
    )
    stmt = _between(stmt, Movement.created_at, start_date, end_date)
    stmt = stmt.order_by(Movement.created_at.desc(), Movement.id.desc()).limit(_limit(limit))

    history = []
    for movement in db.execute(stmt).scalars():
        quantities = _quantities(movement)
        if quantities is None:
            continue
        before, after = quantities
        history.append(
            {
                "id": movement.id,
                "date": movement.created_at,
                "eventType": movement.event_type,
                "eventTitle": movement.event_title,
                "description": movement.description,
                "quantityBefore": before,
                "quantityAfter": after,
                "quantityChange": after - before,
                "userName": movement.user_name,
                "metadata": movement.metadata_ or {},
            }
        )

    stats = {
        "totalMovements": len(history),
        "totalStockAdded": sum(h["quantityChange"] for h in history if h["quantityChange"] > 0),
        "totalStockRemoved": sum(-h["quantityChange"] for h in history if h["quantityChange"] < 0),
        "currentStock": product.quantity,
        "averageStockLevel": (
            sum(h["quantityAfter"] for h in history) / len(history) if history else 0
        ),
        "stockOutOccurrences": sum(1 for h in history if h["quantityAfter"] == 0),
    }
    timeline = [
        {
            "date": h["date"],
            "quantity": h["quantityAfter"],
            "change": h["quantityChange"],
            "eventType": h["eventType"],
        }
        for h in reversed(history)
    ]

    return {
        "productId": product.id,
        "productName": product.name,
        "productSku": product.sku,
        "history": history,
        "timeline": timeline,
        "stats": stats,
    }


def price_history(
    db,
    identity,
    product_id,
    *,
    price_type=None,
    start_date=None,
    end_date=None,
    limit=None,
):
    product = get_product(db, identity, product_id)
    if price_type and price_type not in PRICE_TYPES:
        raise ValidationFailed(
            "Invalid priceType. Must be one of: {}".format(", ".join(PRICE_TYPES))
        )

    stmt = select(PriceHistory).where(PriceHistory.product_id == product.id)
    if price_type:
        stmt = stmt.where(PriceHistory.price_type == price_type)
    stmt = _between(stmt, PriceHistory.created_at, start_date, end_date)
    stmt = stmt.order_by(PriceHistory.created_at.desc(), PriceHistory.id.desc()).limit(
        _limit(limit)
    )
    rows = list(db.execute(stmt).scalars().all())

    amounts = [row.change_amount for row in rows]
    stats = {
        "totalChanges": len(rows),
        "averageChangeAmount": sum(amounts) / len(amounts) if amounts else 0,
        "largestIncrease": max([a for a in amounts if a > 0], default=0),
        "largestDecrease": min([a for a in amounts if a < 0], default=0),
        "currentCostPrice": product.cost_price,
        "currentSellingPrice": product.selling_price,
    }

    return {
        "productId": product.id,
        "productName": product.name,
        "productSku": product.sku,
        "history": rows,
        "stats": stats,
    }


__all__ = ["price_history", "stock_history"]
