from datetime import timedelta

from sqlalchemy import func, select

from stockflow.config import get_settings
from stockflow.core.dates import utcnow
from stockflow.models.category import Category
from stockflow.models.movement import Movement
from stockflow.models.product import Product
from stockflow.models.purchase import Purchase
from stockflow.models.unit_type import UnitType
from stockflow.models.user import User
from stockflow.schemas.user import UserRead
from stockflow.services.movement_service import count_by_type


def _count(db, model, *criteria):
    stmt = select(func.count()).select_from(model)
    for criterion in criteria:
        stmt = stmt.where(criterion)
    return db.execute(stmt).scalar_one()


def collect_statistics(db):
    since = utcnow() - timedelta(days=get_settings().RECENT_ACTIVITY_DAYS)

    recent_users = db.execute(
        select(User).order_by(User.created_at.desc(), User.id.desc()).limit(5)
    ).scalars()

    return {
        "users": {
            "total": _count(db, User),
            "active": _count(db, User, User.status == "active"),
            "admins": _count(db, User, User.role == "admin"),
            "recentLogins": _count(db, User, User.last_login >= since),
        },
        "products": {
            "total": _count(db, Product),
            "lowStock": _count(db, Product, Product.quantity <= Product.min_stock_alert),
        },
        "system": {
            "categories": _count(db, Category),
            "unitTypes": _count(db, UnitType),
            "movements": _count(db, Movement),
            "purchases": _count(db, Purchase),
        },
        "activity": {
            "recentActivity": _count(db, Movement, Movement.created_at >= since),
            "movementsByType": count_by_type(db),
        },
        "recentUsers": [UserRead.model_validate(user).dump() for user in recent_users],
    }


__all__ = ["collect_statistics"]
