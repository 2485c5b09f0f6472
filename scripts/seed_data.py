import argparse
import logging

from sqlalchemy import delete, select

from stockflow.core.logging import setup_logging
from stockflow.database import Base, engine, session_scope
from stockflow.models import (
    Category,
    Movement,
    PriceHistory,
    Product,
    Purchase,
    PurchaseItem,
    UnitType,
    User,
    UserSettings,
    import_all_models,
)
from stockflow.schemas.category import CategoryWrite
from stockflow.schemas.product import ProductWrite
from stockflow.schemas.unit_type import UnitTypeWrite
from stockflow.schemas.user import SignupRequest
from stockflow.services import category_service, product_service, unit_type_service, user_service

logger = logging.getLogger("seed_data")

DEMO_EMAIL = "demo@stockflow.local"
DEMO_PASSWORD = "demo1234"

CATEGORIES = [
    ("Beverages", "Drinks and juices"),
    ("Stationery", "Office supplies"),
]
UNIT_TYPES = [
    ("Piece", "PCS"),
    ("Litre", "L"),
    ("Box", "BOX"),
]
PRODUCTS = [
    {
        "name": "Orange Juice",
        "sku": "BEV-OJ-001",
        "category": "Beverages",
        "unit_type": "L",
        "quantity": 40,
        "cost_price": 1.8,
        "selling_price": 2.5,
        "supplier": "Fresh Farms",
    },
    {
        "name": "A4 Paper Ream",
        "sku": "STA-A4-500",
        "category": "Stationery",
        "unit_type": "BOX",
        "quantity": 6,
        "cost_price": 4.2,
        "selling_price": 6.0,
        "supplier": "Paper Co",
    },
]


def parse_args():
    parser = argparse.ArgumentParser(description="Seed a demo account with sample inventory.")
    parser.add_argument(
        "--reset",
        action="store_true",
        help="Clear existing data before seeding.",
    )
    return parser.parse_args()


def reset(db):
    for model in (
        Movement,
        PriceHistory,
        PurchaseItem,
        Purchase,
        Product,
        Category,
        UnitType,
        UserSettings,
        User,
    ):
        db.execute(delete(model))


def seed(db):
    if db.execute(select(User.id).where(User.email == DEMO_EMAIL).limit(1)).first():
        logger.info("Seed skipped: demo user already exists")
        return False

    user, _token = user_service.signup(
        db,
        SignupRequest(email=DEMO_EMAIL, password=DEMO_PASSWORD, name="Demo User", company="StockFlow Demo"),
    )
    owner = user_service.identity_for(user)

    categories = {
        name: category_service.create_category(db, owner, CategoryWrite(name=name, description=text)).id
        for name, text in CATEGORIES
    }
    unit_types = {
        abbreviation: unit_type_service.create_unit_type(
            db, owner, UnitTypeWrite(name=name, abbreviation=abbreviation)
        ).id
        for name, abbreviation in UNIT_TYPES
    }
    for values in PRODUCTS:
        payload = dict(values)
        payload["category"] = categories[payload["category"]]
        payload["unit_type"] = unit_types[payload["unit_type"]]
        product_service.create_product(db, owner, ProductWrite(**payload))
    return True


def main():
    setup_logging()
    args = parse_args()

    import_all_models()
    Base.metadata.create_all(bind=engine)

    if args.reset:
        with session_scope() as db:
            reset(db)
        logger.info("Existing data cleared")

    with session_scope() as db:
        if seed(db):
            logger.info("Seed data created. Demo login: %s / %s", DEMO_EMAIL, DEMO_PASSWORD)


if __name__ == "__main__":
    main()
