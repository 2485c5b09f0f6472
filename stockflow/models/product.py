from sqlalchemy import (
    JSON,
    CheckConstraint,
    Column,
    Date,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    func,
)
from sqlalchemy.orm import relationship

from stockflow.database.base import Base, TimestampMixin


class Product(TimestampMixin, Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True)
    user_id = Column(String(64), nullable=False)

    name = Column(String, nullable=False)
    sku = Column(String(64), nullable=False)
    description = Column(String, nullable=False, default="")

    category_id = Column(Integer, ForeignKey("categories.id", ondelete="SET NULL"))
    unit_type_id = Column(Integer, ForeignKey("unit_types.id", ondelete="SET NULL"))
    unit_size = Column(Float, nullable=False, default=1)

    quantity = Column(Integer, nullable=False, default=0)
    cost_price = Column(Float, nullable=False, default=0)
    selling_price = Column(Float, nullable=False, default=0)

    supplier = Column(String, nullable=False, default="")
    supplier_contact = Column(String, nullable=False, default="")
    supplier_registration_number = Column(String, nullable=False, default="")
    purchase_date = Column(Date)
    expiry_date = Column(Date)

    min_stock_alert = Column(Integer, nullable=False, default=10)
    images = Column(JSON, nullable=False, default=list)
    status = Column(String(20), nullable=False, default="active")

    version = Column(Integer, nullable=False, default=1)

    category = relationship("Category", lazy="joined")
    unit_type = relationship("UnitType", lazy="joined")

    __mapper_args__ = {"version_id_col": version}

    __table_args__ = (
        CheckConstraint("quantity >= 0", name="ck_products_quantity_non_negative"),
        CheckConstraint("cost_price >= 0", name="ck_products_cost_price_non_negative"),
        CheckConstraint("selling_price >= 0", name="ck_products_selling_price_non_negative"),
        Index("uq_products_owner_sku", "user_id", func.lower(sku), unique=True),
        Index("idx_products_owner_created", "user_id", "created_at"),
        Index("idx_products_owner_category", "user_id", "category_id"),
    )


__all__ = ["Product"]
