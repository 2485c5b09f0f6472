from datetime import datetime, timezone

from sqlalchemy import JSON, Column, DateTime, Float, ForeignKey, Index, Integer, String
from sqlalchemy.orm import relationship

from stockflow.database.base import Base, TimestampMixin


class Purchase(TimestampMixin, Base):
    __tablename__ = "purchases"

    id = Column(Integer, primary_key=True)
    user_id = Column(String(64), nullable=False)
    purchase_code = Column(String(12), nullable=False, unique=True)
    date = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    subtotal = Column(Float, nullable=False, default=0)
    tax_details = Column(JSON, nullable=False, default=dict)
    total_amount = Column(Float, nullable=False)

    status = Column(String(20), nullable=False, default="Completed")
    supplier = Column(String, nullable=False, default="N/A")
    payment_method = Column(String(20), nullable=False, default="Cash")
    notes = Column(String, nullable=False, default="")

    items = relationship(
        "PurchaseItem",
        back_populates="purchase",
        cascade="all, delete-orphan",
        order_by="PurchaseItem.id",
        lazy="selectin",
    )

    __table_args__ = (
        Index("idx_purchases_owner_created", "user_id", "created_at"),
    )


class PurchaseItem(Base):
    __tablename__ = "purchase_items"

    id = Column(Integer, primary_key=True)
    purchase_id = Column(Integer, ForeignKey("purchases.id", ondelete="CASCADE"), nullable=False)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="SET NULL"))

    product_name = Column(String, nullable=False)
    product_sku = Column(String(64), nullable=False)
    quantity = Column(Integer, nullable=False)
    unit_price = Column(Float, nullable=False)
    subtotal = Column(Float, nullable=False)

    purchase = relationship("Purchase", back_populates="items")

    __table_args__ = (
        Index("idx_purchase_items_product", "product_id"),
    )


__all__ = ["Purchase", "PurchaseItem"]
