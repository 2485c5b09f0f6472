from datetime import datetime, timezone

from sqlalchemy import JSON, Column, DateTime, Float, ForeignKey, Index, Integer, String

from stockflow.database.base import Base


class PriceHistory(Base):
    __tablename__ = "price_history"

    id = Column(Integer, primary_key=True)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(String(64), nullable=False)

    price_type = Column(String(20), nullable=False)
    old_price = Column(Float, nullable=False)
    new_price = Column(Float, nullable=False)
    change_amount = Column(Float, nullable=False)
    change_percentage = Column(Float)
    reason = Column(String)
    changed_by = Column(JSON, nullable=False, default=dict)

    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        Index("idx_price_history_product", "product_id", "created_at"),
        Index("idx_price_history_product_type", "product_id", "price_type", "created_at"),
    )


__all__ = ["PriceHistory"]
