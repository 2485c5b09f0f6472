from datetime import datetime, timezone

from sqlalchemy import JSON, Column, DateTime, Index, Integer, String

from stockflow.database.base import Base


class Movement(Base):
    __tablename__ = "movements"

    id = Column(Integer, primary_key=True)
    event_type = Column(String(40), nullable=False)
    event_title = Column(String(120), nullable=False)
    description = Column(String, nullable=False)

    user_id = Column(String(64), nullable=False)
    user_name = Column(String(120), nullable=False)
    user_email = Column(String(255))

    # Plain ids: the audit trail outlives the records it points at.
    related_product_id = Column(Integer)
    related_purchase_id = Column(Integer)
    related_category_id = Column(Integer)
    related_user_id = Column(String(64))

    metadata_ = Column("metadata", JSON, nullable=False, default=dict)
    changes = Column(JSON)

    ip_address = Column(String(64))
    user_agent = Column(String(255))

    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at = Column(DateTime(timezone=True))

    __table_args__ = (
        Index("idx_movements_event_type", "event_type"),
        Index("idx_movements_user", "user_id"),
        Index("idx_movements_created", "created_at"),
        Index("idx_movements_product", "related_product_id"),
        Index("idx_movements_purchase", "related_purchase_id"),
    )


__all__ = ["Movement"]
