from datetime import datetime, timezone

from sqlalchemy import JSON, Boolean, Column, DateTime, ForeignKey, Index, Integer, String, text
from sqlalchemy.orm import relationship

from stockflow.database.base import Base, TimestampMixin


class TaxConfig(TimestampMixin, Base):
    __tablename__ = "tax_configs"

    id = Column(Integer, primary_key=True)
    user_id = Column(String(64))
    is_global = Column(Boolean, nullable=False, default=False)

    gst = Column(JSON, nullable=False, default=dict)
    platform_fee = Column(JSON, nullable=False, default=dict)
    other_taxes = Column(JSON, nullable=False, default=list)
    status = Column(String(20), nullable=False, default="active")

    change_history = relationship(
        "TaxChangeEntry",
        back_populates="tax_config",
        cascade="all, delete-orphan",
        order_by="TaxChangeEntry.id",
        lazy="selectin",
    )

    __table_args__ = (
        Index(
            "uq_tax_configs_single_global",
            "is_global",
            unique=True,
            sqlite_where=text("is_global = 1"),
            postgresql_where=text("is_global"),
        ),
    )


class TaxChangeEntry(Base):
    __tablename__ = "tax_change_history"

    id = Column(Integer, primary_key=True)
    tax_config_id = Column(Integer, ForeignKey("tax_configs.id", ondelete="CASCADE"), nullable=False)

    changed_by = Column(String(120), nullable=False)
    changed_by_email = Column(String(255))
    change_date = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    changes = Column(JSON, nullable=False)
    description = Column(String)

    tax_config = relationship("TaxConfig", back_populates="change_history")


__all__ = ["TaxChangeEntry", "TaxConfig"]
