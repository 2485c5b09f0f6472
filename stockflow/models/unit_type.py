from sqlalchemy import Column, Index, Integer, String, func

from stockflow.database.base import Base, TimestampMixin


class UnitType(TimestampMixin, Base):
    __tablename__ = "unit_types"

    id = Column(Integer, primary_key=True)
    user_id = Column(String(64), nullable=False)

    name = Column(String(80), nullable=False)
    abbreviation = Column(String(20), nullable=False)
    description = Column(String, nullable=False, default="")
    status = Column(String(20), nullable=False, default="active")

    __table_args__ = (
        Index("uq_unit_types_owner_name", "user_id", func.lower(name), unique=True),
        Index("uq_unit_types_owner_abbr", "user_id", func.lower(abbreviation), unique=True),
    )


__all__ = ["UnitType"]
