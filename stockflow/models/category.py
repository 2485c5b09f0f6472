from sqlalchemy import Column, Index, Integer, String, func

from stockflow.database.base import Base, TimestampMixin


class Category(TimestampMixin, Base):
    __tablename__ = "categories"

    id = Column(Integer, primary_key=True)
    user_id = Column(String(64), nullable=False)

    name = Column(String(120), nullable=False)
    description = Column(String, nullable=False, default="")
    status = Column(String(20), nullable=False, default="active")

    __table_args__ = (
        Index("uq_categories_owner_name", "user_id", func.lower(name), unique=True),
    )


__all__ = ["Category"]
