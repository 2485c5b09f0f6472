from sqlalchemy import JSON, Column, Integer, String

from stockflow.database.base import Base, TimestampMixin


class UserSettings(TimestampMixin, Base):
    __tablename__ = "user_settings"

    id = Column(Integer, primary_key=True)
    user_id = Column(String(64), nullable=False, unique=True)

    profile = Column(JSON, nullable=False, default=dict)
    preferences = Column(JSON, nullable=False, default=dict)


__all__ = ["UserSettings"]
