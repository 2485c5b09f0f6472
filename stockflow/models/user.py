from sqlalchemy import Column, DateTime, Index, Integer, String

from stockflow.database.base import Base, TimestampMixin


class User(TimestampMixin, Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True)
    email = Column(String(255), nullable=False, unique=True)
    password_hash = Column(String(128), nullable=False)
    password_salt = Column(String(64), nullable=False)

    name = Column(String(120), nullable=False)
    company = Column(String(120), nullable=False, default="")
    role = Column(String(20), nullable=False, default="user")
    status = Column(String(20), nullable=False, default="active")
    last_login = Column(DateTime(timezone=True))

    __table_args__ = (
        Index("idx_users_status", "status"),
        Index("idx_users_role", "role"),
    )


__all__ = ["User"]
