from stockflow.database.base import Base, TimestampMixin
from stockflow.database.engine import engine
from stockflow.database.session import SessionLocal, session_scope

__all__ = ["Base", "SessionLocal", "TimestampMixin", "engine", "session_scope"]
