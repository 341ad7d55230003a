"""SQLAlchemy ORM models for durable session state."""
from datetime import datetime

from sqlalchemy import DateTime, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from runcoach.database import Base


class StoredValue(Base):
    """One independently keyed slot holding a serialized profile or plan."""

    __tablename__ = "stored_values"

    key: Mapped[str] = mapped_column(String(64), primary_key=True)
    payload: Mapped[str] = mapped_column(Text, nullable=False)  # JSON document
    schema_version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
