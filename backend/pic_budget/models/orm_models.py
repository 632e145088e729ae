"""ORM models for the local key-value store — SQLAlchemy 2.0"""
from datetime import datetime
from typing import Any

from sqlalchemy import JSON, DateTime, String
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from pic_budget.db import Base


class KeyValueEntry(Base):
    """One persisted store (``pic-product-store``, ``excel-config-storage`` ...)."""
    __tablename__ = "key_value_store"
    key: Mapped[str] = mapped_column(String(100), primary_key=True)
    value: Mapped[Any] = mapped_column(JSON, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )
