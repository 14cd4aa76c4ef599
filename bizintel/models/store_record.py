"""
Store record model - one row per record in a shared-store collection.
Records keep their JSON shape in `data`; `position` preserves append order.
"""
from datetime import datetime, timezone
from typing import Any
from sqlalchemy import JSON, DateTime, Integer, String, Index
from sqlalchemy.orm import Mapped, mapped_column
from bizintel.database import Base


class StoreRecord(Base):
    __tablename__ = "store_records"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    collection: Mapped[str] = mapped_column(String(50), nullable=False)
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    data: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    __table_args__ = (
        Index("ix_store_records_collection_position", "collection", "position"),
    )
