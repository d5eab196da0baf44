from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, DateTime, Index, Integer, String, func, text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    pass


class SentNotification(Base):
    __tablename__ = "sent_notifications"
    __table_args__ = (
        Index("ix_sent_notifications_partition_completed", "partition_key", "is_completed"),
    )

    # Keep the (partition, id) addressing of the summary store as a composite key.
    partition_key: Mapped[str] = mapped_column(String, primary_key=True)
    id: Mapped[str] = mapped_column(String, primary_key=True)
    # Expected number of outcome events, fixed by the fan-out at creation.
    total_message_count: Mapped[int] = mapped_column(Integer, nullable=False)
    succeeded: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default=text("0"))
    throttled: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default=text("0"))
    failed: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default=text("0"))
    # Populated only by forced completion.
    unknown: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default=text("0"))
    is_completed: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=text("false")
    )
    sent_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    # Row version token for optimistic merge-writes.
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default=text("0"))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )
