from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from notice_api.database import Base


# ---------------------------------------------------------------------------
# Notice
# ---------------------------------------------------------------------------
class Notice(Base):
    __tablename__ = "notices"

    __table_args__ = (
        # Active notices feed, newest first
        Index("ix_notices_is_deleted_created_at", "is_deleted", "created_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(200), nullable=False, index=True)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    start_date: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    end_date: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.now, nullable=False, index=True
    )
    view_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    author: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    is_deleted: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    # lazy="noload" forces services to eager-load explicitly with selectinload
    attachments: Mapped[List["Attachment"]] = relationship(
        "Attachment",
        back_populates="notice",
        order_by="Attachment.id",
        lazy="noload",
    )

    def soft_delete(self) -> None:
        self.is_deleted = True
        for attachment in self.attachments:
            attachment.is_deleted = True

    @property
    def active_attachments(self) -> list["Attachment"]:
        return [a for a in self.attachments if not a.is_deleted]


# ---------------------------------------------------------------------------
# Attachment
# ---------------------------------------------------------------------------
class Attachment(Base):
    __tablename__ = "attachments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    original_file_name: Mapped[str] = mapped_column(String(255), nullable=False)
    stored_file_name: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    file_path: Mapped[str] = mapped_column(String(1024), nullable=False)
    is_deleted: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now, nullable=False)

    # Foreign key
    notice_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("notices.id"), nullable=False, index=True
    )

    # Relationships
    notice: Mapped["Notice"] = relationship("Notice", back_populates="attachments", lazy="noload")
