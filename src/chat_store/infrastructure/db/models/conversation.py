from __future__ import annotations

from typing import Any

from sqlalchemy import JSON, BigInteger, Index, Integer, String, Text, text
from sqlalchemy.orm import Mapped, mapped_column

from chat_store.infrastructure.db.base import Base


class ConversationModel(Base):
    __tablename__ = "conversations"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    type: Mapped[str] = mapped_column(String, nullable=False)
    participant_ids: Mapped[str] = mapped_column(Text, nullable=False)  # comma-joined
    name: Mapped[str | None] = mapped_column(String, nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    image_url: Mapped[str | None] = mapped_column(String, nullable=True)
    last_message_id: Mapped[str | None] = mapped_column(String, nullable=True)
    last_message_at: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    unread_count: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default=text("0"),
    )
    settings: Mapped[dict[str, Any] | None] = mapped_column(JSON(none_as_null=True), nullable=True)
    created_at: Mapped[int] = mapped_column(BigInteger, nullable=False)
    updated_at: Mapped[int] = mapped_column(BigInteger, nullable=False)
    sync_status: Mapped[str] = mapped_column(
        String, nullable=False, default="synced", server_default=text("'synced'"),
    )

    __table_args__ = (
        Index("idx_conversations_updated", "updated_at"),
    )
