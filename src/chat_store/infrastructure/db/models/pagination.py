from __future__ import annotations

from sqlalchemy import BigInteger, Boolean, ForeignKey, Integer, String, text
from sqlalchemy.orm import Mapped, mapped_column

from chat_store.infrastructure.db.base import Base


class PaginationMetadataModel(Base):
    __tablename__ = "pagination_metadata"

    conversation_id: Mapped[str] = mapped_column(
        String,
        ForeignKey("conversations.id", ondelete="CASCADE"),
        primary_key=True,
    )
    oldest_message_id: Mapped[str | None] = mapped_column(String, nullable=True)
    has_more_messages: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True, server_default=text("1"),
    )
    last_sync_at: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    total_messages_count: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default=text("0"),
    )
