"""Import all models so Base.metadata knows every table."""
from chat_store.infrastructure.db.models.conversation import ConversationModel
from chat_store.infrastructure.db.models.message import MessageModel
from chat_store.infrastructure.db.models.outbox import OutboxMessageModel
from chat_store.infrastructure.db.models.pagination import PaginationMetadataModel

__all__ = [
    "ConversationModel",
    "MessageModel",
    "OutboxMessageModel",
    "PaginationMetadataModel",
]
