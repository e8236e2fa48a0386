"""Conversation history models and storage."""

from .message_model import ChatMessage, Conversation, Message
from .store import ConversationStore

__all__ = ["ChatMessage", "Conversation", "ConversationStore", "Message"]
