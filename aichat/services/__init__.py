"""Application services."""

from aichat.services.chat_service import ChatService, ChatTurn, build_chat_messages

__all__ = ["ChatService", "ChatTurn", "build_chat_messages"]
