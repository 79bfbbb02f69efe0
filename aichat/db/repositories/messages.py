"""Repository helpers for chat messages."""

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from aichat.db.models import Conversation, Message


def next_sort(db: Session, conversation_id: str) -> int:
    """Sort key for the next message appended to a conversation."""
    stmt = select(func.max(Message.sort)).where(Message.conversation_id == conversation_id)
    current = db.execute(stmt).scalar_one_or_none()
    return (current or 0) + 1


def create_message(
    db: Session,
    conversation_id: str,
    role: str,
    content: str,
    *,
    reasoning_content: str = "",
    model: str | None = None,
    tokens: int | None = None,
) -> Message:
    """Append a message at the end of a conversation."""
    message = Message(
        conversation_id=conversation_id,
        role=role,
        content=content,
        reasoning_content=reasoning_content or "",
        model=model,
        tokens=tokens,
        sort=next_sort(db, conversation_id),
    )
    db.add(message)
    db.commit()
    db.refresh(message)
    return message


def get_conversation_messages(db: Session, conversation_id: str) -> list[Message]:
    """Get all messages for a conversation in conversation order."""
    stmt = (
        select(Message)
        .where(Message.conversation_id == conversation_id)
        .order_by(Message.sort.asc(), Message.created_at.asc())
    )
    return list(db.execute(stmt).scalars().all())


def list_user_messages(db: Session, user_id: str) -> list[Message]:
    """Every message in the user's conversations, grouped by conversation."""
    stmt = (
        select(Message)
        .join(Conversation, Message.conversation_id == Conversation.id)
        .where(Conversation.user_id == user_id)
        .order_by(Message.conversation_id, Message.sort.asc(), Message.created_at.asc())
    )
    return list(db.execute(stmt).scalars().all())


def get_user_message(db: Session, user_id: str, message_id: str) -> Message | None:
    """Fetch a message whose conversation belongs to the user."""
    stmt = (
        select(Message)
        .join(Conversation, Message.conversation_id == Conversation.id)
        .where(Message.id == message_id, Conversation.user_id == user_id)
    )
    return db.execute(stmt).scalar_one_or_none()


def update_message(
    db: Session,
    message: Message,
    content: str | None = None,
    role: str | None = None,
) -> Message:
    """Edit a stored message."""
    if content is not None:
        message.content = content
    if role is not None:
        message.role = role
    db.commit()
    db.refresh(message)
    return message


def delete_message(db: Session, message: Message) -> None:
    db.delete(message)
    db.commit()
