"""Repository helpers for conversations."""

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from aichat.db.base import utcnow
from aichat.db.models import Conversation, Message

DEFAULT_CONVERSATION_NAME = "New Chat"


def create_conversation(
    db: Session,
    user_id: str,
    name: str | None = None,
    system_prompt: str | None = None,
    model: str | None = None,
    temperature: float | None = None,
) -> Conversation:
    """Create a new conversation for the given user."""
    conversation = Conversation(
        user_id=user_id,
        name=name.strip() if name and name.strip() else DEFAULT_CONVERSATION_NAME,
        system_prompt=system_prompt,
        model=model,
        temperature=temperature,
    )
    db.add(conversation)
    db.commit()
    db.refresh(conversation)
    return conversation


def get_user_conversation(
    db: Session, user_id: str, conversation_id: str
) -> Conversation | None:
    """Fetch conversation owned by user."""
    stmt = select(Conversation).where(
        Conversation.id == conversation_id,
        Conversation.user_id == user_id,
    )
    return db.execute(stmt).scalar_one_or_none()


def list_user_conversations(
    db: Session, user_id: str, query: str | None = None
) -> list[tuple[Conversation, int]]:
    """List the user's conversations, newest first, with their message counts."""
    message_count = (
        select(func.count(Message.id))
        .where(Message.conversation_id == Conversation.id)
        .correlate(Conversation)
        .scalar_subquery()
    )
    stmt = (
        select(Conversation, message_count)
        .where(Conversation.user_id == user_id)
        .order_by(Conversation.updated_at.desc(), Conversation.created_at.desc())
    )
    if query and query.strip():
        stmt = stmt.where(Conversation.name.ilike(f"%{query.strip()}%"))
    return [(conversation, count) for conversation, count in db.execute(stmt).all()]


def update_conversation(
    db: Session,
    conversation: Conversation,
    *,
    name: str | None = None,
    system_prompt: str | None = None,
    model: str | None = None,
    temperature: float | None = None,
    is_active: bool | None = None,
) -> Conversation:
    """Apply the provided field changes to a conversation."""
    if name is not None and name.strip():
        conversation.name = name.strip()
    if system_prompt is not None:
        conversation.system_prompt = system_prompt
    if model is not None:
        conversation.model = model
    if temperature is not None:
        conversation.temperature = temperature
    if is_active is not None:
        conversation.is_active = is_active
    db.commit()
    db.refresh(conversation)
    return conversation


def touch_conversation(db: Session, conversation_id: str) -> None:
    """Bump updated_at so recently used conversations sort first."""
    conversation = db.get(Conversation, conversation_id)
    if conversation is not None:
        conversation.updated_at = utcnow()
        db.commit()


def delete_conversation(db: Session, user_id: str, conversation_id: str) -> bool:
    """Delete a conversation and cascade its messages."""
    conversation = get_user_conversation(db, user_id, conversation_id)
    if not conversation:
        return False
    db.delete(conversation)
    db.commit()
    return True
