"""Database repositories for data access."""

from aichat.db.repositories.conversations import (
    DEFAULT_CONVERSATION_NAME,
    create_conversation,
    delete_conversation,
    get_user_conversation,
    list_user_conversations,
    touch_conversation,
    update_conversation,
)
from aichat.db.repositories.fixed_prompts import (
    create_fixed_prompt,
    delete_fixed_prompt,
    get_user_fixed_prompt,
    list_user_fixed_prompts,
    update_fixed_prompt,
)
from aichat.db.repositories.messages import (
    create_message,
    delete_message,
    get_conversation_messages,
    get_user_message,
    list_user_messages,
    next_sort,
    update_message,
)
from aichat.db.repositories.users import (
    create_user,
    delete_user,
    email_exists,
    get_user_by_email,
    get_user_by_id,
    update_user_profile,
)

__all__ = [
    # Users
    "get_user_by_id",
    "get_user_by_email",
    "email_exists",
    "create_user",
    "update_user_profile",
    "delete_user",
    # Conversations
    "DEFAULT_CONVERSATION_NAME",
    "create_conversation",
    "get_user_conversation",
    "list_user_conversations",
    "update_conversation",
    "touch_conversation",
    "delete_conversation",
    # Messages
    "next_sort",
    "create_message",
    "get_conversation_messages",
    "get_user_message",
    "list_user_messages",
    "update_message",
    "delete_message",
    # Fixed prompts
    "create_fixed_prompt",
    "get_user_fixed_prompt",
    "list_user_fixed_prompts",
    "update_fixed_prompt",
    "delete_fixed_prompt",
]
