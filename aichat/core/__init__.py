"""Core module with logging, errors, middleware, and exception handling."""

from aichat.core.errors import (
    AccountDisabledError,
    AppError,
    ConversationNotFoundError,
    EmailTakenError,
    ErrorCode,
    ErrorResponse,
    FixedPromptNotFoundError,
    ForbiddenError,
    InvalidCredentialsError,
    MessageNotFoundError,
    NotFoundError,
    ProviderBadResponseError,
    ProviderError,
    ProviderUnavailableError,
    RateLimitError,
    RegistrationDisabledError,
    SessionExpiredError,
    StreamingError,
    UnauthorizedError,
    UpstreamStatusError,
    ValidationError,
)
from aichat.core.exceptions import setup_exception_handlers
from aichat.core.logging import (
    conversation_id_ctx,
    get_logger,
    request_id_ctx,
    setup_logging,
)
from aichat.core.middleware import (
    RateLimitMiddleware,
    RequestContextMiddleware,
    RequestSizeLimitMiddleware,
)

__all__ = [
    # Errors
    "AccountDisabledError",
    "AppError",
    "ConversationNotFoundError",
    "EmailTakenError",
    "ErrorCode",
    "ErrorResponse",
    "FixedPromptNotFoundError",
    "ForbiddenError",
    "InvalidCredentialsError",
    "MessageNotFoundError",
    "NotFoundError",
    "ProviderBadResponseError",
    "ProviderError",
    "ProviderUnavailableError",
    "RateLimitError",
    "RegistrationDisabledError",
    "SessionExpiredError",
    "StreamingError",
    "UnauthorizedError",
    "UpstreamStatusError",
    "ValidationError",
    # Logging
    "conversation_id_ctx",
    "get_logger",
    "request_id_ctx",
    "setup_logging",
    # Middleware
    "RateLimitMiddleware",
    "RequestContextMiddleware",
    "RequestSizeLimitMiddleware",
    "setup_exception_handlers",
]
