"""
Application errors and the JSON error envelope.

Every handled failure carries a stable code from `ErrorCode`. Clients get
`{"error": {"code", "message", "request_id"?, "details"?}}` and never a
traceback.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, ClassVar


class ErrorCode(str, Enum):
    """Stable error codes for API responses."""

    # Request level (1xxx)
    INTERNAL_ERROR = "E1000"
    VALIDATION_ERROR = "E1001"
    NOT_FOUND = "E1002"
    METHOD_NOT_ALLOWED = "E1003"
    REQUEST_TOO_LARGE = "E1004"
    RATE_LIMITED = "E1005"

    # Accounts and sessions (2xxx)
    UNAUTHORIZED = "E2000"
    INVALID_CREDENTIALS = "E2001"
    SESSION_EXPIRED = "E2002"
    ACCOUNT_DISABLED = "E2007"
    EMAIL_TAKEN = "E2009"
    REGISTRATION_DISABLED = "E2011"

    FORBIDDEN = "E3000"

    # Upstream AI API (4xxx)
    PROVIDER_UNAVAILABLE = "E4000"
    PROVIDER_ERROR = "E4001"
    STREAMING_ERROR = "E4003"
    PROVIDER_BAD_RESPONSE = "E4004"

    # Chat resources (5xxx)
    CONVERSATION_NOT_FOUND = "E5000"
    MESSAGE_NOT_FOUND = "E5001"
    USER_NOT_FOUND = "E5002"
    FIXED_PROMPT_NOT_FOUND = "E5003"


@dataclass(frozen=True)
class ErrorResponse:
    code: ErrorCode
    message: str
    request_id: str | None = None
    details: dict[str, Any] | None = None

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {"code": self.code.value, "message": self.message}
        for key in ("request_id", "details"):
            value = getattr(self, key)
            if value:
                body[key] = value
        return {"error": body}


class AppError(Exception):
    """
    Base for errors rendered to clients.

    Subclasses pin `code`, `status_code` and `default_message`; callers pass
    only what differs for the occurrence at hand.
    """

    code: ClassVar[ErrorCode] = ErrorCode.INTERNAL_ERROR
    status_code: ClassVar[int] = 500
    default_message: ClassVar[str] = "An unexpected error occurred"

    def __init__(self, message: str | None = None, details: dict[str, Any] | None = None):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)


class ValidationError(AppError):
    code = ErrorCode.VALIDATION_ERROR
    status_code = 400
    default_message = "Invalid request"


class NotFoundError(AppError):
    code = ErrorCode.NOT_FOUND
    status_code = 404
    default_message = "Resource not found"


class ConversationNotFoundError(NotFoundError):
    code = ErrorCode.CONVERSATION_NOT_FOUND
    default_message = "Conversation not found"


class MessageNotFoundError(NotFoundError):
    code = ErrorCode.MESSAGE_NOT_FOUND
    default_message = "Message not found"


class FixedPromptNotFoundError(NotFoundError):
    code = ErrorCode.FIXED_PROMPT_NOT_FOUND
    default_message = "Fixed prompt not found"


class UnauthorizedError(AppError):
    code = ErrorCode.UNAUTHORIZED
    status_code = 401
    default_message = "Authentication required"


class InvalidCredentialsError(UnauthorizedError):
    code = ErrorCode.INVALID_CREDENTIALS
    default_message = "Invalid email or password"


class SessionExpiredError(UnauthorizedError):
    code = ErrorCode.SESSION_EXPIRED
    default_message = "Session expired"


class ForbiddenError(AppError):
    code = ErrorCode.FORBIDDEN
    status_code = 403
    default_message = "Access denied"


class AccountDisabledError(ForbiddenError):
    code = ErrorCode.ACCOUNT_DISABLED
    default_message = "Account is disabled"


class RegistrationDisabledError(ForbiddenError):
    code = ErrorCode.REGISTRATION_DISABLED
    default_message = "Registration is disabled"


class EmailTakenError(AppError):
    code = ErrorCode.EMAIL_TAKEN
    status_code = 409
    default_message = "Email already registered"


class RateLimitError(AppError):
    code = ErrorCode.RATE_LIMITED
    status_code = 429
    default_message = "Rate limit exceeded"


class ProviderError(AppError):
    """The AI API call failed; relayed to stream clients as an `error` event."""

    code = ErrorCode.PROVIDER_ERROR
    status_code = 502
    default_message = "Provider error"


class UpstreamStatusError(ProviderError):
    """Non-2xx answer from the AI API. The body is passed through verbatim."""

    def __init__(self, status: int, body: str, streaming: bool = False):
        prefix = "AI stream API error" if streaming else "AI API error"
        super().__init__(f"{prefix}: {body}", {"status": status, "body": body})
        self.status = status
        self.body = body


class StreamingError(ProviderError):
    """The response started but its body could not be read to the end."""

    code = ErrorCode.STREAMING_ERROR
    default_message = "Error reading upstream stream"


class ProviderBadResponseError(ProviderError):
    code = ErrorCode.PROVIDER_BAD_RESPONSE
    default_message = "Provider returned invalid response"


class ProviderUnavailableError(ProviderError):
    """Connection refused, DNS failure or timeout before any response."""

    code = ErrorCode.PROVIDER_UNAVAILABLE
    status_code = 503
    default_message = "Provider unavailable"
