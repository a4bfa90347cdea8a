"""Error taxonomy for the conversational core.

Hard failures are raised as ``ChatbotError`` subclasses and leave the
conversation service. Tool-level problems never raise; they are reported back
to the model as payloads carrying one of the ``TOOL_*`` kinds below.
"""

from __future__ import annotations

# Non-fatal kinds carried inside tool-result payloads
TOOL_UNKNOWN = "unknown_tool"
TOOL_ROLE_FORBIDDEN = "role_forbidden"
TOOL_VALIDATION_ERROR = "validation_error"
TOOL_EXECUTION_ERROR = "tool_execution_error"
TOOL_AUTH_REQUIRED = "auth_required"


class ChatbotError(Exception):
    """Base class for failures that end a turn."""

    kind = "generic"
    status_code = 500
    user_message = "Chatbot failed, please try again."

    def __init__(self, detail: str | None = None) -> None:
        super().__init__(detail or self.user_message)
        self.detail = detail or self.user_message


class AuthRequired(ChatbotError):
    kind = "auth_required"
    status_code = 401
    user_message = "Authentication required."


class RoleForbidden(ChatbotError):
    kind = "role_forbidden"
    status_code = 403
    user_message = "Access denied for this role."


class ChatbotUnavailable(RoleForbidden):
    user_message = "Chatbot is not available for this role."


class InvalidMessage(ChatbotError):
    kind = "invalid_message"
    status_code = 400
    user_message = "Message is required."


class ThreadNotFound(ChatbotError):
    kind = "not_found"
    status_code = 404
    user_message = "Chat session not found."


class RecursionExceeded(ChatbotError):
    kind = "recursion_exceeded"
    status_code = 500
    user_message = "Chatbot could not finish this request, please rephrase your question."


class TurnTimeout(ChatbotError):
    kind = "timeout"
    status_code = 504
    user_message = "Chatbot is currently busy, please try again later."


class RateLimited(ChatbotError):
    kind = "rate_limited"
    status_code = 429
    user_message = "Service is busy. Please try again in 1 minute."


class UpstreamAuthFailure(ChatbotError):
    kind = "upstream_auth_failure"
    status_code = 502
    user_message = "Authentication failed. Please check API configuration."


class ChatbotFailure(ChatbotError):
    """Anything else, wrapped with the original message."""

    def __init__(self, detail: str | None = None) -> None:
        super().__init__(detail)
        self.user_message = f"Chatbot failed: {detail}" if detail else ChatbotError.user_message


def _status_of(exc: BaseException) -> int | None:
    for attr in ("status_code", "status", "code"):
        value = getattr(exc, attr, None)
        if isinstance(value, int):
            return value
    return None


def is_quota_exhausted(exc: BaseException) -> bool:
    """Return True if the exception indicates Gemini quota exhausted (429)."""
    if _status_of(exc) == 429:
        return True
    msg = str(exc).upper()
    return "429" in msg or "RESOURCE_EXHAUSTED" in msg or "QUOTA" in msg


def is_upstream_auth_failure(exc: BaseException) -> bool:
    if _status_of(exc) in (401, 403):
        return True
    msg = str(exc).upper()
    return (
        "401" in msg
        or "UNAUTHENTICATED" in msg
        or "PERMISSION_DENIED" in msg
        or "API KEY NOT VALID" in msg
        or "API_KEY_INVALID" in msg
    )


def classify_model_error(exc: BaseException) -> ChatbotError:
    """Map a model/upstream exception onto the hard-failure taxonomy."""
    if isinstance(exc, ChatbotError):
        return exc
    if is_quota_exhausted(exc):
        return RateLimited(str(exc))
    if is_upstream_auth_failure(exc):
        return UpstreamAuthFailure(str(exc))
    return ChatbotFailure(str(exc))
