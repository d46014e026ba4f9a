"""Request-scoped context for log correlation."""

from contextvars import ContextVar, Token

_current_request_id: ContextVar[str | None] = ContextVar("current_request_id", default=None)


def get_current_request_id() -> str | None:
    """Request id of the HTTP request being handled, if any."""
    return _current_request_id.get()


def set_current_request_id(request_id: str | None) -> Token:
    """Bind a request id to the current context. Returns a reset token."""
    return _current_request_id.set(request_id)


def reset_current_request_id(token: Token) -> None:
    _current_request_id.reset(token)
