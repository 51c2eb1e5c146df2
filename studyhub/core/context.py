"""Request-scoped context stored in contextvars.

Every request gets a request id; the authenticated caller's id and role are
added once the identity dependency resolves, so every log line emitted while
serving the request carries them.
"""

from contextvars import ContextVar
from typing import Any
from uuid import UUID, uuid4


request_id_var: ContextVar[str] = ContextVar("request_id", default="")
user_id_var: ContextVar[str | None] = ContextVar("user_id", default=None)
user_role_var: ContextVar[str | None] = ContextVar("user_role", default=None)
trace_id_var: ContextVar[str | None] = ContextVar("trace_id", default=None)


def get_request_id() -> str:
    """Get the current request ID."""
    return request_id_var.get()


def set_request_id(request_id: str | None = None) -> str:
    """Set the request ID for the current context, generating one if missing."""
    rid = request_id or str(uuid4())
    request_id_var.set(rid)
    return rid


def get_user_id() -> str | None:
    """Get the current user ID."""
    return user_id_var.get()


def set_user(user_id: str | UUID | None, role: str | None = None) -> None:
    """Bind the authenticated caller to the current context."""
    user_id_var.set(str(user_id) if user_id is not None else None)
    user_role_var.set(role)


def set_trace_id(trace_id: str | None) -> None:
    """Set the distributed tracing ID for the current context."""
    trace_id_var.set(trace_id)


def get_context() -> dict[str, Any]:
    """Return the non-empty context variables as a dictionary."""
    context: dict[str, Any] = {}

    if request_id := request_id_var.get():
        context["request_id"] = request_id
    if user_id := user_id_var.get():
        context["user_id"] = user_id
    if user_role := user_role_var.get():
        context["user_role"] = user_role
    if trace_id := trace_id_var.get():
        context["trace_id"] = trace_id

    return context


def clear_context() -> None:
    """Reset all context variables (called at the end of each request)."""
    request_id_var.set("")
    user_id_var.set(None)
    user_role_var.set(None)
    trace_id_var.set(None)
