# Core infrastructure
from studyhub.core.context import (
    clear_context,
    get_context,
    get_request_id,
    get_user_id,
    set_request_id,
    set_trace_id,
    set_user,
)
from studyhub.core.database import init_async_cassandra, shutdown_async_cassandra
from studyhub.core.logging import configure_structlog, get_logger
from studyhub.core.middleware import RequestContextMiddleware


__all__ = [
    "RequestContextMiddleware",
    "clear_context",
    "configure_structlog",
    "get_context",
    "get_logger",
    "get_request_id",
    "get_user_id",
    "init_async_cassandra",
    "set_request_id",
    "set_trace_id",
    "set_user",
    "shutdown_async_cassandra",
]
