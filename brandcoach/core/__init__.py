# Core infrastructure
from brandcoach.core.context import (
    RequestContext,
    clear_context,
    get_context,
    get_request_id,
    get_trace_id,
    get_user_id,
    set_request_id,
    set_trace_id,
    set_user_id,
)
from brandcoach.core.events import ChangeOperation, TableChange, TableChangeBus
from brandcoach.core.logging import configure_structlog, get_logger
from brandcoach.core.middleware import RequestContextMiddleware


__all__ = [
    "ChangeOperation",
    "RequestContext",
    "RequestContextMiddleware",
    "TableChange",
    "TableChangeBus",
    "clear_context",
    "configure_structlog",
    "get_context",
    "get_logger",
    "get_request_id",
    "get_trace_id",
    "get_user_id",
    "set_request_id",
    "set_trace_id",
    "set_user_id",
]
