"""structlog setup for the MindFlow API.

Every event carries request_id, user_id, path and method when a request is
in flight. Entry text, search queries, passwords and tokens never reach the
output: services log ids and hashes, and redact_private_fields masks the
known private keys if one slips into an event anyway.

    logger = get_logger(__name__)
    logger.info("entry_created", entry_id=str(entry.id))
"""

import logging
import sys
from contextvars import ContextVar

import structlog

request_id_var: ContextVar[str | None] = ContextVar("request_id", default=None)
user_id_var: ContextVar[str | None] = ContextVar("user_id", default=None)
path_var: ContextVar[str | None] = ContextVar("path", default=None)
method_var: ContextVar[str | None] = ContextVar("method", default=None)

_CONTEXT_VARS = (request_id_var, user_id_var, path_var, method_var)

PRIVATE_FIELDS = frozenset(
    {"content", "q", "query", "password", "access_token", "refresh_token", "authorization"}
)
REDACTED = "[redacted]"


def add_request_context(logger: logging.Logger, method_name: str, event_dict: dict) -> dict:
    """Copy the bound request context into the event; explicit fields win."""
    for var in _CONTEXT_VARS:
        value = var.get()
        if value and var.name not in event_dict:
            event_dict[var.name] = value
    return event_dict


def redact_private_fields(logger: logging.Logger, method_name: str, event_dict: dict) -> dict:
    for key in PRIVATE_FIELDS.intersection(event_dict):
        event_dict[key] = REDACTED
    return event_dict


def configure_logging(json_format: bool = True, level: int = logging.INFO) -> None:
    """Render structlog and stdlib records through one handler on stdout.

    Args:
        json_format: JSON lines when True (LOG_FORMAT=json), console otherwise.
        level: Root log level.
    """
    shared_processors = [
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        add_request_context,
        redact_private_fields,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]
    renderer = (
        structlog.processors.JSONRenderer() if json_format else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=[*shared_processors, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    # uvicorn, sqlalchemy and httpx records go through the same renderer
    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=[structlog.stdlib.ExtraAdder(), *shared_processors],
        processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
    )
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(level)

    for noisy in ("httpx", "httpcore", "uvicorn.access"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


def set_request_context(
    request_id: str | None,
    user_id: str | None = None,
    path: str | None = None,
    method: str | None = None,
) -> None:
    """Bind request fields for the current task; None leaves a field as it was."""
    request_id_var.set(request_id)
    for var, value in ((user_id_var, user_id), (path_var, path), (method_var, method)):
        if value is not None:
            var.set(value)


def set_user_context(user_id: str | None) -> None:
    """Attach the viewer once the auth middleware has verified the token."""
    user_id_var.set(user_id)


def clear_request_context() -> None:
    for var in _CONTEXT_VARS:
        var.set(None)


def get_request_id() -> str | None:
    return request_id_var.get()
