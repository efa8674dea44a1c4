"""JSON logging shared by the API process and the embedding workers."""

import contextvars
import logging
import re
import uuid

from pythonjsonlogger.json import JsonFormatter

request_id_var: contextvars.ContextVar[str] = contextvars.ContextVar("request_id", default="")

# Client libraries that log every outbound request at INFO
_NOISY_LOGGERS = ("httpx", "httpcore", "openai")

# Caller-supplied ids end up in logs and response headers
_REQUEST_ID_RE = re.compile(r"^[A-Za-z0-9._-]{1,64}$")


class RequestIdFilter(logging.Filter):
    """Stamp the current request id (empty outside a request) on each record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = request_id_var.get()  # type: ignore[attr-defined]
        return True


def setup_logging(*, debug: bool = False, service: str = "api") -> None:
    """Send all logs to stderr as JSON lines.

    Args:
        debug: Log at DEBUG instead of INFO
        service: Emitted on every line to tell API and worker logs apart
    """
    handler = logging.StreamHandler()
    handler.setFormatter(
        JsonFormatter(
            fmt="%(asctime)s %(levelname)s %(name)s %(message)s %(request_id)s",
            rename_fields={"asctime": "timestamp", "levelname": "level"},
            static_fields={"service": service},
        )
    )
    handler.addFilter(RequestIdFilter())

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(logging.DEBUG if debug else logging.INFO)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def resolve_request_id(header_value: str | None) -> str:
    """Reuse the caller's request id when it is well formed, else mint one."""
    if header_value and _REQUEST_ID_RE.match(header_value):
        return header_value
    return uuid.uuid4().hex[:16]
