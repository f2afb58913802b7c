"""Logging setup for the CLI and the Lambda runtime.

The CLI logs human-readable lines. Inside Lambda every record is emitted as
a single JSON object so CloudWatch Logs Insights can filter on fields, and
each record carries the request id of the invocation that produced it.
"""

import json
import logging
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Iterator, Optional

_request_id: ContextVar[Optional[str]] = ContextVar("daylog_request_id", default=None)


def setup_logging(verbose: bool = False) -> None:
    """Configure logging for the CLI.

    Args:
        verbose: If True, set log level to DEBUG.
    """
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


@contextmanager
def request_context(request_id: Optional[str]) -> Iterator[None]:
    """Bind a request id to every record logged inside the block."""
    token = _request_id.set(request_id)
    try:
        yield
    finally:
        _request_id.reset(token)


class RequestIdFilter(logging.Filter):
    """Copy the bound request id onto each record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = _request_id.get()
        return True


class JsonFormatter(logging.Formatter):
    """Render a record as one JSON line."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "request_id": getattr(record, "request_id", None),
        }
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False)


def configure_json_logging(level: str = "INFO", logger: Optional[logging.Logger] = None) -> None:
    """Switch a logger's handlers to JSON output with request ids.

    Lambda's Python runtime installs its own handler on the root logger, so
    the existing handlers are reformatted rather than replaced.

    Args:
        level: Log level name.
        logger: Logger to configure. Defaults to the root logger.
    """
    target = logger if logger is not None else logging.getLogger()
    if not target.handlers:
        target.addHandler(logging.StreamHandler())

    for handler in target.handlers:
        handler.setFormatter(JsonFormatter())
        if not any(isinstance(f, RequestIdFilter) for f in handler.filters):
            handler.addFilter(RequestIdFilter())

    target.setLevel(level.upper())
