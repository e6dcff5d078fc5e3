"""Logging setup with run-id context propagation."""

import contextvars
import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

from news_digest.config import LoggingConfig


run_id_var: contextvars.ContextVar[str] = contextvars.ContextVar("run_id", default="-")


def set_run_context(run_id: str) -> None:
    """Stamp subsequent log records with the given run id."""
    run_id_var.set(run_id)


class ContextFilter(logging.Filter):
    """Inject the current run id into every record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.run_id = run_id_var.get()
        return True


class JsonFormatter(logging.Formatter):
    """Single-line JSON records."""

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "run_id": getattr(record, "run_id", "-"),
        }
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_data, ensure_ascii=False)


class TextFormatter(logging.Formatter):
    """Format: TIME [LEVEL] [run_id] logger: message"""

    def __init__(self) -> None:
        super().__init__(
            fmt="%(asctime)s [%(levelname)s] [%(run_id)s] %(name)s: %(message)s",
            datefmt="%H:%M:%S",
        )


def setup_logging(config: LoggingConfig, verbose: bool = False) -> None:
    """Install a stderr handler on the root logger.

    Logs go to stderr so the CLI's printed progress on stdout stays readable.
    """
    level = logging.DEBUG if verbose else getattr(logging, config.level.upper(), logging.INFO)

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(JsonFormatter() if config.format == "json" else TextFormatter())
    handler.addFilter(ContextFilter())

    root = logging.getLogger()
    root.setLevel(level)
    for existing in root.handlers[:]:
        root.removeHandler(existing)
    root.addHandler(handler)

    # Reduce noise from third-party libraries
    for lib in ("httpx", "httpcore", "asyncio"):
        logging.getLogger(lib).setLevel(logging.WARNING)
