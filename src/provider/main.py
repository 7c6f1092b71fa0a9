"""Process setup shared by the CLI commands: logging and signal handling.

Long waits (a VPC link can take minutes to become AVAILABLE) run in the
foreground. SIGINT/SIGTERM set a cancellation event that the waiter and
the reconciler check, so an interrupted run stops between polls and leaves
a consistent state file.
"""

from __future__ import annotations

import json
import logging
import signal
import sys
import threading
from datetime import UTC, datetime

from .config import Config

# LogRecord attributes that are not user-supplied ``extra`` fields
_RESERVED_RECORD_ATTRS = frozenset(
    (
        "name",
        "msg",
        "args",
        "created",
        "filename",
        "funcName",
        "levelname",
        "levelno",
        "lineno",
        "module",
        "msecs",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "stack_info",
        "exc_info",
        "exc_text",
        "thread",
        "threadName",
        "taskName",
        "message",
    )
)


class JsonFormatter(logging.Formatter):
    """Format logs as JSON for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(UTC).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "message": record.getMessage(),
            "logger": record.name,
        }

        # Add extra fields from the record
        for key, value in record.__dict__.items():
            if key not in _RESERVED_RECORD_ATTRS:
                log_data[key] = value

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


def setup_logging(config: Config) -> None:
    """Configure structured logging on stderr.

    JSON lines by default, plain text when ``config.json_logs`` is off.
    Command output owns stdout.
    """
    handler = logging.StreamHandler(sys.stderr)
    if config.json_logs:
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)-8s %(name)s: %(message)s")
        )

    root_logger = logging.getLogger()
    for existing in list(root_logger.handlers):
        root_logger.removeHandler(existing)
    root_logger.addHandler(handler)
    root_logger.setLevel(config.log_level_number)

    # Reduce noise from the AWS SDK
    logging.getLogger("botocore").setLevel(logging.WARNING)
    logging.getLogger("boto3").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)


def install_signal_handlers(cancel_event: threading.Event) -> None:
    """Map SIGINT and SIGTERM onto ``cancel_event``.

    A second signal restores the default handler behaviour and exits
    immediately.
    """
    logger = logging.getLogger(__name__)

    def signal_handler(signum: int, frame: object) -> None:
        sig = signal.Signals(signum)
        if cancel_event.is_set():
            logger.warning("Received second signal, exiting", extra={"signal": sig.name})
            raise SystemExit(128 + signum)
        logger.info("Received signal, cancelling", extra={"signal": sig.name})
        cancel_event.set()

    for sig in (signal.SIGTERM, signal.SIGINT):
        signal.signal(sig, signal_handler)
