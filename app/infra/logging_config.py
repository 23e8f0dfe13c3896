# app/infra/logging_config.py
"""
Logging setup.

Records carry optional notification context (animal, event kind, recipient
role, channel, request id) passed through ``extra=`` or ``LogContext``.
Production writes one JSON object per line; development gets a coloured
single-line format.  A redaction filter on the handler masks any email
address or phone number that slips into a message.
"""
import logging
import re
import sys
import json
from datetime import datetime, timezone

# (record attribute, short label for the console format)
_CONTEXT_FIELDS = (
    ("animal_id", "animal"),
    ("event_kind", "event"),
    ("recipient_role", "role"),
    ("channel", "ch"),
    ("request_id", "req"),
)

_EMAIL_RE = re.compile(r"[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}")
_PHONE_RE = re.compile(r"\+\d{7,15}")


def _context_of(record: logging.LogRecord) -> dict:
    return {
        attr: getattr(record, attr)
        for attr, _ in _CONTEXT_FIELDS
        if getattr(record, attr, None) is not None
    }


class ContactRedactionFilter(logging.Filter):
    """Mask email addresses and E.164 phone numbers in the final message."""

    def filter(self, record: logging.LogRecord) -> bool:
        from app.core.lost_found.masking import mask_contact, mask_phone

        message = record.getMessage()
        redacted = _EMAIL_RE.sub(lambda m: mask_contact(m.group(0)), message)
        redacted = _PHONE_RE.sub(lambda m: mask_phone(m.group(0)), redacted)
        if redacted != message:
            record.msg = redacted
            record.args = None
        return True


class JSONFormatter(logging.Formatter):
    """One JSON object per line for log shipping"""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }
        payload.update(_context_of(record))

        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=str)


class ConsoleFormatter(logging.Formatter):
    """Human-readable format for development"""

    COLORS = {
        "DEBUG": "\033[36m",  # Cyan
        "INFO": "\033[32m",  # Green
        "WARNING": "\033[33m",  # Yellow
        "ERROR": "\033[31m",  # Red
        "CRITICAL": "\033[35m",  # Magenta
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname, self.RESET)
        stamp = datetime.fromtimestamp(record.created, timezone.utc).strftime("%H:%M:%S")

        context = _context_of(record)
        if "request_id" in context:
            context["request_id"] = str(context["request_id"])[:8]
        labels = dict(_CONTEXT_FIELDS)
        tags = " ".join(f"{labels[k]}={v}" for k, v in context.items())

        line = f"{color}{stamp} {record.levelname:<7}{self.RESET} {record.name}"
        if tags:
            line += f" [{tags}]"
        line += f": {record.getMessage()}"
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


def setup_logging(level: str = "INFO", use_json: bool = False) -> None:
    """
    Configure the root logger with a single stdout handler.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        use_json: JSON lines instead of the console format (production)
    """
    root = logging.getLogger()
    root.setLevel(level)

    for existing in root.handlers[:]:
        root.removeHandler(existing)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(JSONFormatter() if use_json else ConsoleFormatter())
    handler.addFilter(ContactRedactionFilter())
    root.addHandler(handler)

    # Provider SDKs and HTTP clients log every request at INFO
    for noisy in ("twilio.http_client", "aiohttp.access", "uvicorn.access", "httpx"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    logging.getLogger(__name__).info(f"Logging configured: level={level}, json={use_json}")


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


class LogContext:
    """
    Logger wrapper that stamps every record with fixed context.

        log_ctx = LogContext(logger, animal_id=pet.id, event_kind="owner_marked_lost")
        log_ctx.info("Notifications done")

    ``None`` values are dropped so formatters only show what is known.
    """

    def __init__(self, logger: logging.Logger, **context):
        self.logger = logger
        self.context = {k: v for k, v in context.items() if v is not None}

    def _log(self, level: int, msg: str, *args, **kwargs):
        extra = {**kwargs.pop("extra", {}), **self.context}
        self.logger.log(level, msg, *args, extra=extra, **kwargs)

    def log(self, level: int, msg: str, *args, **kwargs):
        self._log(level, msg, *args, **kwargs)

    def debug(self, msg: str, *args, **kwargs):
        self._log(logging.DEBUG, msg, *args, **kwargs)

    def info(self, msg: str, *args, **kwargs):
        self._log(logging.INFO, msg, *args, **kwargs)

    def warning(self, msg: str, *args, **kwargs):
        self._log(logging.WARNING, msg, *args, **kwargs)

    def error(self, msg: str, *args, **kwargs):
        self._log(logging.ERROR, msg, *args, **kwargs)
