"""Application logging for AuditTrail.

Operational diagnostics only: the compliance record is the audit_trail table,
written by the audit service. Records carry the current request id and client
address when the request context middleware has set them, and pass through a
redaction filter so that credentials, tokens and URL signatures never reach
the log stream.
"""

import contextvars
import json
import logging
import re
import sys
from datetime import datetime, timezone
from typing import Optional


request_id_var: contextvars.ContextVar[str] = contextvars.ContextVar("request_id", default="")
client_ip_var: contextvars.ContextVar[str] = contextvars.ContextVar("client_ip", default="")

_TEXT_FORMAT = "%(asctime)s %(levelname)-8s [%(request_id)s] %(name)s: %(message)s"

_STANDARD_ATTRS = frozenset(logging.LogRecord("", 0, "", 0, "", (), None).__dict__) | {
    "message", "asctime", "request_id", "client_ip",
}


def _context_fields() -> dict:
    fields = {}
    rid = request_id_var.get()
    if rid:
        fields["request_id"] = rid
    ip = client_ip_var.get()
    if ip:
        fields["client_ip"] = ip
    return fields


class _JsonFormatter(logging.Formatter):
    """One JSON object per line; ``extra`` keys become top-level fields."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **_context_fields(),
        }
        payload.update(
            (key, value) for key, value in vars(record).items()
            if key not in _STANDARD_ATTRS and key not in payload
        )
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


class _TextFormatter(logging.Formatter):

    def format(self, record: logging.LogRecord) -> str:
        record.request_id = request_id_var.get() or "-"
        return super().format(record)


_REDACTED = "***REDACTED***"

# Each pattern keeps group 1 (a label or prefix) and masks the rest.
_SECRET_PATTERNS = (
    re.compile(r"(?i)(bearer\s+)[\w.\-]{20,}"),
    re.compile(r"()\beyJ[\w\-]{10,}\.[\w\-]{10,}\.[\w\-]{10,}"),
    re.compile(r"(\$2[aby]\$\d{2}\$)[./A-Za-z0-9]{53}"),
    re.compile(r"(?i)(signature=)[0-9a-f]{16,}"),
    re.compile(r"(?i)((?:password(?:_hash)?|secret|(?:refresh_)?token|authorization)\s*[=:]\s*)[^\s,'\"]{6,}"),
)


def redact(text: str) -> str:
    for pattern in _SECRET_PATTERNS:
        text = pattern.sub(lambda m: m.group(1) + _REDACTED, text)
    return text


class _SecretFilter(logging.Filter):
    """Mask secrets in the message, string arguments and cached traceback."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.msg = redact(str(record.msg))
        if isinstance(record.args, tuple):
            record.args = tuple(redact(a) if isinstance(a, str) else a for a in record.args)
        if record.exc_text:
            record.exc_text = redact(record.exc_text)
        return True


def setup_logging(log_level: Optional[str] = None, log_format: Optional[str] = None) -> None:
    """Install a single stdout handler on the root logger.

    ``log_format`` is ``"json"`` (default) or ``"text"``.
    """
    level = (log_level or "INFO").upper()
    fmt = (log_format or "json").lower()

    handler = logging.StreamHandler(sys.stdout)
    handler.addFilter(_SecretFilter())
    handler.setFormatter(_JsonFormatter() if fmt == "json" else _TextFormatter(_TEXT_FORMAT))

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

    # Request lines come from RequestContextMiddleware; SQL echo and passlib
    # backend probing are noise at INFO.
    for name, quiet_level in (
        ("uvicorn.access", logging.WARNING),
        ("sqlalchemy.engine", logging.WARNING),
        ("passlib", logging.ERROR),
    ):
        logging.getLogger(name).setLevel(quiet_level)

    logging.getLogger(__name__).info("Logging configured", extra={"level": level, "format": fmt})
