"""Structured logging configuration for ArticleFlow.

JSON lines in production, plain text locally. The request id and caller
(``user:<id>`` or ``ip:<address>``) set by the request context middleware are
attached to every record emitted while a request is being served.

Redaction runs on the fully formatted line, after ``%`` arguments,
``extra`` fields and tracebacks have been rendered, so credentials echoed
back in LLM, R2 or Dev.to error messages never reach the output.
"""

import contextvars
import json
import logging
import re
import sys
from datetime import datetime, timezone
from typing import Optional


request_id_var: contextvars.ContextVar[str] = contextvars.ContextVar("request_id", default="")
caller_var: contextvars.ContextVar[str] = contextvars.ContextVar("caller", default="")

_SECRET_PATTERNS = [
    # LLM provider keys (OpenAI, Anthropic) and AWS-style access key ids
    re.compile(r"\bsk-[a-zA-Z0-9_\-]{20,}"),
    re.compile(r"\bAKIA[0-9A-Z]{16}\b"),
    re.compile(r"(?i)(bearer\s+)[a-zA-Z0-9._\-]{20,}"),
    # presigned R2 URLs
    re.compile(r"(?i)(X-Amz-(?:Signature|Credential|Security-Token)=)[^&\s\"']+"),
    re.compile(
        r"(?i)((?:api[_-]key|secret|password|token|authorization|signature)[\"']?\s*[=:]\s*[\"']?)[^\s,'\"&]{8,}"
    ),
]

REDACTED = "***REDACTED***"


def redact(text: str) -> str:
    """Mask credentials in *text*, keeping any ``key=`` prefix."""
    for pattern in _SECRET_PATTERNS:
        text = pattern.sub(lambda m: (m.group(1) if m.lastindex else "") + REDACTED, text)
    return text


class _ContextFilter(logging.Filter):
    """Copies the request context onto the record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = request_id_var.get("")
        record.caller = caller_var.get("")
        return True


class _TextFormatter(logging.Formatter):

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        if getattr(record, "request_id", ""):
            line = f"[{record.request_id}] {line}"
        return redact(line)


class _JsonFormatter(logging.Formatter):
    """One JSON object per record.

    Fields passed through ``extra=`` are merged into the top level, so
    ``logger.info("uploaded", extra={"key": k})`` yields ``{"key": ...}``.
    Empty context fields are left out.
    """

    _RESERVED = frozenset(logging.LogRecord("", 0, "", 0, "", (), None).__dict__.keys())

    def format(self, record: logging.LogRecord) -> str:
        payload: dict = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key, value in record.__dict__.items():
            if key in self._RESERVED or key in payload:
                continue
            if key in ("request_id", "caller") and not value:
                continue
            payload[key] = value
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)

        return redact(json.dumps(payload, default=str))


def build_handler(log_format: str = "json", stream=None) -> logging.Handler:
    """Stream handler with request context and redaction."""
    handler = logging.StreamHandler(stream or sys.stdout)
    handler.addFilter(_ContextFilter())
    if log_format == "json":
        handler.setFormatter(_JsonFormatter())
    else:
        handler.setFormatter(
            _TextFormatter(
                fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )
    return handler


def setup_logging(log_level: Optional[str] = None, log_format: Optional[str] = None) -> None:
    """Configure the root logger.

    Args:
        log_level: One of DEBUG, INFO, WARNING, ERROR, CRITICAL. Defaults to INFO.
        log_format: ``"json"`` or ``"text"``. Defaults to ``"json"``.
    """
    level = (log_level or "INFO").upper()
    fmt = (log_format or "json").lower()

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(build_handler(fmt))
    root.setLevel(level)

    # Provider SDKs log request bodies (prompts, article text) at INFO.
    for noisy in ("uvicorn.access", "sqlalchemy.engine", "httpx", "botocore", "LiteLLM"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    logging.getLogger(__name__).info("Logging configured", extra={"level": level, "format": fmt})
