"""Log setup for capture runs: plain or JSON lines, with browser secrets masked."""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Iterable, List, Mapping, Optional

REDACTED = "[redacted]"

# Environment values shorter than this are too generic to redact safely ("1", "on", ...).
MIN_SECRET_LENGTH = 4

PLAIN_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"

# Loggers uvicorn creates for the in-process asset server.
UVICORN_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access")


def secrets_from_env(env: Optional[Mapping[str, str]]) -> List[str]:
    """Return the values of extra browser environment variables worth redacting."""

    if not env:
        return []
    return [value.strip() for value in env.values() if value and len(value.strip()) >= MIN_SECRET_LENGTH]


class SensitiveDataFilter(logging.Filter):
    """Mask secret values in the rendered message of every record."""

    def __init__(self, secrets: Iterable[str]):
        super().__init__()
        # Longest first so a secret containing another is replaced whole.
        self._secrets: List[str] = sorted(
            {secret.strip() for secret in secrets if secret and secret.strip()},
            key=len,
            reverse=True,
        )

    def redact(self, text: str) -> str:
        for secret in self._secrets:
            text = text.replace(secret, REDACTED)
        return text

    def filter(self, record: logging.LogRecord) -> bool:
        if self._secrets:
            rendered = record.getMessage()
            masked = self.redact(rendered)
            if masked != rendered:
                record.msg, record.args = masked, None
        return True


class JsonFormatter(logging.Formatter):
    """One JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        request_id = getattr(record, "request_id", None)
        if request_id:
            entry["request_id"] = request_id
        if record.exc_info:
            entry["exc_info"] = self.formatException(record.exc_info)
        if record.stack_info:
            entry["stack_info"] = self.formatStack(record.stack_info)
        return json.dumps(entry, ensure_ascii=True)


def build_handler(fmt: str, secrets: Iterable[str] = ()) -> logging.Handler:
    """Create a stderr handler for ``fmt`` ('plain' or 'json')."""

    handler = logging.StreamHandler()
    if (fmt or "").strip().lower() == "json":
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(logging.Formatter(PLAIN_FORMAT))
    handler.addFilter(SensitiveDataFilter(secrets))
    return handler


def configure_logging(level_name: str, fmt: str, secrets: Iterable[str] = ()) -> None:
    """Replace the root handlers with one plain or JSON handler that masks ``secrets``."""

    level = logging.getLevelName((level_name or "INFO").upper())
    if not isinstance(level, int):
        level = logging.INFO

    root = logging.getLogger()
    for existing in list(root.handlers):
        root.removeHandler(existing)
    root.addHandler(build_handler(fmt, secrets))
    root.setLevel(level)

    # uvicorn is quiet unless something goes wrong; its records use the root handler.
    for name in UVICORN_LOGGERS:
        uvicorn_logger = logging.getLogger(name)
        for existing in list(uvicorn_logger.handlers):
            uvicorn_logger.removeHandler(existing)
        uvicorn_logger.setLevel(max(level, logging.WARNING))
        uvicorn_logger.propagate = True
