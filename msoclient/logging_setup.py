"""Structured JSON logging for the MSO client."""

from __future__ import annotations

import json
import logging
import os
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional


STANDARD_ATTRS = set(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {"message", "asctime"}

SENSITIVE_KEYS = {"password", "userPasswd", "Authorization", "authorization"}


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        for key, value in record.__dict__.items():
            if key in STANDARD_ATTRS:
                continue
            payload[key] = "***" if key in SENSITIVE_KEYS else value

        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        return json.dumps(payload, ensure_ascii=True, default=_json_default)


class TruncatingFileHandler(logging.FileHandler):
    """File handler that keeps only the newest ``max_bytes`` of the log."""

    def __init__(self, filename: str | Path, max_bytes: int) -> None:
        super().__init__(filename, mode="a", encoding="utf-8", delay=False)
        self.max_bytes = max_bytes

    def emit(self, record: logging.LogRecord) -> None:
        super().emit(record)
        try:
            self._truncate_if_needed()
        except OSError:
            self.handleError(record)

    def _truncate_if_needed(self) -> None:
        if self.max_bytes <= 0:
            return
        self.stream.flush()
        if os.path.getsize(self.baseFilename) <= self.max_bytes:
            return

        with open(self.baseFilename, "rb+") as handle:
            handle.seek(0, os.SEEK_END)
            size = handle.tell()
            handle.seek(max(0, size - self.max_bytes))
            data = handle.read()
            newline_index = data.find(b"\n")
            if newline_index != -1:
                data = data[newline_index + 1 :]
            handle.seek(0)
            handle.write(data)
            handle.truncate()


def _json_default(value: Any) -> str:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return str(value)


class MergeExtraAdapter(logging.LoggerAdapter):
    def process(self, msg, kwargs):
        merged = dict(self.extra)
        merged.update(kwargs.get("extra") or {})
        kwargs["extra"] = merged
        return msg, kwargs


def setup_logging(
    level: Optional[str] = None,
    log_file: Optional[str] = None,
    run_id: Optional[str] = None,
    max_bytes: int = 5 * 1024 * 1024,
) -> logging.LoggerAdapter:
    level = (level or os.getenv("LOG_LEVEL", "INFO")).upper()
    log_file = log_file or os.getenv("LOG_FILE") or None

    logger = logging.getLogger("msoclient")
    logger.setLevel(level)
    logger.handlers.clear()
    logger.propagate = False

    formatter = JsonFormatter()

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = TruncatingFileHandler(log_path, max_bytes=max_bytes)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    extra = {"runId": run_id} if run_id else {}
    return MergeExtraAdapter(logger, extra)
