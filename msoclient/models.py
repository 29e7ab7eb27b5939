"""Helpers for JSON payloads returned by the orchestrator."""

from __future__ import annotations

from typing import Any

from .errors import ApiError


def strip_quotes(value: Any) -> str:
    if value is None:
        return ""
    text = str(value)
    if len(text) >= 2 and text.startswith('"') and text.endswith('"'):
        return text[1:-1]
    return text


def check_for_errors(payload: Any, method: str) -> None:
    """Raise ApiError when ``payload`` is an orchestrator error document."""
    if not isinstance(payload, dict):
        return
    code = payload.get("code")
    message = payload.get("message")
    if code not in (None, "", 0) and message:
        raise ApiError(code, f"{method} {strip_quotes(message)}", payload)
    errors = payload.get("errors")
    if isinstance(errors, list) and errors:
        raise ApiError("errors", f"{method} {_join_errors(errors)}", payload)


def _join_errors(errors: list) -> str:
    parts = []
    for item in errors:
        if isinstance(item, dict):
            parts.append(strip_quotes(item.get("message") or item))
        else:
            parts.append(strip_quotes(item))
    return "; ".join(parts)
