"""Remote platform version lookup and comparison."""

from __future__ import annotations

import re
import threading
from typing import Any, Callable, Optional

from packaging.version import InvalidVersion, Version

from .errors import ParseError, VersionUnavailableError
from .models import check_for_errors, strip_quotes


VERSION_PATH = "/api/v1/platform/version"

# Maintenance releases carry a single letter right after the last number,
# e.g. 3.7.1g or 4.2(3e). Prereleases such as 3.7.1-rc1 or 4.0b2 do not match.
MAINTENANCE_VERSION = re.compile(r"^v?(\d+(?:\.\d+)*)([A-Za-z])\)?$")


class VersionResolver:
    def __init__(
        self,
        lock: threading.Lock,
        build: Callable[..., Any],
        send: Callable[..., Any],
        version: Optional[str] = None,
    ) -> None:
        self._lock = lock
        self._build = build
        self._send = send
        self._version = version or None

    @property
    def cached(self) -> Optional[str]:
        return self._version

    def get_version(self) -> str:
        request = self._build("GET", VERSION_PATH, authenticated=True)
        payload, _ = self._send(request)
        check_for_errors(payload, "GET")

        raw = payload.get("version") if isinstance(payload, dict) else None
        version = strip_quotes(raw).strip() if raw is not None else ""
        if not version:
            raise VersionUnavailableError("Unable to identify version")
        with self._lock:
            self._version = version
        return version

    def compare_version(self, target: str) -> int:
        """Compare ``target`` with the platform version.

        Returns -1, 0 or 1 when ``target`` is lower than, equal to or higher
        than the platform version.
        """
        current = self._version or self.get_version()
        remote = _parse(current, "retrieved version")
        wanted = _parse(target, "version")
        if wanted < remote:
            return -1
        if wanted > remote:
            return 1
        return 0


def _parse(value: str, label: str) -> Version:
    cleaned = value.strip()
    match = MAINTENANCE_VERSION.match(cleaned.replace("(", "."))
    try:
        if match:
            release, letter = match.groups()
            return Version(release + "+" + letter.lower())
        return Version(cleaned)
    except InvalidVersion as exc:
        raise ParseError(f"Could not parse {label} {value!r}") from exc
