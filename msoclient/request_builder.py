"""Turns a verb, path and body into a fully addressed request."""

from __future__ import annotations

from dataclasses import dataclass, field
import json
from typing import Any, Callable, Dict, Optional
from urllib.parse import parse_qsl, urlencode, urljoin, urlsplit, urlunsplit

from .platforms import Platform


BODYLESS_METHODS = {"GET", "DELETE"}


@dataclass
class RestRequest:
    method: str
    url: str
    headers: Dict[str, str] = field(default_factory=dict)
    body: Optional[bytes] = None
    authenticated: bool = False


class RequestBuilder:
    def __init__(
        self,
        base_url: str,
        platform: Platform,
        inject_auth: Callable[[Dict[str, str]], None],
    ) -> None:
        self.base_url = base_url
        self.platform = platform
        self.inject_auth = inject_auth

    def build(
        self,
        method: str,
        path: str,
        body: Any = None,
        authenticated: bool = True,
    ) -> RestRequest:
        method = method.upper()
        path = self.platform.route(path)
        if method == "PATCH":
            path = _force_query(path, "validate", "false")

        headers = {"Content-Type": "application/json"}
        if authenticated:
            self.inject_auth(headers)

        return RestRequest(
            method=method,
            url=urljoin(self.base_url, path),
            headers=headers,
            body=None if method in BODYLESS_METHODS else _encode_body(body),
            authenticated=authenticated,
        )


def _force_query(path: str, key: str, value: str) -> str:
    parts = urlsplit(path)
    pairs = [
        (name, existing)
        for name, existing in parse_qsl(parts.query, keep_blank_values=True)
        if name != key
    ]
    pairs.append((key, value))
    # Keys are sorted; repeated keys keep their relative order.
    pairs.sort(key=lambda pair: pair[0])
    return urlunsplit(parts._replace(query=urlencode(pairs)))


def _encode_body(body: Any) -> Optional[bytes]:
    if body is None:
        return None
    if isinstance(body, bytes):
        return body
    if isinstance(body, str):
        return body.encode("utf-8")
    return json.dumps(body, ensure_ascii=True).encode("utf-8")
