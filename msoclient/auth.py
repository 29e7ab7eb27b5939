"""Login handshake and session token handling."""

from __future__ import annotations

from dataclasses import dataclass
import threading
import time
from typing import Any, Callable, Dict, Optional

from .config import ClientConfig
from .errors import (
    AuthError,
    MsoClientError,
    NotAuthenticatedError,
    NotFoundError,
    ParseError,
)
from .models import check_for_errors, strip_quotes
from .platforms import Platform


TOKEN_VALIDITY_SECONDS = 1200
LOGIN_DOMAINS_PATH = "/api/v1/auth/login-domains"


@dataclass(frozen=True)
class SessionToken:
    token: str
    expires_at: float

    @classmethod
    def issue(cls, token: str, now: Optional[float] = None) -> "SessionToken":
        issued = time.time() if now is None else now
        return cls(token=token, expires_at=issued + TOKEN_VALIDITY_SECONDS)

    def is_valid(self, now: Optional[float] = None) -> bool:
        current = time.time() if now is None else now
        return bool(self.token) and current < self.expires_at


class AuthController:
    """Performs the login handshake and owns the client's session token.

    ``build`` and ``send`` are the client's request builder and retrying
    executor; login and domain lookups go through them unauthenticated.
    """

    def __init__(
        self,
        config: ClientConfig,
        platform: Platform,
        lock: threading.Lock,
        logger,
        build: Callable[..., Any],
        send: Callable[..., Any],
    ) -> None:
        self.config = config
        self.platform = platform
        self.logger = logger
        self._lock = lock
        self._build = build
        self._send = send
        self._token: Optional[SessionToken] = None

    @property
    def token(self) -> Optional[SessionToken]:
        return self._token

    def authenticate(self) -> SessionToken:
        start = time.monotonic()
        success = False
        error_message = None
        try:
            body = self._login_payload()
            try:
                request = self._build("POST", self.platform.login_path, body, authenticated=False)
                payload, _ = self._send(request, log_payload=False)
            except MsoClientError as exc:
                raise AuthError(f"Login to {self.config.base_url} failed: {exc}") from exc

            if not payload:
                raise AuthError("Empty response")
            token = _extract_token(payload)
            if not token:
                raise AuthError("Invalid Username or Password")

            session_token = SessionToken.issue(token)
            with self._lock:
                self._token = session_token
            success = True
            return session_token
        except Exception as exc:
            error_message = str(exc)
            raise
        finally:
            duration_ms = int((time.monotonic() - start) * 1000)
            log_fn = self.logger.info if success else self.logger.error
            extra = {
                "event": "mso_login",
                "platform": self.platform.name,
                "username": self.config.username,
                "durationMs": duration_ms,
                "success": success,
            }
            if success:
                extra["token"] = _redact(self._token.token)
            if error_message:
                extra["detail"] = error_message
            log_fn("mso_login", extra=extra)

    def resolve_domain_id(self, domain: str) -> str:
        request = self._build("GET", LOGIN_DOMAINS_PATH, authenticated=False)
        payload, _ = self._send(request)
        check_for_errors(payload, "GET")

        domains = payload.get("domains") if isinstance(payload, dict) else None
        if not isinstance(domains, list):
            raise ParseError(f"Unable to read login domains while looking up domain {domain}")

        for item in domains:
            if not isinstance(item, dict):
                raise ParseError(f"Unexpected login domain entry while looking up domain {domain}")
            if strip_quotes(item.get("name")) == domain:
                return strip_quotes(item.get("id"))
        raise NotFoundError(domain)

    def inject(self, headers: Dict[str, str]) -> None:
        session_token = self._token
        if session_token is None:
            raise NotAuthenticatedError()
        headers["Authorization"] = f"Bearer {session_token.token}"

    def _login_payload(self) -> Dict[str, str]:
        body = self.platform.login_payload(self.config.username, self.config.password)
        domain = self.config.domain or self.platform.default_domain
        if domain:
            if self.platform.resolves_domain_id:
                body[self.platform.domain_field] = self.resolve_domain_id(domain)
            else:
                body[self.platform.domain_field] = domain
        return body


def _extract_token(payload: Any) -> str:
    if not isinstance(payload, dict):
        return ""
    token = payload.get("token")
    if not isinstance(token, str):
        return ""
    token = strip_quotes(token)
    if token == "{}":
        return ""
    return token


def _redact(token: str) -> str:
    return f"{token[:6]}...{len(token)}"
