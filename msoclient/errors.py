"""Exceptions raised by the MSO client."""

from __future__ import annotations

from typing import Any, Optional


class MsoClientError(Exception):
    pass


class ConfigError(MsoClientError):
    pass


class AuthError(MsoClientError):
    pass


class NotAuthenticatedError(MsoClientError):
    def __init__(self, message: str = "Client has not authenticated yet") -> None:
        super().__init__(message)


class NotFoundError(MsoClientError):
    def __init__(self, domain: str) -> None:
        super().__init__(f"Unable to find domain id for domain {domain}")
        self.domain = domain


class ParseError(MsoClientError):
    pass


class VersionUnavailableError(MsoClientError):
    pass


class TransportError(MsoClientError):
    def __init__(self, method: str, url: str, attempts: int, reason: str) -> None:
        super().__init__(
            f"HTTP connection error for {method} {url} after {attempts} attempts: {reason}"
        )
        self.method = method
        self.url = url
        self.attempts = attempts


class StatusError(MsoClientError):
    """Non-2xx response that is not worth retrying.

    ``payload`` holds the decoded body when the server sent valid JSON.
    """

    def __init__(
        self,
        status_code: int,
        attempts: int,
        payload: Any = None,
        response: Any = None,
        detail: Optional[str] = None,
    ) -> None:
        message = f"HTTP request failed with status code {status_code} after {attempts} attempts"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)
        self.status_code = status_code
        self.attempts = attempts
        self.payload = payload
        self.response = response


class RetryExhaustedError(StatusError):
    pass


class ApiError(MsoClientError):
    def __init__(self, code: Any, message: str, payload: Any = None) -> None:
        super().__init__(f"API error {code}: {message}")
        self.code = code
        self.message = message
        self.payload = payload
