"""HTTP execution with jittered exponential backoff."""

from __future__ import annotations

import enum
import time
from typing import Any, Callable, Optional, Tuple

import requests

from .backoff import BackoffPolicy
from .errors import RetryExhaustedError, StatusError, TransportError
from .request_builder import RestRequest


RETRYABLE_STATUS = {429, 503}

RetryPredicate = Callable[[Any], bool]


class Outcome(enum.Enum):
    SUCCESS = "success"
    NO_CONTENT = "no_content"
    TRANSPORT_ERROR = "transport_error"
    RETRYABLE_STATUS = "retryable_status"
    MALFORMED_BODY = "malformed_body"
    CALLER_RETRY = "caller_retry"
    NON_RETRYABLE = "non_retryable"

    @property
    def retryable(self) -> bool:
        return self in RETRYABLE_OUTCOMES


RETRYABLE_OUTCOMES = {
    Outcome.TRANSPORT_ERROR,
    Outcome.RETRYABLE_STATUS,
    Outcome.MALFORMED_BODY,
    Outcome.CALLER_RETRY,
}


def classify_response(
    response, retry_predicate: Optional[RetryPredicate] = None
) -> Tuple[Outcome, Any]:
    """Classify a received response and return it with the decoded payload."""
    status = response.status_code
    if status == 204:
        return Outcome.NO_CONTENT, None

    if 200 <= status < 300:
        try:
            payload = _decode(response)
        except ValueError:
            return Outcome.MALFORMED_BODY, None
        if retry_predicate is not None and retry_predicate(payload):
            return Outcome.CALLER_RETRY, payload
        return Outcome.SUCCESS, payload

    payload = _decode_quietly(response)
    if status in RETRYABLE_STATUS:
        return Outcome.RETRYABLE_STATUS, payload
    return Outcome.NON_RETRYABLE, payload


def request_with_retry(
    session: requests.Session,
    request: RestRequest,
    *,
    logger,
    policy: BackoffPolicy,
    retry_predicate: Optional[RetryPredicate] = None,
    log_payload: bool = True,
    timeout: Optional[float] = None,
    sleep: Optional[Callable[[float], None]] = None,
    uniform: Optional[Callable[[float, float], float]] = None,
) -> Tuple[Any, Any]:
    """Send ``request`` until it succeeds, fails for good, or the budget runs out.

    Returns ``(payload, response)``; ``payload`` is ``None`` for 204 responses.
    Transport failures, 429/503, unparsable 2xx bodies and payloads rejected
    by ``retry_predicate`` share one retry budget of ``policy.max_retries``.
    """
    attempt = 1
    while True:
        logger.debug(
            "mso_request",
            extra=_request_extra(request, attempt, log_payload),
        )
        try:
            response = session.request(
                request.method,
                request.url,
                data=request.body,
                headers=request.headers,
                timeout=timeout,
            )
        except requests.RequestException as exc:
            if not policy.allows(attempt):
                logger.error(
                    "mso_connection_failed",
                    extra={
                        "event": "mso_connection_failed",
                        "method": request.method,
                        "url": request.url,
                        "attempt": attempt,
                        "detail": str(exc),
                    },
                )
                raise TransportError(request.method, request.url, attempt, str(exc)) from exc
            _backoff(logger, policy, attempt, request, sleep, uniform, detail=str(exc))
            attempt += 1
            continue

        outcome, payload = classify_response(response, retry_predicate)
        logger.debug(
            "mso_response",
            extra=_response_extra(request, response, attempt, outcome, log_payload),
        )

        if outcome in (Outcome.SUCCESS, Outcome.NO_CONTENT):
            return payload, response

        if outcome is Outcome.NON_RETRYABLE:
            raise StatusError(
                response.status_code,
                attempt,
                payload=payload,
                response=response,
                detail=_error_detail(payload),
            )

        if not policy.allows(attempt):
            logger.error(
                "mso_retries_exhausted",
                extra={
                    "event": "mso_retries_exhausted",
                    "method": request.method,
                    "url": request.url,
                    "statusCode": response.status_code,
                    "attempt": attempt,
                    "outcome": outcome.value,
                },
            )
            raise RetryExhaustedError(
                response.status_code, attempt, payload=payload, response=response
            )
        _backoff(
            logger,
            policy,
            attempt,
            request,
            sleep,
            uniform,
            statusCode=response.status_code,
            outcome=outcome.value,
        )
        attempt += 1


def _backoff(logger, policy, attempt, request, sleep, uniform, **extra) -> None:
    delay = policy.delay(attempt, uniform)
    payload = {
        "event": "http_retry",
        "method": request.method,
        "url": request.url,
        "attempt": attempt,
        "maxRetries": policy.max_retries,
        "delaySeconds": round(delay, 3),
    }
    payload.update(extra)
    logger.warning("http_retry", extra=payload)
    (sleep or time.sleep)(delay)


def _decode(response) -> Any:
    text = response.text
    if not text or not text.strip():
        raise ValueError("empty response body")
    return response.json()


def _decode_quietly(response) -> Any:
    try:
        return _decode(response)
    except ValueError:
        return None


def _error_detail(payload: Any) -> Optional[str]:
    if isinstance(payload, dict):
        message = payload.get("message") or payload.get("error")
        if message:
            return str(message)
    return None


def _request_extra(request: RestRequest, attempt: int, log_payload: bool) -> dict:
    extra = {
        "event": "mso_request",
        "method": request.method,
        "url": request.url,
        "attempt": attempt,
    }
    if log_payload and request.body is not None:
        body, truncated, length = _truncate_response(request.body.decode("utf-8", "replace"))
        extra.update({"requestBody": body, "requestLength": length, "requestTruncated": truncated})
    return extra


def _response_extra(
    request: RestRequest, response, attempt: int, outcome: Outcome, log_payload: bool
) -> dict:
    extra = {
        "event": "mso_response",
        "method": request.method,
        "url": request.url,
        "attempt": attempt,
        "statusCode": response.status_code,
        "outcome": outcome.value,
    }
    if log_payload:
        body, truncated, length = _truncate_response(response.text)
        extra.update({"responseBody": body, "responseLength": length, "responseTruncated": truncated})
    return extra


def _truncate_response(response_text: str, max_chars: int = 4000) -> tuple[str, bool, int]:
    text = response_text or ""
    length = len(text)
    if max_chars <= 0 or length <= max_chars:
        return text, False, length
    return text[:max_chars], True, length
