"""MSO REST client: session setup, authentication and request helpers."""

from __future__ import annotations

import logging
import threading
from typing import Any, Dict, Optional, Tuple

import requests
import urllib3

from .auth import AuthController, SessionToken
from .backoff import BackoffPolicy
from .config import ClientConfig, build_config, load_config
from .errors import ConfigError
from .http_utils import RetryPredicate, request_with_retry
from .logging_setup import setup_logging
from .models import check_for_errors
from .platforms import get_platform
from .request_builder import RequestBuilder, RestRequest
from .version import VersionResolver


class Client:
    def __init__(
        self,
        base_url: str,
        username: str,
        logger=None,
        session: Optional[requests.Session] = None,
        **options: Any,
    ) -> None:
        self.config = build_config(base_url, username, **options)
        self.logger = logger or logging.getLogger("msoclient")
        self.platform = get_platform(self.config.platform)
        self.policy = BackoffPolicy(
            max_retries=self.config.max_retries,
            min_delay=self.config.backoff_min_delay,
            max_delay=self.config.backoff_max_delay,
            factor=self.config.backoff_delay_factor,
        )
        self.session = session or requests.Session()
        self._configure_session()

        self._lock = threading.Lock()
        self.auth = AuthController(
            self.config,
            self.platform,
            self._lock,
            self.logger,
            build=self.make_rest_request,
            send=self.do,
        )
        self.builder = RequestBuilder(self.config.base_url, self.platform, self.auth.inject)
        self.versions = VersionResolver(
            self._lock, self.make_rest_request, self.do, version=self.config.version
        )

    @classmethod
    def from_config(cls, config: ClientConfig, logger=None, **kwargs: Any) -> "Client":
        options = {
            name: value
            for name, value in vars(config).items()
            if name not in ("base_url", "username")
        }
        return cls(config.base_url, config.username, logger=logger, **kwargs, **options)

    @classmethod
    def from_env(cls, logger=None) -> "Client":
        """Build a client from MSO_* variables, logging as JSON unless ``logger`` is given."""
        config = load_config()
        if logger is None:
            logger = setup_logging()
        return cls.from_config(config, logger=logger)

    def _configure_session(self) -> None:
        self.session.verify = not self.config.insecure
        if self.config.insecure:
            urllib3.disable_warnings(urllib3.exceptions.InsecureRequestWarning)
            self.logger.warning(
                "mso_tls_verification_disabled",
                extra={"event": "mso_tls_verification_disabled", "baseUrl": self.config.base_url},
            )
        if self.config.proxy_url:
            self.session.proxies.update(
                {"http": self.config.proxy_url, "https": self.config.proxy_url}
            )

    @property
    def session_token(self) -> Optional[SessionToken]:
        return self.auth.token

    @property
    def token_expired(self) -> bool:
        token = self.auth.token
        return token is None or not token.is_valid()

    def authenticate(self) -> SessionToken:
        return self.auth.authenticate()

    def get_domain_id(self, domain: str) -> str:
        return self.auth.resolve_domain_id(domain)

    def get_version(self) -> str:
        return self.versions.get_version()

    def compare_version(self, version: str) -> int:
        return self.versions.compare_version(version)

    def make_rest_request(
        self,
        method: str,
        path: str,
        body: Any = None,
        authenticated: bool = True,
    ) -> RestRequest:
        return self.builder.build(method, path, body, authenticated)

    def do(
        self,
        request: RestRequest,
        retry_predicate: Optional[RetryPredicate] = None,
        log_payload: Optional[bool] = None,
    ) -> Tuple[Any, Any]:
        if log_payload is None:
            log_payload = not self.config.skip_logging_payload
        return request_with_retry(
            self.session,
            request,
            logger=self.logger,
            policy=self.policy,
            retry_predicate=retry_predicate,
            log_payload=log_payload,
            timeout=self.config.request_timeout,
        )

    def request(
        self,
        method: str,
        path: str,
        body: Any = None,
        retry_predicate: Optional[RetryPredicate] = None,
    ) -> Any:
        request = self.make_rest_request(method, path, body, authenticated=True)
        payload, _ = self.do(request, retry_predicate)
        check_for_errors(payload, request.method)
        return payload

    def get_via_url(self, path: str, retry_predicate: Optional[RetryPredicate] = None) -> Any:
        return self.request("GET", path, retry_predicate=retry_predicate)

    def save(self, path: str, body: Any) -> Any:
        return self.request("POST", path, body)

    def put(self, path: str, body: Any) -> Any:
        return self.request("PUT", path, body)

    def patch_by_id(self, path: str, body: Any) -> Any:
        return self.request("PATCH", path, body)

    def delete_by_id(self, path: str) -> None:
        self.request("DELETE", path)


class ClientRegistry:
    """Shared clients keyed by base URL, username and platform.

    Asking again for a known key returns the first client built for it. If the
    remaining options differ, the request is logged and ignored, or rejected
    with ConfigError when the registry is ``strict``.
    """

    def __init__(self, strict: bool = False, logger=None) -> None:
        self.strict = strict
        self.logger = logger or logging.getLogger("msoclient")
        self._clients: Dict[Tuple[str, str, str], Client] = {}
        self._lock = threading.Lock()

    def get_client(self, base_url: str, username: str, logger=None, **options: Any) -> Client:
        config = build_config(base_url, username, **options)
        key = (config.base_url, config.username, get_platform(config.platform).name)
        with self._lock:
            client = self._clients.get(key)
            if client is None:
                client = Client.from_config(config, logger=logger)
                self._clients[key] = client
                return client

        if client.config != config:
            if self.strict:
                raise ConfigError(
                    f"A client for {base_url} ({username}) already exists with a different configuration"
                )
            self.logger.warning(
                "mso_client_config_ignored",
                extra={
                    "event": "mso_client_config_ignored",
                    "baseUrl": base_url,
                    "username": username,
                },
            )
        return client

    def clear(self) -> None:
        with self._lock:
            self._clients.clear()


_default_registry = ClientRegistry()


def get_client(base_url: str, username: str, logger=None, **options: Any) -> Client:
    """Return the process-wide client for this endpoint, creating it on first use."""
    return _default_registry.get_client(base_url, username, logger=logger, **options)
