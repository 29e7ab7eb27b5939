"""Login and routing rules for the two orchestrator deployments."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional

from .errors import ConfigError


@dataclass(frozen=True)
class Platform:
    name: str
    login_path: str
    username_field: str
    password_field: str
    domain_field: str
    resolves_domain_id: bool
    path_prefix: Optional[str] = None
    default_domain: Optional[str] = None

    def login_payload(self, username: str, password: str) -> Dict[str, str]:
        return {self.username_field: username, self.password_field: password}

    def route(self, path: str) -> str:
        if not self.path_prefix or path == self.login_path:
            return path
        return f"{self.path_prefix}{path[1:] if path.startswith('/') else path}"


MSO = Platform(
    name="mso",
    login_path="/api/v1/auth/login",
    username_field="username",
    password_field="password",
    domain_field="domainId",
    resolves_domain_id=True,
)

# Nexus Dashboard proxies the MSO API under /mso and has its own login contract.
ND = Platform(
    name="nd",
    login_path="/login",
    username_field="userName",
    password_field="userPasswd",
    domain_field="domain",
    resolves_domain_id=False,
    path_prefix="mso/",
    default_domain="DefaultAuth",
)

PLATFORMS = {"": MSO, "mso": MSO, "classic": MSO, "nd": ND}


def get_platform(name: Optional[str]) -> Platform:
    key = (name or "").strip().lower()
    try:
        return PLATFORMS[key]
    except KeyError:
        raise ConfigError(f"Unknown platform: {name}") from None
