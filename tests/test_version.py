import json
import logging

import pytest

from msoclient.client import Client
from msoclient.errors import NotAuthenticatedError, ParseError, VersionUnavailableError


class FakeResponse:
    def __init__(self, status_code, payload=None):
        self.status_code = status_code
        self.text = "" if payload is None else json.dumps(payload)

    def json(self):
        return json.loads(self.text)


class ScriptedSession:
    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls = []
        self.verify = True
        self.proxies = {}

    def request(self, method, url, data=None, headers=None, timeout=None):
        self.calls.append((method, url, dict(headers or {})))
        return self.responses.pop(0)


def _logged_in_client(*responses, **options):
    session = ScriptedSession(FakeResponse(201, {"token": "jwt-token"}), *responses)
    logger = logging.getLogger("test_version")
    logger.addHandler(logging.NullHandler())
    client = Client(
        "https://mso.example.com", "admin", logger=logger, session=session, password="pw", **options
    )
    client.authenticate()
    return client, session


def test_get_version_strips_quotes_and_caches():
    client, session = _logged_in_client(FakeResponse(200, {"version": '"3.7.1"'}))

    assert client.get_version() == "3.7.1"
    assert client.versions.cached == "3.7.1"
    method, url, headers = session.calls[1]
    assert (method, url) == ("GET", "https://mso.example.com/api/v1/platform/version")
    assert headers["Authorization"] == "Bearer jwt-token"


def test_get_version_on_nd_goes_through_gateway():
    client, session = _logged_in_client(FakeResponse(200, {"version": "4.2.1"}), platform="nd")

    client.get_version()

    assert session.calls[1][1] == "https://mso.example.com/mso/api/v1/platform/version"


@pytest.mark.parametrize("payload", [{}, {"version": ""}, {"timestamp": "now"}])
def test_get_version_requires_version_field(payload):
    client, _ = _logged_in_client(FakeResponse(200, payload))

    with pytest.raises(VersionUnavailableError):
        client.get_version()
    assert client.versions.cached is None


def test_compare_version_fetches_lazily_once():
    client, session = _logged_in_client(FakeResponse(200, {"version": "3.7.1"}))

    assert client.compare_version("3.7.1") == 0
    assert client.compare_version("4.7.1") == 1
    assert client.compare_version("3.1") == -1
    assert len(session.calls) == 2


def test_compare_version_uses_declared_version_without_request():
    session = ScriptedSession()
    client = Client("https://mso.example.com", "admin", session=session, version="3.7.1")

    assert client.compare_version("3.7.1") == 0
    assert client.compare_version("2.2") == -1
    assert session.calls == []


def test_compare_version_needs_login_when_nothing_cached():
    client = Client("https://mso.example.com", "admin", session=ScriptedSession())

    with pytest.raises(NotAuthenticatedError):
        client.compare_version("3.7.1")


def test_compare_version_rejects_unparsable_target():
    client = Client("https://mso.example.com", "admin", session=ScriptedSession(), version="3.7.1")

    with pytest.raises(ParseError, match="not-a-version"):
        client.compare_version("not-a-version")


def test_compare_version_rejects_unparsable_platform_version():
    client, _ = _logged_in_client(FakeResponse(200, {"version": "unknown build"}))

    with pytest.raises(ParseError, match="unknown build"):
        client.compare_version("3.7.1")


def test_compare_version_handles_maintenance_suffixes():
    client = Client("https://mso.example.com", "admin", session=ScriptedSession(), version="3.7.1g")

    assert client.compare_version("3.7.1g") == 0
    assert client.compare_version("3.7.1f") == -1
    assert client.compare_version("3.7.2") == 1
    assert client.compare_version("3.7") == -1


def test_compare_version_accepts_parenthesised_releases():
    client = Client("https://nd.example.com", "admin", session=ScriptedSession(), version="4.2(3e)")

    assert client.compare_version("4.2.3e") == 0
    assert client.compare_version("4.2(3f)") == 1


@pytest.mark.parametrize("prerelease", ["3.7.1-rc1", "3.7.1rc1", "3.7.1-alpha", "3.7.1b2"])
def test_compare_version_orders_prereleases_before_release(prerelease):
    client = Client("https://mso.example.com", "admin", session=ScriptedSession(), version=prerelease)

    assert client.compare_version("3.7.1") == 1
    assert client.compare_version("3.7.0") == -1


def test_compare_version_orders_prerelease_target_below_maintenance_release():
    client = Client("https://mso.example.com", "admin", session=ScriptedSession(), version="4.0.0")

    assert client.compare_version("4.0.0-beta") == -1
    assert client.compare_version("4.0.0g") == 1
