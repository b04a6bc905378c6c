"""Pytest shared fixtures."""
import json
import os
import pathlib
import sys
from typing import Any, Optional

# Add project root to Python path
ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

# Configure test environment BEFORE any app imports
os.environ.setdefault("DEMO_MODE", "true")
os.environ.setdefault("FLASK_SESSION_COOKIE_SECURE", "false")

import pytest
import requests

from logic_proxy.config import AppConfig, EndpointConfig


CUSTOMER_SERVER = "http://localhost:8080"
BILLING_SERVER = "http://localhost:8081"

CUSTOMER_API = "/DSCustomer/api/customerManagement/v2"
CUSTOMER_PATH = CUSTOMER_API + "/customer"
CUSTOMER_ACCOUNT_PATH = CUSTOMER_API + "/customerAccount"
BILLING_ACCOUNT_PATH = "/DSBillingManagement/api/billingManagement/v2/billingAccount"


def make_config(**overrides) -> AppConfig:
    base = dict(
        demo_mode=True,
        secret_key="test-secret",
        session_cookie_secure=False,
        app_host="localhost",
        app_ssl=False,
        request_timeout=5,
        endpoints={
            "customer": EndpointConfig(path="DSCustomer", port=8080, host="localhost"),
            "billing": EndpointConfig(path="DSBillingManagement", port=8081, host="localhost"),
        },
    )
    base.update(overrides)
    return AppConfig(**base)


# ─────────────────────────────────────────────────────────────────────────────
# Network Guard Rails
# ─────────────────────────────────────────────────────────────────────────────
class StubResponse:
    def __init__(self, status_code: int = 200, payload: Any = None, headers: Optional[dict] = None):
        self.status_code = status_code
        self._payload = payload
        self.text = json.dumps(payload) if payload is not None else ""
        self.content = self.text.encode("utf-8")
        self.headers = headers or {"Content-Type": "application/json"}

    def json(self):
        if not self.text:
            raise ValueError("No JSON body")
        return json.loads(self.text)

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(response=self)


class FakeUpstream:
    """In-memory stand-in for the backing TMF services.

    Replies are registered per (method, url); any other call fails the test.
    """

    def __init__(self):
        self.replies = {}
        self.calls = []

    def reply(self, url: str, status: int = 200, body: Any = None, method: str = "GET", headers=None):
        self.replies[(method.upper(), url)] = StubResponse(status, body, headers)

    def fail(self, url: str, method: str = "GET"):
        self.replies[(method.upper(), url)] = requests.ConnectionError(f"connection refused: {url}")

    def requested(self, url: str, method: str = "GET") -> bool:
        return any(call["method"] == method and call["url"] == url for call in self.calls)

    def handle(self, method: str, url: str, **kwargs):
        self.calls.append({"method": method.upper(), "url": url, **kwargs})
        try:
            reply = self.replies[(method.upper(), url)]
        except KeyError:
            raise RuntimeError(f"Unexpected HTTP {method} in unit test: {url}") from None
        if isinstance(reply, Exception):
            raise reply
        return reply


@pytest.fixture(autouse=True)
def upstream(monkeypatch):
    """Prevent tests from hitting real services; register replies instead."""
    fake = FakeUpstream()

    def _stub_get(url, *args, **kwargs):
        return fake.handle("GET", url, **kwargs)

    def _stub_request(method, url, *args, **kwargs):
        return fake.handle(method, url, **kwargs)

    monkeypatch.setattr(requests, "get", _stub_get)
    monkeypatch.setattr(requests, "request", _stub_request)
    return fake


@pytest.fixture()
def cfg():
    return make_config()


# ─────────────────────────────────────────────────────────────────────────────
# Flask Test Client
# ─────────────────────────────────────────────────────────────────────────────
@pytest.fixture()
def client(cfg):
    """Flask test client wired to the fake upstream."""
    from logic_proxy.flask_app import create_app

    flask_app = create_app(cfg)
    flask_app.config.update(TESTING=True)

    with flask_app.test_client() as client:
        yield client


# ─────────────────────────────────────────────────────────────────────────────
# Authentication Helpers
# ─────────────────────────────────────────────────────────────────────────────
def authenticate_as(client, username: str, roles: Optional[list[str]] = None):
    """Store a logged-in identity in the test client session."""
    roles = roles or []
    with client.session_transaction() as session:
        session["token"] = {"access_token": "stub", "id_token": "stub"}
        session["userinfo"] = {
            "preferred_username": username,
            "realm_access": {"roles": roles},
        }
        session["id_claims"] = {
            "preferred_username": username,
            "realm_access": {"roles": roles},
        }
