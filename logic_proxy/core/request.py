"""Proxied request model and path/method classification."""
from __future__ import annotations
import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional
from urllib.parse import parse_qs, urlsplit

from .exceptions import ProxyError

SUPPORTED_METHODS = ("GET", "POST", "PATCH", "DELETE")
METHODS_WITH_BODY = ("POST", "PATCH", "DELETE")


@dataclass
class ProxyUser:
    """Identity of the party making the request."""
    party_id: str
    roles: list[str] = field(default_factory=list)


@dataclass
class ProxyRequest:
    """One inbound call as seen by the controllers.

    ``api_url`` is the path of the backing API plus the optional query
    string. ``body`` keeps the raw payload so that invalid JSON can be
    reported instead of failing early.
    """
    method: str
    api_url: str
    body: Optional[str] = None
    user: Optional[ProxyUser] = None

    @property
    def path(self) -> str:
        return urlsplit(self.api_url).path

    @property
    def query(self) -> dict[str, str]:
        """Query parameters of ``api_url`` (last value wins)."""
        return {key: values[-1] for key, values in self.query_values.items()}

    @property
    def query_values(self) -> dict[str, list[str]]:
        """Every value given for each query parameter of ``api_url``."""
        return parse_qs(urlsplit(self.api_url).query, keep_blank_values=True)


class ResourceKind(str, Enum):
    CUSTOMER = "customer"
    CUSTOMER_ACCOUNT = "customerAccount"


@dataclass(frozen=True)
class RequestTarget:
    """Result of classifying a request against the Customer API."""
    kind: ResourceKind
    method: str
    resource_id: Optional[str] = None
    payload: Any = None

    @property
    def is_collection(self) -> bool:
        return self.resource_id is None


def parse_body(raw: Optional[str]) -> Any:
    """Decode a JSON payload.

    Raises:
        ProxyError: 400 if the payload is not valid JSON
    """
    if isinstance(raw, (bytes, bytearray)):
        raw = raw.decode("utf-8", errors="replace")
    try:
        return json.loads(raw)
    except (TypeError, ValueError):
        raise ProxyError(400, "Invalid body") from None


def classify(request: ProxyRequest, base_path: str) -> RequestTarget:
    """Classify ``request`` against the collections served under ``base_path``.

    ``base_path`` is the API root, e.g.
    ``/DSCustomer/api/customerManagement/v2``.

    Raises:
        ProxyError: 403 for unsupported paths, 405 for unknown methods,
            400 for undecodable bodies
    """
    prefix = base_path.rstrip("/") + "/"
    path = request.path

    if not path.startswith(prefix):
        raise ProxyError(403, "This API feature is not supported yet")

    segments = path[len(prefix):].split("/")
    try:
        kind = ResourceKind(segments[0])
    except ValueError:
        raise ProxyError(403, "This API feature is not supported yet") from None

    # "customer", "customer/" and "customer/<id>" are the only accepted shapes
    rest = segments[1:]
    if len(rest) > 1 and any(rest[1:]):
        raise ProxyError(403, "This API feature is not supported yet")
    resource_id = rest[0] if rest and rest[0] else None

    method = request.method.upper()
    if method not in SUPPORTED_METHODS:
        raise ProxyError(405, "Method not allowed")

    payload = None
    if method in METHODS_WITH_BODY:
        if method == "DELETE" and not request.body:
            payload = {}
        else:
            payload = parse_body(request.body)
        if not isinstance(payload, dict):
            raise ProxyError(400, "Invalid body")

    return RequestTarget(kind=kind, method=method, resource_id=resource_id, payload=payload)
