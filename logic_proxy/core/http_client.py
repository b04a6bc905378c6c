"""HTTP client for the backing TMF services.

Handles lookups of related resources for the controllers and relays
proxied calls.
"""
from __future__ import annotations
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

import requests

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT = 5

# Status reported when the upstream service cannot be reached or answers garbage
UNAVAILABLE_STATUS = 502


@dataclass(frozen=True)
class LookupResponse:
    """Outcome of a lookup: HTTP status plus the decoded JSON body."""
    status: int
    body: Any = None

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300


class TmfClient:
    """Thin wrapper around ``requests`` for TMF resource lookups.

    Usage:
        client = TmfClient(timeout=5)
        result = client.get("http://localhost:8080/DSCustomer/api/customerManagement/v2/customer/1")
        if result.ok:
            customer = result.body
    """

    def __init__(self, timeout: Optional[int] = None):
        self.timeout = timeout or REQUEST_TIMEOUT

    def get(self, url: str) -> LookupResponse:
        """Fetch a JSON resource.

        Never raises for HTTP or transport errors; the status of the
        returned :class:`LookupResponse` tells the caller what happened.
        """
        try:
            resp = requests.get(url, headers={"Accept": "application/json"}, timeout=self.timeout)
        except requests.RequestException as exc:
            logger.error(f"Lookup of {url} failed: {exc}")
            return LookupResponse(UNAVAILABLE_STATUS)

        if not 200 <= resp.status_code < 300:
            logger.warning(f"Lookup of {url} returned {resp.status_code}")
            return LookupResponse(resp.status_code)

        try:
            body = resp.json()
        except ValueError:
            logger.warning(f"Lookup of {url} returned a non-JSON body")
            return LookupResponse(UNAVAILABLE_STATUS)

        return LookupResponse(resp.status_code, body)

    def forward(self, method: str, url: str, data: Optional[bytes] = None,
                headers: Optional[Dict[str, str]] = None) -> requests.Response:
        """Relay a proxied call to the backing service.

        Raises:
            requests.RequestException: If the service cannot be reached
        """
        logger.debug(f"Forwarding {method} {url}")
        return requests.request(method, url, data=data, headers=headers or {}, timeout=self.timeout)
