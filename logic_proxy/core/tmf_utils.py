"""Related-party helpers for TMF resources.

TMF resources link actors through ``relatedParty`` entries of the form
``{"id": ..., "role": ..., "href": ...}``. These helpers compare those
entries with the identity attached to a :class:`ProxyRequest`.
"""
from __future__ import annotations
import logging
from typing import Any, Iterable, Optional
from urllib.parse import quote

from .exceptions import ProxyError
from .request import ProxyRequest

logger = logging.getLogger(__name__)

FORBIDDEN_FILTERS = ("relatedParty.href", "relatedParty.role")


def _caller_id(request: ProxyRequest) -> Optional[str]:
    return request.user.party_id if request.user else None


def _party_id(party: Any) -> Optional[str]:
    if not isinstance(party, dict) or party.get("id") is None:
        return None
    return str(party["id"])


def has_party_role(request: ProxyRequest, related_parties: Iterable[Any], role: str) -> bool:
    """Check if the caller appears in ``related_parties`` with ``role``."""
    caller = _caller_id(request)
    if caller is None:
        return False
    for party in related_parties or []:
        party_role = party.get("role") if isinstance(party, dict) else None
        if (
            _party_id(party) == caller
            and isinstance(party_role, str)
            and party_role.lower() == role.lower()
        ):
            return True
    return False


def is_related_party(request: ProxyRequest, related_parties: Iterable[Any]) -> bool:
    """Check if the caller appears in ``related_parties`` with any role."""
    caller = _caller_id(request)
    if caller is None:
        return False
    return any(_party_id(party) == caller for party in related_parties or [])


def filter_related_party_fields(request: ProxyRequest) -> Optional[ProxyError]:
    """Restrict a collection listing to the resources of the caller.

    A ``relatedParty.id`` filter naming someone else, even next to the
    caller, is rejected; when no filter is given one for the caller is
    appended to ``request.api_url``.
    """
    query = request.query_values

    for name in FORBIDDEN_FILTERS:
        if name in query:
            return ProxyError(403, "You are not allowed to filter items using these filters")

    caller = _caller_id(request)
    requested = query.get("relatedParty.id")

    if requested is None:
        separator = "&" if "?" in request.api_url else "?"
        request.api_url = f"{request.api_url}{separator}relatedParty.id={quote(caller, safe='')}"
        logger.debug(f"Listing restricted to party {caller}: {request.api_url}")
        return None

    for value in requested:
        # Comma separated ids are a TMF "or" filter
        for party_id in value.split(","):
            if party_id != caller:
                return ProxyError(
                    403, f"You are not authorized to retrieve the entities made by the user {party_id}"
                )

    return None
