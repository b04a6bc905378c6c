"""Session identity helpers.

Login itself happens elsewhere; these helpers only read the identity that
the login flow stored in the Flask session (``token`` and ``userinfo``).
"""
from __future__ import annotations
from typing import Optional

from flask import session

from .request import ProxyUser

PARTY_ID_CLAIMS = ("preferred_username", "sub")


def collect_roles(*sources) -> list[str]:
    """Collect all roles from userinfo and token claims."""
    roles = []
    for source in sources:
        if not isinstance(source, dict):
            continue
        realm_access = source.get("realm_access")
        if isinstance(realm_access, dict):
            roles.extend(r for r in realm_access.get("roles", []) if r not in roles)
        resource_access = source.get("resource_access")
        if isinstance(resource_access, dict):
            for client_access in resource_access.values():
                if not isinstance(client_access, dict):
                    continue
                roles.extend(r for r in client_access.get("roles", []) if r not in roles)
    return roles


def is_authenticated() -> bool:
    """Check if user is authenticated."""
    return bool(session.get("token"))


def current_user() -> Optional[ProxyUser]:
    """Build the caller identity from the session, ``None`` when anonymous."""
    if not is_authenticated():
        return None

    userinfo = session.get("userinfo") or {}
    id_claims = session.get("id_claims") or {}

    for source in (userinfo, id_claims):
        for key in PARTY_ID_CLAIMS:
            value = source.get(key)
            if isinstance(value, str) and value:
                return ProxyUser(party_id=value, roles=collect_roles(id_claims, userinfo))

    # A token without any usable claim cannot be matched against related parties
    return None
