"""Session guard shared by the TMF API controllers."""
from __future__ import annotations
import logging
from typing import Optional

from .exceptions import ProxyError
from .request import ProxyRequest

logger = logging.getLogger(__name__)


def validate_logged_in(request: ProxyRequest) -> Optional[ProxyError]:
    """Return ``None`` when the request carries an identity, a 401 otherwise."""
    if request.user is None:
        logger.info(f"Anonymous {request.method} rejected on {request.path}")
        return ProxyError(401, "You need to be authenticated to create/update/delete resources")
    return None
