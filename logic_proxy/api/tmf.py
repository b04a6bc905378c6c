"""Proxy endpoints for the TMF management APIs.

Every call under a guarded API root is checked by its controller, relayed
to the backing service and, for successful reads, checked again against
the returned representation.

Flow:
    client -> check_permissions -> backing TMF service -> execute_post_validation -> client
"""
from __future__ import annotations
import logging

import requests
from flask import Blueprint, Response, abort, current_app, g, request

from logic_proxy.api.errors import error_response
from logic_proxy.core import rbac
from logic_proxy.core.exceptions import ProxyError
from logic_proxy.core.request import ProxyRequest

bp = Blueprint("tmf", __name__)

logger = logging.getLogger(__name__)

FORWARDED_HEADERS = ("Accept", "Content-Type")
PROXY_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS"]


def _build_proxy_request(api_path: str) -> ProxyRequest:
    try:
        query = request.query_string.decode("utf-8")
    except UnicodeDecodeError:
        abort(400, "Invalid query string")
    api_url = f"/{api_path}?{query}" if query else f"/{api_path}"
    return ProxyRequest(
        method=request.method,
        api_url=api_url,
        body=request.get_data(as_text=True),
        user=rbac.current_user(),
    )


def _upstream_headers(proxy_request: ProxyRequest) -> dict:
    headers = {name: request.headers[name] for name in FORWARDED_HEADERS if name in request.headers}
    if proxy_request.user is not None:
        headers["X-Nick-Name"] = proxy_request.user.party_id
        if proxy_request.user.roles:
            headers["X-Roles"] = ",".join(proxy_request.user.roles)
    correlation_id = g.get("correlation_id")
    if correlation_id:
        headers["X-Correlation-Id"] = correlation_id
    return headers


@bp.route("/<path:api_path>", methods=PROXY_METHODS)
def proxy(api_path: str):
    """Check, relay and post-validate one TMF API call."""
    controllers = current_app.config["TMF_CONTROLLERS"]
    controller = controllers.get(api_path.split("/", 1)[0])
    if controller is None:
        abort(404)

    proxy_request = _build_proxy_request(api_path)

    outcome = controller.check_permissions(proxy_request)
    if outcome is not None:
        return error_response(outcome)

    cfg = current_app.config["APP_CONFIG"]
    client = current_app.config["TMF_CLIENT"]
    url = f"{cfg.service_url(controller.service_name)}{proxy_request.api_url}"

    try:
        upstream = client.forward(
            proxy_request.method,
            url,
            data=request.get_data(),
            headers=_upstream_headers(proxy_request),
        )
    except requests.RequestException as exc:
        logger.error(f"Backing service unreachable for {proxy_request.method} {url}: {exc}")
        return error_response(ProxyError(502, "The backing service cannot be reached"))

    if proxy_request.method.upper() == "GET" and 200 <= upstream.status_code < 300:
        proxy_request.body = upstream.text
        outcome = controller.execute_post_validation(proxy_request)
        if outcome is not None:
            return error_response(outcome)

    return Response(
        upstream.content,
        status=upstream.status_code,
        content_type=upstream.headers.get("Content-Type", "application/json"),
    )
