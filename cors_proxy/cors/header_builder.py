"""
CORS response headers.

One header set is used for every response tied to a request: 404s,
preflights, forwarded responses and upstream failures.
"""

from typing import Dict, Optional

from starlette.requests import Request

from cors_proxy.config import ProxyConfig
from cors_proxy.cors.origin_policy import resolve_allow_origin

BASE_METHODS = ("GET", "POST", "PUT", "DELETE", "PATCH", "OPTIONS")

ALLOWED_HEADERS = (
    "Content-Type, X-Amz-Date, Authorization, X-Api-Key, "
    "X-Amz-Security-Token, X-Requested-With"
)


def allowed_methods(requested_method: Optional[str] = None) -> str:
    """Base methods plus the preflight's requested method, without repeats."""
    methods = list(BASE_METHODS)
    if requested_method:
        for method in requested_method.split(", "):
            if method not in methods:
                methods.append(method)
    return ", ".join(methods)


def assemble_cors_headers(
    origin: Optional[str], requested_method: Optional[str], config: ProxyConfig
) -> Dict[str, str]:
    headers = {
        "Access-Control-Allow-Methods": allowed_methods(requested_method),
        "Access-Control-Allow-Headers": ALLOWED_HEADERS,
        "Access-Control-Max-Age": str(config.cors_max_age),
        "Vary": "Origin",
    }

    allow_origin = resolve_allow_origin(origin, config.allowed_origins)
    if allow_origin:
        headers["Access-Control-Allow-Origin"] = allow_origin

    # Configured headers win, whatever the case of the built key
    for name, value in config.additional_headers.items():
        for existing in [k for k in headers if k.lower() == name.lower()]:
            del headers[existing]
        headers[name] = value

    return headers


def build_cors_headers(request: Request, config: ProxyConfig) -> Dict[str, str]:
    return assemble_cors_headers(
        request.headers.get("origin"),
        request.headers.get("access-control-request-method"),
        config,
    )
