import logging
from typing import Optional

from fastapi import APIRouter, Request
from fastapi.responses import PlainTextResponse, Response
from opentelemetry import trace

from cors_proxy.config import ConfigurationError, ProxyConfig, load_proxy_config
from cors_proxy.cors import build_cors_headers, is_path_allowed
from cors_proxy.proxy.forwarder import Forwarder
from cors_proxy.proxy.outcomes import (
    CONFIG_ERROR,
    NOT_FOUND,
    PREFLIGHT,
    record_outcome,
)
from cors_proxy.utils.traced_requests import traced_request

router = APIRouter()
tracer = trace.get_tracer(__name__)
logger = logging.getLogger("uvicorn.error")


def configuration_error_response(error: ConfigurationError) -> Response:
    """
    Without a valid configuration there is no origin allowlist to consult,
    so this response alone uses the wildcard origin.
    """
    return Response(
        content=f"Configuration Error: {error}",
        status_code=500,
        headers={
            "Access-Control-Allow-Origin": "*",
            "Content-Type": "text/plain",
        },
    )


def request_path(request: Request) -> str:
    """
    Path as the client sent it, percent-encoding intact, so an encoded slash
    never splits a segment. Falls back to the decoded path when the server
    does not provide `raw_path`.
    """
    raw_path = request.scope.get("raw_path")
    if raw_path:
        return raw_path.split(b"?", 1)[0].decode("latin-1")
    return request.url.path


class RequestRouter:
    """
    Decides what happens to each request, in order:

    1. path not allowed -> 404 "Not Found" (even for preflights)
    2. OPTIONS         -> 204 preflight answered locally
    3. anything else   -> forwarded upstream

    Every outcome carries the CORS header set for the request.
    """

    def __init__(self, config: ProxyConfig, forwarder: Optional[Forwarder] = None):
        self.config = config
        self.forwarder = forwarder or Forwarder(config)

    async def handle(self, request: Request) -> Response:
        path = request_path(request)
        with traced_request(
            tracer,
            operation="cors_proxy_request",
            method=request.method,
            path=path,
            start_message=f"[Router] {request.method} {path}",
            extra_attrs={"cors_proxy.origin": request.headers.get("origin", "")},
        ) as span:
            if not is_path_allowed(path, self.config.allowed_paths):
                logger.debug(f"[Router] Path not allowed: {path}")
                record_outcome(NOT_FOUND, span)
                return PlainTextResponse(
                    "Not Found",
                    status_code=404,
                    headers=build_cors_headers(request, self.config),
                )

            if request.method == "OPTIONS":
                record_outcome(PREFLIGHT, span)
                return Response(
                    status_code=204, headers=build_cors_headers(request, self.config)
                )

            return await self.forwarder.forward(request)


def get_proxy_config() -> ProxyConfig:
    return load_proxy_config()


async def proxy_all(request: Request) -> Response:
    """Catch-all endpoint that applies the CORS proxy rules to every request."""
    try:
        config = get_proxy_config()
    except ConfigurationError as e:
        logger.error(f"[Config] Configuration Error: {e}")
        record_outcome(CONFIG_ERROR)
        return configuration_error_response(e)

    return await RequestRouter(config).handle(request)


# A plain Starlette route with no method list accepts every verb, including
# WebDAV and custom ones, instead of answering them with a 405.
router.add_route("/{path:path}", proxy_all, include_in_schema=False)
