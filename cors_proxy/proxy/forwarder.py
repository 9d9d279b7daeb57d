import logging
from typing import AsyncIterator, Callable, Dict, List, Optional, Tuple

import httpx
from opentelemetry import trace
from starlette.background import BackgroundTask
from starlette.requests import Request
from starlette.responses import PlainTextResponse, Response, StreamingResponse

from cors_proxy.config import ProxyConfig
from cors_proxy.cors import build_cors_headers
from cors_proxy.models import LiteralBody, StreamedBody, UpstreamBody
from cors_proxy.proxy.outcomes import FORWARDED, UPSTREAM_ERROR, record_outcome
from cors_proxy.utils import loggable_url
from cors_proxy.utils.exception_logging import (
    describe_exception,
    log_exception_with_details,
)
from cors_proxy.vars import PROXY_TIMEOUT

tracer = trace.get_tracer(__name__)
logger = logging.getLogger("uvicorn.error")

# Hop-by-hop headers that should NOT be forwarded (RFC 2616)
HOP_BY_HOP_HEADERS = {
    "connection",
    "keep-alive",
    "proxy-authenticate",
    "proxy-authorization",
    "te",
    "trailers",
    "transfer-encoding",
    "upgrade",
}

# Set by the HTTP client for the upstream connection
CLIENT_MANAGED_HEADERS = {"host"}

BODYLESS_METHODS = {"GET", "HEAD"}

PROXY_ERROR_BODY = "Error proxying the request"

# Everything httpx raises for a failed exchange, including a target endpoint
# that is not a usable URL and a streamed body that cannot be replayed.
UPSTREAM_ERRORS = (httpx.HTTPError, httpx.InvalidURL, httpx.StreamError)


def default_client() -> httpx.AsyncClient:
    return httpx.AsyncClient(
        timeout=httpx.Timeout(PROXY_TIMEOUT),
        follow_redirects=True,
    )


def get_target_url(request: Request, config: ProxyConfig) -> str:
    """Upstream URL: the fixed endpoint plus the original query string."""
    query_string = request.url.query
    if query_string:
        return f"{config.target_endpoint}?{query_string}"
    return config.target_endpoint


def prepare_headers(request: Request) -> List[Tuple[str, str]]:
    """
    Request headers to send upstream. Repeated headers are kept; hop-by-hop
    headers and Host are left to the HTTP client.
    """
    return [
        (name, value)
        for name, value in request.headers.items()
        if name.lower() not in HOP_BY_HOP_HEADERS
        and name.lower() not in CLIENT_MANAGED_HEADERS
    ]


def request_body(request: Request) -> Optional[AsyncIterator[bytes]]:
    if request.method.upper() in BODYLESS_METHODS:
        return None
    return request.stream()


async def stream_upstream(
    upstream: httpx.Response, client: httpx.AsyncClient
) -> AsyncIterator[bytes]:
    """
    Relay upstream bytes untouched, still content-encoded if they were.
    The upstream response and client are closed however the relay ends.
    """
    try:
        async for chunk in upstream.aiter_raw():
            yield chunk
    except httpx.HTTPError as e:
        # Headers are already on the wire; the client sees a truncated body.
        log_exception_with_details(logger, "[Forwarder] Upstream body", e)
        raise
    finally:
        await close_upstream(upstream, client)


async def close_upstream(upstream: httpx.Response, client: httpx.AsyncClient) -> None:
    await upstream.aclose()
    await client.aclose()


def render_response(
    status_code: int,
    body: UpstreamBody,
    upstream_headers: httpx.Headers,
    cors_headers: Dict[str, str],
    background: Optional[BackgroundTask] = None,
) -> Response:
    """
    Build the client response: upstream headers first, CORS headers over
    them, then the framing headers a literal body needs.
    """
    if isinstance(body, LiteralBody):
        response = Response(content=body.content, status_code=status_code)
    else:
        response = StreamingResponse(
            body.chunks, status_code=status_code, background=background
        )

    for name, value in upstream_headers.multi_items():
        if name.lower() in HOP_BY_HOP_HEADERS:
            continue
        response.headers.append(name, value)

    for name, value in cors_headers.items():
        response.headers[name] = value

    if isinstance(body, LiteralBody):
        response.headers["content-type"] = "text/plain"
        response.headers["content-length"] = str(body.content_length)
        if "content-encoding" in response.headers:
            del response.headers["content-encoding"]

    return response


class Forwarder:
    """Sends allowed requests to the configured upstream and relays the answer."""

    def __init__(
        self,
        config: ProxyConfig,
        client_factory: Optional[Callable[[], httpx.AsyncClient]] = None,
    ):
        self.config = config
        self._client_factory = client_factory or default_client

    async def forward(self, request: Request) -> Response:
        target_url = get_target_url(request, self.config)
        cors_headers = build_cors_headers(request, self.config)

        with tracer.start_as_current_span("proxy_request") as span:
            span.set_attribute("proxy.target_url", loggable_url(target_url))
            span.set_attribute("proxy.method", request.method)

            logger.debug(
                f"[Forwarder] Proxying {request.method} {request.url.path} -> "
                f"{loggable_url(target_url)}"
            )

            client = self._client_factory()
            try:
                upstream_request = client.build_request(
                    method=request.method,
                    url=target_url,
                    headers=prepare_headers(request),
                    content=request_body(request),
                )
                upstream = await client.send(upstream_request, stream=True)

            except httpx.TimeoutException as e:
                span.set_attribute("proxy.error", "timeout")
                return await self._failure(client, e, target_url, cors_headers, span)

            except httpx.ConnectError as e:
                span.set_attribute("proxy.error", "connection_failed")
                return await self._failure(client, e, target_url, cors_headers, span)

            except UPSTREAM_ERRORS as e:
                span.set_attribute("proxy.error", describe_exception(e))
                return await self._failure(client, e, target_url, cors_headers, span)

            except BaseException:
                # Cancelled (client went away) or unexpected: drop the upstream call
                await client.aclose()
                raise

            span.set_attribute("proxy.status_code", upstream.status_code)
            span.set_attribute("proxy.reason_phrase", upstream.reason_phrase)
            record_outcome(FORWARDED, span)

            if self.config.payload_override is not None:
                await close_upstream(upstream, client)
                return render_response(
                    upstream.status_code,
                    LiteralBody.from_text(self.config.payload_override),
                    upstream.headers,
                    cors_headers,
                )

            return render_response(
                upstream.status_code,
                StreamedBody(stream_upstream(upstream, client)),
                upstream.headers,
                cors_headers,
                background=BackgroundTask(close_upstream, upstream, client),
            )

    async def _failure(
        self,
        client: httpx.AsyncClient,
        error: BaseException,
        target_url: str,
        cors_headers: Dict[str, str],
        span,
    ) -> Response:
        await client.aclose()
        log_exception_with_details(
            logger, f"[Forwarder] {loggable_url(target_url)}", error
        )
        record_outcome(UPSTREAM_ERROR, span)
        return PlainTextResponse(
            PROXY_ERROR_BODY, status_code=500, headers=cors_headers
        )
