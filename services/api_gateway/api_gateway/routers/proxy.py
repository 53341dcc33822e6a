from __future__ import annotations

import logging
from typing import Dict, Iterable, Optional, Tuple

import httpx
from fastapi import APIRouter, Depends, Request, Response
from fastapi.security import HTTPAuthorizationCredentials

from school_common.context import Identity
from school_common.errors import NotFoundFailure
from school_common.headers import strip_trust_headers

from api_gateway.clients.base import DownstreamClient
from api_gateway.clients.schools import SchoolClient
from api_gateway.core.auth import TokenVerifier
from api_gateway.core.context import current_edge_state
from api_gateway.core.rate_limit import SlidingWindowLimiter
from api_gateway.dependencies import (
    bearer_scheme,
    get_http_client,
    get_rate_limiter,
    get_registry,
    get_school_client,
    get_token_verifier,
)
from api_gateway.services.registry import ServiceRegistry

logger = logging.getLogger(__name__)

router = APIRouter(tags=["proxy"])

PROXY_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE"]

HOP_BY_HOP_HEADERS = frozenset(
    {
        "connection",
        "keep-alive",
        "proxy-authenticate",
        "proxy-authorization",
        "te",
        "trailers",
        "transfer-encoding",
        "upgrade",
    }
)
# Recomputed by the gateway or by httpx for every hop.
_REQUEST_SKIP = HOP_BY_HOP_HEADERS | {"host", "content-length", "x-request-id"}
_RESPONSE_SKIP = HOP_BY_HOP_HEADERS | {"content-length", "content-encoding", "x-request-id"}


def forwardable_headers(headers: Iterable[Tuple[str, str]]) -> Dict[str, str]:
    return {name: value for name, value in strip_trust_headers(headers) if name.lower() not in _REQUEST_SKIP}


def relay_response(upstream: httpx.Response) -> Response:
    response = Response(content=upstream.content, status_code=upstream.status_code)
    for name, value in upstream.headers.multi_items():
        if name.lower() not in _RESPONSE_SKIP:
            response.headers.append(name, value)
    return response


def _has_plain_separators(request: Request) -> bool:
    # An encoded slash decodes into an extra segment the client never sent as one.
    raw_path = (request.scope.get("raw_path") or b"").decode("latin-1").lower()
    return "%2f" not in raw_path and "%5c" not in raw_path


@router.api_route("/api/v1/{path:path}", methods=PROXY_METHODS, include_in_schema=False)
async def proxy(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    registry: ServiceRegistry = Depends(get_registry),
    rate_limiter: SlidingWindowLimiter = Depends(get_rate_limiter),
    school_client: SchoolClient = Depends(get_school_client),
    verifier: TokenVerifier = Depends(get_token_verifier),
    http_client: httpx.AsyncClient = Depends(get_http_client),
) -> Response:
    path = request.url.path
    match = registry.match(path, request.method) if _has_plain_separators(request) else None
    if match is None:
        raise NotFoundFailure(f"Route {path} not found")

    # Per client address; the Host label is unverified at this point.
    client_host = request.client.host if request.client else "unknown"
    remaining = await rate_limiter.hit(client_host)

    edge = current_edge_state()
    context = await school_client.resolve(edge.context)
    identity = Identity()
    if match.is_protected:
        user = verifier.verify(credentials.credentials if credentials else None)
        identity = user.identity()

    logger.info("Proxying %s %s -> %s (%s)", request.method, path, match.service.name, context.mode.value)
    downstream = DownstreamClient(http_client, match.service.url, match.service.name, timeout=match.service.timeout)
    upstream = await downstream.forward(
        request.method,
        path,
        params=request.query_params.multi_items(),
        headers=forwardable_headers(request.headers.items()),
        content=await request.body(),
        context=context,
        identity=identity,
    )
    response = relay_response(upstream)
    response.headers["X-RateLimit-Remaining"] = str(remaining)
    return response
