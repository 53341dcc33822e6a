from __future__ import annotations

import logging
from typing import Callable, Iterable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from school_common.context import ContextMode, OperatingContext, resolve_context
from school_common.envelope import error_response
from school_common.errors import MissingContextFailure
from school_common.headers import X_CONTEXT, X_SUBDOMAIN, strip_raw_trust_headers

from api_gateway.core.context import edge_scope

logger = logging.getLogger(__name__)


def context_from_dev_headers(request: Request) -> OperatingContext:
    """Local development: the client names the school explicitly."""
    mode = request.headers.get(X_CONTEXT)
    if not mode or mode == ContextMode.PLATFORM.value:
        return OperatingContext.platform()
    subdomain = request.headers.get(X_SUBDOMAIN)
    if not subdomain:
        raise MissingContextFailure("Missing x-subdomain header in development mode")
    return OperatingContext.school(subdomain=subdomain)


class EdgeContextMiddleware(BaseHTTPMiddleware):
    """
    Trust boundary of the platform.

    Drops every client-supplied trust header, derives the operating context
    from the Host header and keeps it, with a trace id, in the request context.
    """

    def __init__(
        self,
        app: ASGIApp,
        base_domain: str,
        platform_aliases: Iterable[str] = (),
        dev_context_headers: bool = False,
    ) -> None:
        super().__init__(app)
        self.base_domain = base_domain
        self.platform_aliases = tuple(platform_aliases)
        self.dev_context_headers = dev_context_headers

    def _resolve(self, request: Request) -> OperatingContext:
        if self.dev_context_headers:
            return context_from_dev_headers(request)
        return resolve_context(request.headers.get("host"), self.base_domain, self.platform_aliases)

    async def dispatch(self, request: Request, call_next: Callable[[Request], Response]) -> Response:
        incoming_trace = request.headers.get("X-Request-ID")
        try:
            operating_context = self._resolve(request)
        except MissingContextFailure as exc:
            return error_response(exc.status_code, exc.message, code=exc.code)
        # Downstream code builds its own Request objects from this scope.
        request.scope["headers"] = strip_raw_trust_headers(request.scope["headers"])

        with edge_scope(operating_context, trace_id=incoming_trace) as edge:
            logger.debug("%s %s resolved to %s [%s]", request.method, request.url.path, edge.scope_label, edge.trace_id)
            response = await call_next(request)
        response.headers["X-Request-ID"] = edge.trace_id
        return response
