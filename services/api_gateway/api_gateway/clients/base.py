from __future__ import annotations

import logging
from typing import Any, Dict, Mapping, Optional

import httpx

from school_common.context import Identity, OperatingContext
from school_common.errors import NotFoundFailure, ServiceUnavailableFailure, UpstreamFailure
from school_common.headers import serialize_context
from school_common.retry import with_retry

from api_gateway.core.context import current_edge_state

logger = logging.getLogger(__name__)


class DownstreamClient:
    def __init__(
        self,
        http_client: httpx.AsyncClient,
        base_url: Optional[str],
        service_name: str,
        timeout: float = 30.0,
        max_retries: int = 0,
        base_delay: float = 0.2,
    ) -> None:
        self.http_client = http_client
        self.base_url = base_url.rstrip("/") + "/" if base_url else None
        self.service_name = service_name
        self.timeout = timeout
        self.max_retries = max_retries
        self.base_delay = base_delay

    def _require_base_url(self) -> str:
        if not self.base_url:
            raise ServiceUnavailableFailure(self.service_name)
        return self.base_url

    def _build_url(self, path: str) -> str:
        # Plain concatenation: the path is forwarded exactly as it was matched.
        return self._require_base_url() + path.lstrip("/")

    def _build_headers(
        self,
        context: Optional[OperatingContext] = None,
        identity: Optional[Identity] = None,
        extra: Optional[Mapping[str, str]] = None,
    ) -> Dict[str, str]:
        edge = current_edge_state()
        headers: Dict[str, str] = {}
        if extra:
            headers.update(extra)
        headers["X-Request-ID"] = edge.trace_id
        # Trust headers go last so nothing in ``extra`` can override them.
        headers.update(serialize_context(context or edge.context, identity))
        return headers

    def _handle_response(self, response: httpx.Response) -> httpx.Response:
        if response.status_code == 404:
            raise NotFoundFailure(f"{self.service_name} resource not found")
        try:
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            detail = exc.response.text or exc.response.reason_phrase
            raise UpstreamFailure(
                self.service_name,
                f"HTTP {exc.response.status_code}: {detail}",
                retryable=exc.response.status_code >= 500,
            ) from exc
        return response

    async def get(
        self,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        context: Optional[OperatingContext] = None,
        identity: Optional[Identity] = None,
    ) -> httpx.Response:
        url = self._build_url(path)
        headers = self._build_headers(context, identity)

        async def attempt() -> httpx.Response:
            try:
                response = await self.http_client.get(url, params=params, headers=headers, timeout=self.timeout)
            except httpx.HTTPError as exc:
                raise UpstreamFailure(self.service_name, f"{type(exc).__name__}: {exc}") from exc
            return self._handle_response(response)

        return await with_retry(
            attempt,
            self.max_retries,
            self.base_delay,
            description=f"{self.service_name} GET {path}",
        )

    async def forward(
        self,
        method: str,
        path: str,
        params: Optional[Any] = None,
        headers: Optional[Mapping[str, str]] = None,
        content: Optional[bytes] = None,
        context: Optional[OperatingContext] = None,
        identity: Optional[Identity] = None,
    ) -> httpx.Response:
        """Relay a client request; the upstream status is passed through untouched."""
        url = self._build_url(path)
        try:
            return await self.http_client.request(
                method,
                url,
                params=params,
                headers=self._build_headers(context, identity, extra=headers),
                content=content,
                timeout=self.timeout,
            )
        except httpx.HTTPError as exc:
            logger.error("%s unreachable for %s %s: %s", self.service_name, method, path, exc)
            raise ServiceUnavailableFailure(self.service_name) from exc
