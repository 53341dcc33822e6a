from __future__ import annotations

import asyncio
import time
from typing import List, Optional
from urllib.parse import urljoin

import httpx
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from api_gateway.services.registry import ServiceConfig, ServiceRegistry


class ServiceHealth(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    service: str
    status: str
    response_time_ms: Optional[int] = None
    error: Optional[str] = None


class HealthChecker:
    def __init__(self, registry: ServiceRegistry, http_client: httpx.AsyncClient, timeout: float = 5.0) -> None:
        self.registry = registry
        self.http_client = http_client
        self.timeout = timeout

    async def check_service(self, service: ServiceConfig) -> ServiceHealth:
        if not service.url:
            return ServiceHealth(service=service.name, status="unhealthy", error="endpoint is not configured")
        started = time.perf_counter()
        url = urljoin(service.url.rstrip("/") + "/", service.health_path.lstrip("/"))
        try:
            response = await self.http_client.get(url, timeout=min(self.timeout, service.timeout))
            response.raise_for_status()
        except httpx.HTTPError as exc:
            return ServiceHealth(
                service=service.name,
                status="unhealthy",
                response_time_ms=int((time.perf_counter() - started) * 1000),
                error=str(exc) or type(exc).__name__,
            )
        return ServiceHealth(
            service=service.name,
            status="healthy",
            response_time_ms=int((time.perf_counter() - started) * 1000),
        )

    async def check_all(self) -> List[ServiceHealth]:
        return list(await asyncio.gather(*(self.check_service(s) for s in self.registry.get_all_services())))
