from functools import lru_cache

import httpx
from fastapi import Depends, Request
from fastapi.security import HTTPBearer

from api_gateway.clients.schools import SchoolClient
from api_gateway.config import Settings, get_settings
from api_gateway.core.auth import TokenVerifier
from api_gateway.core.rate_limit import SlidingWindowLimiter
from api_gateway.services.health import HealthChecker
from api_gateway.services.registry import ServiceRegistry

bearer_scheme = HTTPBearer(auto_error=False)


def get_http_client(request: Request) -> httpx.AsyncClient:
    http_client = getattr(request.app.state, "http_client", None)
    if http_client is None:
        raise RuntimeError("HTTP client is not initialized")
    return http_client


def get_registry(request: Request) -> ServiceRegistry:
    registry = getattr(request.app.state, "registry", None)
    if registry is None:
        raise RuntimeError("Service registry is not initialized")
    return registry


def get_token_verifier(settings: Settings = Depends(get_settings)) -> TokenVerifier:
    return TokenVerifier(settings.jwt_access_secret, algorithms=[settings.jwt_algorithm])


def get_school_client(
    http_client: httpx.AsyncClient = Depends(get_http_client),
    settings: Settings = Depends(get_settings),
) -> SchoolClient:
    base_url = str(settings.school_service_url) if settings.school_service_url else None
    return SchoolClient(
        http_client,
        base_url,
        service_name="school-service",
        timeout=settings.school_service_timeout,
        max_retries=settings.tenant_lookup_retries,
        base_delay=settings.tenant_lookup_base_delay,
    )


def get_health_checker(
    http_client: httpx.AsyncClient = Depends(get_http_client),
    settings: Settings = Depends(get_settings),
    registry: ServiceRegistry = Depends(get_registry),
) -> HealthChecker:
    return HealthChecker(registry, http_client, timeout=settings.health_check_timeout)


@lru_cache(maxsize=1)
def _get_rate_limiter(limit: int) -> SlidingWindowLimiter:
    return SlidingWindowLimiter(limit)


def get_rate_limiter(settings: Settings = Depends(get_settings)) -> SlidingWindowLimiter:
    return _get_rate_limiter(settings.rate_limit_per_minute)
