from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Optional

import httpx
from fastapi import FastAPI

from school_common.handlers import install_exception_handlers
from school_common.logging import configure_logging

from api_gateway.config import Settings, get_settings
from api_gateway.core.middleware import EdgeContextMiddleware
from api_gateway.routers import health, proxy
from api_gateway.services.registry import build_registry


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app.state.http_client = httpx.AsyncClient(follow_redirects=False)
        try:
            yield
        finally:
            await app.state.http_client.aclose()

    app = FastAPI(title=settings.app_name, version=settings.version, lifespan=lifespan)
    app.state.registry = build_registry(settings)
    app.add_middleware(
        EdgeContextMiddleware,
        base_domain=settings.base_domain,
        platform_aliases=settings.platform_aliases,
        dev_context_headers=settings.dev_context_headers,
    )
    install_exception_handlers(app)
    app.include_router(health.router)
    app.include_router(proxy.router)
    return app


settings = get_settings()
configure_logging(settings.log_level)

app = create_app(settings)
