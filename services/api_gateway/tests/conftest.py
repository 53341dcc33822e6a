import time
from typing import Dict, List, Optional, Set

import httpx
import pytest
from fastapi.testclient import TestClient
from jose import jwt

from api_gateway.config import Settings, get_settings
from api_gateway.core.rate_limit import SlidingWindowLimiter
from api_gateway.dependencies import get_http_client, get_rate_limiter
from api_gateway.main import create_app

SECRET = "test-access-secret"


class Upstream:
    """Fake internal network: answers every call the gateway makes and records it."""

    def __init__(self) -> None:
        self.requests: List[httpx.Request] = []
        self.schools: Dict[str, str] = {"acme": "school-1"}
        self.overrides: Dict[str, httpx.Response] = {}
        self.unreachable: Set[str] = set()
        self.lookup_errors = 0

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        host = request.url.host
        path = request.url.path
        if host in self.unreachable:
            raise httpx.ConnectError("connection refused", request=request)
        if path in self.overrides:
            return self.overrides[path]
        if path == "/health":
            return httpx.Response(200, json={"success": True, "data": {"status": "OK"}})
        if path.startswith("/api/v1/school/get-by-subdomain/"):
            return self._lookup(path.rsplit("/", 1)[-1])
        return httpx.Response(200, json={"success": True, "data": {"path": path}}, headers={"x-served-by": host})

    def _lookup(self, subdomain: str) -> httpx.Response:
        if self.lookup_errors:
            self.lookup_errors -= 1
            return httpx.Response(503, text="warming up")
        school_id = self.schools.get(subdomain)
        if school_id is None:
            return httpx.Response(404, json={"success": False, "error": {"message": "School not found"}})
        return httpx.Response(
            200,
            json={"success": True, "data": {"school": {"id": school_id, "subdomain": subdomain}}},
        )

    def sent_to(self, host: str) -> List[httpx.Request]:
        return [request for request in self.requests if request.url.host == host]


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        base_domain="example.com",
        platform_aliases=["www"],
        jwt_access_secret=SECRET,
        auth_service_url="http://auth.internal",
        school_service_url="http://school.internal",
        profile_service_url="http://profile.internal",
        attendance_service_url="http://attendance.internal",
        tenant_lookup_base_delay=0.0,
    )


@pytest.fixture
def upstream() -> Upstream:
    return Upstream()


@pytest.fixture
def make_client(settings: Settings, upstream: Upstream):
    opened: List[TestClient] = []

    def factory(
        host: str = "acme.example.com",
        settings_override: Optional[Settings] = None,
        rate_limiter: Optional[SlidingWindowLimiter] = None,
    ) -> TestClient:
        active = settings_override or settings
        app = create_app(active)
        http_client = httpx.AsyncClient(transport=httpx.MockTransport(upstream))
        limiter = rate_limiter or SlidingWindowLimiter(limit=1000)
        app.dependency_overrides[get_settings] = lambda: active
        app.dependency_overrides[get_http_client] = lambda: http_client
        app.dependency_overrides[get_rate_limiter] = lambda: limiter
        client = TestClient(app, base_url=f"http://{host}")
        client.__enter__()
        opened.append(client)
        return client

    yield factory
    for client in opened:
        client.__exit__(None, None, None)


@pytest.fixture
def make_token():
    def factory(secret: str = SECRET, **claims) -> str:
        payload = {
            "userId": "user-1",
            "roleId": "role-7",
            "roleName": "TEACHER",
            "exp": int(time.time()) + 300,
        }
        payload.update(claims)
        return jwt.encode(payload, secret, algorithm="HS256")

    return factory
