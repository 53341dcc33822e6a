from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, List, Optional

from api_gateway.config import Settings


@dataclass(frozen=True)
class RouteRule:
    """
    Protection override for part of a service.

    With a method the rule covers exactly that path; without one it covers
    the path and everything below it. ``:name`` segments match any segment.
    """

    path: str
    is_protected: bool
    method: Optional[str] = None

    def matches(self, remainder: str, method: str) -> bool:
        if self.method is not None and self.method.upper() != method.upper():
            return False
        pattern = _segments(self.path)
        actual = _segments(remainder)
        if self.method is not None and len(actual) != len(pattern):
            return False
        if len(actual) < len(pattern):
            return False
        return all(p.startswith(":") or p == a for p, a in zip(pattern, actual))


@dataclass(frozen=True)
class ServiceConfig:
    name: str
    url: Optional[str]
    path: str
    is_protected: bool
    routes: List[RouteRule] = field(default_factory=list)
    health_path: str = "/health"
    timeout: float = 30.0

    def owns(self, path: str) -> bool:
        return path == self.path or path.startswith(self.path.rstrip("/") + "/")

    def is_route_protected(self, path: str, method: str) -> bool:
        remainder = path[len(self.path):]
        for rule in self.routes:
            if rule.matches(remainder, method):
                return rule.is_protected
        return self.is_protected


@dataclass(frozen=True)
class RouteMatch:
    service: ServiceConfig
    is_protected: bool


_DOT_SEGMENTS = frozenset({".", ".."})


def is_canonical_path(path: str) -> bool:
    """False when a URL parser downstream would rewrite the path (dot segments, backslashes)."""
    return "\\" not in path and not any(segment in _DOT_SEGMENTS for segment in path.split("/"))


def _segments(path: str) -> List[str]:
    return [part for part in path.split("/") if part]


class ServiceRegistry:
    def __init__(self, services: Iterable[ServiceConfig]) -> None:
        self._services = {service.name: service for service in services}

    def get_service(self, name: str) -> Optional[ServiceConfig]:
        return self._services.get(name)

    def get_all_services(self) -> List[ServiceConfig]:
        return list(self._services.values())

    def match(self, path: str, method: str) -> Optional[RouteMatch]:
        if not is_canonical_path(path):
            return None
        candidates = [service for service in self._services.values() if service.owns(path)]
        if not candidates:
            return None
        service = max(candidates, key=lambda candidate: len(candidate.path))
        return RouteMatch(service=service, is_protected=service.is_route_protected(path, method))


def _url(value) -> Optional[str]:
    return str(value) if value else None


def build_registry(settings: Settings) -> ServiceRegistry:
    return ServiceRegistry(
        [
            ServiceConfig(
                name="auth-service",
                url=_url(settings.auth_service_url),
                path="/api/v1/auth",
                is_protected=False,
                routes=[
                    RouteRule("/register", False, "POST"),
                    RouteRule("/resend-otp", False, "POST"),
                    RouteRule("/verify-otp/registration", False, "POST"),
                    RouteRule("/verify-otp/password-reset", False, "POST"),
                    RouteRule("/login", False, "POST"),
                    RouteRule("/forgot-password", False, "POST"),
                    RouteRule("/reset-password", False, "POST"),
                    RouteRule("/me", True, "GET"),
                    RouteRule("/refresh-token", True, "POST"),
                    RouteRule("/logout", True, "POST"),
                    RouteRule("/update-admin-with-subdomain", True, "POST"),
                ],
                timeout=settings.auth_service_timeout,
            ),
            ServiceConfig(
                name="school-service",
                url=_url(settings.school_service_url),
                path="/api/v1/school",
                is_protected=False,
                routes=[
                    RouteRule("/create", True, "POST"),
                    RouteRule("/get-by-id/:schoolId", True, "GET"),
                    RouteRule("/update/:schoolId", True, "PUT"),
                    RouteRule("/get-by-subdomain/:subdomain", False, "GET"),
                    RouteRule("/activate/:schoolId", True, "GET"),
                ],
                timeout=settings.school_service_timeout,
            ),
            ServiceConfig(
                name="profile-service",
                url=_url(settings.profile_service_url),
                path="/api/v1/profile",
                is_protected=True,
                timeout=settings.profile_service_timeout,
            ),
            ServiceConfig(
                name="attendance-service",
                url=_url(settings.attendance_service_url),
                path="/api/v1/attendance",
                is_protected=True,
                timeout=settings.attendance_service_timeout,
            ),
        ]
    )
