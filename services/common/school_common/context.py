from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from functools import lru_cache
from typing import Iterable, Optional

_SCHEME_RE = re.compile(r"^https?://", re.IGNORECASE)


class ContextMode(str, Enum):
    PLATFORM = "platform"
    SCHOOL = "school"


@dataclass(frozen=True)
class OperatingContext:
    """Which tenant (if any) a request operates on."""

    mode: ContextMode = ContextMode.PLATFORM
    subdomain: Optional[str] = None
    tenant_id: Optional[str] = None
    tenant_slug: Optional[str] = None

    @classmethod
    def platform(cls) -> "OperatingContext":
        return cls(mode=ContextMode.PLATFORM)

    @classmethod
    def school(
        cls,
        subdomain: Optional[str] = None,
        tenant_id: Optional[str] = None,
        tenant_slug: Optional[str] = None,
    ) -> "OperatingContext":
        return cls(mode=ContextMode.SCHOOL, subdomain=subdomain, tenant_id=tenant_id, tenant_slug=tenant_slug)

    @property
    def is_school(self) -> bool:
        return self.mode is ContextMode.SCHOOL

    def with_tenant(self, tenant_id: str, tenant_slug: Optional[str] = None) -> "OperatingContext":
        return OperatingContext(
            mode=self.mode,
            subdomain=self.subdomain,
            tenant_id=tenant_id,
            tenant_slug=tenant_slug,
        )


@dataclass(frozen=True)
class Identity:
    """Caller identity as asserted by the edge tier."""

    user_id: Optional[str] = None
    role_id: Optional[str] = None
    role_name: Optional[str] = None

    @property
    def is_authenticated(self) -> bool:
        return self.user_id is not None


@dataclass(frozen=True)
class AuthenticatedUser:
    id: str
    role_id: Optional[str] = None
    role: Optional[str] = None
    tenant_id: Optional[str] = None
    is_verified: bool = False
    created_at: Optional[datetime] = None

    def identity(self) -> Identity:
        return Identity(user_id=self.id, role_id=self.role_id, role_name=self.role)


@lru_cache(maxsize=16)
def _tenant_host_pattern(base_domain: str) -> re.Pattern[str]:
    return re.compile(rf"^([a-z0-9-]+)\.{re.escape(base_domain.lower())}$")


def strip_scheme(hostname: str) -> str:
    return _SCHEME_RE.sub("", hostname.strip())


def resolve_context(
    hostname: Optional[str],
    base_domain: str,
    platform_aliases: Iterable[str] = (),
) -> OperatingContext:
    """
    Derive the operating context from a request hostname.

    ``acme.example.com`` against base domain ``example.com`` is the ``acme``
    school. Anything else (the bare base domain, an alias such as ``www``,
    nested subdomains, IP literals, hosts with a port) is platform traffic.
    Tenant id and slug stay empty; the tenant lookup fills them in.
    """
    if not hostname:
        return OperatingContext.platform()
    host = strip_scheme(hostname).lower()
    match = _tenant_host_pattern(base_domain).match(host)
    if match is None:
        return OperatingContext.platform()
    label = match.group(1)
    if label in platform_aliases:
        return OperatingContext.platform()
    return OperatingContext.school(subdomain=label)
