from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from school_common.context import OperatingContext
from school_common.errors import NotFoundFailure, UpstreamFailure

from api_gateway.clients.base import DownstreamClient


@dataclass(frozen=True)
class TenantRecord:
    tenant_id: str
    tenant_slug: str


class SchoolClient(DownstreamClient):
    async def get_by_subdomain(self, subdomain: str) -> TenantRecord:
        # The lookup runs before the tenant is known, so it goes out as platform traffic.
        try:
            response = await self.get(
                f"/api/v1/school/get-by-subdomain/{subdomain}",
                context=OperatingContext.platform(),
            )
        except NotFoundFailure as exc:
            raise NotFoundFailure("School not found or inactive") from exc
        try:
            payload: Any = response.json()
        except ValueError as exc:
            raise UpstreamFailure(self.service_name, f"non-JSON tenant lookup response: {exc}", retryable=False) from exc
        if not isinstance(payload, dict):
            raise UpstreamFailure(
                self.service_name,
                f"tenant lookup returned {type(payload).__name__}, expected an object",
                retryable=False,
            )
        data = payload.get("data") if payload.get("success") else None
        school = data.get("school") if isinstance(data, dict) else None
        school_id = school.get("id") if isinstance(school, dict) else None
        if not school_id:
            raise NotFoundFailure("School not found or inactive")
        return TenantRecord(tenant_id=str(school_id), tenant_slug=str(school.get("subdomain") or subdomain))

    async def resolve(self, context: OperatingContext) -> OperatingContext:
        """Fill in tenant id and slug for a school context that only carries a subdomain."""
        if not context.is_school or context.tenant_id or not context.subdomain:
            return context
        record = await self.get_by_subdomain(context.subdomain)
        return context.with_tenant(record.tenant_id, record.tenant_slug)
