"""FastAPI dependencies for services sitting behind the gateway."""

from typing import Iterable

from fastapi import Depends, Request

from school_common.context import Identity, OperatingContext
from school_common.errors import AuthenticationFailure, AuthorizationFailure, MissingContextFailure
from school_common.headers import deserialize_context, extract_identity


def get_operating_context(request: Request) -> OperatingContext:
    return deserialize_context(request.headers)


def get_identity(request: Request) -> Identity:
    return extract_identity(request.headers)


def require_identity(identity: Identity = Depends(get_identity)) -> Identity:
    if not identity.is_authenticated:
        raise AuthenticationFailure("User authentication required")
    return identity


def require_school_id(context: OperatingContext = Depends(get_operating_context)) -> str:
    """Tenant id of a school-scoped request; platform traffic is rejected with 400."""
    if not context.is_school:
        raise MissingContextFailure("School context is required")
    if not context.tenant_id:
        raise MissingContextFailure("SchoolId context required")
    return context.tenant_id


def ensure_role(identity: Identity, allowed: Iterable[str], message: str = "Insufficient permissions") -> None:
    allowed_roles = {role.upper() for role in allowed}
    if not identity.role_name or identity.role_name.upper() not in allowed_roles:
        raise AuthorizationFailure(message)
