"""
Trust-header contract between the edge gateway and internal services.

Only the gateway may set these headers. It strips every client-supplied copy
before deriving its own values, and internal services read them back with
``deserialize_context`` / ``extract_identity``.
"""

from __future__ import annotations

import logging
from typing import Iterable, Mapping, Optional, Tuple

from school_common.context import ContextMode, Identity, OperatingContext

logger = logging.getLogger(__name__)

X_CONTEXT = "x-context"
X_SUBDOMAIN = "x-subdomain"
X_TENANT_ID = "x-tenant-id"
X_TENANT_SLUG = "x-tenant-slug"
X_USER_ID = "x-user-id"
X_USER_ROLE_ID = "x-user-role-id"
X_USER_ROLE_NAME = "x-user-role-name"

CONTEXT_HEADERS = (X_CONTEXT, X_SUBDOMAIN, X_TENANT_ID, X_TENANT_SLUG)
IDENTITY_HEADERS = (X_USER_ID, X_USER_ROLE_ID, X_USER_ROLE_NAME)
TRUST_HEADERS = frozenset(CONTEXT_HEADERS + IDENTITY_HEADERS)


def _read(headers: Mapping[str, str], name: str) -> Optional[str]:
    # Starlette's Headers is case-insensitive already; plain dicts are not.
    value = headers.get(name)
    if value is None:
        for key, candidate in headers.items():
            if key.lower() == name:
                value = candidate
                break
    if value is None or value == "":
        return None
    return value


def _put(target: dict[str, str], name: str, value: Optional[str]) -> None:
    if value is not None:
        target[name] = value


def serialize_context(context: OperatingContext, identity: Optional[Identity] = None) -> dict[str, str]:
    headers: dict[str, str] = {X_CONTEXT: context.mode.value}
    _put(headers, X_SUBDOMAIN, context.subdomain)
    _put(headers, X_TENANT_ID, context.tenant_id)
    _put(headers, X_TENANT_SLUG, context.tenant_slug)
    if identity is not None:
        _put(headers, X_USER_ID, identity.user_id)
        _put(headers, X_USER_ROLE_ID, identity.role_id)
        _put(headers, X_USER_ROLE_NAME, identity.role_name)
    return headers


def deserialize_context(headers: Mapping[str, str]) -> OperatingContext:
    raw_mode = _read(headers, X_CONTEXT)
    try:
        mode = ContextMode(raw_mode) if raw_mode else ContextMode.PLATFORM
    except ValueError:
        logger.warning("Unknown %s value %r, treating request as platform", X_CONTEXT, raw_mode)
        mode = ContextMode.PLATFORM
    return OperatingContext(
        mode=mode,
        subdomain=_read(headers, X_SUBDOMAIN),
        tenant_id=_read(headers, X_TENANT_ID),
        tenant_slug=_read(headers, X_TENANT_SLUG),
    )


def extract_identity(headers: Mapping[str, str]) -> Identity:
    """Absent identity headers are not an error here; authorization happens downstream."""
    return Identity(
        user_id=_read(headers, X_USER_ID),
        role_id=_read(headers, X_USER_ROLE_ID),
        role_name=_read(headers, X_USER_ROLE_NAME),
    )


def deserialize(headers: Mapping[str, str]) -> Tuple[OperatingContext, Identity]:
    return deserialize_context(headers), extract_identity(headers)


def strip_trust_headers(headers: Iterable[Tuple[str, str]]) -> list[Tuple[str, str]]:
    return [(name, value) for name, value in headers if name.lower() not in TRUST_HEADERS]


def strip_raw_trust_headers(raw_headers: Iterable[Tuple[bytes, bytes]]) -> list[Tuple[bytes, bytes]]:
    """ASGI-scope variant of ``strip_trust_headers`` (byte-string header pairs)."""
    return [
        (name, value)
        for name, value in raw_headers
        if name.decode("latin-1").lower() not in TRUST_HEADERS
    ]
