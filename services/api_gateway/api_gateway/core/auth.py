from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, Optional, Sequence

from jose import JWTError, jwt

from school_common.context import AuthenticatedUser
from school_common.errors import AuthenticationFailure


class TokenVerifier:
    """Verifies gateway access tokens signed by the auth service."""

    def __init__(self, secret: str, algorithms: Sequence[str] = ("HS256",)) -> None:
        self.secret = secret
        self.algorithms = list(algorithms)

    def decode(self, token: str) -> Dict[str, Any]:
        if not self.secret:
            raise AuthenticationFailure("Server authentication not configured")
        try:
            return jwt.decode(token, self.secret, algorithms=self.algorithms, options={"verify_aud": False})
        except JWTError as exc:
            raise AuthenticationFailure("Invalid or expired token") from exc

    def verify(self, token: Optional[str]) -> AuthenticatedUser:
        if not token:
            raise AuthenticationFailure("No token provided")
        claims = self.decode(token)
        user_id = claims.get("userId") or claims.get("sub")
        if not user_id:
            raise AuthenticationFailure("Invalid or expired token")
        tenant_id = claims.get("schoolId") or claims.get("tenantId")
        return AuthenticatedUser(
            id=str(user_id),
            role_id=_optional_str(claims.get("roleId")),
            role=_optional_str(claims.get("roleName") or claims.get("role")),
            tenant_id=_optional_str(tenant_id),
            is_verified=bool(claims.get("isVerified", False)),
            created_at=_parse_timestamp(claims.get("createdAt")),
        )


def _parse_timestamp(value: Any) -> Optional[datetime]:
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value, tz=timezone.utc)
    if isinstance(value, str) and value:
        try:
            return datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
    return None


def _optional_str(value: Any) -> Optional[str]:
    return str(value) if value not in (None, "") else None
