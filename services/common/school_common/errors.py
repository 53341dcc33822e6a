"""
Error taxonomy shared by the gateway and every internal service.

Each failure kind maps to exactly one HTTP status and one envelope; the
exception handlers in ``school_common.handlers`` do the rendering.
"""

from typing import Any, Optional, Sequence


class PipelineError(Exception):
    """
    Base exception for request pipeline failures.

    ``retryable`` tells ``with_retry`` whether the failure may be attempted
    again; client-side failures never are.
    """

    status_code: int = 500
    default_code: str = "INTERNAL_ERROR"
    retryable: bool = False

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert the failure to the ``error`` member of an envelope."""
        return {"message": self.message, "code": self.code}


class ValidationFailure(PipelineError):
    """Input did not match the declared schema."""

    status_code = 400
    default_code = "VALIDATION_FAILED"

    def __init__(self, issues: Sequence[Any], message: str = "Input validation failed"):
        super().__init__(message)
        self.issues = list(issues)

    def to_dict(self) -> dict[str, Any]:
        payload = super().to_dict()
        payload["issues"] = [issue.to_dict() for issue in self.issues]
        return payload


class MissingContextFailure(PipelineError):
    """Tenant/school context is required but absent."""

    status_code = 400
    default_code = "CONTEXT_REQUIRED"


class AuthenticationFailure(PipelineError):
    status_code = 401
    default_code = "UNAUTHENTICATED"


class AuthorizationFailure(PipelineError):
    status_code = 403
    default_code = "FORBIDDEN"


class NotFoundFailure(PipelineError):
    status_code = 404
    default_code = "NOT_FOUND"


class ConflictFailure(PipelineError):
    status_code = 409
    default_code = "CONFLICT"


class RateLimitFailure(PipelineError):
    status_code = 429
    default_code = "rate_limit_exceeded"

    def __init__(self, retry_after: int):
        super().__init__("Too many requests, please try again later.")
        self.retry_after = retry_after


class UpstreamFailure(PipelineError):
    """
    A dependent call failed. The client only ever sees the generic message;
    ``detail`` is for server-side logs.
    """

    status_code = 500
    default_code = "UPSTREAM_FAILURE"
    retryable = True

    def __init__(
        self,
        service: str,
        detail: str,
        message: str = "Internal server error",
        retryable: bool = True,
    ):
        super().__init__(message, details={"service": service})
        self.service = service
        self.detail = detail
        self.retryable = retryable


class ServiceUnavailableFailure(PipelineError):
    status_code = 503
    default_code = "SERVICE_UNAVAILABLE"

    def __init__(self, service: str):
        super().__init__(f"{service} temporarily unavailable", details={"service": service})
        self.service = service
