from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, List, Optional

from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field, model_validator


def utc_timestamp() -> str:
    """ISO-8601 UTC timestamp with millisecond precision and a ``Z`` suffix."""
    now = datetime.now(timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


class IssueDetail(BaseModel):
    path: List[str]
    message: str


class ApiError(BaseModel):
    message: str
    code: Optional[str] = None
    issues: Optional[List[IssueDetail]] = None


class ApiResponse(BaseModel):
    """The one body shape every service writes."""

    success: bool
    data: Any = None
    error: Optional[ApiError] = None
    timestamp: str = Field(default_factory=utc_timestamp)

    @model_validator(mode="after")
    def _exactly_one_of_data_or_error(self) -> "ApiResponse":
        if self.success and (self.data is None or self.error is not None):
            raise ValueError("successful response must carry data and no error")
        if not self.success and (self.error is None or self.data is not None):
            raise ValueError("failed response must carry an error and no data")
        return self

    @classmethod
    def ok(cls, data: Any) -> "ApiResponse":
        return cls(success=True, data=data)

    @classmethod
    def fail(
        cls,
        message: str,
        code: Optional[str] = None,
        issues: Optional[List[dict[str, Any]]] = None,
    ) -> "ApiResponse":
        return cls(success=False, error=ApiError(message=message, code=code, issues=issues))

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"success": self.success}
        if self.success:
            payload["data"] = jsonable_encoder(self.data)
        else:
            payload["error"] = self.error.model_dump(exclude_none=True)
        payload["timestamp"] = self.timestamp
        return payload


def success_response(data: Any, status_code: int = 200, headers: Optional[dict[str, str]] = None) -> JSONResponse:
    # The envelope is built here, so the timestamp reflects serialization time.
    envelope = ApiResponse.ok(data)
    return JSONResponse(status_code=status_code, content=envelope.to_payload(), headers=headers)


def error_response(
    status_code: int,
    message: str,
    code: Optional[str] = None,
    issues: Optional[List[dict[str, Any]]] = None,
    headers: Optional[dict[str, str]] = None,
) -> JSONResponse:
    envelope = ApiResponse.fail(message, code=code, issues=issues)
    return JSONResponse(status_code=status_code, content=envelope.to_payload(), headers=headers)
