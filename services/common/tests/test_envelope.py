import json

import pytest
from pydantic import ValidationError

from school_common.envelope import ApiResponse, error_response, success_response


def test_success_payload_shape() -> None:
    payload = ApiResponse.ok({"id": 1, "notes": None}).to_payload()
    assert payload["success"] is True
    assert payload["data"] == {"id": 1, "notes": None}
    assert "error" not in payload
    assert payload["timestamp"].endswith("Z")


def test_error_payload_shape() -> None:
    payload = ApiResponse.fail("School not found or inactive", code="NOT_FOUND").to_payload()
    assert payload["success"] is False
    assert payload["error"] == {"message": "School not found or inactive", "code": "NOT_FOUND"}
    assert "data" not in payload


@pytest.mark.parametrize(
    "kwargs",
    [
        {"success": True},
        {"success": True, "data": {}, "error": {"message": "boom"}},
        {"success": False},
        {"success": False, "data": {"x": 1}, "error": {"message": "boom"}},
    ],
)
def test_inconsistent_envelopes_are_rejected(kwargs) -> None:
    with pytest.raises(ValidationError):
        ApiResponse(**kwargs)


def test_response_helpers_set_status_and_body() -> None:
    created = success_response({"recordsCreated": 2}, status_code=201)
    assert created.status_code == 201
    assert json.loads(created.body)["data"] == {"recordsCreated": 2}

    failed = error_response(400, "Input validation failed", code="VALIDATION_FAILED", issues=[{"path": ["a"], "message": "m"}])
    body = json.loads(failed.body)
    assert failed.status_code == 400
    assert body["error"]["issues"] == [{"path": ["a"], "message": "m"}]
