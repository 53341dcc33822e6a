import pytest
from starlette.datastructures import Headers

from school_common.context import ContextMode, Identity, OperatingContext
from school_common.headers import (
    TRUST_HEADERS,
    deserialize,
    deserialize_context,
    extract_identity,
    serialize_context,
    strip_raw_trust_headers,
    strip_trust_headers,
)

CONTEXTS = [
    OperatingContext.platform(),
    OperatingContext.school(subdomain="acme"),
    OperatingContext.school(subdomain="acme", tenant_id="school-1", tenant_slug="acme"),
    OperatingContext.school(tenant_id="school-2"),
]
IDENTITIES = [
    Identity(),
    Identity(user_id="user-1"),
    Identity(user_id="user-1", role_id="role-9", role_name="TEACHER"),
]


@pytest.mark.parametrize("context", CONTEXTS)
@pytest.mark.parametrize("identity", IDENTITIES)
def test_serialized_headers_read_back_identically(context: OperatingContext, identity: Identity) -> None:
    headers = Headers(headers=serialize_context(context, identity))
    assert deserialize(headers) == (context, identity)


def test_null_fields_are_omitted() -> None:
    headers = serialize_context(OperatingContext.platform(), Identity(user_id="u"))
    assert headers == {"x-context": "platform", "x-user-id": "u"}
    assert "null" not in headers.values()


def test_missing_headers_mean_null_fields() -> None:
    assert deserialize_context({}) == OperatingContext.platform()
    assert extract_identity({}) == Identity()


def test_header_names_are_case_insensitive() -> None:
    raw = {"X-Context": "school", "X-Tenant-Id": "school-1", "X-User-Role-Name": "ADMIN"}
    context, identity = deserialize(raw)
    assert context.mode is ContextMode.SCHOOL
    assert context.tenant_id == "school-1"
    assert identity.role_name == "ADMIN"


def test_unknown_context_value_falls_back_to_platform() -> None:
    assert deserialize_context({"x-context": "webhook"}).mode is ContextMode.PLATFORM


def test_empty_values_are_treated_as_absent() -> None:
    assert extract_identity({"x-user-id": ""}).user_id is None


def test_strip_trust_headers_removes_every_trust_header() -> None:
    incoming = [("X-User-Id", "forged"), ("x-context", "school"), ("Authorization", "Bearer t"), ("X-Tenant-Slug", "x")]
    assert strip_trust_headers(incoming) == [("Authorization", "Bearer t")]

    raw = [(name.encode(), b"v") for name in TRUST_HEADERS] + [(b"accept", b"*/*")]
    assert strip_raw_trust_headers(raw) == [(b"accept", b"*/*")]
