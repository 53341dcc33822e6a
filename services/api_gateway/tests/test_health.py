def test_gateway_health(make_client) -> None:
    response = make_client(host="example.com").get("/health")

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["data"] == {"status": "OK", "service": "api-gateway", "version": "1.0.0"}


def test_all_services_healthy(make_client, upstream) -> None:
    response = make_client(host="example.com").get("/health/services")

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["gateway"] == "healthy"
    assert {entry["service"] for entry in data["services"]} == {
        "auth-service",
        "school-service",
        "profile-service",
        "attendance-service",
    }
    assert all(entry["status"] == "healthy" for entry in data["services"])
    assert all("responseTimeMs" in entry for entry in data["services"])
    assert len(upstream.requests) == 4


def test_unreachable_service_makes_aggregate_unhealthy(make_client, upstream) -> None:
    upstream.unreachable.add("attendance.internal")
    response = make_client(host="example.com").get("/health/services")

    assert response.status_code == 503
    body = response.json()
    assert body["success"] is False
    assert body["error"]["message"] == "Unhealthy services: attendance-service"
    assert body["error"]["code"] == "SERVICES_UNHEALTHY"


def test_unconfigured_service_is_unhealthy(make_client, settings) -> None:
    partial = settings.model_copy(update={"profile_service_url": None})
    response = make_client(host="example.com", settings_override=partial).get("/health/services")

    assert response.status_code == 503
    assert response.json()["error"]["message"] == "Unhealthy services: profile-service"
