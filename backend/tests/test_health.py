from fastapi.testclient import TestClient


def _get_client() -> TestClient:
    from dreamplan.main import app

    return TestClient(app)


def test_health_endpoint_returns_ok() -> None:
    client = _get_client()
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_request_id_generated_and_returned() -> None:
    client = _get_client()
    response = client.get("/health")

    assert response.headers.get("X-Request-Id")


def test_request_id_echoed_from_header() -> None:
    client = _get_client()
    req_id = "test-request-id-123"
    response = client.get("/health", headers={"X-Request-Id": req_id})

    assert response.headers.get("X-Request-Id") == req_id


def test_preflight_is_answered_with_permissive_cors() -> None:
    client = _get_client()
    response = client.options(
        "/functions/generate-habits",
        headers={
            "Origin": "https://example.com",
            "Access-Control-Request-Method": "POST",
            "Access-Control-Request-Headers": "content-type, apikey",
        },
    )

    assert response.status_code == 200
    assert response.headers.get("access-control-allow-origin") in {"*", "https://example.com"}
    assert "apikey" in response.headers.get("access-control-allow-headers", "").lower()
