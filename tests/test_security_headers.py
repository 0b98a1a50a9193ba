"""Tests for the security headers middleware."""

from fastapi.testclient import TestClient

from campus_api.core.app_factory import create_app
from campus_api.core.config import AppSettings, Settings
from campus_api.core.middleware import HSTS_HEADER, SECURITY_HEADERS


def test_all_security_headers_present(client: TestClient) -> None:
    response = client.get("/health")

    assert response.status_code == 200
    for name, value in SECURITY_HEADERS.items():
        assert response.headers.get(name) == value, f"Missing header: {name}"


def test_expected_header_values(client: TestClient) -> None:
    headers = client.get("/health").headers

    assert headers["X-Content-Type-Options"] == "nosniff"
    assert headers["X-Frame-Options"] == "DENY"
    assert headers["X-XSS-Protection"] == "1; mode=block"
    assert headers["Referrer-Policy"] == "strict-origin-when-cross-origin"
    assert headers["Content-Security-Policy"] == "default-src 'self'"


def test_non_local_host_gets_hsts(app) -> None:
    client = TestClient(app, base_url="https://api.example.com")

    hsts = client.get("/health").headers.get(HSTS_HEADER)

    assert hsts is not None
    assert "max-age=" in hsts


def test_localhost_skips_hsts(app) -> None:
    client = TestClient(app, base_url="http://localhost:8000")

    response = client.get("/health")

    assert HSTS_HEADER not in response.headers
    assert response.headers["X-Frame-Options"] == "DENY"


def test_error_responses_also_hardened(client: TestClient) -> None:
    response = client.get("/does-not-exist")

    assert response.status_code == 404
    assert response.headers["X-Content-Type-Options"] == "nosniff"


def test_headers_can_be_disabled() -> None:
    settings = Settings(app=AppSettings(security_headers_enabled=False))
    client = TestClient(create_app(settings, configure_logs=False))

    response = client.get("/health")

    assert response.status_code == 200
    for name in SECURITY_HEADERS:
        assert name not in response.headers


def test_unhandled_error_response_is_hardened_and_correlated(app) -> None:
    @app.get("/crash")
    async def crash():
        raise RuntimeError("database connection failed")

    client = TestClient(app, raise_server_exceptions=False)

    response = client.get("/crash", headers={"X-Request-ID": "req-500"})

    assert response.status_code == 500
    assert response.json()["errors"] == ["Please try again later"]
    assert "database connection" not in response.text
    assert response.headers["X-Content-Type-Options"] == "nosniff"
    assert response.headers["X-Frame-Options"] == "DENY"
    assert response.headers["X-Request-ID"] == "req-500"
