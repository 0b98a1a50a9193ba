"""Integration tests for admission limiting with a real HTTP server.

These tests start an actual Uvicorn server so concurrent requests go through
the full ASGI stack, avoiding TestClient's in-process shortcuts. They rely on
the shipped login policy of 5 requests per 15 minutes.
"""

import asyncio
import multiprocessing
import time
from typing import Generator

import httpx
import pytest
import uvicorn

LOGIN_LIMIT = 5
LOGIN_WINDOW_SECONDS = 900
STUDENT_LOGIN = "/api/auth/student/login"


def run_server():
    """Run the FastAPI server in a separate process."""
    uvicorn.run(
        "campus_api.main:app",
        host="127.0.0.1",
        port=8011,
        log_level="error",
        access_log=False,
    )


@pytest.fixture(scope="module")
def server() -> Generator[str, None, None]:
    """Start server in background process for integration tests."""
    process = multiprocessing.Process(target=run_server, daemon=True)
    process.start()

    base_url = "http://127.0.0.1:8011"
    for _ in range(50):
        try:
            response = httpx.get(f"{base_url}/health", timeout=1.0)
            if response.status_code == 200:
                break
        except (httpx.ConnectError, httpx.ReadTimeout):
            time.sleep(0.1)
    else:
        process.terminate()
        pytest.fail("Server failed to start")

    yield base_url

    process.terminate()
    process.join(timeout=5)


class TestAdmissionIntegration:
    def test_login_burst_is_throttled(self, server: str) -> None:
        headers = {"X-Forwarded-For": "198.51.100.1"}

        statuses = [
            httpx.post(f"{server}{STUDENT_LOGIN}", headers=headers, timeout=5.0).status_code
            for _ in range(LOGIN_LIMIT)
        ]
        # No login route is mounted in this service; admitted requests reach the router
        assert statuses == [404] * LOGIN_LIMIT

        response = httpx.post(f"{server}{STUDENT_LOGIN}", headers=headers, timeout=5.0)

        assert response.status_code == 429
        assert response.json()["message"] == "Too many requests. Please try again later."
        retry_after = int(response.headers["Retry-After"])
        assert 0 < retry_after <= LOGIN_WINDOW_SECONDS

    def test_concurrent_burst_admits_exactly_the_limit(self, server: str) -> None:
        headers = {"X-Forwarded-For": "198.51.100.2"}

        async def _burst() -> list[int]:
            async with httpx.AsyncClient(base_url=server, timeout=10.0) as client:
                responses = await asyncio.gather(
                    *(client.post(STUDENT_LOGIN, headers=headers) for _ in range(20))
                )
            return [r.status_code for r in responses]

        statuses = asyncio.run(_burst())

        assert statuses.count(429) == 20 - LOGIN_LIMIT
        assert statuses.count(404) == LOGIN_LIMIT

    def test_health_is_never_throttled(self, server: str) -> None:
        headers = {"X-Forwarded-For": "198.51.100.3"}

        for _ in range(3 * LOGIN_LIMIT):
            response = httpx.get(f"{server}/health", headers=headers, timeout=5.0)
            assert response.status_code == 200
