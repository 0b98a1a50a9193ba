"""Tests for settings parsing and limiter construction from settings."""

import pytest

from campus_api.adapters.rate_limit.base import RateLimitPolicy
from campus_api.core.config import AppSettings, parse_endpoints
from campus_api.core.rate_limit import build_admission_limiter

AUTH_ENDPOINTS = {
    "/api/auth/student/login",
    "/api/auth/club/login",
    "/api/auth/student/register",
    "/api/auth/club/register",
}


class TestParseEndpoints:
    def test_normalizes_case_and_whitespace(self) -> None:
        result = parse_endpoints(" /API/Auth/Student/Login , /api/auth/club/login ")
        assert result == {"/api/auth/student/login", "/api/auth/club/login"}

    @pytest.mark.parametrize("raw", [None, "", "  ,  , "])
    def test_empty_input_gives_empty_set(self, raw) -> None:
        assert parse_endpoints(raw) == frozenset()

    def test_duplicates_collapse(self) -> None:
        assert parse_endpoints("/a,/A,/a") == {"/a"}


class TestAppSettings:
    def test_defaults_protect_auth_endpoints(self) -> None:
        assert AppSettings().protected_endpoints == AUTH_ENDPOINTS

    def test_env_overrides(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("APP_RATE_LIMIT_REQUESTS", "3")
        monkeypatch.setenv("APP_RATE_LIMIT_WINDOW_SECONDS", "30")
        monkeypatch.setenv("APP_RATE_LIMIT_PROTECTED_ENDPOINTS", "/api/auth/admin/login")

        cfg = AppSettings()

        assert cfg.rate_limit_requests == 3
        assert cfg.rate_limit_window_seconds == 30
        assert cfg.protected_endpoints == {"/api/auth/admin/login"}

    def test_rejects_non_positive_threshold(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("APP_RATE_LIMIT_REQUESTS", "0")

        with pytest.raises(ValueError):
            AppSettings()


class TestBuildAdmissionLimiter:
    def test_default_policies(self) -> None:
        limiter = build_admission_limiter(AppSettings())

        assert limiter.policy_for("/api/auth/student/login") == RateLimitPolicy(5, 900)
        assert limiter.policy_for("/api/auth/club/login") == RateLimitPolicy(5, 900)
        assert limiter.policy_for("/api/auth/student/register") == RateLimitPolicy(10, 3600)
        assert limiter.policy_for("/api/auth/club/register") == RateLimitPolicy(10, 3600)

    def test_new_limiter_has_no_state(self) -> None:
        assert build_admission_limiter(AppSettings()).tracked_keys() == 0
