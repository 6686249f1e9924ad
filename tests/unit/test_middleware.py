"""Tests for the app factory and request middleware."""

import pytest
from unittest.mock import patch

from api import create_app
from api.middleware.rate_limit import LIMITER_EXTENSION_KEY, RateLimiter
from api.middleware.versioning import detect_api_version
from models.db import ApiKey
from services.database import session_scope


class TestHealth:

    def test_health_is_not_enveloped(self, client):
        response = client.get("/api/health")

        assert response.status_code == 200
        body = response.get_json()
        assert body["status"] == "ok"
        assert body["version"] == "v1"
        assert "time" in body
        assert "success" not in body

    def test_cors_headers(self, client):
        response = client.get("/api/health", headers={"Origin": "http://localhost:3000"})

        assert response.headers["Access-Control-Allow-Origin"] == "*"


class TestErrors:

    def test_unknown_route(self, client):
        response = client.get("/api/v1/nope")

        assert response.status_code == 404
        assert response.get_json()["error"] == {
            "code": "NOT_FOUND",
            "message": "Requested URL /api/v1/nope does not exist",
            "details": {},
        }

    def test_method_not_allowed(self, client):
        response = client.delete("/api/v1/requirements")

        assert response.status_code == 405
        assert response.get_json()["success"] is False

    @pytest.mark.parametrize("environment,message", [
        ("development", "kaboom"),
        ("production", "An unexpected error occurred"),
    ])
    def test_unexpected_error(self, services, settings_factory, environment, message):
        app = create_app(settings_factory(environment=environment), services)

        @app.route("/api/v1/boom")
        def boom():
            raise RuntimeError("kaboom")

        response = app.test_client().get("/api/v1/boom")

        assert response.status_code == 500
        assert response.get_json()["error"]["code"] == "INTERNAL_ERROR"
        assert response.get_json()["error"]["message"] == message


class TestVersioning:

    @pytest.mark.parametrize("path,header,expected", [
        ("/api/v1/estimates", None, "v1"),
        ("/api/v2/estimates", "v1", "v2"),
        ("/api/health", "v3", "v3"),
        ("/api/health", None, "v1"),
        ("/api/version/estimates", None, "v1"),
    ])
    def test_detect_api_version(self, path, header, expected):
        assert detect_api_version(path, header, "v1") == expected

    def test_unsupported_version(self, client):
        response = client.get("/api/v2/estimates")

        assert response.status_code == 400
        error = response.get_json()["error"]
        assert error["code"] == "UNSUPPORTED_API_VERSION"
        assert error["details"] == {"supported_versions": ["v1"]}


class TestRateLimiter:

    def test_fixed_window(self):
        limiter = RateLimiter(limit=2, window_seconds=60)

        assert limiter.hit("a", now=0) == (True, 1, 60)
        assert limiter.hit("a", now=10) == (True, 0, 50)
        assert limiter.hit("a", now=20) == (False, 0, 40)
        assert limiter.hit("b", now=20)[0] is True
        assert limiter.hit("a", now=60) == (True, 1, 60)

    def test_cleanup_and_reset(self):
        limiter = RateLimiter(limit=1, window_seconds=60)
        limiter.hit("a", now=0)
        limiter.hit("b", now=30)

        limiter.cleanup(now=61)

        assert limiter.hit("a", now=61)[0] is True
        assert limiter.hit("b", now=61)[0] is False

        limiter.reset()
        assert limiter.hit("b", now=61)[0] is True

    def test_hit_drops_expired_windows_once_per_window(self):
        limiter = RateLimiter(limit=5, window_seconds=60)
        for i in range(50):
            limiter.hit(f"key-{i}", now=0)
        limiter.hit("late", now=30)

        assert len(limiter) == 51

        limiter.hit("fresh", now=61)

        assert len(limiter) == 2

        limiter.hit("other", now=100)
        assert len(limiter) == 3

    def test_app_drops_expired_client_windows(self, services, settings_factory):
        with patch("api.middleware.rate_limit.time") as clock:
            clock.time.return_value = 1000.0
            app = create_app(settings_factory(api_rate_limit=1000), services)
            client = app.test_client()
            for i in range(200):
                client.get("/api/v1/estimates", headers={"X-API-Key": f"client-{i}"})

            limiter = app.extensions[LIMITER_EXTENSION_KEY]
            assert len(limiter) == 200

            clock.time.return_value = 1000.0 + 900
            response = client.get("/api/v1/estimates", headers={"X-API-Key": "client-new"})

        assert response.status_code == 200
        assert len(limiter) == 1

    def test_requests_over_limit_are_rejected(self, services, settings_factory):
        client = create_app(settings_factory(api_rate_limit=2), services).test_client()

        first = client.get("/api/v1/estimates")
        client.get("/api/v1/estimates")
        third = client.get("/api/v1/estimates")

        assert first.headers["RateLimit-Limit"] == "2"
        assert first.headers["RateLimit-Remaining"] == "1"
        assert third.status_code == 429
        assert third.get_json()["error"]["code"] == "RATE_LIMITED"
        assert third.headers["RateLimit-Remaining"] == "0"
        assert client.get("/api/health").status_code == 200


class TestApiKeyAuth:

    @pytest.fixture
    def auth_client(self, services, settings_factory):
        with session_scope(services.session_factory) as session:
            session.add(ApiKey(key_value="valid-key", user_id="user-1"))
            session.add(ApiKey(key_value="revoked-key", is_active=False))
        return create_app(settings_factory(require_api_key=True), services).test_client()

    def test_missing_key(self, auth_client):
        response = auth_client.get("/api/v1/estimates")

        assert response.status_code == 401
        assert response.get_json()["error"]["message"] == "API key is required"

    @pytest.mark.parametrize("key", ["wrong-key", "revoked-key"])
    def test_invalid_key(self, auth_client, key):
        response = auth_client.get("/api/v1/estimates", headers={"X-API-Key": key})

        assert response.status_code == 401
        assert response.get_json()["error"]["message"] == "Invalid API key"

    def test_valid_key(self, auth_client):
        response = auth_client.get("/api/v1/estimates", headers={"X-API-Key": "valid-key"})

        assert response.status_code == 200

    def test_health_is_open(self, auth_client):
        assert auth_client.get("/api/health").status_code == 200
