"""End-to-end tests of the access gate through the HTTP API."""

from datetime import datetime

import pytest
from fastapi.testclient import TestClient

from c6os.adapters.rate_limit.in_memory import InMemorySlidingWindowRateLimiter
from c6os.core.rate_limit import RateLimiters
from conftest import FakeClock, bearer, make_token


def _limiters(clock: FakeClock, *, limit: int = 5, window_seconds: float = 60) -> RateLimiters:
    return RateLimiters(
        default=InMemorySlidingWindowRateLimiter(limit=limit, window_seconds=window_seconds, clock=clock),
        strict=InMemorySlidingWindowRateLimiter(limit=5, window_seconds=60, clock=clock),
    )


class TestAuthentication:
    def test_missing_header_in_production_is_401(self, client: TestClient) -> None:
        response = client.get("/api/agents/status")

        assert response.status_code == 401
        body = response.json()
        assert body["error"] == "Authentication required"
        assert body["code"] == "AUTHENTICATION_REQUIRED"
        assert body["message"]
        assert response.headers["WWW-Authenticate"] == "Bearer"

    def test_invalid_token_is_401(self, client: TestClient) -> None:
        response = client.get("/api/agents/status", headers=bearer("garbage"))

        assert response.status_code == 401
        body = response.json()
        assert body["error"] == "Invalid token"
        assert body["code"] == "INVALID_TOKEN"
        assert "details" not in body

    def test_token_signed_with_other_secret_is_401(self, client: TestClient) -> None:
        response = client.get("/api/agents/status", headers=bearer(make_token("wrong")))

        assert response.status_code == 401
        assert response.json()["error"] == "Invalid token"

    def test_no_verifier_configured_rejects_tokens(self, make_app) -> None:
        client = TestClient(make_app(jwt_secret=None))

        response = client.get("/api/agents/status", headers=bearer(make_token()))

        assert response.status_code == 401
        assert response.json()["code"] == "INVALID_TOKEN"

    def test_valid_token_is_admitted(self, client: TestClient) -> None:
        response = client.get("/api/agents/status", headers=bearer(make_token()))

        assert response.status_code == 200
        data = response.json()["data"]
        assert set(data["agents"]) == {"architect", "executor", "observer"}
        assert data["summary"]["totalAgents"] == 3

    def test_development_mode_admits_without_header(self, make_app) -> None:
        client = TestClient(make_app(app_env="development"))

        response = client.get("/api/system/info")

        assert response.status_code == 200
        principal = response.json()["data"]["principal"]
        assert principal["id"] == "dev-user"
        assert principal["role"] == "admin"
        assert principal["auth_source"] == "development"

    def test_health_is_public(self, client: TestClient) -> None:
        response = client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["version"] == "1.0.0"
        assert "X-RateLimit-Limit" not in response.headers


class TestRoleGuard:
    def test_moderator_denied_admin_endpoint(self, client: TestClient) -> None:
        response = client.put(
            "/api/agents/architect/config",
            json={"configuration": {"mode": "fast"}},
            headers=bearer(make_token(role="moderator")),
        )

        assert response.status_code == 403
        body = response.json()
        assert body["error"] == "Insufficient permissions"
        assert body["code"] == "INSUFFICIENT_PERMISSIONS"
        assert body["message"] == "This endpoint requires admin role or higher"

    def test_super_admin_granted_admin_endpoint(self, client: TestClient) -> None:
        response = client.post(
            "/api/system/configure",
            json={"configuration": {"maintenance": True}},
            headers=bearer(make_token(sub="root-1", role="super_admin")),
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["appliedBy"] == "root-1"
        assert data["target"] == "system"

    def test_unauthenticated_role_check_is_401_not_403(self, client: TestClient) -> None:
        response = client.put("/api/agents/architect/config", json={"configuration": {"a": 1}})

        assert response.status_code == 401


class TestRateLimit:
    def test_headers_attached_to_gated_responses(self, make_app) -> None:
        client = TestClient(make_app(max_requests=10))

        response = client.get("/api/agents/status", headers=bearer(make_token()))

        assert response.headers["X-RateLimit-Limit"] == "10"
        assert response.headers["X-RateLimit-Remaining"] == "9"
        reset = response.headers["X-RateLimit-Reset"]
        assert reset.endswith("Z")
        datetime.fromisoformat(reset.replace("Z", "+00:00"))

    def test_quota_exhaustion_returns_429(self, make_app, fake_clock) -> None:
        client = TestClient(make_app(rate_limiters=_limiters(fake_clock)))
        headers = bearer(make_token(sub="u1"))

        remaining = [
            client.get("/api/agents/status", headers=headers).headers["X-RateLimit-Remaining"]
            for _ in range(5)
        ]
        assert remaining == ["4", "3", "2", "1", "0"]

        fake_clock.advance(0.5)
        response = client.get("/api/agents/status", headers=headers)

        assert response.status_code == 429
        error = response.json()["error"]
        assert error["code"] == "RATE_LIMIT_EXCEEDED"
        assert error["status"] == 429
        assert error["retryAfter"] == 60
        assert error["limit"] == 5
        assert error["windowMs"] == 60_000
        assert response.headers["Retry-After"] == "60"
        assert response.headers["X-RateLimit-Remaining"] == "0"

        fake_clock.advance(60.5)
        response = client.get("/api/agents/status", headers=headers)

        assert response.status_code == 200
        assert response.headers["X-RateLimit-Remaining"] == "4"

    def test_principals_do_not_interfere(self, make_app, fake_clock) -> None:
        client = TestClient(make_app(rate_limiters=_limiters(fake_clock, limit=2)))
        alice = bearer(make_token(sub="alice"))
        bob = bearer(make_token(sub="bob"))

        client.get("/api/agents/status", headers=alice)
        client.get("/api/agents/status", headers=alice)
        assert client.get("/api/agents/status", headers=alice).status_code == 429

        response = client.get("/api/agents/status", headers=bob)
        assert response.status_code == 200
        assert response.headers["X-RateLimit-Remaining"] == "1"

    def test_strict_limiter_guards_sensitive_endpoint(self, client: TestClient) -> None:
        headers = bearer(make_token(sub="admin-1", role="admin"))
        body = {"configuration": {"mode": "safe"}}

        for _ in range(5):
            assert client.put("/api/agents/executor/config", json=body, headers=headers).status_code == 200

        response = client.put("/api/agents/executor/config", json=body, headers=headers)

        assert response.status_code == 429
        error = response.json()["error"]
        assert error["code"] == "STRICT_RATE_LIMIT_EXCEEDED"
        assert error["message"] == "Too many requests to sensitive endpoint"
        assert error["limit"] == 5
        assert error["windowMs"] == 60_000

    def test_strict_and_default_tables_use_distinct_keys(self, client: TestClient) -> None:
        headers = bearer(make_token(sub="admin-2", role="admin"))
        client.put("/api/agents/observer/config", json={"configuration": {"x": 1}}, headers=headers)

        limiters = client.app.state.rate_limiters
        assert limiters.default.get_record("user:admin-2").count == 1
        assert limiters.strict.get_record("strict:user:admin-2").count == 1
        assert limiters.strict.get_record("user:admin-2") is None
        assert limiters.default.get_record("strict:user:admin-2") is None

    def test_strict_quota_does_not_consume_default_quota_of_others(self, client: TestClient) -> None:
        admin = bearer(make_token(sub="admin-3", role="admin"))
        for _ in range(6):
            client.put("/api/agents/observer/config", json={"configuration": {"x": 1}}, headers=admin)

        response = client.get("/api/agents/status", headers=admin)

        assert response.status_code == 200
        assert response.headers["X-RateLimit-Remaining"] == str(100 - 7)

    def test_role_rejection_keeps_quota_headers(self, client: TestClient) -> None:
        response = client.put(
            "/api/agents/architect/config",
            json={"configuration": {"mode": "fast"}},
            headers=bearer(make_token(sub="mod-1", role="moderator")),
        )

        assert response.status_code == 403
        assert response.headers["X-RateLimit-Limit"] == "100"
        assert response.headers["X-RateLimit-Remaining"] == "99"
        assert response.headers["X-RateLimit-Reset"].endswith("Z")

    @pytest.mark.parametrize(
        "path, body",
        [
            ("/api/agents/nope/command", {"command": "start"}),
            ("/api/agents/executor/command", {"command": "explode"}),
            ("/api/agents/executor/command", {"parameters": "not-a-dict"}),
        ],
    )
    def test_route_rejection_keeps_quota_headers(self, client: TestClient, path: str, body: dict) -> None:
        response = client.post(path, json=body, headers=bearer(make_token(sub="u-400")))

        assert response.status_code == 400
        assert response.headers["X-RateLimit-Limit"] == "100"
        assert response.headers["X-RateLimit-Remaining"] == "99"

    def test_sensitive_route_rejection_reports_strict_quota(self, client: TestClient) -> None:
        response = client.put(
            "/api/agents/architect/config",
            json={"configuration": None},
            headers=bearer(make_token(sub="admin-400", role="admin")),
        )

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "MISSING_CONFIGURATION"
        assert response.headers["X-RateLimit-Limit"] == "5"
        assert response.headers["X-RateLimit-Remaining"] == "4"

    def test_authentication_failure_has_no_quota_headers(self, client: TestClient) -> None:
        response = client.get("/api/agents/status", headers=bearer("garbage"))

        assert response.status_code == 401
        assert "X-RateLimit-Limit" not in response.headers

    def test_disabled_rate_limit_adds_no_headers(self, make_app) -> None:
        client = TestClient(make_app(rate_limit_enabled=False, max_requests=1))
        headers = bearer(make_token())

        for _ in range(3):
            response = client.get("/api/agents/status", headers=headers)
            assert response.status_code == 200
            assert "X-RateLimit-Limit" not in response.headers

    def test_authentication_failure_does_not_consume_quota(self, client: TestClient) -> None:
        client.get("/api/agents/status", headers=bearer("garbage"))

        assert len(client.app.state.rate_limiters.default) == 0


class TestApiIndex:
    def test_index_is_public_and_rate_limited_by_address(self, client: TestClient) -> None:
        response = client.get("/api")

        assert response.status_code == 200
        assert response.json()["endpoints"]["health"] == "/health"
        assert response.headers["X-RateLimit-Limit"] == "100"
        assert client.app.state.rate_limiters.default.get_record("ip:testclient") is not None

    def test_index_keys_by_principal_when_token_valid(self, client: TestClient) -> None:
        client.get("/api", headers=bearer(make_token(sub="carol")))

        limiter = client.app.state.rate_limiters.default
        assert limiter.get_record("user:carol") is not None
        assert limiter.get_record("ip:testclient") is None

    def test_index_ignores_invalid_token(self, client: TestClient) -> None:
        response = client.get("/api", headers=bearer("garbage"))

        assert response.status_code == 200


def test_unknown_route_lists_public_endpoints(client: TestClient) -> None:
    response = client.get("/nope")

    assert response.status_code == 404
    body = response.json()
    assert body["error"] == "Endpoint not found"
    assert body["message"] == "Cannot GET /nope"
    assert body["availableEndpoints"] == ["/health", "/api"]


@pytest.mark.parametrize("path", ["/api/agents/status", "/api/system/info"])
def test_request_id_echoed_on_gated_routes(client: TestClient, path: str) -> None:
    response = client.get(path, headers={**bearer(make_token()), "X-Request-ID": "req-1"})

    assert response.headers["X-Request-ID"] == "req-1"
