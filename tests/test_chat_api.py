"""Tests for the HTTP surface."""

import hashlib
from unittest.mock import Mock

import pytest
from fastapi.testclient import TestClient

from chatproxy.app.api.chat import get_client_key
from chatproxy.app.main import create_app
from chatproxy.app.providers.mock import MockProvider


@pytest.fixture
def app(test_settings, provider):
    return create_app(settings=test_settings, provider=provider)


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client


def chat(client, message, ip="10.0.0.1"):
    return client.post(
        "/api/chat", json={"message": message}, headers={"X-Forwarded-For": ip}
    )


class TestChatEndpoint:

    def test_answer_then_cache_hit(self, client, provider):
        first = chat(client, "What is Python?")
        second = chat(client, "What is Python?")

        assert first.status_code == 200
        assert first.json() == {"response": "# Answer"}
        assert first.headers["X-Cache"] == "MISS"
        assert second.json() == {"response": "# Answer"}
        assert second.headers["X-Cache"] == "HIT"
        assert provider.calls == 1

    def test_model_info_command(self, client, provider):
        resp = chat(client, "!modelinfo")

        assert resp.status_code == 200
        assert resp.json() == {"model": "test-model"}
        assert "X-Cache" not in resp.headers
        assert provider.calls == 0

    def test_message_too_long(self, client):
        resp = chat(client, "x" * 51)

        assert resp.status_code == 400
        assert resp.json() == {"error": "Message too long (max 50 chars)"}

    def test_rate_limited(self, client):
        for i in range(3):
            assert chat(client, f"question {i}").status_code == 200

        resp = chat(client, "one more")

        assert resp.status_code == 429
        assert resp.json() == {"error": "Rate limit exceeded"}
        assert int(resp.headers["Retry-After"]) >= 1
        assert resp.headers["X-RateLimit-Limit"] == "3"
        assert resp.headers["X-RateLimit-Remaining"] == "0"

    def test_forwarded_header_identifies_client(self, client):
        for i in range(3):
            client.post("/api/chat", json={"message": f"q{i}"}, headers={"Forwarded": "for=10.0.0.5"})

        limited = client.post("/api/chat", json={"message": "q"}, headers={"Forwarded": "for=10.0.0.5"})
        other = client.post("/api/chat", json={"message": "q"}, headers={"Forwarded": "for=10.0.0.6"})

        assert limited.status_code == 429
        assert other.status_code == 200

    def test_clients_are_limited_independently(self, client):
        for i in range(3):
            chat(client, f"question {i}", ip="10.0.0.1")
        assert chat(client, "question", ip="10.0.0.1").status_code == 429
        assert chat(client, "question", ip="10.0.0.2").status_code == 200

    def test_rate_limit_headers_on_success(self, client):
        resp = chat(client, "hello")
        assert resp.headers["X-RateLimit-Limit"] == "3"
        assert resp.headers["X-RateLimit-Remaining"] == "2"

    def test_upstream_failure(self, test_settings):
        app = create_app(settings=test_settings, provider=MockProvider(fail=True))
        with TestClient(app) as client:
            resp = chat(client, "question")

        assert resp.status_code == 500
        assert resp.json() == {"error": "LLM API error"}

    @pytest.mark.parametrize("body", [{}, {"message": 5}, {"text": "hi"}])
    def test_invalid_body(self, client, body):
        resp = client.post("/api/chat", json=body)
        assert resp.status_code == 422

    def test_unexpected_error_returns_generic_500(self, test_settings, provider):
        app = create_app(settings=test_settings, provider=provider)
        app.state.orchestrator.handle = Mock(side_effect=RuntimeError("boom"))
        with TestClient(app, raise_server_exceptions=False) as client:
            resp = chat(client, "question")

        assert resp.status_code == 500
        assert resp.json()["error"] == "Internal server error"
        assert "boom" not in resp.text


class TestMiddleware:

    def test_security_headers(self, client):
        resp = client.get("/health")
        assert resp.headers["X-Content-Type-Options"] == "nosniff"
        assert resp.headers["X-Frame-Options"] == "sameorigin"
        assert resp.headers["X-XSS-Protection"] == "1; mode=block"
        assert "default-src 'self'" in resp.headers["Content-Security-Policy"]

    def test_request_id_echoed(self, client):
        resp = client.get("/health", headers={"X-Request-ID": "req-123"})
        assert resp.headers["X-Request-ID"] == "req-123"

    def test_request_id_generated(self, client):
        resp = client.get("/health")
        assert len(resp.headers["X-Request-ID"]) == 36


class TestInfoEndpoints:

    def test_health(self, client):
        chat(client, "hello")
        chat(client, "hello")

        resp = client.get("/health")

        assert resp.status_code == 200
        data = resp.json()
        assert data["status"] == "healthy"
        assert "timestamp" in data
        assert data["components"]["cache"]["size"] == 1
        assert data["components"]["cache"]["hits"] == 1
        assert data["components"]["rate_limiter"]["tracked_clients"] == 1

    def test_example_reads_file(self, client, test_settings):
        test_settings.example_response_path.write_text("# Example", encoding="utf-8")
        resp = client.get("/example")
        assert resp.json() == {"response": "# Example"}

    def test_example_missing_file(self, client):
        resp = client.get("/example")
        assert resp.status_code == 200
        assert resp.json() == {"response": ""}

    def test_index_shows_model_and_endpoint(self, client):
        resp = client.get("/")

        assert resp.status_code == 200
        assert resp.headers["content-type"].startswith("text/html")
        assert "test-model" in resp.text
        assert "https://llm.test/v1" in resp.text

    def test_index_escapes_configured_values(self, test_settings, provider):
        test_settings.llm_model_name = "<script>x</script>"
        with TestClient(create_app(settings=test_settings, provider=provider)) as client:
            resp = client.get("/")

        assert "<script>x</script>" not in resp.text
        assert "&lt;script&gt;" in resp.text

    def test_api_docs_page(self, client):
        resp = client.get("/api/docs")

        assert resp.status_code == 200
        assert resp.headers["content-type"].startswith("text/html")
        assert "swagger-ui" in resp.text
        assert "/openapi.json" in resp.text

    def test_openapi_schema_lists_chat_route(self, client):
        paths = client.get("/openapi.json").json()["paths"]
        assert "/api/chat" in paths
        assert "/" not in paths

    def test_default_docs_route_disabled(self, client):
        assert client.get("/docs").status_code == 404


class TestClientKey:

    def _request(self, headers, host="192.168.1.1"):
        request = Mock()
        request.headers = headers
        request.client.host = host
        return request

    def test_key_from_peer_address_is_hashed(self):
        key = get_client_key(self._request({}))
        expected = hashlib.sha256("192.168.1.1".encode()).hexdigest()[:32]
        assert key == f"ratelimit:ip:{expected}"
        assert "192.168.1.1" not in key

    def test_key_from_first_forwarded_hop(self):
        key = get_client_key(self._request({"X-Forwarded-For": "10.0.0.1, 192.168.1.1"}))
        expected = hashlib.sha256("10.0.0.1".encode()).hexdigest()[:32]
        assert key == f"ratelimit:ip:{expected}"

    def test_rfc7239_forwarded_preferred_over_x_forwarded_for(self):
        request = self._request({
            "Forwarded": 'for="10.0.0.7";proto=https, for=10.0.0.8',
            "X-Forwarded-For": "10.0.0.1",
        })
        expected = hashlib.sha256("10.0.0.7".encode()).hexdigest()[:32]
        assert get_client_key(request) == f"ratelimit:ip:{expected}"

    def test_forwarded_without_for_falls_back_to_x_forwarded_for(self):
        request = self._request({
            "Forwarded": "proto=https;by=10.0.0.9",
            "X-Forwarded-For": "10.0.0.1",
        })
        expected = hashlib.sha256("10.0.0.1".encode()).hexdigest()[:32]
        assert get_client_key(request) == f"ratelimit:ip:{expected}"

    def test_rfc7239_forwarded_ignored_when_untrusted(self):
        request = self._request({"Forwarded": "for=10.0.0.7"})
        expected = hashlib.sha256("192.168.1.1".encode()).hexdigest()[:32]
        assert get_client_key(request, trust_forwarded_for=False) == f"ratelimit:ip:{expected}"

    def test_forwarded_header_ignored_when_untrusted(self):
        request = self._request({"X-Forwarded-For": "10.0.0.1"})
        expected = hashlib.sha256("192.168.1.1".encode()).hexdigest()[:32]
        assert get_client_key(request, trust_forwarded_for=False) == f"ratelimit:ip:{expected}"

    def test_missing_client_falls_back_to_unknown(self):
        request = Mock()
        request.headers = {}
        request.client = None
        expected = hashlib.sha256("unknown".encode()).hexdigest()[:32]
        assert get_client_key(request) == f"ratelimit:ip:{expected}"
