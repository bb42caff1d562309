"""Tests for /analyze, /health and /version."""

import pytest

from sentiment_service.exceptions import StorageError
from sentiment_service.llm.exceptions import BackendTimeout, BackendUnavailable, MalformedResponse
from sentiment_service.main import create_app
from sentiment_service.service.fingerprint import compute_fingerprint


class TestAnalyze:
    def test_analyze_success(self, client, fake_client):
        response = client.post("/analyze", json={"text": "I love this product"})

        assert response.status_code == 200
        body = response.json()
        assert body["label"] == "POSITIVE"
        assert body["confidence"] > 0.5
        assert body["model_id"] == "fake-model"
        assert body["fingerprint"] == compute_fingerprint("I love this product")
        assert body["request_id"] == response.headers["X-Request-ID"]
        assert fake_client.calls == 1

    def test_request_id_from_header_and_body(self, client):
        from_header = client.post(
            "/analyze",
            json={"text": "I love this product"},
            headers={"X-Request-ID": "req-123"},
        )
        from_body = client.post("/analyze", json={"text": "I love this product", "request_id": "body-7"})

        assert from_header.headers["X-Request-ID"] == "req-123"
        assert from_header.json()["request_id"] == "req-123"
        assert from_body.json()["request_id"] == "body-7"

    def test_empty_text_is_400(self, client, fake_client):
        response = client.post("/analyze", json={"text": ""})

        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "invalid_input"
        assert set(body) == {"error", "message", "details", "timestamp"}
        assert fake_client.calls == 0

    def test_missing_text_is_422(self, client):
        response = client.post("/analyze", json={"request_id": "x"})

        assert response.status_code == 422
        assert response.json()["error"] == "invalid_request"

    @pytest.mark.parametrize(
        "error,status_code,code",
        [
            (BackendUnavailable("refused", retryable=True), 502, "backend_unavailable"),
            (BackendTimeout("slow"), 504, "backend_timeout"),
            (MalformedResponse("garbage", raw_content="???"), 502, "malformed_backend_response"),
        ],
    )
    def test_backend_errors(self, client, fake_client, error, status_code, code):
        fake_client.script = [error]

        response = client.post("/analyze", json={"text": "something"})

        assert response.status_code == status_code
        assert response.json()["error"] == code

    def test_open_circuit_is_503_with_retry_after(self, client, fake_client, breaker):
        for _ in range(3):
            breaker.record_failure(BackendTimeout("slow"), 1.0)

        response = client.post("/analyze", json={"text": "I love this product"})

        assert response.status_code == 503
        body = response.json()
        assert body["error"] == "service_overloaded"
        assert body["details"]["reason"] == "circuit_open"
        assert response.headers["Retry-After"] == "30"
        assert fake_client.calls == 0

    def test_storage_error_is_500(self, client, memory_store, monkeypatch):
        async def failing_upsert(fingerprint, result):
            raise StorageError("disk full")

        monkeypatch.setattr(memory_store, "upsert", failing_upsert)

        response = client.post("/analyze", json={"text": "I love this product"})

        assert response.status_code == 500
        assert response.json()["error"] == "storage_error"


class TestStoredResult:
    def test_get_stored_result(self, client):
        created = client.post("/analyze", json={"text": "I love this product"}).json()

        response = client.get(f"/analyze/{created['fingerprint']}")

        assert response.status_code == 200
        assert response.json()["label"] == created["label"]
        assert response.json()["request_id"] is None

    def test_unknown_fingerprint_is_404(self, client):
        assert client.get(f"/analyze/{'0' * 64}").status_code == 404

    def test_malformed_fingerprint_is_400(self, client):
        response = client.get("/analyze/not-a-hash")

        assert response.status_code == 400
        assert response.json()["error"] == "invalid_input"


class TestHealth:
    def test_healthy(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["services"] == {"ollama": "ok", "result_store": "ok", "circuit": "CLOSED"}
        assert body["backend_load"]["in_flight"] == 0

    def test_degraded_when_circuit_open(self, client, breaker):
        for _ in range(3):
            breaker.record_failure(BackendTimeout("slow"), 1.0)

        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "degraded"
        assert response.json()["services"]["circuit"] == "OPEN"

    def test_unhealthy_when_backend_unreachable(self, client, fake_client, monkeypatch):
        async def unreachable():
            return False

        monkeypatch.setattr(fake_client, "health_check", unreachable)

        response = client.get("/health")

        assert response.status_code == 503
        assert response.json()["status"] == "unhealthy"
        assert response.json()["services"]["ollama"] == "unreachable"


def test_version(client, test_settings):
    body = client.get("/version").json()

    assert body["service_version"] == test_settings.APP_VERSION
    assert body["model_name"] == "fake-model"
    assert body["result_store"] == "memory"
    assert body["labels"] == ["POSITIVE", "NEGATIVE", "NEUTRAL", "MIXED"]
    assert body["config"]["max_text_length"] == "200"


def test_root(client, test_settings):
    body = client.get("/").json()

    assert body["service"] == test_settings.APP_NAME
    assert body["metrics"] is None


@pytest.mark.parametrize("debug", [True, False])
def test_debug_setting_reaches_app(test_settings, coordinator, debug):
    app = create_app(
        app_settings=test_settings.model_copy(update={"DEBUG": debug}),
        coordinator=coordinator,
    )

    assert app.debug is debug
