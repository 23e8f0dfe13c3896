# tests/test_middleware.py
"""Tests for app/transport/middleware.py: request ID, logging and error handling."""
from __future__ import annotations

import logging

from fastapi import FastAPI
from fastapi.testclient import TestClient

from app.transport.middleware import (
    RequestIDMiddleware,
    RequestLoggingMiddleware,
    ErrorHandlingMiddleware,
)


def _build_app(raise_for: set[str] | None = None, logging_enabled: bool = True):
    """Build a minimal FastAPI app with middleware for testing."""
    app = FastAPI()
    # Order matters: ErrorHandling wraps RequestLogging wraps RequestID
    app.add_middleware(ErrorHandlingMiddleware)
    app.add_middleware(RequestLoggingMiddleware, enabled=logging_enabled)
    app.add_middleware(RequestIDMiddleware)

    raise_for = raise_for or set()

    @app.get("/test")
    def test_endpoint():
        if "/test" in raise_for:
            raise RuntimeError("boom")
        return {"ok": True}

    @app.get("/health")
    def health():
        return {"status": "healthy"}

    @app.get("/animals/{animal_id}/status")
    def animal_status(animal_id: str):
        return {"id": animal_id}

    return app


# ============================================================================
# RequestIDMiddleware
# ============================================================================

class TestRequestIDMiddleware:
    def test_generates_request_id(self):
        client = TestClient(_build_app())
        resp = client.get("/test")
        assert resp.status_code == 200
        # UUID has 36 chars with dashes
        assert len(resp.headers["X-Request-ID"]) == 36

    def test_preserves_existing_request_id(self):
        client = TestClient(_build_app())
        resp = client.get("/test", headers={"X-Request-ID": "my-custom-request-id-123"})
        assert resp.headers["X-Request-ID"] == "my-custom-request-id-123"

    def test_overlong_request_id_truncated(self):
        client = TestClient(_build_app())
        resp = client.get("/test", headers={"X-Request-ID": "r" * 500})
        assert resp.headers["X-Request-ID"] == "r" * 128

    def test_blank_request_id_replaced(self):
        client = TestClient(_build_app())
        resp = client.get("/test", headers={"X-Request-ID": "   "})
        assert len(resp.headers["X-Request-ID"]) == 36


# ============================================================================
# RequestLoggingMiddleware
# ============================================================================

def _access_records(caplog, fragment: str) -> list:
    # TestClient runs on httpx, whose own INFO lines also mention the URL
    return [
        r for r in caplog.records
        if r.name == "app.transport.middleware" and fragment in r.getMessage()
    ]


class TestRequestLoggingMiddleware:
    def test_logs_completed_request(self, caplog):
        client = TestClient(_build_app())
        with caplog.at_level(logging.INFO, logger="app.transport.middleware"):
            client.get("/test", headers={"X-Request-ID": "req-42"})

        records = _access_records(caplog, "GET /test -> 200")
        assert len(records) == 1
        assert records[0].request_id == "req-42"
        assert records[0].status_code == 200

    def test_animal_routes_tagged_with_animal_id(self, caplog):
        client = TestClient(_build_app())
        with caplog.at_level(logging.INFO, logger="app.transport.middleware"):
            client.get("/animals/pet-7/status")

        records = _access_records(caplog, "/animals/pet-7/status")
        assert records[0].animal_id == "pet-7"

    def test_health_is_quiet(self, caplog):
        client = TestClient(_build_app())
        with caplog.at_level(logging.INFO, logger="app.transport.middleware"):
            client.get("/health")
        assert not _access_records(caplog, "/health")

    def test_disabled(self, caplog):
        client = TestClient(_build_app(logging_enabled=False))
        with caplog.at_level(logging.INFO, logger="app.transport.middleware"):
            client.get("/test")
        assert not _access_records(caplog, "/test")


# ============================================================================
# ErrorHandlingMiddleware
# ============================================================================

class TestErrorHandlingMiddleware:
    def test_normal_request_passes_through(self):
        client = TestClient(_build_app(), raise_server_exceptions=False)
        resp = client.get("/test")
        assert resp.status_code == 200
        assert resp.json() == {"ok": True}

    def test_generic_error_returns_500(self):
        client = TestClient(_build_app(raise_for={"/test"}), raise_server_exceptions=False)
        resp = client.get("/test", headers={"X-Request-ID": "req-err"})
        assert resp.status_code == 500
        data = resp.json()
        assert data["error"] == "Internal server error"
        assert data["request_id"] == "req-err"
