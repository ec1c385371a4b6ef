"""Tests for app-level configuration: health, CORS parsing, error mapping."""

from mathtutor import __version__
from mathtutor.api.main import _parse_allowed_origins
from mathtutor.errors import HTTP_STATUS_BY_CATEGORY, ErrorCategory, MathTutorError


def test_health_reports_version(client):
    response = client.get("/health")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "ok"
    assert body["version"] == __version__
    assert body["uptime_seconds"] >= 0


def test_allowed_origins_parsed(monkeypatch):
    monkeypatch.setenv("ALLOWED_ORIGINS", "http://localhost:3000, https://tutor.example.com,")

    assert _parse_allowed_origins() == [
        "http://localhost:3000",
        "https://tutor.example.com",
    ]


def test_allowed_origins_empty_by_default(monkeypatch):
    monkeypatch.delenv("ALLOWED_ORIGINS", raising=False)

    assert _parse_allowed_origins() == []


def test_every_category_has_a_status():
    assert set(HTTP_STATUS_BY_CATEGORY) == set(ErrorCategory)
    assert HTTP_STATUS_BY_CATEGORY[ErrorCategory.REQUEST] == 400


def test_error_body_shape(client):
    response = client.get("/api/chat-history")

    body = response.json()
    assert set(body) == {"error", "error_code", "remediation", "details"}
    assert body["details"] is None


def test_error_status_follows_category():
    assert MathTutorError.from_code("E-1001", field="userId").http_status == 400
    assert MathTutorError.from_code("E-3003", file_name="a.png", reason="x").http_status == 502
    assert MathTutorError(code="E-9999", message="m", remediation="r").http_status == 500
