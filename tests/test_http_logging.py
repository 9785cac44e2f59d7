import json
import logging

from fastapi.testclient import TestClient

from api.main import create_app


def _records(caplog):
    return [json.loads(r.getMessage()) for r in caplog.records if r.name == "api.http"]


def test_disabled_by_default(monkeypatch, caplog, fake_supabase):
    monkeypatch.delenv("SURVEY_HTTP_LOG", raising=False)
    http = TestClient(create_app())

    with caplog.at_level(logging.INFO, logger="api.http"):
        http.post("/api/create/survey", json={"age": "25-34", "employment_status": "Employed"})

    assert _records(caplog) == []


def test_logs_request_with_redaction(monkeypatch, caplog, fake_supabase):
    monkeypatch.setenv("SURVEY_HTTP_LOG", "1")
    monkeypatch.setenv("SURVEY_HTTP_LOG_HEADERS", "1")
    http = TestClient(create_app())

    with caplog.at_level(logging.INFO, logger="api.http"):
        http.post(
            "/api/create/survey",
            json={"age": "25-34", "employment_status": "Employed", "email": "tendai@example.co.zw"},
            headers={"Authorization": "Bearer secret-token"},
        )

    (record,) = _records(caplog)
    assert record["method"] == "POST"
    assert record["path"] == "/api/create/survey"
    assert record["status"] == 200
    assert record["request"]["body"]["email"] == "***"
    assert record["request"]["body"]["age"] == "25-34"
    assert record["request"]["headers"]["authorization"] == "***"
    assert record["response"]["body"] == {"success": True}


def test_body_cap(monkeypatch, caplog, fake_supabase):
    monkeypatch.setenv("SURVEY_HTTP_LOG", "1")
    monkeypatch.setenv("SURVEY_HTTP_LOG_BODY_MAX_BYTES", "16")
    http = TestClient(create_app())

    with caplog.at_level(logging.INFO, logger="api.http"):
        http.post("/api/create/survey", json={"age": "25-34", "employment_status": "Employed"})

    (record,) = _records(caplog)
    assert record["request"]["body_truncated"] is True
    assert "headers" not in record["request"]
