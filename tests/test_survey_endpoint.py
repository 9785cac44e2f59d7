import json

import pytest
from fastapi.testclient import TestClient

from api.main import create_app

URL = "/api/create/survey"

CORS = {
    "access-control-allow-origin": "*",
    "access-control-allow-methods": "POST, OPTIONS",
    "access-control-allow-headers": "Content-Type, Authorization, Accept, X-Requested-With",
}


@pytest.fixture
def http():
    return TestClient(create_app())


def _assert_cors(response):
    for name, value in CORS.items():
        assert response.headers[name] == value


def test_insert_normalizes_row(http, fake_supabase):
    body = {
        "age": "25-34",
        "employment_status": "Employed",
        "learned_coding": ["university", "bootcamp"],
        "languages": "Python",
        "submission_id": "sub_1_abc",
        "consent": "agree",
    }
    response = http.post(URL, json=body, headers={"User-Agent": "pytest-browser"})

    assert response.status_code == 200
    assert response.json() == {"success": True}
    _assert_cors(response)

    assert len(fake_supabase.rows) == 1
    table, row = fake_supabase.rows[0]
    assert table == "survey_responses"
    assert row["learned_coding"] == ["university", "bootcamp"]
    assert row["languages"] == ["Python"]
    assert row["benefits"] == []
    assert row["gender"] is None
    assert row["user_agent"] == "pytest-browser"
    assert "submission_id" not in row
    assert "consent" not in row


def test_missing_required_field_is_rejected(http, fake_supabase):
    response = http.post(URL, json={"age": "25-34"})

    assert response.status_code == 400
    assert response.json() == {"error": "Missing required fields", "details": "employment_status"}
    _assert_cors(response)
    assert fake_supabase.rows == []


def test_both_required_fields_missing(http, fake_supabase):
    response = http.post(URL, json={"age": "  ", "employment_status": None, "gender": "Male"})
    assert response.status_code == 400
    assert response.json()["details"] == "age, employment_status"
    assert fake_supabase.rows == []


def test_malformed_json(http, fake_supabase):
    response = http.post(URL, content=b"{age: 25", headers={"Content-Type": "application/json"})

    assert response.status_code == 400
    data = response.json()
    assert data["error"] == "Invalid request"
    assert data["details"]
    assert fake_supabase.rows == []


def test_oversized_integer_is_invalid_request(http, fake_supabase):
    body = '{"age": ' + "1" * 5000 + ', "employment_status": "Employed"}'
    response = http.post(URL, content=body.encode(), headers={"Content-Type": "application/json"})

    assert response.status_code == 400
    assert response.json()["error"] == "Invalid request"
    _assert_cors(response)
    assert fake_supabase.rows == []


def test_deeply_nested_body_is_invalid_request(http, fake_supabase):
    body = "[" * 200000 + "]" * 200000
    response = http.post(URL, content=body.encode(), headers={"Content-Type": "application/json"})

    assert response.status_code == 400
    assert response.json()["error"] == "Invalid request"
    assert fake_supabase.rows == []


def test_non_object_json(http, fake_supabase):
    response = http.post(URL, json=["age", "employment_status"])
    assert response.status_code == 400
    assert response.json()["error"] == "Invalid request"


def test_empty_body(http, fake_supabase):
    response = http.post(URL, content=b"")
    assert response.status_code == 400
    assert response.json() == {"error": "Invalid request", "details": "Request body is empty"}


def test_double_encoded_body(http, fake_supabase):
    inner = json.dumps({"age": "18-24", "employment_status": "Student"})
    response = http.post(URL, content=json.dumps(inner), headers={"Content-Type": "application/json"})
    assert response.status_code == 200
    assert fake_supabase.rows[0][1]["age"] == "18-24"


def test_preflight(http, fake_supabase):
    response = http.options(URL)
    assert response.status_code == 200
    assert response.content == b""
    _assert_cors(response)


@pytest.mark.parametrize("method", ["GET", "PUT", "DELETE"])
def test_other_methods_not_allowed(http, fake_supabase, method):
    response = http.request(method, URL)
    assert response.status_code == 405
    assert response.json() == {"error": "Method not allowed"}
    _assert_cors(response)


def test_insert_failure(http, fake_supabase):
    fake_supabase.fail = True
    response = http.post(URL, json={"age": "25-34", "employment_status": "Employed"})

    assert response.status_code == 500
    assert response.json() == {"error": "Database insert failed"}
    _assert_cors(response)


def test_unconfigured_store(http, monkeypatch):
    import api.supabase_client as supabase_client

    for name in (
        "SUPABASE_URL",
        "NEXT_PUBLIC_SUPABASE_URL",
        "SUPABASE_KEY",
        "SUPABASE_SERVICE_ROLE_KEY",
        "NEXT_PUBLIC_SUPABASE_ANON_KEY",
    ):
        monkeypatch.delenv(name, raising=False)
    supabase_client.reset_supabase_client()

    response = http.post(URL, json={"age": "25-34", "employment_status": "Employed"})
    assert response.status_code == 500
    assert response.json() == {"error": "Database insert failed"}


def test_table_override(http, fake_supabase, monkeypatch):
    monkeypatch.setenv("SURVEY_TABLE", "survey_responses_staging")
    http.post(URL, json={"age": "25-34", "employment_status": "Employed"})
    assert fake_supabase.rows[0][0] == "survey_responses_staging"


def test_unhandled_error_gets_request_id(fake_supabase, monkeypatch):
    import api.routes.survey as survey_route

    def boom(body, *, user_agent=None):
        raise RuntimeError("mapping exploded")

    monkeypatch.setattr(survey_route, "to_survey_row", boom)
    http = TestClient(create_app(), raise_server_exceptions=False)

    response = http.post(URL, json={"age": "25-34", "employment_status": "Employed"})

    assert response.status_code == 500
    data = response.json()
    assert data["error"] == "Internal server error"
    assert data["requestId"].startswith("err_")
    assert fake_supabase.rows == []


def test_health(http):
    response = http.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["ok"] is True
    assert data["service"] == "zimdev-survey-api"
    assert data["table"] == "survey_responses"
    assert isinstance(data["store_configured"], bool)
