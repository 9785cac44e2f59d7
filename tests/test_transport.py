import asyncio
import json

import httpx
import pytest

from survey_form.errors import MalformedResponseError, ServerFailureError, ServerRejectedError, TransportError
from survey_form.transport import SurveyClient, interpret_response

ENDPOINT = "https://survey.example/api/create/survey"


def test_success_body_is_returned():
    assert interpret_response(httpx.Response(200, json={"success": True})) == {"success": True}


def test_2xx_without_success_flag_is_malformed():
    with pytest.raises(MalformedResponseError) as exc:
        interpret_response(httpx.Response(200, text="<html>ok</html>"))
    assert str(exc.value) == "Invalid response from server"

    with pytest.raises(MalformedResponseError):
        interpret_response(httpx.Response(201, json={"success": False}))


def test_4xx_carries_server_message():
    response = httpx.Response(400, json={"error": "Missing required fields", "details": "employment_status"})
    with pytest.raises(ServerRejectedError) as exc:
        interpret_response(response)
    assert exc.value.status_code == 400
    assert exc.value.details == "employment_status"
    assert str(exc.value) == "Missing required fields: employment_status"


def test_4xx_without_body():
    with pytest.raises(ServerRejectedError) as exc:
        interpret_response(httpx.Response(405, text=""))
    assert str(exc.value) == "Server error: 405"


def test_5xx_hides_server_detail():
    response = httpx.Response(500, json={"error": "Database insert failed"})
    with pytest.raises(ServerFailureError) as exc:
        interpret_response(response)
    assert exc.value.status_code == 500
    assert "Database" not in str(exc.value)
    assert str(exc.value) == ServerFailureError.user_message


def test_client_posts_json():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["method"] = request.method
        seen["content_type"] = request.headers["content-type"]
        seen["user_agent"] = request.headers["user-agent"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"success": True})

    async def run():
        async with SurveyClient(ENDPOINT, user_agent="survey-tests/1.0", transport=httpx.MockTransport(handler)) as client:
            return await client.submit({"age": "18-24", "learned_coding": ["bootcamp"]})

    assert asyncio.run(run()) == {"success": True}
    assert seen == {
        "method": "POST",
        "content_type": "application/json",
        "user_agent": "survey-tests/1.0",
        "body": {"age": "18-24", "learned_coding": ["bootcamp"]},
    }


def test_connection_failure_is_a_transport_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    async def run():
        async with SurveyClient(ENDPOINT, transport=httpx.MockTransport(handler)) as client:
            await client.submit({"age": "18-24"})

    with pytest.raises(TransportError) as exc:
        asyncio.run(run())
    assert str(exc.value) == "Network error: connection refused"
