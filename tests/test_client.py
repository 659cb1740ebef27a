"""Tests for the vision model HTTP client."""

import base64
from unittest import mock

import pytest
import requests

from huely.client import DEFAULT_PROMPT, EMPTY_RESPONSE_TEXT, VisionClient
from huely.errors import AnalysisError


def _response(status_code=200, body=None):
    response = mock.Mock(spec=requests.Response)
    response.status_code = status_code
    response.json.return_value = body if body is not None else {}
    response.text = ""
    return response


def _completion(text):
    return {
        "id": "chatcmpl-1",
        "model": "gpt-4o-mini",
        "choices": [{"index": 0, "message": {"role": "assistant", "content": text}}],
    }


@pytest.fixture
def image_path(tmp_path, jpeg_bytes):
    path = tmp_path / "capture_1_abcdef.jpeg"
    path.write_bytes(jpeg_bytes)
    return str(path)


@pytest.fixture
def client():
    return VisionClient(api_key="sk-test", max_retries=3)


@pytest.fixture
def no_sleep(monkeypatch):
    calls = []
    monkeypatch.setattr("huely.client.time.sleep", calls.append)
    return calls


def test_analyze_image_returns_model_text(client, image_path, jpeg_bytes):
    with mock.patch.object(client._session, "post", return_value=_response(body=_completion("42"))) as post:
        assert client.analyze_image(image_path, "What is this?") == "42"

    url = post.call_args[0][0]
    payload = post.call_args.kwargs["json"]
    assert url == "https://api.openai.com/v1/chat/completions"
    assert payload["model"] == "gpt-4o-mini"
    assert payload["max_tokens"] == 1500
    user_content = payload["messages"][1]["content"]
    assert user_content[0] == {"type": "text", "text": "What is this?"}
    expected_url = "data:image/jpeg;base64," + base64.b64encode(jpeg_bytes).decode("ascii")
    assert user_content[1]["image_url"]["url"] == expected_url


def test_default_prompt_and_auth_header(client, image_path):
    with mock.patch.object(client._session, "post", return_value=_response(body=_completion("ok"))) as post:
        client.analyze_image(image_path)

    payload = post.call_args.kwargs["json"]
    assert payload["messages"][1]["content"][0]["text"] == DEFAULT_PROMPT
    assert client._session.headers["Authorization"] == "Bearer sk-test"


def test_empty_choices_yield_placeholder(client, image_path):
    with mock.patch.object(client._session, "post", return_value=_response(body={"choices": []})):
        assert client.analyze_image(image_path) == EMPTY_RESPONSE_TEXT


def test_authentication_failure_is_not_retried(client, image_path, no_sleep):
    with mock.patch.object(client._session, "post", return_value=_response(401)) as post:
        with pytest.raises(AnalysisError, match="authentication"):
            client.analyze_image(image_path)
    assert post.call_count == 1
    assert no_sleep == []


def test_rate_limit_is_reported(client, image_path, no_sleep):
    with mock.patch.object(client._session, "post", return_value=_response(429)):
        with pytest.raises(AnalysisError, match="quota"):
            client.analyze_image(image_path)


def test_client_error_includes_service_message(client, image_path):
    body = {"error": {"message": "Invalid image"}}
    with mock.patch.object(client._session, "post", return_value=_response(400, body)):
        with pytest.raises(AnalysisError, match="400 Invalid image"):
            client.analyze_image(image_path)


def test_server_error_is_retried_with_backoff(client, image_path, no_sleep):
    responses = [_response(503), _response(body=_completion("recovered"))]
    with mock.patch.object(client._session, "post", side_effect=responses) as post:
        assert client.analyze_image(image_path) == "recovered"
    assert post.call_count == 2
    assert no_sleep == [1]


def test_transport_errors_exhaust_retries(client, image_path, no_sleep):
    error = requests.exceptions.ConnectionError("network down")
    with mock.patch.object(client._session, "post", side_effect=error) as post:
        with pytest.raises(AnalysisError, match="network down"):
            client.analyze_image(image_path)
    assert post.call_count == 3
    assert no_sleep == [1, 2]


def test_malformed_response_body(client, image_path):
    with mock.patch.object(client._session, "post", return_value=_response(body={"choices": "nope"})):
        with pytest.raises(AnalysisError, match="malformed"):
            client.analyze_image(image_path)


def test_non_jpeg_is_rejected_before_sending(client, tmp_path):
    path = tmp_path / "capture.bmp"
    path.write_bytes(b"BM" + b"\x00" * 100)
    with mock.patch.object(client._session, "post") as post:
        with pytest.raises(AnalysisError, match="not in JPEG format"):
            client.analyze_image(str(path))
    post.assert_not_called()


def test_missing_and_empty_files_are_rejected(client, tmp_path):
    with pytest.raises(AnalysisError, match="not found"):
        client.analyze_image(str(tmp_path / "missing.jpeg"))
    empty = tmp_path / "empty.jpeg"
    empty.write_bytes(b"")
    with pytest.raises(AnalysisError, match="empty"):
        client.analyze_image(str(empty))


def test_api_key_is_required():
    with pytest.raises(AnalysisError):
        VisionClient(api_key="")


def test_from_config_uses_config_values(config):
    config.model = "gpt-4o"
    config.api_base_url = "http://localhost:8080/v1/"
    client = VisionClient.from_config("sk-test", config)
    assert client.build_payload(b"\xff\xd8")["model"] == "gpt-4o"
    assert client._base_url == "http://localhost:8080/v1"
