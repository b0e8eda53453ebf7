import json
from dataclasses import replace
from unittest.mock import MagicMock, patch
from urllib.error import HTTPError, URLError

import pytest

from modules.dataset_profiler.core.config import load_config
from modules.dataset_profiler.core.openai_client import AIClientError, request_chat_completion

MESSAGES = [{"role": "user", "content": "hello"}]


@pytest.fixture
def config():
    return replace(load_config(), ai_api_key="sk-test", ai_base_url="https://ai.example/v1")


def _response(body):
    resp = MagicMock()
    resp.read.return_value = body.encode("utf-8")
    resp.__enter__.return_value = resp
    return resp


@patch("modules.dataset_profiler.core.openai_client.urlopen")
def test_returns_first_choice_content(mock_urlopen, config):
    mock_urlopen.return_value = _response(
        json.dumps({"choices": [{"message": {"content": "{\"ok\": true}"}}]})
    )

    content = request_chat_completion(MESSAGES, config=config)

    assert content == '{"ok": true}'
    request = mock_urlopen.call_args.args[0]
    assert request.full_url == "https://ai.example/v1/chat/completions"
    assert request.get_method() == "POST"
    assert request.get_header("Authorization") == "Bearer sk-test"
    body = json.loads(request.data.decode("utf-8"))
    assert body == {
        "model": "gpt-4o-mini",
        "messages": MESSAGES,
        "temperature": 0.1,
        "max_tokens": 2000,
    }
    assert mock_urlopen.call_args.kwargs["timeout"] == config.ai_timeout_seconds


def test_missing_key_is_rejected_before_any_request(config):
    with patch("modules.dataset_profiler.core.openai_client.urlopen") as mock_urlopen:
        with pytest.raises(AIClientError, match="not configured"):
            request_chat_completion(MESSAGES, config=replace(config, ai_api_key=""))

    mock_urlopen.assert_not_called()


@patch("modules.dataset_profiler.core.openai_client.urlopen")
def test_http_error_keeps_upstream_status(mock_urlopen, config):
    mock_urlopen.side_effect = HTTPError(
        "https://ai.example/v1/chat/completions", 429, "Too Many Requests", {}, None
    )

    with pytest.raises(AIClientError) as excinfo:
        request_chat_completion(MESSAGES, config=config)

    assert excinfo.value.status_code == 429


@patch("modules.dataset_profiler.core.openai_client.urlopen")
def test_network_error_is_bad_gateway(mock_urlopen, config):
    mock_urlopen.side_effect = URLError("connection refused")

    with pytest.raises(AIClientError) as excinfo:
        request_chat_completion(MESSAGES, config=config)

    assert excinfo.value.status_code == 502


@patch("modules.dataset_profiler.core.openai_client.urlopen")
def test_non_json_body_is_bad_gateway(mock_urlopen, config):
    mock_urlopen.return_value = _response("<html>oops</html>")

    with pytest.raises(AIClientError) as excinfo:
        request_chat_completion(MESSAGES, config=config)

    assert excinfo.value.status_code == 502


@patch("modules.dataset_profiler.core.openai_client.urlopen")
def test_response_without_choices_is_an_error(mock_urlopen, config):
    mock_urlopen.return_value = _response(json.dumps({"choices": []}))

    with pytest.raises(AIClientError, match="did not include a message"):
        request_chat_completion(MESSAGES, config=config)
