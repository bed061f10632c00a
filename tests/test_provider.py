"""Tests for the chat-completions provider client."""
from unittest.mock import MagicMock

import pytest
import requests

from stdc_engine.config import SYSTEM_PROMPT
from stdc_engine.provider.client import (
    AnalysisProvider,
    ChatCompletionsProvider,
    ProviderError,
    ProviderPolicy,
)


def _response(status_code=200, payload=None, text=""):
    resp = MagicMock()
    resp.status_code = status_code
    resp.headers = {}
    resp.text = text
    if isinstance(payload, Exception):
        resp.json.side_effect = payload
    else:
        resp.json.return_value = payload
    return resp


def _provider(resp=None, api_key="sk-test", **policy):
    session = MagicMock()
    if resp is not None:
        session.post.return_value = resp
    return ChatCompletionsProvider(api_key, policy=ProviderPolicy(**policy), session=session), session


def test_analyze_success():
    payload = {"choices": [{"message": {"role": "assistant", "content": "  See: runners\nThink: comfort  "}}]}
    provider, session = _provider(_response(payload=payload), base_url="https://llm.example/v1/")

    assert provider.analyze("some text", "gpt-4") == "See: runners\nThink: comfort"

    args, kwargs = session.post.call_args
    assert args[0] == "https://llm.example/v1/chat/completions"
    assert kwargs["headers"]["Authorization"] == "Bearer sk-test"
    assert kwargs["json"]["model"] == "gpt-4"
    assert kwargs["json"]["messages"] == [
        {"role": "system", "content": SYSTEM_PROMPT},
        {"role": "user", "content": "some text"},
    ]
    assert kwargs["timeout"] == 60.0


def test_no_choices():
    provider, _ = _provider(_response(payload={"choices": []}))
    with pytest.raises(ProviderError, match="no choices"):
        provider.analyze("text", "gpt-4")


def test_empty_content():
    provider, _ = _provider(_response(payload={"choices": [{"message": {"content": "   "}}]}))
    with pytest.raises(ProviderError, match="empty analysis"):
        provider.analyze("text", "gpt-4")


def test_http_error_carries_provider_message():
    resp = _response(status_code=500, payload={"error": {"message": "upstream down"}})
    provider, _ = _provider(resp)
    with pytest.raises(ProviderError) as excinfo:
        provider.analyze("text", "gpt-4")
    assert str(excinfo.value) == "Provider returned status=500: upstream down"


def test_http_error_without_json_body():
    resp = _response(status_code=502, payload=ValueError("no json"), text="Bad Gateway")
    provider, _ = _provider(resp)
    with pytest.raises(ProviderError, match="status=502: Bad Gateway"):
        provider.analyze("text", "gpt-4")


def test_non_json_success_body():
    provider, _ = _provider(_response(payload=ValueError("no json")))
    with pytest.raises(ProviderError, match="non-JSON"):
        provider.analyze("text", "gpt-4")


def test_transport_failure():
    provider, session = _provider()
    session.post.side_effect = requests.ConnectionError("connection refused")
    with pytest.raises(ProviderError, match="connection refused"):
        provider.analyze("text", "gpt-4")


def test_missing_key_never_calls_provider():
    provider, session = _provider(api_key="  ")
    assert provider.available() is False
    with pytest.raises(ProviderError, match="not configured"):
        provider.analyze("text", "gpt-4")
    session.post.assert_not_called()


def test_close_leaves_injected_session_open():
    provider, session = _provider()
    provider.close()
    session.close.assert_not_called()


def test_provider_interface_is_abstract():
    with pytest.raises(TypeError):
        AnalysisProvider()
    provider, _ = _provider()
    assert isinstance(provider, AnalysisProvider)
