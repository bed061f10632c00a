"""Tests for the polling API client."""
from unittest.mock import MagicMock

import pytest

from stdc_engine.poller import (
    AnalysisApiClient,
    AnalysisApiError,
    AnalysisNotFound,
    PollPolicy,
    PollTimeout,
)


def _response(status_code=200, body=None):
    resp = MagicMock()
    resp.status_code = status_code
    resp.json.return_value = body
    return resp


def _ok(data):
    return _response(200, {"ok": True, "data": data, "error": None, "meta": {}})


def _client(*responses, **policy):
    session = MagicMock()
    session.request.side_effect = list(responses)
    sleeps = []
    client = AnalysisApiClient(
        "https://localhost:3000/",
        policy=PollPolicy(**policy),
        session=session,
        verify=False,
        sleep=sleeps.append,
    )
    return client, session, sleeps


def test_submit_unwraps_envelope():
    client, session, _ = _client(_response(202, {"ok": True, "data": {"id": "abc", "estimatedWait": 1.2}}))
    assert client.submit("text", "gpt-4") == {"id": "abc", "estimatedWait": 1.2}
    kwargs = session.request.call_args.kwargs
    assert kwargs["method"] == "POST"
    assert kwargs["url"] == "https://localhost:3000/api/analysis"
    assert kwargs["json"] == {"text": "text", "model": "gpt-4"}
    assert kwargs["verify"] is False


def test_wait_for_result_polls_until_terminal():
    client, session, sleeps = _client(
        _ok({"status": "pending"}),
        _ok({"status": "pending"}),
        _ok({"status": "completed", "analysis": "See: ..."}),
    )
    result = client.wait_for_result("abc")
    assert result == {"status": "completed", "analysis": "See: ..."}
    assert sleeps == [2.0, 2.0]
    assert session.request.call_count == 3
    assert session.request.call_args.kwargs["url"] == "https://localhost:3000/api/analysis/abc"


def test_wait_for_result_expired_job():
    client, _, _ = _client(
        _ok({"status": "pending"}),
        _response(404, {"ok": False, "data": None, "error": "Job 'abc' not found"}),
    )
    with pytest.raises(AnalysisNotFound) as excinfo:
        client.wait_for_result("abc")
    assert excinfo.value.status_code == 404


def test_wait_for_result_timeout():
    client, _, sleeps = _client(_ok({"status": "pending"}), timeout_seconds=0)
    with pytest.raises(PollTimeout):
        client.wait_for_result("abc")
    assert sleeps == []


def test_error_envelope_raises():
    client, _, _ = _client(_response(400, {"ok": False, "data": None, "error": "Model must be one of: gpt-4."}))
    with pytest.raises(AnalysisApiError, match="Model must be one of") as excinfo:
        client.submit("text", "claude")
    assert excinfo.value.status_code == 400


def test_rate_limited():
    client, _, _ = _client(_response(429, {"ok": False, "error": "Too many requests, please try again later."}))
    with pytest.raises(AnalysisApiError) as excinfo:
        client.cancel("abc")
    assert excinfo.value.status_code == 429


def test_analyze_submits_then_waits():
    client, session, _ = _client(
        _response(202, {"ok": True, "data": {"id": "abc", "estimatedWait": 1.2}}),
        _ok({"status": "cancelled"}),
    )
    assert client.analyze("text") == {"status": "cancelled"}
    assert session.request.call_args_list[0].kwargs["json"]["model"] == "gpt-4"
