"""
HTTP client for the analysis API: submit, poll until terminal, cancel.
"""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

import requests

from .config import DEFAULT_MODEL

TERMINAL_STATUSES = frozenset({"completed", "cancelled", "error"})


class AnalysisApiError(RuntimeError):
    """The API rejected a request or could not be reached."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class AnalysisNotFound(AnalysisApiError):
    """The job id is unknown or its record has expired."""


class PollTimeout(AnalysisApiError):
    """No terminal status was observed before the deadline."""


@dataclass
class PollPolicy:
    """Polling cadence for ``wait_for_result``."""
    interval_seconds: float = 2.0
    timeout_seconds: Optional[float] = 300.0
    request_timeout_seconds: float = 10.0


class AnalysisApiClient:
    """
    Thin client over ``/api/analysis``.

    Unwraps the ``{"ok", "data", "error"}`` envelope and raises
    ``AnalysisApiError`` for failures.  Retrying failed requests is left to
    the caller.
    """

    def __init__(
        self,
        base_url: str,
        policy: Optional[PollPolicy] = None,
        session: Optional[requests.Session] = None,
        verify: bool | str = True,
        sleep: Callable[[float], None] = time.sleep,
        logger: Optional[logging.Logger] = None,
    ):
        """Initialize AnalysisApiClient."""
        self.base_url = str(base_url).rstrip("/")
        self.policy = policy or PollPolicy()
        self.session = session or requests.Session()
        self.verify = verify
        self._sleep = sleep
        self.logger = logger or logging.getLogger(__name__)

    def _url(self, path: str) -> str:
        return f"{self.base_url}/api/analysis{path}"

    def _request(self, method: str, path: str, json_body: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        try:
            resp = self.session.request(
                method=method,
                url=self._url(path),
                json=json_body,
                timeout=self.policy.request_timeout_seconds,
                verify=self.verify,
            )
        except requests.RequestException as exc:
            raise AnalysisApiError(f"Request failed: {exc}") from exc

        try:
            body = resp.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {}

        if resp.status_code == 404:
            raise AnalysisNotFound(body.get("error") or "Not found", status_code=404)
        if resp.status_code >= 400 or not body.get("ok", False):
            message = body.get("error") or f"HTTP {resp.status_code}"
            raise AnalysisApiError(message, status_code=resp.status_code)
        data = body.get("data")
        if not isinstance(data, dict):
            raise AnalysisApiError("Invalid response: missing data", status_code=resp.status_code)
        return data

    # ── Operations ───────────────────────────────────────────────────

    def submit(self, text: str, model: str = DEFAULT_MODEL) -> Dict[str, Any]:
        """Queue *text*; returns ``{"id", "estimatedWait"}``."""
        return self._request("POST", "", {"text": text, "model": model})

    def status(self, job_id: str) -> Dict[str, Any]:
        data = self._request("GET", f"/{job_id}")
        if "status" not in data:
            raise AnalysisApiError("Invalid response: missing status")
        return data

    def cancel(self, job_id: str) -> Dict[str, Any]:
        return self._request("DELETE", f"/{job_id}")

    def models(self) -> Dict[str, Any]:
        return self._request("GET", "/models")

    def wait_for_result(self, job_id: str) -> Dict[str, Any]:
        """Poll until the job reaches a terminal status and return that status body.

        Raises ``AnalysisNotFound`` if the record disappears (TTL expiry) and
        ``PollTimeout`` if ``policy.timeout_seconds`` elapses first.
        """
        deadline = None
        if self.policy.timeout_seconds is not None:
            deadline = time.monotonic() + self.policy.timeout_seconds
        while True:
            data = self.status(job_id)
            if data["status"] in TERMINAL_STATUSES:
                self.logger.debug("Job %s finished with status=%s", job_id, data["status"])
                return data
            if deadline is not None and time.monotonic() >= deadline:
                raise PollTimeout(f"Job {job_id} still {data['status']} after {self.policy.timeout_seconds}s")
            self._sleep(self.policy.interval_seconds)

    def analyze(self, text: str, model: str = DEFAULT_MODEL) -> Dict[str, Any]:
        """Submit and wait; convenience for scripts."""
        submitted = self.submit(text, model)
        return self.wait_for_result(submitted["id"])

    def close(self) -> None:
        self.session.close()
