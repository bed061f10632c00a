"""
Chat-completions client for the external See-Think-Do-Care analysis provider.
"""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, List, Optional

import requests

from ..config import PROVIDER_BASE_URL, PROVIDER_TIMEOUT_SECONDS, SYSTEM_PROMPT


class ProviderError(RuntimeError):
    """The provider call failed or returned an unusable response."""


@dataclass
class ProviderPolicy:
    """HTTP settings for provider requests."""
    base_url: str = PROVIDER_BASE_URL
    timeout_seconds: float = PROVIDER_TIMEOUT_SECONDS
    system_prompt: str = SYSTEM_PROMPT


class AnalysisProvider(ABC):
    """Interface the worker calls.  ``analyze`` blocks; run it off the event loop."""

    @abstractmethod
    def analyze(self, text: str, model: str) -> str:
        """Return the analysis for *text*; raise ``ProviderError`` on failure."""

    def close(self) -> None:
        pass


class ChatCompletionsProvider(AnalysisProvider):
    """
    OpenAI-compatible ``POST /chat/completions`` provider.

    A single call per job; failures are not retried here, the job is marked
    ``error`` instead.
    """

    def __init__(
        self,
        api_key: str,
        policy: Optional[ProviderPolicy] = None,
        session: Optional[requests.Session] = None,
        logger: Optional[logging.Logger] = None,
    ):
        """Initialize ChatCompletionsProvider."""
        self.api_key = str(api_key or "").strip()
        self.policy = policy or ProviderPolicy()
        self.session = session or requests.Session()
        self._owns_session = session is None
        self.logger = logger or logging.getLogger(__name__)

    def available(self) -> bool:
        """Return whether credentials are configured."""
        return bool(self.api_key)

    @property
    def url(self) -> str:
        return f"{self.policy.base_url.rstrip('/')}/chat/completions"

    def _headers(self) -> Dict[str, str]:
        return {
            "Accept": "application/json",
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.api_key}",
        }

    def _messages(self, text: str) -> List[Dict[str, str]]:
        return [
            {"role": "system", "content": self.policy.system_prompt},
            {"role": "user", "content": text},
        ]

    @staticmethod
    def _extract_content(payload: object) -> str:
        """Pull the first choice's message content out of a completions payload."""
        if not isinstance(payload, dict):
            raise ProviderError(f"Unexpected payload type: {type(payload).__name__}")
        choices = payload.get("choices")
        if not isinstance(choices, list) or not choices:
            raise ProviderError("Invalid response from provider: no choices returned")
        first = choices[0] if isinstance(choices[0], dict) else {}
        message = first.get("message") or {}
        content = message.get("content") if isinstance(message, dict) else None
        if not isinstance(content, str) or not content.strip():
            raise ProviderError("Invalid response from provider: empty analysis")
        return content.strip()

    def analyze(self, text: str, model: str) -> str:
        """Run the analysis and return the provider's text."""
        if not self.available():
            raise ProviderError("Provider API key is not configured")
        try:
            resp = self.session.post(
                self.url,
                headers=self._headers(),
                json={"model": model, "messages": self._messages(text)},
                timeout=self.policy.timeout_seconds,
            )
        except requests.RequestException as exc:
            raise ProviderError(f"Provider request failed: {exc}") from exc

        request_id = resp.headers.get("x-request-id") or ""
        if request_id:
            self.logger.debug("Provider request_id=%s model=%s status=%s", request_id, model, resp.status_code)

        if resp.status_code >= 400:
            detail = ""
            try:
                err = resp.json().get("error") or {}
                detail = err.get("message", "") if isinstance(err, dict) else str(err)
            except (ValueError, AttributeError):
                detail = resp.text[:200]
            raise ProviderError(f"Provider returned status={resp.status_code}: {detail}".rstrip(": "))

        try:
            payload = resp.json()
        except ValueError as exc:
            raise ProviderError("Provider returned a non-JSON response") from exc
        return self._extract_content(payload)

    def close(self) -> None:
        if self._owns_session:
            self.session.close()
