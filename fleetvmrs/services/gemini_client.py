"""Gemini client returning schema-constrained JSON for VMRS classification."""

from __future__ import annotations

import threading
import time
from typing import Any, Dict, Optional, Protocol, Tuple

import google.generativeai as genai
from google.generativeai import types as genai_types

from fleetvmrs.core.config import settings


CIRCUIT_FAILURE_LIMIT = 3
CIRCUIT_OPEN_SECONDS = 30.0


class GeminiClientError(RuntimeError):
    """Base exception for Gemini client failures."""


class GeminiCircuitOpenError(GeminiClientError):
    """Raised when the circuit breaker is open."""


class JsonGenerator(Protocol):
    def generate_json(
        self,
        prompt: str,
        *,
        temperature: float,
        max_output_tokens: int,
        response_schema: Optional[Dict[str, Any]] = None,
    ) -> Tuple[str, Dict[str, Any]]: ...


class CircuitBreaker:
    """Opens after ``failure_limit`` consecutive failures and stays open for ``open_seconds``."""

    def __init__(self, failure_limit: int = CIRCUIT_FAILURE_LIMIT, open_seconds: float = CIRCUIT_OPEN_SECONDS) -> None:
        self.failure_limit = failure_limit
        self.open_seconds = open_seconds
        self._lock = threading.Lock()
        self._failures = 0
        self._open_until = 0.0

    @property
    def is_open(self) -> bool:
        with self._lock:
            return time.monotonic() < self._open_until

    def record_failure(self) -> None:
        with self._lock:
            self._failures += 1
            if self._failures >= self.failure_limit:
                self._open_until = time.monotonic() + self.open_seconds

    def record_success(self) -> None:
        with self._lock:
            self._failures = 0
            self._open_until = 0.0


class GeminiClient:
    def __init__(
        self,
        api_key: str,
        model_name: str,
        timeout: float,
        breaker: CircuitBreaker | None = None,
    ) -> None:
        if not api_key:
            raise ValueError("Gemini API key is required")

        genai.configure(api_key=api_key)
        self._model = genai.GenerativeModel(model_name)
        self._model_name = model_name
        self._timeout = timeout
        self.breaker = breaker or CircuitBreaker()

    def generate_json(
        self,
        prompt: str,
        *,
        temperature: float,
        max_output_tokens: int,
        response_schema: Optional[Dict[str, Any]] = None,
    ) -> Tuple[str, Dict[str, Any]]:
        """Send ``prompt`` and return the raw JSON text plus model metadata.

        When ``response_schema`` is given, Gemini constrains its reply to it,
        e.g. limiting ``systemCode`` to the closed VMRS code set.
        """
        if not prompt:
            raise ValueError("Prompt must not be empty")
        if self.breaker.is_open:
            raise GeminiCircuitOpenError("Gemini circuit is open due to recent failures")

        config_kwargs: Dict[str, Any] = {
            "temperature": temperature,
            "max_output_tokens": max_output_tokens,
            "response_mime_type": "application/json",
        }
        if response_schema is not None:
            config_kwargs["response_schema"] = response_schema

        try:
            response = self._model.generate_content(
                prompt,
                generation_config=genai_types.GenerationConfig(**config_kwargs),
                request_options={"timeout": self._timeout},
            )
            payload = response.text or ""
        except Exception as exc:
            self.breaker.record_failure()
            raise GeminiClientError(str(exc)) from exc

        self.breaker.record_success()
        model_info: Dict[str, Any] = {
            "name": self._model_name,
            "temperature": temperature,
            "schema_enforced": response_schema is not None,
        }
        usage = getattr(response, "usage_metadata", None)
        if usage:
            model_info["total_tokens"] = getattr(usage, "total_token_count", None)
        return payload, model_info


_CLIENT: GeminiClient | None = None


def get_gemini_client() -> GeminiClient:
    global _CLIENT
    if _CLIENT is None:
        _CLIENT = GeminiClient(
            api_key=settings.gemini_api_key or "",
            model_name=settings.gemini_model,
            timeout=settings.vmrs_ai_timeout_sec,
        )
    return _CLIENT
