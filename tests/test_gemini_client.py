from __future__ import annotations

from types import SimpleNamespace

import pytest

from fleetvmrs.services.gemini_client import (
    CircuitBreaker,
    GeminiCircuitOpenError,
    GeminiClient,
    GeminiClientError,
)
from fleetvmrs.services.vmrs_ai import build_response_schema


class _FakeModel:
    def __init__(self, text: str = '{"systemCode": "013"}', error: Exception | None = None) -> None:
        self.text = text
        self.error = error
        self.requests: list[dict] = []

    def generate_content(self, prompt, *, generation_config, request_options):
        self.requests.append({"prompt": prompt, "config": generation_config, "options": request_options})
        if self.error is not None:
            raise self.error
        return SimpleNamespace(text=self.text, usage_metadata=SimpleNamespace(total_token_count=42))


def _client(model: _FakeModel, breaker: CircuitBreaker | None = None) -> GeminiClient:
    client = GeminiClient(api_key="test-key", model_name="models/gemini-test", timeout=2.5, breaker=breaker)
    client._model = model
    return client


def test_closed_set_schema_reaches_generation_config() -> None:
    model = _FakeModel()
    schema = build_response_schema()

    payload, model_info = _client(model).generate_json(
        "classify", temperature=0.0, max_output_tokens=200, response_schema=schema
    )

    assert payload == '{"systemCode": "013"}'
    config = model.requests[0]["config"]
    assert config.response_mime_type == "application/json"
    assert config.response_schema["properties"]["systemCode"]["enum"][-1] == "000"
    assert "013" in config.response_schema["properties"]["systemCode"]["enum"]
    assert model.requests[0]["options"] == {"timeout": 2.5}
    assert model_info == {
        "name": "models/gemini-test",
        "temperature": 0.0,
        "schema_enforced": True,
        "total_tokens": 42,
    }


def test_breaker_opens_after_repeated_failures() -> None:
    model = _FakeModel(error=RuntimeError("503"))
    client = _client(model, CircuitBreaker(failure_limit=2, open_seconds=60.0))

    for _ in range(2):
        with pytest.raises(GeminiClientError):
            client.generate_json("classify", temperature=0.0, max_output_tokens=10)

    with pytest.raises(GeminiCircuitOpenError):
        client.generate_json("classify", temperature=0.0, max_output_tokens=10)
    assert len(model.requests) == 2


def test_success_resets_failure_count() -> None:
    breaker = CircuitBreaker(failure_limit=2, open_seconds=60.0)
    breaker.record_failure()
    breaker.record_success()
    breaker.record_failure()

    assert breaker.is_open is False


def test_missing_api_key_is_rejected() -> None:
    with pytest.raises(ValueError):
        GeminiClient(api_key="", model_name="models/gemini-test", timeout=1.0)
