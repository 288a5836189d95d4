from __future__ import annotations

import pytest
import redis

from conftest import FakeGeminiClient
from fleetvmrs.core.config import settings
from fleetvmrs.services import vmrs_ai
from fleetvmrs.services.vmrs_ai import VmrsAIError, classify_text_with_ai
from fleetvmrs.services.vmrs_suggestion import VmrsSuggestionService


LOW_CONFIDENCE_TEXT = "seal leaking"


def _service(client: FakeGeminiClient | None) -> VmrsSuggestionService:
    return VmrsSuggestionService(db=None, ai_client=client)


def test_confident_keyword_result_skips_escalation() -> None:
    client = FakeGeminiClient({"systemCode": "044", "confidence": 0.9, "explanation": "fuel"})

    result = _service(client).suggest_with_ai("Tire sidewall cut")

    assert client.calls == []
    assert result.tier == "keyword"
    assert result.top_suggestion.system_code == "017"


def test_new_ai_code_is_added_and_ranked() -> None:
    client = FakeGeminiClient({"systemCode": "044", "confidence": 0.9, "explanation": "Injector seal weeping"})

    result = _service(client).suggest_with_ai(LOW_CONFIDENCE_TEXT, notes="noticed at yard")

    assert len(client.calls) == 1
    assert '"seal leaking"' in client.calls[0]
    assert "noticed at yard" in client.calls[0]
    assert result.tier == "keyword+ai"
    assert result.ai_error is None
    assert [item.system_code for item in result.suggestions][:1] == ["044"]
    top = result.top_suggestion
    assert top.ai_enhanced is True
    assert top.title == "Fuel System"
    assert top.matched_keywords == []
    assert top.confidence == pytest.approx(0.9)
    assert result.needs_user_confirmation is False


def test_ai_confirmation_boosts_existing_suggestion() -> None:
    client = FakeGeminiClient({"systemCode": "018", "confidence": 0.88, "explanation": "Hub seal"})

    result = _service(client).suggest_with_ai(LOW_CONFIDENCE_TEXT)

    assert len(result.suggestions) == 1
    boosted = result.suggestions[0]
    assert boosted.system_code == "018"
    assert boosted.ai_enhanced is True
    assert boosted.confidence == pytest.approx(0.88)
    assert boosted.matched_keywords == ["seal"]
    assert boosted.explanation.endswith("(AI confirmed: Hub seal)")


def test_ai_never_lowers_keyword_confidence() -> None:
    client = FakeGeminiClient({"systemCode": "018", "confidence": 0.2, "explanation": "maybe"})

    result = _service(client).suggest_with_ai(LOW_CONFIDENCE_TEXT)

    assert result.top_suggestion.confidence == pytest.approx(0.85 + 0.15 / 9 - 0.15)
    assert result.top_suggestion.ai_enhanced is True
    assert result.needs_user_confirmation is True


def test_ai_confidence_is_capped() -> None:
    client = FakeGeminiClient({"systemCode": "042", "confidence": 1.7, "explanation": "coolant"})

    result = _service(client).suggest_with_ai(LOW_CONFIDENCE_TEXT)

    assert result.top_suggestion.system_code == "042"
    assert result.top_suggestion.confidence == pytest.approx(0.95)


def test_missing_ai_confidence_defaults() -> None:
    client = FakeGeminiClient({"systemCode": "042"})

    ai = classify_text_with_ai("coolant weeping", client=client)

    assert ai.confidence == pytest.approx(0.75)
    assert ai.explanation == "AI-suggested based on text analysis"
    assert ai.model_info == {"name": "fake-gemini", "temperature": 0.0}


def test_ai_answer_used_when_keywords_find_nothing() -> None:
    client = FakeGeminiClient({"systemCode": "003", "confidence": 0.7, "explanation": "dash display"})

    result = _service(client).suggest_with_ai("dash display flickers")

    assert [item.system_code for item in result.suggestions] == ["003"]
    assert result.needs_user_confirmation is True


@pytest.mark.parametrize(
    ("client", "kind"),
    [
        (FakeGeminiClient(error=RuntimeError("connection reset")), "client_error"),
        (FakeGeminiClient(error=TimeoutError("deadline exceeded")), "client_error"),
        (FakeGeminiClient("not json at all"), "invalid_json"),
        (FakeGeminiClient("[1, 2]"), "invalid_json"),
        (FakeGeminiClient({"systemCode": "000", "confidence": 0.1}), "no_match"),
        (FakeGeminiClient({"confidence": 0.9}), "no_match"),
        (FakeGeminiClient({"systemCode": "999", "confidence": 0.9}), "unknown_code"),
        (FakeGeminiClient('{"systemCode": ["013"], "confidence": 0.9}'), "no_match"),
        (FakeGeminiClient('{"systemCode": "013", "confidence": 0.9'), "invalid_json"),
    ],
)
def test_escalation_failures_keep_keyword_result(client: FakeGeminiClient, kind: str) -> None:
    service = _service(client)
    baseline = service.suggest_for_text(LOW_CONFIDENCE_TEXT)

    result = service.suggest_with_ai(LOW_CONFIDENCE_TEXT)

    assert result.suggestions == baseline.suggestions
    assert result.top_suggestion == baseline.top_suggestion
    assert result.needs_user_confirmation == baseline.needs_user_confirmation
    assert result.tier == "keyword+ai"
    assert result.ai_error == kind


def test_no_match_with_unreachable_ai_is_empty_and_needs_confirmation() -> None:
    client = FakeGeminiClient(error=ConnectionError("unreachable"))

    result = _service(client).suggest_with_ai("xyzzy plugh")

    assert result.suggestions == []
    assert result.top_suggestion is None
    assert result.needs_user_confirmation is True
    assert result.ai_error == "client_error"


def test_disabled_escalation_does_not_call_client(monkeypatch) -> None:
    monkeypatch.setattr(settings, "vmrs_ai_enabled", False)
    client = FakeGeminiClient({"systemCode": "044", "confidence": 0.9})

    result = _service(client).suggest_with_ai(LOW_CONFIDENCE_TEXT)

    assert client.calls == []
    assert result.ai_error == "disabled"


def test_missing_api_key_disables_default_client() -> None:
    with pytest.raises(VmrsAIError) as excinfo:
        classify_text_with_ai(LOW_CONFIDENCE_TEXT)
    assert excinfo.value.kind == "disabled"


def test_prompt_lists_closed_code_set() -> None:
    client = FakeGeminiClient({"systemCode": "013", "confidence": 0.8})

    classify_text_with_ai("pulls left when stopping", client=client)

    prompt = client.calls[0]
    assert "- 013: Brakes" in prompt
    assert "- 048: Powertrain Electric/Hybrid" in prompt
    assert '"000"' in prompt


class _BrokenRedis:
    def get(self, key):
        raise redis.ConnectionError("down")

    def setex(self, key, ttl, value):
        raise redis.ConnectionError("down")


def test_successful_results_are_cached_in_process(monkeypatch) -> None:
    monkeypatch.setattr(settings, "vmrs_ai_cache_enabled", True)
    monkeypatch.setattr(vmrs_ai, "get_redis", lambda: _BrokenRedis())
    client = FakeGeminiClient({"systemCode": "013", "confidence": 0.8, "explanation": "brakes"})

    first = classify_text_with_ai("Pulls left when stopping!", client=client)
    second = classify_text_with_ai("pulls left when stopping", client=client)

    assert len(client.calls) == 1
    assert second == first


def test_failures_are_not_cached(monkeypatch) -> None:
    monkeypatch.setattr(settings, "vmrs_ai_cache_enabled", True)
    monkeypatch.setattr(vmrs_ai, "get_redis", lambda: _BrokenRedis())
    client = FakeGeminiClient("garbage")

    for _ in range(2):
        with pytest.raises(VmrsAIError):
            classify_text_with_ai("pulls left", client=client)

    assert len(client.calls) == 2


def test_generic_title_words_do_not_block_escalation() -> None:
    client = FakeGeminiClient({"systemCode": "031", "confidence": 0.8, "explanation": "charging fault"})

    result = _service(client).suggest_with_ai("electrical system check")

    assert len(client.calls) == 1
    assert result.tier == "keyword+ai"
    assert [item.system_code for item in result.suggestions] == ["031"]
    assert result.needs_user_confirmation is False


@pytest.mark.parametrize(("offset", "escalates"), [(0.0, False), (1e-9, True)])
def test_escalation_only_below_threshold(monkeypatch, offset: float, escalates: bool) -> None:
    client = FakeGeminiClient({"systemCode": "018", "confidence": 0.9, "explanation": "hub"})
    service = _service(client)
    keyword_top = service.suggest_for_text(LOW_CONFIDENCE_TEXT).top_suggestion
    monkeypatch.setattr(settings, "vmrs_ai_escalation_threshold", keyword_top.confidence + offset)

    result = service.suggest_with_ai(LOW_CONFIDENCE_TEXT)

    assert (len(client.calls) == 1) is escalates
    assert result.tier == ("keyword+ai" if escalates else "keyword")


def test_oversized_confidence_falls_back_to_default() -> None:
    client = FakeGeminiClient('{"systemCode": "013", "confidence": 1' + "0" * 400 + "}")

    result = _service(client).suggest_with_ai("xyzzy plugh")

    assert result.ai_error is None
    assert [item.system_code for item in result.suggestions] == ["013"]
    assert result.top_suggestion.confidence == pytest.approx(0.75)


def test_unexpected_parse_failure_keeps_keyword_result(monkeypatch) -> None:
    def explode(response_text, model_info):
        raise KeyError("systemCode")

    monkeypatch.setattr(vmrs_ai, "_parse_response", explode)
    service = _service(FakeGeminiClient({"systemCode": "018", "confidence": 0.9}))

    result = service.suggest_with_ai(LOW_CONFIDENCE_TEXT)

    assert result.ai_error == "invalid_json"
    assert result.suggestions == service.suggest_for_text(LOW_CONFIDENCE_TEXT).suggestions


class _OpaqueMetadataClient(FakeGeminiClient):
    def generate_json(self, prompt, *, temperature, max_output_tokens, response_schema=None):
        payload, _ = super().generate_json(
            prompt,
            temperature=temperature,
            max_output_tokens=max_output_tokens,
            response_schema=response_schema,
        )
        return payload, {"name": "fake-gemini", "usage": object()}


def test_unserialisable_metadata_is_not_cached(monkeypatch) -> None:
    monkeypatch.setattr(settings, "vmrs_ai_cache_enabled", True)
    monkeypatch.setattr(vmrs_ai, "get_redis", lambda: _BrokenRedis())
    client = _OpaqueMetadataClient({"systemCode": "042", "confidence": 0.9, "explanation": "coolant"})

    first = _service(client).suggest_with_ai(LOW_CONFIDENCE_TEXT)
    second = _service(client).suggest_with_ai(LOW_CONFIDENCE_TEXT)

    assert first.top_suggestion.system_code == "042"
    assert second.top_suggestion == first.top_suggestion
    assert len(client.calls) == 2


def test_bad_redis_url_falls_back_to_process_cache(monkeypatch) -> None:
    def bad_url():
        raise ValueError("Redis URL must specify one of the supported schemes")

    monkeypatch.setattr(settings, "vmrs_ai_cache_enabled", True)
    monkeypatch.setattr(vmrs_ai, "get_redis", bad_url)
    client = FakeGeminiClient({"systemCode": "042", "confidence": 0.9, "explanation": "coolant"})

    classify_text_with_ai("coolant weeping", client=client)
    classify_text_with_ai("coolant weeping", client=client)

    assert len(client.calls) == 1


def test_closed_set_schema_is_sent_with_prompt() -> None:
    client = FakeGeminiClient({"systemCode": "013", "confidence": 0.8})

    classify_text_with_ai("pulls left when stopping", client=client)

    codes = client.schemas[0]["properties"]["systemCode"]["enum"]
    assert codes[-1] == "000"
    assert len(codes) == 21
    assert "048" in codes
