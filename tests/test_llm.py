"""
Tests for the Gemini layer: model tiers, fallback and response parsing.

google.generativeai is never reached; _generate_google is patched.
"""
import dataclasses
from datetime import datetime, timedelta
from unittest.mock import patch

import pytest

from applyos.core.exceptions import AIRateLimitError, LLMError
from applyos.llm.client import GeminiClient, is_rate_limit_error, parse_retry_after
from applyos.llm.model_manager import MODEL_TIERS, ModelManager, TaskComplexity
from applyos.llm.parsing import (
    clean_string_list,
    extract_json_array,
    extract_json_object,
    require_json_object,
    strip_code_fences,
)


@pytest.fixture
def manager():
    return ModelManager()


@pytest.fixture
def configured_client(manager):
    client = GeminiClient(model_manager=manager)
    client.settings = dataclasses.replace(client.settings, gemini_api_key="test-key")
    client.retry_delay = 0
    return client


class TestModelManager:

    def test_all_available_initially(self, manager):
        assert manager.get_available_models(TaskComplexity.MEDIUM) == MODEL_TIERS[TaskComplexity.MEDIUM]

    def test_limited_model_is_skipped(self, manager):
        manager.mark_rate_limited("gemini-2.0-flash", 30)
        assert manager.get_available_model(TaskComplexity.MEDIUM) == "gemini-2.5-flash"
        assert not manager.is_available("gemini-2.0-flash")

    def test_limit_expires(self, manager):
        manager.mark_rate_limited("gemini-2.0-flash", 30)
        manager._limited_until["gemini-2.0-flash"] = datetime.utcnow() - timedelta(seconds=1)
        assert manager.is_available("gemini-2.0-flash")

    def test_next_available_time_is_earliest(self, manager):
        late = manager.mark_rate_limited("gemini-2.0-flash", 120)
        early = manager.mark_rate_limited("gemini-2.5-flash", 30)
        assert manager.all_limited(TaskComplexity.MEDIUM)
        assert manager.next_available_time(TaskComplexity.MEDIUM) == early
        assert early < late

    def test_status_lists_every_model(self, manager):
        manager.mark_rate_limited("gemini-2.5-pro")
        status = manager.status()
        assert status["gemini-2.5-pro"]["available"] is False
        assert status["gemini-2.0-flash"]["limited_until"] is None


class TestErrorClassification:

    @pytest.mark.parametrize("message", [
        "429 Too Many Requests",
        "Quota exceeded for metric",
        "RESOURCE_EXHAUSTED",
    ])
    def test_rate_limit_errors(self, message):
        assert is_rate_limit_error(Exception(message))

    def test_other_errors(self):
        assert not is_rate_limit_error(Exception("500 internal"))

    def test_retry_hint(self):
        assert parse_retry_after(Exception("429 quota. Please retry in 23.4s")) == 23
        assert parse_retry_after(Exception("429")) is None


class TestGeminiClient:

    def test_not_configured(self, manager):
        client = GeminiClient(model_manager=manager)
        with pytest.raises(LLMError, match="not configured"):
            client.generate("hi")

    def test_first_model_answers(self, configured_client):
        with patch.object(configured_client, "_generate_google", return_value="hello") as gen:
            assert configured_client.generate("hi", TaskComplexity.SIMPLE) == "hello"
        assert gen.call_args[0][2] == "gemini-2.5-flash-lite"

    def test_falls_back_after_rate_limit(self, configured_client, manager):
        with patch.object(
            configured_client,
            "_generate_google",
            side_effect=[Exception("429 quota exceeded, retry in 40s"), "from fallback"],
        ):
            assert configured_client.generate("hi", TaskComplexity.MEDIUM) == "from fallback"
        assert not manager.is_available("gemini-2.0-flash")

    def test_whole_tier_limited(self, configured_client, manager):
        with patch.object(configured_client, "_generate_google", side_effect=Exception("429")):
            with pytest.raises(AIRateLimitError) as exc_info:
                configured_client.generate("hi", TaskComplexity.SIMPLE)
        assert exc_info.value.next_available_time is not None
        assert manager.all_limited(TaskComplexity.SIMPLE)

    def test_already_limited_tier_fails_fast(self, configured_client, manager):
        for model in MODEL_TIERS[TaskComplexity.SIMPLE]:
            manager.mark_rate_limited(model, 60)
        with patch.object(configured_client, "_generate_google") as gen:
            with pytest.raises(AIRateLimitError):
                configured_client.generate("hi", TaskComplexity.SIMPLE)
        gen.assert_not_called()

    def test_non_quota_failures_raise_llm_error(self, configured_client, manager):
        with patch.object(configured_client, "_generate_google", side_effect=Exception("boom")):
            with pytest.raises(LLMError, match="boom"):
                configured_client.generate("hi", TaskComplexity.MEDIUM)
        assert not manager.all_limited(TaskComplexity.MEDIUM)


class TestParsing:

    def test_strip_fences(self):
        assert strip_code_fences('```json\n{"a": 1}\n```') == '{"a": 1}'

    def test_array_with_chatter(self):
        assert extract_json_array('Here you go:\n```json\n["Why us?", "Tell us more"]\n```') == [
            "Why us?", "Tell us more",
        ]

    def test_array_missing_or_invalid(self):
        assert extract_json_array("no questions here") is None
        assert extract_json_array("[not json]") is None

    def test_object(self):
        assert extract_json_object('Result: {"score": 80, "tips": []} done') == {"score": 80, "tips": []}

    def test_require_object_raises(self):
        with pytest.raises(LLMError, match="resume analysis"):
            require_json_object("sorry", "resume analysis")

    def test_clean_string_list(self):
        assert clean_string_list([" a ", "", 3, None, "b"]) == ["a", "b"]
        assert clean_string_list(None) == []
