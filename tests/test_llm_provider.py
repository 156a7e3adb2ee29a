"""Tests for the structured generation client and the OpenAI provider."""

from types import SimpleNamespace

import httpx
import openai
import pytest

from campaign_studio.config import GeneratorConfig
from campaign_studio.errors import ErrorKind, GenerationError
from campaign_studio.llm.base import (
    JSON_NUDGE,
    MalformedDocument,
    Ok,
    SchemaViolation,
    extract_document,
    strip_code_fences,
)
from campaign_studio.llm.openai_provider import OpenAIProvider
from campaign_studio.models import CallToAction
from scripted import ScriptedProvider


# =============================================================================
# Output cleaning
# =============================================================================


class TestStripCodeFences:
    def test_json_fence(self):
        assert strip_code_fences('```json\n{"a": 1}\n```') == '{"a": 1}'

    def test_unterminated_fence(self):
        assert strip_code_fences('```html\n<html></html>') == "<html></html>"

    def test_plain_text_untouched(self):
        assert strip_code_fences('  {"a": 1} ') == '{"a": 1}'


class TestExtractDocument:
    def test_doctype_start(self):
        doc = "<!DOCTYPE html><html><body>x</body></html>"
        assert extract_document(doc) == doc

    def test_html_start_case_insensitive(self):
        doc = "<HTML><body>x</body></HTML>"
        assert extract_document(doc) == doc

    def test_fenced_document(self):
        assert extract_document("```html\n<!doctype html><html></html>\n```") == "<!doctype html><html></html>"

    def test_preamble_is_dropped(self):
        raw = "Sure! Here is your email:\n<!DOCTYPE html><html><body>hi</body></html>\nHope it helps."
        assert extract_document(raw) == "<!DOCTYPE html><html><body>hi</body></html>"

    def test_no_document(self):
        assert extract_document("I could not do that, sorry.") is None


# =============================================================================
# LLMProvider tagged outcomes
# =============================================================================


class TestGenerateStructured:
    def test_ok(self):
        provider = ScriptedProvider().on("cta", {"primary": "Join Beta"})
        outcome = provider.generate_structured("cta please", "now", CallToAction)
        assert isinstance(outcome, Ok)
        assert outcome.value.primary == "Join Beta"

    def test_fenced_json_is_accepted(self):
        provider = ScriptedProvider().on("cta", '```json\n{"primary": "Go"}\n```')
        outcome = provider.generate_structured("cta please", "now", CallToAction)
        assert isinstance(outcome, Ok)

    def test_invalid_json_is_schema_violation(self):
        provider = ScriptedProvider().on("cta", "primary: Go")
        outcome = provider.generate_structured("cta please", "now", CallToAction)
        assert isinstance(outcome, SchemaViolation)
        assert "invalid JSON" in outcome.message
        assert outcome.raw == "primary: Go"

    def test_validation_failure_is_schema_violation(self):
        provider = ScriptedProvider().on("cta", {"secondary": "no primary"})
        outcome = provider.generate_structured("cta please", "now", CallToAction)
        assert isinstance(outcome, SchemaViolation)
        assert outcome.message.startswith("CallToAction")

    def test_no_retry_by_default(self):
        provider = ScriptedProvider().on("cta", "not json")
        provider.generate_structured("cta please", "now", CallToAction)
        assert provider.count("cta") == 1

    def test_schema_retries_add_nudge(self):
        def answer(prompt):
            return '{"primary": "Go"}' if JSON_NUDGE.strip() in prompt else "nope"

        provider = ScriptedProvider().on("cta", answer)
        provider.schema_retries = 1
        outcome = provider.generate_structured("cta please", "now", CallToAction)
        assert isinstance(outcome, Ok)
        assert provider.count("cta") == 2

    def test_upstream_error_propagates(self):
        provider = ScriptedProvider().on("cta", GenerationError(ErrorKind.UPSTREAM_UNAVAILABLE, "down"))
        with pytest.raises(GenerationError) as info:
            provider.generate_structured("cta please", "now", CallToAction)
        assert info.value.kind is ErrorKind.UPSTREAM_UNAVAILABLE


class TestGenerateDocument:
    def test_ok(self):
        provider = ScriptedProvider().on("doc", "<!DOCTYPE html><html></html>")
        assert provider.generate_document("doc", "now") == Ok("<!DOCTYPE html><html></html>")

    def test_malformed(self):
        provider = ScriptedProvider().on("doc", "Here are some ideas for your page...")
        outcome = provider.generate_document("doc", "now")
        assert isinstance(outcome, MalformedDocument)


# =============================================================================
# OpenAI provider
# =============================================================================


def _fake_client(create):
    return SimpleNamespace(chat=SimpleNamespace(completions=SimpleNamespace(create=create)))


class TestOpenAIProvider:
    def test_missing_key(self, monkeypatch):
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)
        with pytest.raises(EnvironmentError, match="OPENAI_API_KEY"):
            OpenAIProvider()

    def test_uses_config(self):
        config = GeneratorConfig(model="gpt-test", timeout_seconds=12, max_retries=1, schema_retries=2)
        provider = OpenAIProvider(config, api_key="sk-test")
        assert provider.model == "gpt-test"
        assert provider.schema_retries == 2

    def test_text_and_structured_temperatures(self):
        seen = []

        def create(**kwargs):
            seen.append(kwargs["temperature"])
            return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content='{"primary": "Go"}'))])

        provider = OpenAIProvider(GeneratorConfig(temperature=0.9, structured_temperature=0.2), api_key="sk-test")
        provider._client = _fake_client(create)
        provider.generate_text("s", "u")
        provider.generate_structured("s", "u", CallToAction)
        assert seen == [0.9, 0.2]

    def test_timeout_maps_to_upstream_unavailable(self):
        def create(**kwargs):
            raise openai.APITimeoutError(request=httpx.Request("POST", "https://api.openai.com/v1/chat/completions"))

        provider = OpenAIProvider(api_key="sk-test")
        provider._client = _fake_client(create)
        with pytest.raises(GenerationError) as info:
            provider.generate_text("s", "u")
        assert info.value.kind is ErrorKind.UPSTREAM_UNAVAILABLE

    def test_api_error_maps_to_upstream_unavailable(self):
        def create(**kwargs):
            raise openai.APIConnectionError(request=httpx.Request("POST", "https://api.openai.com/v1"))

        provider = OpenAIProvider(api_key="sk-test")
        provider._client = _fake_client(create)
        with pytest.raises(GenerationError) as info:
            provider.generate_document("s", "u")
        assert info.value.kind is ErrorKind.UPSTREAM_UNAVAILABLE


# =============================================================================
# Config and errors
# =============================================================================


class TestConfig:
    def test_defaults(self):
        config = GeneratorConfig()
        assert config.model == "gpt-4o"
        assert config.schema_retries == 0

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("CAMPAIGN_STUDIO_MODEL", "gpt-env")
        monkeypatch.setenv("CAMPAIGN_STUDIO_TIMEOUT", "30")
        monkeypatch.setenv("CAMPAIGN_STUDIO_MAX_RETRIES", "5")
        config = GeneratorConfig.from_env()
        assert (config.model, config.timeout_seconds, config.max_retries) == ("gpt-env", 30.0, 5)

    def test_overrides_win(self, monkeypatch):
        monkeypatch.setenv("CAMPAIGN_STUDIO_MODEL", "gpt-env")
        assert GeneratorConfig.from_env(model="gpt-cli").model == "gpt-cli"


class TestGenerationError:
    def test_user_message_hides_backend_text(self):
        exc = GenerationError(ErrorKind.UPSTREAM_UNAVAILABLE, "HTTP 500 from upstream: traceback ...")
        message = exc.user_message()
        assert "HTTP 500" not in message
        assert "try again" in message

    def test_dict_round_trip(self):
        exc = GenerationError(ErrorKind.MALFORMED_DOCUMENT, "no html", stage="email")
        again = GenerationError.from_dict(exc.to_dict())
        assert (again.kind, again.message, again.stage) == (exc.kind, exc.message, exc.stage)
