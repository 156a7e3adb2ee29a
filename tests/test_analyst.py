"""Tests for the conversation analyst."""

from campaign_studio.agents.analyst import (
    MAX_QUESTIONS,
    analyze_conversation,
    clarifying_reply,
    fallback_analysis,
)
from campaign_studio.models import ChatTurn, ConversationAnalysis, PartialRequirements
from scripted import ANALYST, ScriptedProvider


def _transcript(*messages):
    return [ChatTurn(role="user", content=m) for m in messages]


class TestAnalyzeConversation:
    def test_insufficient_caps_questions(self):
        provider = ScriptedProvider().on(ANALYST, {
            "hasEnoughInfo": True,
            "missingInfo": [],
            "suggestedQuestions": ["Who is it for?", "What's the goal?", "Any deadline?", "Budget?"],
            "partialContext": {"product": "project tracker app"},
        })
        analysis = analyze_conversation(_transcript("I want to promote my tracker app"), provider)

        assert analysis.has_enough_info is False
        assert len(analysis.suggested_questions) <= MAX_QUESTIONS
        assert "target audience" in analysis.missing_info
        assert analysis.partial_context.product == "project tracker app"

    def test_merges_with_known_requirements(self):
        provider = ScriptedProvider().on(ANALYST, {
            "hasEnoughInfo": False,
            "partialContext": {"audience": "freelancers", "purpose": "beta signups", "tone": "Friendly"},
        })
        known = PartialRequirements(product="project tracker app")
        analysis = analyze_conversation(_transcript("for freelancers, to get beta signups"), provider, known)

        assert analysis.has_enough_info is True
        assert analysis.suggested_questions == []
        assert analysis.partial_context.product == "project tracker app"
        assert analysis.partial_context.tone == "friendly"

    def test_no_backend_call_once_sufficient(self):
        provider = ScriptedProvider()
        known = PartialRequirements(product="app", audience="freelancers", purpose="signups")
        analysis = analyze_conversation(_transcript("anything"), provider, known)

        assert analysis.has_enough_info is True
        assert provider.calls == []

    def test_garbage_output_asks_default_questions(self):
        provider = ScriptedProvider().on(ANALYST, "Sure, sounds great!")
        analysis = analyze_conversation(_transcript("hi"), provider)

        assert analysis == fallback_analysis(PartialRequirements())
        assert len(analysis.suggested_questions) == 3
        assert analysis.has_enough_info is False

    def test_cta_link_required_when_cta_wanted(self):
        provider = ScriptedProvider().on(ANALYST, {
            "hasEnoughInfo": True,
            "partialContext": {
                "product": "project tracker app",
                "audience": "freelancers",
                "purpose": "beta signups",
                "ctaEnabled": True,
                "ctaText": "Join Beta",
            },
        })
        analysis = analyze_conversation(_transcript("add a Join Beta button"), provider)

        assert analysis.has_enough_info is False
        assert analysis.missing_info == ["CTA link"]

    def test_placeholder_values_do_not_count(self):
        provider = ScriptedProvider().on(ANALYST, {
            "partialContext": {"product": "unknown", "audience": "", "purpose": "N/A"},
        })
        analysis = analyze_conversation(_transcript("hello"), provider)
        assert analysis.partial_context.product is None
        assert len(analysis.missing_info) == 3


class TestClarifyingReply:
    def test_uses_suggested_questions(self):
        analysis = ConversationAnalysis(suggested_questions=["Who is it for?"])
        assert clarifying_reply(analysis) == "Who is it for?"

    def test_maps_missing_fields(self):
        analysis = ConversationAnalysis(missing_info=["CTA link"])
        assert clarifying_reply(analysis) == "Where should the call-to-action button link to?"

    def test_generic_question(self):
        assert clarifying_reply(ConversationAnalysis()) == "Could you tell me more about your campaign?"
