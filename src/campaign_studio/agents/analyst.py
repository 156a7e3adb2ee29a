"""Conversation analyst: decides when a chat holds enough to start generating.

Readiness is monotonic. Once the accumulated requirements cover product,
audience and purpose (plus CTA text and link when a CTA is wanted), no
further backend call is made and the state stays Sufficient.
"""

from __future__ import annotations

import json
import logging
from typing import List, Optional

from campaign_studio.agents.common import transcript_text
from campaign_studio.llm.base import LLMProvider, Ok
from campaign_studio.models import ChatTurn, ConversationAnalysis, PartialRequirements
from campaign_studio.resources import load_profile, render_prompt

logger = logging.getLogger(__name__)

MAX_QUESTIONS = 3


def fallback_analysis(known: PartialRequirements) -> ConversationAnalysis:
    """Fixed three-question answer used when the analyst output is unusable."""
    questions: List[str] = list(load_profile("fallbacks")["default_questions"])[:MAX_QUESTIONS]
    return ConversationAnalysis(
        has_enough_info=False,
        missing_info=known.missing_fields(),
        suggested_questions=questions,
        partial_context=known,
    )


def analyze_conversation(
    transcript: List[ChatTurn],
    provider: LLMProvider,
    requirements_so_far: Optional[PartialRequirements] = None,
) -> ConversationAnalysis:
    """Classify the transcript as sufficient or not and extract requirements.

    ``has_enough_info`` is recomputed from the merged requirements; the
    backend's own verdict is not trusted.
    """
    known = requirements_so_far or PartialRequirements()
    if known.is_sufficient():
        logger.debug("Requirements already sufficient, skipping analyst call")
        return ConversationAnalysis(has_enough_info=True, partial_context=known)

    system_prompt = render_prompt(
        "analyst",
        transcript=transcript_text(transcript),
        known=json.dumps(known.model_dump(by_alias=True, exclude_none=True), ensure_ascii=False),
    )
    outcome = provider.generate_structured(
        system_prompt, "Analyse the conversation now.", ConversationAnalysis
    )
    if not isinstance(outcome, Ok):
        logger.warning("Analyst output rejected, asking default questions: %s", outcome.message)
        return fallback_analysis(known)

    extracted = outcome.value
    merged = known.merge(extracted.partial_context)
    missing = merged.missing_fields()
    questions = [q.strip() for q in extracted.suggested_questions if q.strip()] if missing else []
    if extracted.has_enough_info and missing:
        logger.info("Analyst claimed enough info but %s still missing", ", ".join(missing))
    return ConversationAnalysis(
        has_enough_info=not missing,
        missing_info=missing,
        suggested_questions=questions[:MAX_QUESTIONS],
        partial_context=merged,
    )


def clarifying_reply(analysis: ConversationAnalysis) -> str:
    """The assistant's reply while requirements are insufficient."""
    if analysis.suggested_questions:
        return "\n\n".join(analysis.suggested_questions[:MAX_QUESTIONS])

    fallbacks = load_profile("fallbacks")
    question_map = fallbacks.get("question_map", {})
    questions = [question_map[item] for item in analysis.missing_info if item in question_map]
    if questions:
        return "\n\n".join(questions[:MAX_QUESTIONS])
    return fallbacks["generic_question"]
