"""Post-generation quality analysis. Advisory only, it never blocks a bundle."""

from __future__ import annotations

import logging
from typing import Dict, List

from campaign_studio.errors import GenerationError
from campaign_studio.llm.base import LLMProvider, Ok
from campaign_studio.models import BrandSystem, ContentStrategy, QualityAnalysis, RequirementsContext
from campaign_studio.resources import render_prompt

logger = logging.getLogger(__name__)


def fallback_analysis(
    context: RequirementsContext,
    brand_system: BrandSystem,
    content_strategy: ContentStrategy,
) -> QualityAnalysis:
    improvements = ["Try a shorter, punchier email headline to lift open rates"]
    if content_strategy.body.social_proof:
        improvements.append("Move the social proof closer to the call-to-action")
    else:
        improvements.append(f"Add social proof from real {context.audience} to build trust")
    return QualityAnalysis(
        strong_points=[
            f'The headline "{content_strategy.headlines.primary}" leads with {context.product}',
            f"{len(content_strategy.body.value_props)} value props speak directly to {context.audience}",
            f"Colours stay true to your palette (primary {brand_system.colors.primary})",
        ],
        improvement_areas=improvements,
        proactive_message=f"Your {context.product} campaign is ready!",
        suggested_refinements=[
            "Make the primary headline more urgent",
            "Add a testimonials section to the landing page",
        ],
        confidence_score=70,
    )


def analyze_quality(
    context: RequirementsContext,
    brand_system: BrandSystem,
    content_strategy: ContentStrategy,
    artifacts: Dict[str, str],
    provider: LLMProvider,
) -> QualityAnalysis:
    system_prompt = render_prompt(
        "quality_analysis",
        product=context.product,
        audience=context.audience,
        purpose=context.purpose,
        channels=", ".join(artifacts) or "none",
        visual_style=context.visual_style,
        primary=brand_system.colors.primary,
        headline=content_strategy.headlines.primary,
        voice=content_strategy.tone.voice,
        emotion=content_strategy.tone.emotion,
        sizes=", ".join(f"{name} {len(doc)} chars" for name, doc in artifacts.items()),
    )
    try:
        outcome = provider.generate_structured(system_prompt, "Review the campaign now.", QualityAnalysis)
    except GenerationError as exc:
        logger.warning("Quality analysis unavailable, using default analysis: %s", exc.message)
        return fallback_analysis(context, brand_system, content_strategy)
    if not isinstance(outcome, Ok):
        logger.warning("Quality analysis rejected, using default analysis: %s", outcome.message)
        return fallback_analysis(context, brand_system, content_strategy)
    logger.info("Quality analysis confidence %.0f", outcome.value.confidence_score)
    return outcome.value


def proactive_message(analysis: QualityAnalysis) -> str:
    """Celebratory chat message with numbered suggestions and a next-step question."""
    lines: List[str] = [analysis.proactive_message.strip(), ""]
    if analysis.strong_points:
        lines.append("What's working well:")
        lines.extend(f"- {point}" for point in analysis.strong_points)
        lines.append("")
    if analysis.suggested_refinements:
        lines.append("A few ideas to take it further:")
        lines.extend(f"{i}. {s}" for i, s in enumerate(analysis.suggested_refinements, 1))
        lines.append("")
    lines.append("Would you like to deploy this campaign as it is, or refine something first?")
    return "\n".join(lines)
