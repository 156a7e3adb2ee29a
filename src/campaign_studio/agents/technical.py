"""Technical agent: renders brand + copy into channel markup and patches it.

Initial renders are repaired after generation (CTA link, campaign image).
Refinements are not repaired: the user may have asked to remove exactly
those elements.
"""

from __future__ import annotations

import logging
from typing import Optional

from campaign_studio.agents.common import asset_rule, channel_label, cta_rule, dump_json
from campaign_studio.errors import ErrorKind, GenerationError
from campaign_studio.llm.base import LLMProvider, Ok
from campaign_studio.markup import ensure_asset, ensure_cta
from campaign_studio.models import BrandSystem, ContentStrategy, RequirementsContext
from campaign_studio.resources import render_prompt

logger = logging.getLogger(__name__)

_CHANNEL_RULES = {
    "email": "Keep the table-based layout and inline styles; email clients ignore <style> blocks.",
    "landing": "Keep the embedded CSS and the responsive behaviour intact.",
}


def _document(provider: LLMProvider, system_prompt: str, user_prompt: str, stage: str) -> str:
    outcome = provider.generate_document(system_prompt, user_prompt)
    if not isinstance(outcome, Ok):
        logger.error("%s produced no HTML document: %s", stage, outcome.message)
        raise GenerationError(ErrorKind.MALFORMED_DOCUMENT, outcome.message, stage=stage)
    return outcome.value


def _repair(
    document: str,
    channel: str,
    context: RequirementsContext,
    brand_system: BrandSystem,
    content_strategy: ContentStrategy,
    asset_url: Optional[str],
) -> str:
    if context.cta_enabled and context.cta_link:
        label = context.cta_text or content_strategy.cta.primary
        document = ensure_cta(document, channel, label, context.cta_link, brand_system)
    if asset_url:
        document = ensure_asset(document, channel, asset_url, alt=context.product)
    return document


def _render(
    channel: str,
    context: RequirementsContext,
    brand_system: BrandSystem,
    content_strategy: ContentStrategy,
    provider: LLMProvider,
    asset_url: Optional[str],
) -> str:
    system_prompt = render_prompt(
        channel,
        product=context.product,
        audience=context.audience,
        purpose=context.purpose,
        visual_style=context.visual_style,
        brand_json=dump_json(brand_system),
        strategy_json=dump_json(content_strategy),
        asset_rule=asset_rule(asset_url),
        cta_rule=cta_rule(context),
    )
    logger.info("Rendering %s for %r", channel_label(channel), context.product)
    document = _document(provider, system_prompt, f"Write the {channel_label(channel)} HTML now.", channel)
    return _repair(document, channel, context, brand_system, content_strategy, asset_url)


def generate_email(
    context: RequirementsContext,
    brand_system: BrandSystem,
    content_strategy: ContentStrategy,
    provider: LLMProvider,
    asset_url: Optional[str] = None,
) -> str:
    """Table-based, inline-styled marketing email (600px container)."""
    return _render("email", context, brand_system, content_strategy, provider, asset_url)


def generate_landing_page(
    context: RequirementsContext,
    brand_system: BrandSystem,
    content_strategy: ContentStrategy,
    provider: LLMProvider,
    asset_url: Optional[str] = None,
) -> str:
    """Single self-contained landing page with embedded CSS."""
    return _render("landing", context, brand_system, content_strategy, provider, asset_url)


RENDERERS = {"email": generate_email, "landing": generate_landing_page}


def refine_implementation(artifact: str, instruction: str, channel: str, provider: LLMProvider) -> str:
    """Structure-preserving edit of one channel's markup."""
    system_prompt = render_prompt(
        "technical_refine",
        channel_label=channel_label(channel),
        instruction=instruction,
        document=artifact,
        channel_rule=_CHANNEL_RULES[channel],
    )
    return _document(provider, system_prompt, "Return the updated HTML now.", f"refine_{channel}")


def refine_with_context(
    artifact: str,
    instruction: str,
    channel: str,
    brand_system: BrandSystem,
    content_strategy: ContentStrategy,
    context: RequirementsContext,
    provider: LLMProvider,
) -> str:
    """Re-apply an updated brand system and content strategy to one channel."""
    system_prompt = render_prompt(
        "technical_context",
        channel_label=channel_label(channel),
        instruction=instruction,
        brand_json=dump_json(brand_system),
        strategy_json=dump_json(content_strategy),
        document=artifact,
        channel_rule=_CHANNEL_RULES[channel],
    )
    logger.info("Cascading brand/content update into %s for %r", channel_label(channel), context.product)
    return _document(provider, system_prompt, "Return the updated HTML now.", f"refine_{channel}")
