"""Content agent: copy and messaging strategy for the campaign.

Generation rejects copy that falls back to generic placeholders or never
names the product. Refinement asks the backend for a patch holding only the
facets that change and deep-merges it over the current strategy, so fields
the instruction did not touch come back unchanged.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Dict, List, Optional

from pydantic import ValidationError
from pydantic.alias_generators import to_camel

from campaign_studio.agents.common import dump_json
from campaign_studio.llm.base import LLMProvider, Ok
from campaign_studio.models import (
    BodyCopy,
    BrandSystem,
    CallToAction,
    ContentStrategy,
    Headlines,
    RequirementsContext,
    ToneGuide,
    WireModel,
)
from campaign_studio.resources import load_profile, render_prompt

logger = logging.getLogger(__name__)

_WORD_RE = re.compile(r"[\w']+")


class _ContentPatch(WireModel):
    headlines: Optional[Dict[str, Any]] = None
    body: Optional[Dict[str, Any]] = None
    cta: Optional[Dict[str, Any]] = None
    tone: Optional[Dict[str, Any]] = None


def find_placeholders(text: str) -> List[str]:
    lower = text.lower()
    return [p for p in load_profile("fallbacks")["generic_placeholders"] if p in lower]


def mentions_product(text: str, product: str) -> bool:
    """True when any significant word of the product name shows up in the copy."""
    lower = text.lower()
    words = [w for w in _WORD_RE.findall(product.lower()) if len(w) >= 4]
    if not words:
        return product.lower().strip() in lower
    return any(w in lower for w in words)


def _tone_guide(context: RequirementsContext) -> ToneGuide:
    tones = load_profile("brand_styles")["tones"]
    t = tones.get(context.tone, tones["professional"])
    return ToneGuide(voice=t["voice"], emotion=t["emotion"], formality=t["formality"])


def pin_cta(strategy: ContentStrategy, context: RequirementsContext) -> ContentStrategy:
    if not (context.cta_enabled and context.cta_text):
        return strategy
    cta = strategy.cta.model_copy(update={"primary": context.cta_text})
    return strategy.model_copy(update={"cta": cta})


def fallback_content_strategy(context: RequirementsContext) -> ContentStrategy:
    """Plain, product-specific copy built straight from the requirements."""
    product, audience, purpose = context.product, context.audience, context.purpose
    title = product[:1].upper() + product[1:]
    strategy = ContentStrategy(
        headlines=Headlines(
            primary=f"{title}, built for {audience}",
            secondary=f"See how {product} helps {audience} move faster.",
            email=f"{title}: made for {audience}",
        ),
        body=BodyCopy(
            intro=f"{title} is designed around the way {audience} actually work.",
            value_props=[
                f"{title} fits into your existing routine from day one",
                f"Everything {audience} need, in one place",
            ],
            benefits=[
                "Spend less time on busywork and more on what matters",
                f"Get started today: {purpose}",
            ],
        ),
        cta=CallToAction(primary=context.cta_text or "Get started"),
        tone=_tone_guide(context),
    )
    return pin_cta(strategy, context)


def generate_content_strategy(
    context: RequirementsContext,
    brand_system: BrandSystem,
    provider: LLMProvider,
) -> ContentStrategy:
    if context.cta_enabled and context.cta_text:
        cta = f'enabled, button text "{context.cta_text}", link {context.cta_link}'
    else:
        cta = "not requested, suggest one that fits the purpose"
    system_prompt = render_prompt(
        "content_strategy",
        product=context.product,
        audience=context.audience,
        purpose=context.purpose,
        tone=context.tone,
        visual_style=context.visual_style,
        style_cues=f"{brand_system.visual_style.layout_style}; buttons {brand_system.visual_style.button_style}",
        cta=cta,
    )
    outcome = provider.generate_structured(system_prompt, "Write the content strategy now.", ContentStrategy)
    if not isinstance(outcome, Ok):
        logger.warning("Content output rejected, using fallback copy: %s", outcome.message)
        return fallback_content_strategy(context)

    strategy = outcome.value
    text = strategy.all_text()
    placeholders = find_placeholders(text)
    if placeholders:
        logger.warning("Content used generic placeholders %s, using fallback copy", placeholders)
        return fallback_content_strategy(context)
    if not mentions_product(text, context.product):
        logger.warning("Content never names %r, using fallback copy", context.product)
        return fallback_content_strategy(context)
    return pin_cta(strategy, context)


def deep_merge(base: Dict[str, Any], patch: Dict[str, Any]) -> Dict[str, Any]:
    """Merge ``patch`` into ``base``. Dicts merge recursively, anything else replaces."""
    merged = dict(base)
    for key, value in patch.items():
        if value is None:
            continue
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def _camel_keys(data: Any) -> Any:
    if isinstance(data, dict):
        return {(to_camel(k) if "_" in k else k): _camel_keys(v) for k, v in data.items()}
    return data


def refine_content(
    current: ContentStrategy,
    instruction: str,
    context: RequirementsContext,
    provider: LLMProvider,
) -> ContentStrategy:
    """Change only the facet the instruction is about; unusable output keeps ``current``."""
    system_prompt = render_prompt(
        "content_refine",
        strategy_json=dump_json(current),
        product=context.product,
        audience=context.audience,
        purpose=context.purpose,
        tone=context.tone,
        instruction=instruction,
    )
    outcome = provider.generate_structured(system_prompt, "Return the content patch now.", _ContentPatch)
    if not isinstance(outcome, Ok):
        logger.warning("Content refinement rejected, keeping current strategy: %s", outcome.message)
        return current

    patch = _camel_keys(outcome.value.model_dump(exclude_none=True))
    if not patch:
        logger.info("Content refinement returned an empty patch")
        return current
    merged = deep_merge(current.to_wire(), patch)
    try:
        refined = ContentStrategy.model_validate(merged)
    except ValidationError as exc:
        logger.warning("Merged content strategy is invalid, keeping current: %s", exc.errors()[0]["msg"])
        return current

    placeholders = find_placeholders(refined.all_text())
    if placeholders and not find_placeholders(current.all_text()):
        logger.warning("Refined copy introduced placeholders %s, keeping current strategy", placeholders)
        return current
    logger.info("Content refined: %s", ", ".join(sorted(patch)))
    return refined
