"""Refinement router: picks the specialist and channels for a free-text edit.

Two deterministic rules run before the backend is asked:

  - start-over phrases go to ``all`` (full regeneration)
  - element-scoped cosmetic edits ("make the heading blue") go straight to
    ``technical`` as a direct patch, bypassing brand and content

Channel selection is keyword based. An instruction naming both channels or
neither applies to every channel that exists; this is a heuristic and can
misread instructions that mention a channel only in passing.
"""

from __future__ import annotations

import logging
import re
from typing import List

from campaign_studio.colors import COLOR_WORDS
from campaign_studio.llm.base import LLMProvider, Ok
from campaign_studio.models import GenerationBundle, RefinementRoute, RequirementsContext, TargetAgent, WireModel
from campaign_studio.resources import render_prompt

logger = logging.getLogger(__name__)

EMAIL_KEYWORDS = ("email", "e-mail", "mail", "newsletter", "subject line", "inbox")
LANDING_KEYWORDS = ("landing", "website", "web page", "webpage", "site", "homepage", "page", "hero")

_START_OVER_RE = re.compile(
    r"\b(start over|start again|from scratch|begin again|redo (it all|everything)"
    r"|regenerate (it all|everything)|completely different|doesn'?t feel right)\b",
    re.IGNORECASE,
)
_COLOR_CHANGE_RE = re.compile(
    r"\b(colou?rs|palette|colou?r scheme|brand colou?r|(primary|secondary|accent) colou?r"
    r"|change (the )?colou?r|(warmer|cooler) (colou?rs?|palette|tones|shades|colou?r scheme))\b"
    r"|#[0-9a-f]{3,6}\b",
    re.IGNORECASE,
)
_ELEMENT_RE = re.compile(
    r"\b(heading|headline|title|button|link|footer|header|border|image|logo|icon|divider|section)s?\b",
    re.IGNORECASE,
)
# Bold and alignment words only count next to a style noun.
_COSMETIC_RE = re.compile(
    r"\b(" + "|".join(COLOR_WORDS) + r"|bigger|smaller|larger|italic|underlined|centered|centred"
    r"|rounded|square|wider|narrower|thicker|thinner"
    r"|bold(er)? font|font[- ]weight|(left|right|center|centre)[- ]align(ed)?"
    r"|align(ed)? (to the )?(left|right|center|centre))\b",
    re.IGNORECASE,
)
_COPY_RE = re.compile(
    r"\b(rewrite|reword|rephrase|say|says|saying|wording|words?|text|copy|speaks?|tone|voice"
    r"|message|messaging|phrase|phrasing|punchy|punchier|catchy|catchier|generic|sounds?|reads?)\b",
    re.IGNORECASE,
)


class _RouteDecision(WireModel):
    target_agent: TargetAgent
    refinement_type: str = "general"
    specific_instructions: str = ""


def _mentions(text: str, keywords) -> bool:
    return any(re.search(rf"\b{re.escape(k)}\b", text) for k in keywords)


def detect_channels(instruction: str, existing: List[str]) -> List[str]:
    """Channels an instruction targets, always a subset of ``existing``."""
    text = instruction.lower()
    wants_email = _mentions(text, EMAIL_KEYWORDS)
    wants_landing = _mentions(text, LANDING_KEYWORDS)
    if wants_email == wants_landing:
        return list(existing)
    chosen = "email" if wants_email else "landing"
    if chosen not in existing:
        logger.info("Instruction names %s but only %s exists, applying to all", chosen, existing)
        return list(existing)
    return [chosen]


def is_color_change(instruction: str) -> bool:
    """True for palette-level colour requests; element recolouring does not count."""
    return bool(_COLOR_CHANGE_RE.search(instruction))


def is_start_over(instruction: str) -> bool:
    return bool(_START_OVER_RE.search(instruction))


def is_cosmetic_patch(instruction: str) -> bool:
    """Element-scoped visual edits that need neither brand nor copy changes."""
    if is_color_change(instruction) or _COPY_RE.search(instruction):
        return False
    return bool(_ELEMENT_RE.search(instruction) and _COSMETIC_RE.search(instruction))


def route_refinement(
    instruction: str,
    bundle: GenerationBundle,
    context: RequirementsContext,
    provider: LLMProvider,
) -> RefinementRoute:
    existing = bundle.existing_channels()
    channels = detect_channels(instruction, existing)
    color_change = is_color_change(instruction)

    if is_start_over(instruction):
        route = RefinementRoute(
            target_agent="all",
            refinement_type="restart",
            specific_instructions=instruction,
            channels=existing,
            color_change=color_change,
        )
        logger.info("Routed to all (start over)")
        return route
    if is_cosmetic_patch(instruction):
        logger.info("Routed to technical direct patch on %s", channels)
        return RefinementRoute(
            target_agent="technical",
            refinement_type="styling",
            specific_instructions=instruction,
            channels=channels,
            direct_patch=True,
        )

    brand = bundle.metadata.brand_system
    strategy = bundle.metadata.content_strategy
    system_prompt = render_prompt(
        "route_refinement",
        instruction=instruction,
        product=context.product,
        audience=context.audience,
        channels=", ".join(existing),
        primary=brand.colors.primary,
        secondary=brand.colors.secondary,
        text=brand.colors.text,
        heading_font=brand.typography.heading_font,
        body_font=brand.typography.body_font,
        headline=strategy.headlines.primary,
        cta=strategy.cta.primary,
    )
    outcome = provider.generate_structured(system_prompt, "Route the request now.", _RouteDecision)
    if not isinstance(outcome, Ok):
        logger.warning("Routing output rejected, defaulting to technical on %s: %s", existing, outcome.message)
        return RefinementRoute(
            target_agent="technical",
            refinement_type="general",
            specific_instructions=instruction,
            channels=existing,
            color_change=color_change,
            direct_patch=True,
        )

    decision = outcome.value
    target = decision.target_agent
    route = RefinementRoute(
        target_agent=target,
        refinement_type=decision.refinement_type or "general",
        specific_instructions=decision.specific_instructions.strip() or instruction,
        channels=existing if target == "all" else channels,
        color_change=color_change,
        direct_patch=target == "technical",
    )
    logger.info("Routed to %s (%s) on %s", route.target_agent, route.refinement_type, route.channels)
    return route
