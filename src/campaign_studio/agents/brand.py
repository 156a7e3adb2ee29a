"""Brand agent: requirements + selected palette to a full brand system.

The palette colours are pinned. Whatever the backend returns for ``colors``
is overwritten with the palette, and refinements keep the current colours
unless the caller has flagged the instruction as a colour change.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, Optional

from pydantic import ValidationError

from campaign_studio.agents.common import dump_json
from campaign_studio.colors import contrast_ratio
from campaign_studio.llm.base import LLMProvider, Ok
from campaign_studio.models import (
    BrandSystem,
    ColorPalette,
    FontSizes,
    PaletteColors,
    RequirementsContext,
    Spacing,
    Typography,
    VisualStyleTokens,
    WireModel,
)
from campaign_studio.resources import load_profile, render_prompt

logger = logging.getLogger(__name__)

MIN_TEXT_CONTRAST = 4.5


class _BrandDraft(WireModel):
    """Backend answer; colours are optional because they get pinned anyway."""

    colors: Optional[Dict[str, Any]] = None
    typography: Typography
    spacing: Spacing
    visual_style: VisualStyleTokens


def style_tokens(visual_style: str) -> dict:
    styles = load_profile("brand_styles")["styles"]
    return styles.get(visual_style, styles["modern"])


def _style_hint(visual_style: str) -> str:
    s = style_tokens(visual_style)
    return (
        f"Heading font: {s['heading_font']}\n"
        f"Body font: {s['body_font']}\n"
        f"Border radius: {s['border_radius']}\n"
        f"Shadow: {s['shadow_style']}\n"
        f"Buttons: {s['button_style']}\n"
        f"Layout: {s['layout_style']}"
    )


def fallback_brand_system(context: RequirementsContext, palette: ColorPalette) -> BrandSystem:
    """Deterministic brand system from the style and tone maps."""
    profile = load_profile("brand_styles")
    style = style_tokens(context.visual_style)
    tone = profile["tones"].get(context.tone, profile["tones"]["professional"])
    return BrandSystem(
        colors=palette.colors.model_copy(),
        typography=Typography(
            heading_font=style["heading_font"],
            body_font=style["body_font"],
            font_sizes=FontSizes(**profile["font_sizes"]),
        ),
        spacing=Spacing(**tone["spacing"]),
        visual_style=VisualStyleTokens(
            border_radius=style["border_radius"],
            shadow_style=style["shadow_style"],
            button_style=style["button_style"],
            layout_style=style["layout_style"],
        ),
    )


def generate_brand_system(
    context: RequirementsContext,
    palette: ColorPalette,
    provider: LLMProvider,
) -> BrandSystem:
    system_prompt = render_prompt(
        "brand_system",
        product=context.product,
        audience=context.audience,
        tone=context.tone,
        visual_style=context.visual_style,
        colors=dump_json(palette.colors),
        style_hint=_style_hint(context.visual_style),
    )
    outcome = provider.generate_structured(system_prompt, "Create the brand system now.", _BrandDraft)
    if not isinstance(outcome, Ok):
        logger.warning("Brand output rejected, using %s style map: %s", context.visual_style, outcome.message)
        return fallback_brand_system(context, palette)

    draft = outcome.value
    brand = BrandSystem(
        colors=palette.colors.model_copy(),
        typography=draft.typography,
        spacing=draft.spacing,
        visual_style=draft.visual_style,
    )
    logger.info(
        "Brand system ready: %s / %s",
        brand.typography.heading_font.split(",")[0],
        brand.typography.body_font.split(",")[0],
    )
    return brand


def _requested_colors(draft: _BrandDraft, current: PaletteColors) -> PaletteColors:
    """Colours from a colour-change refinement, keeping text readable."""
    if not draft.colors:
        return current
    merged = {**current.model_dump(), **{k: v for k, v in draft.colors.items() if v}}
    try:
        colors = PaletteColors.model_validate(merged)
    except ValidationError:
        logger.warning("Refined colours are not valid hex values, keeping current colours")
        return current
    if contrast_ratio(colors.text, colors.background) < MIN_TEXT_CONTRAST:
        logger.info("Refined text/background fails contrast, keeping current pair")
        colors = colors.model_copy(update={"text": current.text, "background": current.background})
    return colors


def refine_brand_system(
    current: BrandSystem,
    instruction: str,
    provider: LLMProvider,
    allow_color_change: bool = False,
) -> BrandSystem:
    """Apply a brand-level instruction. Unusable output leaves ``current`` as is."""
    if allow_color_change:
        color_rule = "The request asks for a colour change: change the colours it names, keep the others."
    else:
        color_rule = "Keep every colour exactly as it is: " + json.dumps(current.colors.model_dump())
    system_prompt = render_prompt(
        "brand_refine",
        brand_json=dump_json(current),
        instruction=instruction,
        color_rule=color_rule,
    )
    outcome = provider.generate_structured(system_prompt, "Return the refined brand system now.", _BrandDraft)
    if not isinstance(outcome, Ok):
        logger.warning("Brand refinement rejected, keeping current brand system: %s", outcome.message)
        return current

    draft = outcome.value
    colors = _requested_colors(draft, current.colors) if allow_color_change else current.colors
    return BrandSystem(
        colors=colors.model_copy(),
        typography=draft.typography,
        spacing=draft.spacing,
        visual_style=draft.visual_style,
    )
