"""Palette generator: free-text colour wishes to 4-5 distinct, accessible palettes.

Validation per candidate:
  - text on background reaches WCAG AA (4.5:1)
  - background is light unless a dark look was requested
  - moods are unique across the set
  - colour hints are honoured: qualified hints ("a little red") stay at
    accent level, dominant hints ("mostly blue") lead as primary or secondary

When fewer than four candidates survive, the fallback set from
``profiles/fallbacks.yaml`` is returned, tinted to the hints.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from pydantic import ValidationError

from campaign_studio.colors import COLOR_WORDS, contrast_ratio, hue_family, is_light
from campaign_studio.llm.base import LLMProvider, Ok
from campaign_studio.models import ColorPalette, PaletteColors, WireModel
from campaign_studio.resources import load_profile, render_prompt

logger = logging.getLogger(__name__)

MIN_PALETTES = 4
MAX_PALETTES = 5
MIN_CONTRAST = 4.5

_FRAGMENT_SPLIT_RE = re.compile(r",|;|\band\b|\bbut\b|\bwith\b|\bplus\b", re.IGNORECASE)
_COLOR_WORD_RE = re.compile(r"\b(" + "|".join(sorted(COLOR_WORDS, key=len, reverse=True)) + r")\b", re.IGNORECASE)
_ACCENT_RE = re.compile(
    r"\b(a little|little|a touch of|touch of|a hint of|hint of|a splash of|splash of|a bit of|bit of"
    r"|a pop of|pop of|some|subtle|slightly|accents?)\b",
    re.IGNORECASE,
)
_DARK_RE = re.compile(
    r"\b(dark (mode|theme|background)|night mode|black background|dark and moody)\b", re.IGNORECASE
)
_ORDINALS = {"first": 1, "second": 2, "third": 3, "fourth": 4, "fifth": 5}


@dataclass(frozen=True)
class ColorHints:
    dominant: Tuple[str, ...] = ()
    accents: Tuple[str, ...] = ()
    dark: bool = False


class _PaletteSet(WireModel):
    # Items are validated one by one so a single bad hex does not sink the set.
    palettes: List[Dict[str, Any]]


def parse_color_hints(description: str) -> ColorHints:
    """Split a colour description into dominant and accent-level hue families."""
    dominant: List[str] = []
    accents: List[str] = []
    for fragment in _FRAGMENT_SPLIT_RE.split(description or ""):
        families = [COLOR_WORDS[w.lower()] for w in _COLOR_WORD_RE.findall(fragment)]
        if not families:
            continue
        target = accents if _ACCENT_RE.search(fragment) else dominant
        for family in families:
            if family not in target:
                target.append(family)
    accents = [f for f in accents if f not in dominant]
    return ColorHints(
        dominant=tuple(dominant),
        accents=tuple(accents),
        dark=bool(_DARK_RE.search(description or "")),
    )


def palette_problems(palette: ColorPalette, hints: ColorHints) -> List[str]:
    """Reasons a candidate palette is rejected; empty when it is acceptable."""
    c = palette.colors
    problems: List[str] = []
    ratio = contrast_ratio(c.text, c.background)
    if ratio < MIN_CONTRAST:
        problems.append(f"text/background contrast {ratio:.2f} below {MIN_CONTRAST}")
    if not hints.dark and not is_light(c.background):
        problems.append("dark background was not requested")

    lead = {hue_family(c.primary), hue_family(c.secondary)}
    everything = lead | {hue_family(c.accent)}
    for family in hints.accents:
        if hue_family(c.primary) == family or lead == {family}:
            problems.append(f"{family} dominates although only a hint was asked for")
        elif family not in everything:
            problems.append(f"{family} hint is missing")
    if hints.dominant and not lead.intersection(hints.dominant):
        problems.append(f"none of {', '.join(hints.dominant)} leads the palette")
    return problems


def validate_palettes(candidates: List[ColorPalette], hints: ColorHints) -> List[ColorPalette]:
    valid: List[ColorPalette] = []
    seen_moods: set[str] = set()
    for palette in candidates:
        problems = palette_problems(palette, hints)
        mood = palette.mood.strip().lower()
        if mood and mood in seen_moods:
            problems.append(f"duplicate mood {mood!r}")
        if problems:
            logger.info("Rejected palette %r: %s", palette.name, "; ".join(problems))
            continue
        seen_moods.add(mood)
        valid.append(palette)
    return valid


def fallback_palettes(hints: Optional[ColorHints] = None) -> List[ColorPalette]:
    """The fixed fallback set, re-tinted to any colour hints."""
    fallbacks = load_profile("fallbacks")
    palettes = [ColorPalette.model_validate(p) for p in fallbacks["palettes"]]
    if hints is None or not (hints.dominant or hints.accents):
        return palettes

    swatches = fallbacks["family_swatches"]
    tinted: List[ColorPalette] = []
    for i, palette in enumerate(palettes):
        colors = palette.colors.model_dump()
        name = palette.name
        if hints.dominant:
            family = hints.dominant[i % len(hints.dominant)]
            shades = swatches[family]
            colors["primary"] = shades[i % len(shades)]
            colors["secondary"] = shades[(i + 2) % len(shades)]
            name = f"{family.title()} {palette.mood.title()}"
        if hints.accents and hue_family(colors["primary"]) in hints.accents:
            if hue_family(colors["secondary"]) not in hints.accents:
                colors["primary"], colors["secondary"] = colors["secondary"], colors["primary"]
            else:
                lead = next(f for f in swatches if f not in hints.accents)
                colors["primary"] = swatches[lead][i % len(swatches[lead])]
        if hints.accents:
            shades = swatches[hints.accents[i % len(hints.accents)]]
            colors["accent"] = shades[i % len(shades)]
        tinted.append(palette.model_copy(update={"name": name, "colors": PaletteColors(**colors)}))
    return tinted


def _renumber(palettes: List[ColorPalette]) -> List[ColorPalette]:
    return [p.model_copy(update={"id": str(i)}) for i, p in enumerate(palettes, 1)]


def generate_palettes(
    description: str,
    brand_context: str,
    provider: LLMProvider,
    tone: str = "professional",
    visual_style: str = "modern",
) -> List[ColorPalette]:
    """Return 4-5 palette candidates with ids ``1..n``."""
    hints = parse_color_hints(description)
    system_prompt = render_prompt(
        "palettes",
        description=description or "no preference, surprise me",
        brand_context=brand_context,
        tone=tone,
        visual_style=visual_style,
    )
    outcome = provider.generate_structured(system_prompt, "Generate the palettes now.", _PaletteSet)
    if not isinstance(outcome, Ok):
        logger.warning("Palette output rejected, using fallback palettes: %s", outcome.message)
        return _renumber(fallback_palettes(hints))

    candidates: List[ColorPalette] = []
    for item in outcome.value.palettes:
        try:
            candidates.append(ColorPalette.model_validate(item))
        except ValidationError as exc:
            logger.info("Dropped unparsable palette: %s", exc.errors()[0]["msg"])

    valid = validate_palettes(candidates, hints)
    if len(valid) < MIN_PALETTES:
        logger.warning("Only %d valid palettes, using fallback palettes", len(valid))
        return _renumber(fallback_palettes(hints))
    return _renumber(valid[:MAX_PALETTES])


def palette_selection_message(palettes: List[ColorPalette]) -> str:
    lines = ["Here are some colour palettes for your campaign:", ""]
    for p in palettes:
        c = p.colors
        lines.append(f"{p.id}. {p.name} ({p.mood}): {p.description}")
        lines.append(f"   primary {c.primary}, secondary {c.secondary}, accent {c.accent}")
    lines.append("")
    lines.append("Reply with the number or the name of the palette you like.")
    return "\n".join(lines)


def select_palette(selection: str, palettes: List[ColorPalette]) -> Tuple[Optional[ColorPalette], str]:
    """Interpret a user reply as a pick from the offered palettes."""
    text = (selection or "").strip().lower()
    chosen: Optional[ColorPalette] = None

    by_id = {p.id: p for p in palettes}
    m = re.search(r"\b(\d+)\b", text)
    if m and m.group(1) in by_id:
        chosen = by_id[m.group(1)]
    if chosen is None:
        for word, number in _ORDINALS.items():
            if re.search(rf"\b{word}\b", text) and str(number) in by_id:
                chosen = by_id[str(number)]
                break
    if chosen is None:
        for p in palettes:
            if p.name.lower() in text:
                chosen = p
                break

    if chosen is None:
        return None, (
            f"I didn't catch which palette you'd like. Reply with a number from 1 to {len(palettes)} "
            "or the palette name."
        )
    return chosen, f"Great choice! Building your campaign with the {chosen.name} palette."
