"""Hex colour helpers: normalisation, WCAG contrast and coarse hue families."""

from __future__ import annotations

import colorsys
import re

_HEX_RE = re.compile(r"^#?([0-9a-fA-F]{3}|[0-9a-fA-F]{6})$")

# Upper hue bounds in degrees, checked in order. Red wraps around 360.
_HUE_FAMILIES = [
    (15, "red"),
    (45, "orange"),
    (70, "yellow"),
    (165, "green"),
    (195, "cyan"),
    (255, "blue"),
    (290, "purple"),
    (335, "pink"),
    (360, "red"),
]

COLOR_WORDS = {
    "red": "red",
    "crimson": "red",
    "scarlet": "red",
    "maroon": "red",
    "burgundy": "red",
    "orange": "orange",
    "coral": "orange",
    "yellow": "yellow",
    "gold": "yellow",
    "golden": "yellow",
    "green": "green",
    "emerald": "green",
    "olive": "green",
    "mint": "green",
    "teal": "cyan",
    "cyan": "cyan",
    "turquoise": "cyan",
    "aqua": "cyan",
    "blue": "blue",
    "navy": "blue",
    "azure": "blue",
    "cobalt": "blue",
    "indigo": "blue",
    "purple": "purple",
    "violet": "purple",
    "lavender": "purple",
    "pink": "pink",
    "magenta": "pink",
    "rose": "pink",
}


def normalize_hex(value: str) -> str:
    """Return ``value`` as upper-case ``#RRGGBB`` or raise ``ValueError``."""
    m = _HEX_RE.match(value.strip()) if isinstance(value, str) else None
    if not m:
        raise ValueError(f"Not a hex colour: {value!r}")
    digits = m.group(1)
    if len(digits) == 3:
        digits = "".join(ch * 2 for ch in digits)
    return "#" + digits.upper()


def hex_to_rgb(value: str) -> tuple[int, int, int]:
    digits = normalize_hex(value)[1:]
    return int(digits[0:2], 16), int(digits[2:4], 16), int(digits[4:6], 16)


def relative_luminance(value: str) -> float:
    def channel(c: int) -> float:
        s = c / 255.0
        return s / 12.92 if s <= 0.03928 else ((s + 0.055) / 1.055) ** 2.4

    r, g, b = hex_to_rgb(value)
    return 0.2126 * channel(r) + 0.7152 * channel(g) + 0.0722 * channel(b)


def contrast_ratio(a: str, b: str) -> float:
    """WCAG 2.x contrast ratio between two colours (1.0 to 21.0)."""
    la, lb = relative_luminance(a), relative_luminance(b)
    lighter, darker = max(la, lb), min(la, lb)
    return (lighter + 0.05) / (darker + 0.05)


def is_light(value: str) -> bool:
    return relative_luminance(value) >= 0.5


def hue_family(value: str) -> str:
    """Classify a colour into a coarse hue family, or ``neutral`` for greys."""
    r, g, b = hex_to_rgb(value)
    h, lightness, s = colorsys.rgb_to_hls(r / 255.0, g / 255.0, b / 255.0)
    if s < 0.25 or lightness < 0.18 or lightness > 0.95:
        return "neutral"
    degrees = h * 360.0
    for bound, name in _HUE_FAMILIES:
        if degrees < bound:
            return name
    return "red"
