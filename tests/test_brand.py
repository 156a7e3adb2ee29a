"""Tests for the brand agent."""

from campaign_studio.agents.brand import (
    fallback_brand_system,
    generate_brand_system,
    refine_brand_system,
)
from conftest import BRAND_RESPONSE, PALETTE
from scripted import BRAND, BRAND_REFINE, ScriptedProvider


class TestGenerateBrandSystem:
    def test_palette_colours_are_pinned(self, context, palette, provider):
        brand = generate_brand_system(context, palette, provider)

        assert brand.colors == palette.colors
        assert brand.colors.primary == "#2563EB"
        assert brand.typography.heading_font == BRAND_RESPONSE["typography"]["headingFont"]

    def test_prompt_carries_palette(self, context, palette, provider):
        generate_brand_system(context, palette, provider)
        (prompt,) = provider.calls_for(BRAND)
        assert PALETTE["colors"]["accent"] in prompt

    def test_missing_colours_in_draft_are_fine(self, context, palette):
        draft = {k: v for k, v in BRAND_RESPONSE.items() if k != "colors"}
        brand = generate_brand_system(context, palette, ScriptedProvider().on(BRAND, draft))
        assert brand.colors == palette.colors

    def test_schema_violation_uses_style_map(self, context, palette):
        elegant = context.model_copy(update={"visual_style": "elegant"})
        brand = generate_brand_system(elegant, palette, ScriptedProvider().on(BRAND, {"colors": {}}))

        assert brand == fallback_brand_system(elegant, palette)
        assert brand.typography.heading_font.startswith("'Playfair Display'")
        assert brand.colors == palette.colors


class TestRefineBrandSystem:
    def test_colours_kept_without_colour_change(self, brand_system):
        provider = ScriptedProvider().on(BRAND_REFINE, dict(BRAND_RESPONSE, spacing={
            "small": "1rem", "medium": "2rem", "large": "3rem", "xlarge": "5rem",
        }))
        refined = refine_brand_system(brand_system, "more breathing room", provider)

        assert refined.colors == brand_system.colors
        assert refined.spacing.medium == "2rem"
        assert "Keep every colour exactly as it is" in provider.calls[0]

    def test_colour_change_applies_named_colours(self, brand_system):
        provider = ScriptedProvider().on(BRAND_REFINE, dict(BRAND_RESPONSE, colors={"primary": "#7c3aed"}))
        refined = refine_brand_system(brand_system, "make the colours purple", provider, allow_color_change=True)

        assert refined.colors.primary == "#7C3AED"
        assert refined.colors.secondary == brand_system.colors.secondary
        assert refined.colors.text == brand_system.colors.text

    def test_unreadable_text_pair_is_restored(self, brand_system):
        colors = {"primary": "#7C3AED", "text": "#FFFFFF", "background": "#FAFAFA"}
        provider = ScriptedProvider().on(BRAND_REFINE, dict(BRAND_RESPONSE, colors=colors))
        refined = refine_brand_system(brand_system, "new colour scheme", provider, allow_color_change=True)

        assert refined.colors.primary == "#7C3AED"
        assert (refined.colors.text, refined.colors.background) == (
            brand_system.colors.text,
            brand_system.colors.background,
        )

    def test_invalid_hex_keeps_current_colours(self, brand_system):
        provider = ScriptedProvider().on(BRAND_REFINE, dict(BRAND_RESPONSE, colors={"primary": "purple"}))
        refined = refine_brand_system(brand_system, "change the colour", provider, allow_color_change=True)
        assert refined.colors == brand_system.colors

    def test_violation_keeps_current(self, brand_system):
        provider = ScriptedProvider().on(BRAND_REFINE, "I made it nicer.")
        assert refine_brand_system(brand_system, "nicer", provider) is brand_system
