"""Shared fixtures: a beta-launch campaign and a provider scripted for it."""

import pytest

from campaign_studio.models import (
    BrandSystem,
    BundleMetadata,
    ColorPalette,
    ContentStrategy,
    GenerationBundle,
    RequirementsContext,
)
from scripted import (
    BRAND,
    CONTENT,
    EMAIL,
    LANDING,
    QUALITY,
    ScriptedProvider,
)

CTA_LINK = "https://x.test/beta"

PALETTE = {
    "id": "1",
    "name": "Modern Blue",
    "description": "Clean and trustworthy",
    "mood": "professional",
    "colors": {
        "primary": "#2563EB",
        "secondary": "#3B82F6",
        "accent": "#F59E0B",
        "background": "#FFFFFF",
        "text": "#1F2937",
    },
}

# Backend brand answer with drifted colours; they must never survive.
BRAND_RESPONSE = {
    "colors": {
        "primary": "#FF0000",
        "secondary": "#00FF00",
        "accent": "#0000FF",
        "background": "#000000",
        "text": "#FFFFFF",
    },
    "typography": {
        "headingFont": "'Inter', Arial, sans-serif",
        "bodyFont": "'Inter', Arial, sans-serif",
        "fontSizes": {"h1": "2.5rem", "h2": "2rem", "h3": "1.5rem", "body": "1rem", "small": "0.875rem"},
    },
    "spacing": {"small": "0.5rem", "medium": "1rem", "large": "2rem", "xlarge": "4rem"},
    "visualStyle": {
        "borderRadius": "8px",
        "shadowStyle": "0 4px 12px rgba(0,0,0,0.08)",
        "buttonStyle": "solid fill",
        "layoutStyle": "single column",
    },
}

STRATEGY_RESPONSE = {
    "headlines": {
        "primary": "Ship client work on time with Tracklet",
        "secondary": "The project tracker app freelancers actually enjoy",
        "email": "Your invite to the Tracklet beta",
    },
    "body": {
        "intro": "Tracklet is the project tracker app built for freelancers juggling many clients.",
        "valueProps": ["Every client project on one board", "Deadlines that nudge you, not nag you"],
        "benefits": ["Never miss a deliverable", "Bill for every hour you track"],
        "socialProof": "Loved by 300 early testers",
    },
    "cta": {"primary": "Start now", "urgency": "Beta seats are limited"},
    "tone": {"voice": "warm and direct", "emotion": "confidence", "formality": "informal"},
}

QUALITY_RESPONSE = {
    "strongPoints": ["Clear headline", "Specific audience", "Strong CTA", "Consistent colours"],
    "improvementAreas": ["Add a testimonial", "Shorten the intro"],
    "proactiveMessage": "Your Tracklet beta campaign looks great!",
    "suggestedRefinements": ["Add a testimonials section", "Make the subject line more urgent"],
    "confidenceScore": 86,
}

EMAIL_HTML = """<!DOCTYPE html>
<html><head><meta charset="utf-8"><title>Tracklet beta</title></head>
<body><table role="presentation" width="600"><tr><td style="color:#1F2937;">
<h1 style="color:#2563EB;">Ship client work on time with Tracklet</h1>
<p>Tracklet is the project tracker app built for freelancers.</p>
</td></tr></table></body></html>"""

LANDING_HTML = """<!DOCTYPE html>
<html><head><style>body{font-family:Inter,sans-serif;color:#1F2937}</style></head>
<body><section class="hero"><h1>Ship client work on time with Tracklet</h1>
<a class="cta" href="https://x.test/beta">Join Beta</a></section></body></html>"""


@pytest.fixture
def context() -> RequirementsContext:
    return RequirementsContext(
        product="project tracker app",
        audience="freelancers",
        purpose="beta signups",
        tone="friendly",
        visual_style="modern",
        cta_enabled=True,
        cta_text="Join Beta",
        cta_link=CTA_LINK,
    )


@pytest.fixture
def palette() -> ColorPalette:
    return ColorPalette.model_validate(PALETTE)


@pytest.fixture
def brand_system(palette) -> BrandSystem:
    data = dict(BRAND_RESPONSE, colors=PALETTE["colors"])
    return BrandSystem.model_validate(data)


@pytest.fixture
def content_strategy() -> ContentStrategy:
    return ContentStrategy.model_validate(STRATEGY_RESPONSE)


@pytest.fixture
def bundle(brand_system, content_strategy) -> GenerationBundle:
    return GenerationBundle(
        email=EMAIL_HTML,
        landing=LANDING_HTML,
        metadata=BundleMetadata(
            brand_system=brand_system,
            content_strategy=content_strategy,
            suggested_refinements=["Add a testimonials section"],
            channels=["email", "landing"],
        ),
    )


@pytest.fixture
def landing_only_bundle(bundle) -> GenerationBundle:
    return bundle.model_copy(update={"email": None})


@pytest.fixture
def provider() -> ScriptedProvider:
    """Scripted for one successful generation run."""
    return (
        ScriptedProvider()
        .on(BRAND, BRAND_RESPONSE)
        .on(CONTENT, STRATEGY_RESPONSE)
        .on(EMAIL, EMAIL_HTML)
        .on(LANDING, LANDING_HTML)
        .on(QUALITY, QUALITY_RESPONSE)
    )
