"""Pydantic v2 data models for campaign-studio.

Attributes are snake_case; every model also accepts and emits the camelCase
names used on the wire (``ctaEnabled``, ``fontSizes``, ...).
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Dict, List, Literal, Optional, get_args

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from campaign_studio.colors import normalize_hex

Tone = Literal["professional", "casual", "playful", "urgent", "friendly"]
VisualStyle = Literal["modern", "minimal", "bold", "retro", "elegant", "tech", "playful"]
Channel = Literal["email", "landing"]
TargetAgent = Literal["brand", "content", "technical", "all"]

CHANNELS: tuple[str, ...] = ("email", "landing")
TONES: tuple[str, ...] = get_args(Tone)
VISUAL_STYLES: tuple[str, ...] = get_args(VisualStyle)


class WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True, mode="json")


# ── Requirements ─────────────────────────────────────────────────────────────

class RequirementsContext(WireModel):
    model_config = ConfigDict(frozen=True)

    product: str
    audience: str
    purpose: str
    tone: Tone = "professional"
    visual_style: VisualStyle = "modern"
    cta_enabled: bool = False
    cta_text: str = ""
    cta_link: str = ""
    color_preference: Optional[str] = None
    campaign_name: Optional[str] = None


REQUIRED_FIELDS = {
    "product": "product details",
    "audience": "target audience",
    "purpose": "campaign purpose",
}


class PartialRequirements(WireModel):
    """Whatever has been extracted from the conversation so far."""

    product: Optional[str] = None
    audience: Optional[str] = None
    purpose: Optional[str] = None
    tone: Optional[str] = None
    visual_style: Optional[str] = None
    cta_enabled: Optional[bool] = None
    cta_text: Optional[str] = None
    cta_link: Optional[str] = None
    color_preference: Optional[str] = None
    campaign_name: Optional[str] = None

    @field_validator("*", mode="before")
    @classmethod
    def _blank_to_none(cls, value):
        if isinstance(value, str) and value.strip().lower() in ("", "null", "none", "n/a", "unknown"):
            return None
        return value

    @field_validator("tone")
    @classmethod
    def _known_tone(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        value = value.strip().lower()
        return value if value in TONES else None

    @field_validator("visual_style")
    @classmethod
    def _known_style(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        value = value.strip().lower()
        return value if value in VISUAL_STYLES else None

    def merge(self, newer: Optional["PartialRequirements"]) -> "PartialRequirements":
        """Layer non-empty values from ``newer`` over this one."""
        if newer is None:
            return self
        update = {k: v for k, v in newer.model_dump().items() if v is not None}
        return self.model_copy(update=update)

    def missing_fields(self) -> List[str]:
        missing = [label for name, label in REQUIRED_FIELDS.items() if not getattr(self, name)]
        if self.cta_enabled:
            if not self.cta_link:
                missing.append("CTA link")
            if not self.cta_text:
                missing.append("CTA text")
        return missing

    def is_sufficient(self) -> bool:
        return not self.missing_fields()

    def to_context(self) -> RequirementsContext:
        if not self.is_sufficient():
            raise ValueError(f"Requirements incomplete: {', '.join(self.missing_fields())}")
        data = {k: v for k, v in self.model_dump().items() if v is not None}
        return RequirementsContext.model_validate(data)

    @classmethod
    def from_context(cls, context: RequirementsContext) -> "PartialRequirements":
        return cls.model_validate(context.model_dump())


# ── Colour palettes and brand system ─────────────────────────────────────────

class PaletteColors(WireModel):
    primary: str
    secondary: str
    accent: str
    background: str
    text: str

    @field_validator("primary", "secondary", "accent", "background", "text", mode="before")
    @classmethod
    def _hex(cls, value: str) -> str:
        return normalize_hex(value)


class ColorPalette(WireModel):
    id: str
    name: str
    description: str = ""
    mood: str = ""
    colors: PaletteColors

    @field_validator("id", mode="before")
    @classmethod
    def _id_as_str(cls, value) -> str:
        return str(value)


class FontSizes(WireModel):
    h1: str
    h2: str
    h3: str
    body: str
    small: str


class Typography(WireModel):
    heading_font: str
    body_font: str
    font_sizes: FontSizes


class Spacing(WireModel):
    small: str
    medium: str
    large: str
    xlarge: str


class VisualStyleTokens(WireModel):
    border_radius: str
    shadow_style: str
    button_style: str
    layout_style: str


class BrandSystem(WireModel):
    colors: PaletteColors
    typography: Typography
    spacing: Spacing
    visual_style: VisualStyleTokens


# ── Content strategy ─────────────────────────────────────────────────────────

class Headlines(WireModel):
    primary: str
    secondary: str
    email: str


class BodyCopy(WireModel):
    intro: str
    value_props: List[str] = Field(min_length=1)
    benefits: List[str] = Field(min_length=1)
    social_proof: Optional[str] = None


class CallToAction(WireModel):
    primary: str
    secondary: Optional[str] = None
    urgency: Optional[str] = None


class ToneGuide(WireModel):
    voice: str
    emotion: str
    formality: str


class ContentStrategy(WireModel):
    headlines: Headlines
    body: BodyCopy
    cta: CallToAction
    tone: ToneGuide

    def all_text(self) -> str:
        parts = [
            *self.headlines.model_dump().values(),
            self.body.intro,
            *self.body.value_props,
            *self.body.benefits,
            self.body.social_proof or "",
            *(v or "" for v in self.cta.model_dump().values()),
        ]
        return "\n".join(parts)


# ── Quality analysis ─────────────────────────────────────────────────────────

def _trim_lists(data, limits: Dict[str, int]):
    """Cut over-long list fields (snake or camel key) down to their limit."""
    if not isinstance(data, dict):
        return data
    data = dict(data)
    for name, limit in limits.items():
        for key in (name, to_camel(name)):
            if isinstance(data.get(key), list):
                data[key] = data[key][:limit]
    return data


class QualityAnalysis(WireModel):
    strong_points: List[str] = Field(min_length=3, max_length=5)
    improvement_areas: List[str] = Field(min_length=2, max_length=3)
    proactive_message: str
    suggested_refinements: List[str] = Field(min_length=2, max_length=3)
    confidence_score: float = Field(ge=0, le=100)

    @model_validator(mode="before")
    @classmethod
    def _trim(cls, data):
        return _trim_lists(
            data, {"strong_points": 5, "improvement_areas": 3, "suggested_refinements": 3}
        )


# ── Bundle ───────────────────────────────────────────────────────────────────

class BundleMetadata(WireModel):
    brand_system: BrandSystem
    content_strategy: ContentStrategy
    analysis: Optional[QualityAnalysis] = None
    suggested_refinements: List[str] = Field(default_factory=list)
    channels: List[Channel] = Field(default_factory=list)


class GenerationBundle(WireModel):
    email: Optional[str] = None
    landing: Optional[str] = None
    metadata: BundleMetadata

    def artifact(self, channel: str) -> Optional[str]:
        return getattr(self, channel)

    def existing_channels(self) -> List[str]:
        return [c for c in CHANNELS if self.artifact(c)]

    def is_complete(self, channels: Optional[List[str]] = None) -> bool:
        wanted = channels if channels is not None else self.metadata.channels
        return bool(wanted) and all(self.artifact(c) for c in wanted)


# ── Refinement ───────────────────────────────────────────────────────────────

class RefinementRoute(WireModel):
    target_agent: TargetAgent
    refinement_type: str = "general"
    specific_instructions: str
    channels: List[Channel] = Field(default_factory=list)
    color_change: bool = False
    direct_patch: bool = False


class RefinementRequest(WireModel):
    bundle: GenerationBundle
    instruction: str
    context: RequirementsContext


# ── Conversation ─────────────────────────────────────────────────────────────

class ChatTurn(WireModel):
    role: Literal["user", "assistant", "system"]
    content: str


class ConversationAnalysis(WireModel):
    has_enough_info: bool = False
    missing_info: List[str] = Field(default_factory=list)
    suggested_questions: List[str] = Field(default_factory=list)
    partial_context: PartialRequirements = Field(default_factory=PartialRequirements)

    @model_validator(mode="before")
    @classmethod
    def _trim(cls, data):
        return _trim_lists(data, {"suggested_questions": 3})


# ── Turn boundary ────────────────────────────────────────────────────────────

class TurnRequest(WireModel):
    transcript: List[ChatTurn]
    requirements_so_far: Optional[PartialRequirements] = None
    selected_palette: Optional[ColorPalette] = None
    selected_channels: List[Channel] = Field(default_factory=lambda: ["email", "landing"], min_length=1)
    asset_url: Optional[str] = None
    bundle: Optional[GenerationBundle] = None
    color_palettes: Optional[List[ColorPalette]] = None

    def latest_user_message(self) -> str:
        for turn in reversed(self.transcript):
            if turn.role == "user":
                return turn.content
        return ""


class TurnResponse(WireModel):
    email: Optional[str] = None
    landing: Optional[str] = None
    assistant_message: str
    bundle_metadata: Optional[BundleMetadata] = None
    needs_more_info: Optional[bool] = None
    color_palettes: Optional[List[ColorPalette]] = None
    selected_palette: Optional[ColorPalette] = None
    requirements: Optional[PartialRequirements] = None
    error: Optional[Dict[str, Optional[str]]] = None


# ── Run store ────────────────────────────────────────────────────────────────

class RunMeta(WireModel):
    run_id: str
    campaign: str
    status: str = "awaiting_requirements"
    model: Optional[str] = None
    channels: List[Channel] = Field(default_factory=list)
    palette: Optional[ColorPalette] = None
    refinements: int = 0
    error_message: Optional[str] = None
    created_at: str = Field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
    updated_at: Optional[str] = None
