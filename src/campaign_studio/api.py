"""Optional FastAPI HTTP API for campaign-studio.

Install with: pip install campaign-studio[api]
Run with: uvicorn campaign_studio.api:api --reload
"""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import List

try:
    from fastapi import Depends, FastAPI, HTTPException
except ImportError:
    raise ImportError(
        "FastAPI is not installed. Install with: pip install campaign-studio[api]"
    )

from campaign_studio import __version__
from campaign_studio.agents.palettes import generate_palettes, palette_selection_message
from campaign_studio.config import GeneratorConfig
from campaign_studio.errors import GenerationError
from campaign_studio.llm.base import LLMProvider
from campaign_studio.models import ColorPalette, TurnRequest, TurnResponse, WireModel
from campaign_studio.service import handle_turn

logger = logging.getLogger(__name__)

api = FastAPI(title="campaign-studio", version=__version__)


class PaletteRequest(WireModel):
    description: str = ""
    brand_context: str = ""
    tone: str = "professional"
    visual_style: str = "modern"


class PaletteResponse(WireModel):
    color_palettes: List[ColorPalette]
    assistant_message: str


@lru_cache(maxsize=1)
def get_provider() -> LLMProvider:
    """Provider built once from CAMPAIGN_STUDIO_* settings and OPENAI_API_KEY."""
    from campaign_studio.llm.openai_provider import OpenAIProvider

    try:
        return OpenAIProvider(GeneratorConfig.from_env())
    except EnvironmentError as exc:
        logger.error("No LLM provider available: %s", exc)
        raise HTTPException(503, "The content generator is not configured.")


@api.get("/health")
def health():
    return {"status": "ok", "version": __version__}


@api.post("/turn", response_model=TurnResponse, response_model_by_alias=True)
def post_turn(request: TurnRequest, provider: LLMProvider = Depends(get_provider)) -> TurnResponse:
    return handle_turn(request, provider)


@api.post("/palettes", response_model=PaletteResponse, response_model_by_alias=True)
def post_palettes(request: PaletteRequest, provider: LLMProvider = Depends(get_provider)) -> PaletteResponse:
    try:
        palettes = generate_palettes(
            request.description,
            request.brand_context,
            provider,
            tone=request.tone,
            visual_style=request.visual_style,
        )
    except GenerationError as exc:
        logger.error("Palette generation failed: %r", exc)
        raise HTTPException(502, exc.user_message())
    return PaletteResponse(color_palettes=palettes, assistant_message=palette_selection_message(palettes))
