"""One conversation turn in, one response out.

The core keeps no session: the caller resends the transcript, the
requirements gathered so far, any offered palettes and the current bundle
with every turn. Dispatch order:

  1. a bundle with artifacts -> refinement
  2. palettes offered, none selected -> read the reply as a palette pick
  3. requirements insufficient -> clarifying questions
  4. sufficient, no palette -> offer palettes
  5. sufficient with a palette -> generate
"""

from __future__ import annotations

import logging
from typing import List, Optional

from campaign_studio.agents.analyst import analyze_conversation, clarifying_reply
from campaign_studio.agents.palettes import generate_palettes, palette_selection_message, select_palette
from campaign_studio.agents.quality import proactive_message
from campaign_studio.errors import GenerationError
from campaign_studio.graph import coordinate_generation, handle_refinement
from campaign_studio.llm.base import LLMProvider
from campaign_studio.models import (
    CHANNELS,
    ColorPalette,
    GenerationBundle,
    PartialRequirements,
    RefinementRequest,
    RefinementRoute,
    RequirementsContext,
    TurnRequest,
    TurnResponse,
)

logger = logging.getLogger(__name__)

_CHANNEL_NAMES = {"email": "email", "landing": "landing page"}


def _channel_list(channels: List[str]) -> str:
    names = [_CHANNEL_NAMES[c] for c in CHANNELS if c in channels]
    return " and ".join(names) if names else "campaign"


def _error_response(
    exc: GenerationError,
    request: TurnRequest,
    requirements: Optional[PartialRequirements] = None,
) -> TurnResponse:
    """Single user-facing error; the incoming bundle is handed back untouched."""
    bundle = request.bundle
    return TurnResponse(
        email=bundle.email if bundle else None,
        landing=bundle.landing if bundle else None,
        assistant_message=exc.user_message(),
        bundle_metadata=bundle.metadata if bundle else None,
        color_palettes=request.color_palettes,
        selected_palette=request.selected_palette,
        requirements=requirements or request.requirements_so_far,
        error={"kind": exc.kind.value, "stage": exc.stage},
    )


def _bundle_response(bundle: GenerationBundle, message: str, **extra) -> TurnResponse:
    return TurnResponse(
        email=bundle.email,
        landing=bundle.landing,
        assistant_message=message,
        bundle_metadata=bundle.metadata,
        needs_more_info=False,
        **extra,
    )


def _refinement_message(route: RefinementRoute, bundle: GenerationBundle) -> str:
    where = _channel_list(route.channels)
    if route.target_agent == "all":
        if bundle.metadata.analysis is not None:
            return proactive_message(bundle.metadata.analysis)
        return f"I started over and regenerated your {where}."
    if route.target_agent == "brand":
        return f"I updated the brand system and re-applied it to your {where}. Anything else to tweak?"
    if route.target_agent == "content":
        return f"I refreshed the copy in your {where}. Anything else to tweak?"
    return f"Done! I updated your {where}. Anything else to tweak?"


def _refinement_context(request: TurnRequest, provider: LLMProvider) -> RequirementsContext:
    known = request.requirements_so_far or PartialRequirements()
    if not known.is_sufficient():
        known = analyze_conversation(request.transcript, provider, known).partial_context
    if known.is_sufficient():
        return known.to_context()
    # Best effort: refinement only needs the context as prompt background.
    data = {k: v for k, v in known.model_dump().items() if v is not None}
    for field in ("product", "audience", "purpose"):
        data.setdefault(field, "")
    return RequirementsContext.model_validate(data)


def _refine(request: TurnRequest, provider: LLMProvider) -> TurnResponse:
    bundle = request.bundle
    instruction = request.latest_user_message().strip()
    if not instruction:
        return _bundle_response(bundle, "What would you like to change in your campaign?")

    context = _refinement_context(request, provider)
    refined, route, error = handle_refinement(
        RefinementRequest(bundle=bundle, instruction=instruction, context=context),
        provider,
        asset_url=request.asset_url,
    )
    requirements = PartialRequirements.from_context(context)
    if error is None:
        return _bundle_response(refined, _refinement_message(route, refined), requirements=requirements)

    if error.stage in CHANNELS and refined is not bundle:
        done = [c for c in route.channels if c != error.stage]
        message = (
            f"I updated your {_channel_list(done)}, but the {_CHANNEL_NAMES[error.stage]} could not be "
            "changed and keeps its previous version. Please try again for that one."
        )
        return _bundle_response(
            refined, message, requirements=requirements, error={"kind": error.kind.value, "stage": error.stage}
        )
    return _error_response(error, request, requirements)


def _generate(
    request: TurnRequest,
    requirements: PartialRequirements,
    palette: ColorPalette,
    provider: LLMProvider,
    preface: str = "",
) -> TurnResponse:
    context = requirements.to_context()
    bundle = coordinate_generation(
        context,
        palette,
        provider,
        channels=request.selected_channels,
        asset_url=request.asset_url,
    )
    if bundle.metadata.analysis is not None:
        message = proactive_message(bundle.metadata.analysis)
    else:
        message = f"Your {_channel_list(bundle.metadata.channels)} for {context.product} is ready!"
    if preface:
        message = f"{preface}\n\n{message}"
    return _bundle_response(bundle, message, selected_palette=palette, requirements=requirements)


def _handle(request: TurnRequest, provider: LLMProvider) -> TurnResponse:
    if request.bundle is not None and request.bundle.existing_channels():
        return _refine(request, provider)

    known = request.requirements_so_far or PartialRequirements()
    if request.color_palettes and request.selected_palette is None and known.is_sufficient():
        palette, message = select_palette(request.latest_user_message(), request.color_palettes)
        if palette is None:
            return TurnResponse(
                assistant_message=message,
                needs_more_info=False,
                color_palettes=request.color_palettes,
                requirements=known,
            )
        return _generate(request, known, palette, provider, preface=message)

    analysis = analyze_conversation(request.transcript, provider, known)
    requirements = analysis.partial_context
    if not analysis.has_enough_info:
        return TurnResponse(
            assistant_message=clarifying_reply(analysis),
            needs_more_info=True,
            requirements=requirements,
        )

    if request.selected_palette is None:
        palettes = generate_palettes(
            requirements.color_preference or "",
            f"{requirements.product} for {requirements.audience}",
            provider,
            tone=requirements.tone or "professional",
            visual_style=requirements.visual_style or "modern",
        )
        return TurnResponse(
            assistant_message=palette_selection_message(palettes),
            needs_more_info=False,
            color_palettes=palettes,
            requirements=requirements,
        )
    return _generate(request, requirements, request.selected_palette, provider)


def handle_turn(request: TurnRequest, provider: LLMProvider) -> TurnResponse:
    """Advance the conversation by one turn. Never raises ``GenerationError``."""
    try:
        return _handle(request, provider)
    except GenerationError as exc:
        logger.error("Turn failed at %s: %r", exc.stage or "turn", exc)
        return _error_response(exc, request)
