"""LangGraph pipelines for campaign-studio.

Pipelines:
  - generation:  brand -> content -> (email || landing) -> review
  - refinement:  router -> regenerate | brand | content | channel patches

Channel nodes are fanned out from a conditional edge, so both renders run in
the same superstep and the review waits for whichever were scheduled.
Nodes never raise: a ``GenerationError`` is written to ``errors`` and the
runner returns it alongside an empty result.
"""

from __future__ import annotations

import logging
import operator
from enum import Enum
from typing import Annotated, Any, Dict, List, Optional, Sequence

from langgraph.graph import END, StateGraph
from pydantic import BaseModel, Field

from campaign_studio.agents.brand import generate_brand_system, refine_brand_system
from campaign_studio.agents.content import generate_content_strategy, refine_content
from campaign_studio.agents.quality import analyze_quality
from campaign_studio.agents.router import route_refinement
from campaign_studio.agents.technical import RENDERERS, refine_implementation, refine_with_context
from campaign_studio.errors import ErrorKind, GenerationError
from campaign_studio.llm.base import LLMProvider
from campaign_studio.models import (
    CHANNELS,
    BrandSystem,
    BundleMetadata,
    ColorPalette,
    ContentStrategy,
    GenerationBundle,
    QualityAnalysis,
    RefinementRequest,
    RefinementRoute,
    RequirementsContext,
)

logger = logging.getLogger(__name__)


class GenerationStatus(str, Enum):
    AWAITING_REQUIREMENTS = "awaiting_requirements"
    GENERATING = "generating"
    READY = "ready"


# ── Shared helpers ───────────────────────────────────────────────────────────

def _state_value(result: Any, key: str) -> Any:
    """Read a key from a graph result, which may be a dict or the state model."""
    if isinstance(result, dict):
        return result.get(key)
    return getattr(result, key, None)


def _failure(exc: GenerationError, stage: str, key: str = "errors") -> dict:
    if exc.stage is None:
        exc.stage = stage
    logger.error("Stage %s failed: %s (%s)", exc.stage, exc.kind.value, exc.message)
    return {key: [exc.to_dict()]}


def _stop_on_error(next_node: str):
    def decide(state) -> str:
        return END if state.errors else next_node
    return decide


# ══════════════════════════════════════════════════════════════════════════════
# PIPELINE 1: Generation
# ══════════════════════════════════════════════════════════════════════════════

class GenerationState(BaseModel):
    context: Dict[str, Any]
    palette: Dict[str, Any]
    channels: List[str] = Field(default_factory=lambda: list(CHANNELS))
    asset_url: Optional[str] = None
    brand_system: Optional[Dict[str, Any]] = None
    content_strategy: Optional[Dict[str, Any]] = None
    email: Optional[str] = None
    landing: Optional[str] = None
    analysis: Optional[Dict[str, Any]] = None
    errors: Annotated[List[Dict[str, Any]], operator.add] = Field(default_factory=list)


def _make_brand_node(provider: LLMProvider):
    def brand(state: GenerationState) -> dict:
        context = RequirementsContext.model_validate(state.context)
        palette = ColorPalette.model_validate(state.palette)
        try:
            brand_system = generate_brand_system(context, palette, provider)
        except GenerationError as exc:
            return _failure(exc, "brand")
        return {"brand_system": brand_system.model_dump()}
    return brand


def _make_content_node(provider: LLMProvider):
    def content(state: GenerationState) -> dict:
        context = RequirementsContext.model_validate(state.context)
        brand_system = BrandSystem.model_validate(state.brand_system)
        try:
            strategy = generate_content_strategy(context, brand_system, provider)
        except GenerationError as exc:
            return _failure(exc, "content")
        return {"content_strategy": strategy.model_dump()}
    return content


def _make_render_node(provider: LLMProvider, channel: str):
    renderer = RENDERERS[channel]

    def render(state: GenerationState) -> dict:
        context = RequirementsContext.model_validate(state.context)
        brand_system = BrandSystem.model_validate(state.brand_system)
        strategy = ContentStrategy.model_validate(state.content_strategy)
        try:
            document = renderer(context, brand_system, strategy, provider, state.asset_url)
        except GenerationError as exc:
            return _failure(exc, channel)
        return {channel: document}
    return render


def _make_analysis_node(provider: LLMProvider):
    def analysis(state: GenerationState) -> dict:
        if state.errors:
            return {}
        context = RequirementsContext.model_validate(state.context)
        artifacts = {c: getattr(state, c) for c in state.channels if getattr(state, c)}
        result = analyze_quality(
            context,
            BrandSystem.model_validate(state.brand_system),
            ContentStrategy.model_validate(state.content_strategy),
            artifacts,
            provider,
        )
        return {"analysis": result.model_dump()}
    return analysis


def _schedule_renders(state: GenerationState):
    if state.errors:
        return END
    return [f"render_{c}" for c in CHANNELS if c in state.channels]


def build_generation_graph(provider: LLMProvider):
    """Build and compile the generation graph."""
    graph = StateGraph(GenerationState)
    graph.add_node("brand", _make_brand_node(provider))
    graph.add_node("content", _make_content_node(provider))
    for channel in CHANNELS:
        graph.add_node(f"render_{channel}", _make_render_node(provider, channel))
    graph.add_node("review", _make_analysis_node(provider))

    graph.set_entry_point("brand")
    graph.add_conditional_edges("brand", _stop_on_error("content"), ["content", END])
    graph.add_conditional_edges(
        "content", _schedule_renders, [f"render_{c}" for c in CHANNELS] + [END]
    )
    for channel in CHANNELS:
        graph.add_edge(f"render_{channel}", "review")
    graph.add_edge("review", END)
    return graph.compile()


def run_generation_pipeline(
    context: RequirementsContext,
    palette: ColorPalette,
    provider: LLMProvider,
    channels: Optional[Sequence[str]] = None,
    asset_url: Optional[str] = None,
) -> tuple[GenerationBundle | None, GenerationError | None]:
    """Run brand, content, channel renders and analysis.

    Returns (GenerationBundle, None) on success, (None, error) on failure.
    A failed stage never yields a partial bundle.
    """
    wanted = [c for c in CHANNELS if c in (channels or CHANNELS)]
    logger.info("Status %s: %s for %s", GenerationStatus.GENERATING.value, context.product, wanted)

    compiled = build_generation_graph(provider)
    initial = GenerationState(
        context=context.model_dump(),
        palette=palette.model_dump(),
        channels=wanted,
        asset_url=asset_url,
    )
    result = compiled.invoke(initial)

    errors = _state_value(result, "errors") or []
    if errors:
        return None, GenerationError.from_dict(errors[0])

    brand_data = _state_value(result, "brand_system")
    strategy_data = _state_value(result, "content_strategy")
    if not brand_data or not strategy_data:
        return None, GenerationError(ErrorKind.SCHEMA_VIOLATION, "pipeline produced no brand or content", "graph")

    analysis_data = _state_value(result, "analysis")
    analysis = QualityAnalysis.model_validate(analysis_data) if analysis_data else None
    bundle = GenerationBundle(
        email=_state_value(result, "email") if "email" in wanted else None,
        landing=_state_value(result, "landing") if "landing" in wanted else None,
        metadata=BundleMetadata(
            brand_system=BrandSystem.model_validate(brand_data),
            content_strategy=ContentStrategy.model_validate(strategy_data),
            analysis=analysis,
            suggested_refinements=analysis.suggested_refinements if analysis else [],
            channels=wanted,
        ),
    )
    if not bundle.is_complete(wanted):
        missing = [c for c in wanted if not bundle.artifact(c)]
        return None, GenerationError(ErrorKind.MALFORMED_DOCUMENT, f"no artifact for {missing}", "graph")

    logger.info("Status %s: %s", GenerationStatus.READY.value, ", ".join(wanted))
    return bundle, None


def coordinate_generation(
    context: RequirementsContext,
    palette: ColorPalette,
    provider: LLMProvider,
    channels: Optional[Sequence[str]] = None,
    asset_url: Optional[str] = None,
) -> GenerationBundle:
    """Like :func:`run_generation_pipeline` but raises ``GenerationError``."""
    bundle, error = run_generation_pipeline(context, palette, provider, channels, asset_url)
    if error is not None:
        raise error
    return bundle  # type: ignore[return-value]


# ══════════════════════════════════════════════════════════════════════════════
# PIPELINE 2: Refinement
# ══════════════════════════════════════════════════════════════════════════════

class RefinementState(BaseModel):
    instruction: str
    context: Dict[str, Any]
    bundle: Dict[str, Any]
    asset_url: Optional[str] = None
    route: Optional[Dict[str, Any]] = None
    brand_system: Optional[Dict[str, Any]] = None
    content_strategy: Optional[Dict[str, Any]] = None
    email: Optional[str] = None
    landing: Optional[str] = None
    regenerated: Optional[Dict[str, Any]] = None
    channel_errors: Annotated[List[Dict[str, Any]], operator.add] = Field(default_factory=list)
    errors: Annotated[List[Dict[str, Any]], operator.add] = Field(default_factory=list)


def _make_router_node(provider: LLMProvider):
    def router(state: RefinementState) -> dict:
        bundle = GenerationBundle.model_validate(state.bundle)
        context = RequirementsContext.model_validate(state.context)
        try:
            route = route_refinement(state.instruction, bundle, context, provider)
        except GenerationError as exc:
            return _failure(exc, "router")
        return {"route": route.model_dump()}
    return router


def _make_regenerate_node(provider: LLMProvider):
    def regenerate(state: RefinementState) -> dict:
        bundle = GenerationBundle.model_validate(state.bundle)
        route = RefinementRoute.model_validate(state.route)
        palette = ColorPalette(
            id="current",
            name="Current palette",
            description="Colours of the existing campaign",
            colors=bundle.metadata.brand_system.colors,
        )
        new_bundle, error = run_generation_pipeline(
            RequirementsContext.model_validate(state.context),
            palette,
            provider,
            channels=route.channels or bundle.existing_channels(),
            asset_url=state.asset_url,
        )
        if error is not None:
            return _failure(error, "regenerate")
        return {"regenerated": new_bundle.model_dump()}
    return regenerate


def _make_layer_node(provider: LLMProvider, layer: str):
    """Brand or content refinement; the updated layer cascades into the channels."""

    def refine_layer(state: RefinementState) -> dict:
        bundle = GenerationBundle.model_validate(state.bundle)
        route = RefinementRoute.model_validate(state.route)
        try:
            if layer == "brand":
                brand_system = refine_brand_system(
                    bundle.metadata.brand_system,
                    route.specific_instructions,
                    provider,
                    allow_color_change=route.color_change,
                )
                return {"brand_system": brand_system.model_dump()}
            strategy = refine_content(
                bundle.metadata.content_strategy,
                route.specific_instructions,
                RequirementsContext.model_validate(state.context),
                provider,
            )
            return {"content_strategy": strategy.model_dump()}
        except GenerationError as exc:
            return _failure(exc, layer)
    return refine_layer


def _make_channel_node(provider: LLMProvider, channel: str):
    def refine_channel(state: RefinementState) -> dict:
        bundle = GenerationBundle.model_validate(state.bundle)
        route = RefinementRoute.model_validate(state.route)
        artifact = bundle.artifact(channel)
        if channel not in route.channels or not artifact:
            return {}
        try:
            if route.target_agent == "technical":
                document = refine_implementation(artifact, route.specific_instructions, channel, provider)
            else:
                brand_system = (
                    BrandSystem.model_validate(state.brand_system)
                    if state.brand_system
                    else bundle.metadata.brand_system
                )
                strategy = (
                    ContentStrategy.model_validate(state.content_strategy)
                    if state.content_strategy
                    else bundle.metadata.content_strategy
                )
                document = refine_with_context(
                    artifact,
                    route.specific_instructions,
                    channel,
                    brand_system,
                    strategy,
                    RequirementsContext.model_validate(state.context),
                    provider,
                )
        except GenerationError as exc:
            # Partial failures are reported by channel name.
            exc.stage = channel
            return _failure(exc, channel, key="channel_errors")
        return {channel: document}
    return refine_channel


def _channel_nodes(state: RefinementState) -> List[str]:
    route = RefinementRoute.model_validate(state.route)
    return [f"refine_{c}" for c in CHANNELS if c in route.channels]


def _dispatch(state: RefinementState):
    if state.errors:
        return END
    target = state.route["target_agent"]
    if target == "all":
        return "regenerate"
    if target in ("brand", "content"):
        return target
    return _channel_nodes(state) or END


def _cascade(state: RefinementState):
    if state.errors:
        return END
    return _channel_nodes(state) or END


def build_refinement_graph(provider: LLMProvider):
    """Build and compile the refinement graph."""
    channel_nodes = [f"refine_{c}" for c in CHANNELS]
    graph = StateGraph(RefinementState)
    graph.add_node("router", _make_router_node(provider))
    graph.add_node("regenerate", _make_regenerate_node(provider))
    graph.add_node("brand", _make_layer_node(provider, "brand"))
    graph.add_node("content", _make_layer_node(provider, "content"))
    for channel in CHANNELS:
        graph.add_node(f"refine_{channel}", _make_channel_node(provider, channel))

    graph.set_entry_point("router")
    graph.add_conditional_edges("router", _dispatch, ["regenerate", "brand", "content"] + channel_nodes + [END])
    graph.add_conditional_edges("brand", _cascade, channel_nodes + [END])
    graph.add_conditional_edges("content", _cascade, channel_nodes + [END])
    graph.add_edge("regenerate", END)
    for node in channel_nodes:
        graph.add_edge(node, END)
    return graph.compile()


def handle_refinement(
    request: RefinementRequest,
    provider: LLMProvider,
    asset_url: Optional[str] = None,
) -> tuple[GenerationBundle, RefinementRoute | None, GenerationError | None]:
    """Route and apply one refinement instruction.

    Returns (bundle, route, error). The bundle is always usable: on a failed
    turn it is the incoming bundle unchanged, and a channel that failed keeps
    its previous artifact. ``error.stage`` names the failed channel when the
    other targeted channel succeeded.
    """
    bundle = request.bundle
    if not bundle.existing_channels():
        error = GenerationError(ErrorKind.AMBIGUOUS_INSTRUCTION, "bundle has no artifacts to refine", "router")
        return bundle, None, error

    compiled = build_refinement_graph(provider)
    initial = RefinementState(
        instruction=request.instruction,
        context=request.context.model_dump(),
        bundle=bundle.model_dump(),
        asset_url=asset_url,
    )
    result = compiled.invoke(initial)

    route_data = _state_value(result, "route")
    route = RefinementRoute.model_validate(route_data) if route_data else None
    errors = _state_value(result, "errors") or []
    if errors or route is None:
        error = GenerationError.from_dict(errors[0]) if errors else GenerationError(
            ErrorKind.AMBIGUOUS_INSTRUCTION, "no route was produced", "router"
        )
        return bundle, route, error

    if route.target_agent == "all":
        return GenerationBundle.model_validate(_state_value(result, "regenerated")), route, None

    updates = {c: _state_value(result, c) for c in route.channels if _state_value(result, c)}
    channel_errors = _state_value(result, "channel_errors") or []
    if channel_errors and not updates:
        first = GenerationError.from_dict(channel_errors[0])
        logger.warning("Every targeted channel failed, keeping the previous bundle")
        return bundle, route, GenerationError(first.kind, first.message, "refine")

    metadata = bundle.metadata
    brand_data = _state_value(result, "brand_system")
    strategy_data = _state_value(result, "content_strategy")
    if brand_data:
        metadata = metadata.model_copy(update={"brand_system": BrandSystem.model_validate(brand_data)})
    if strategy_data:
        metadata = metadata.model_copy(update={"content_strategy": ContentStrategy.model_validate(strategy_data)})
    refined = bundle.model_copy(update={**updates, "metadata": metadata})

    error = GenerationError.from_dict(channel_errors[0]) if channel_errors else None
    logger.info("Refined %s via %s", ", ".join(updates) or "nothing", route.target_agent)
    return refined, route, error
