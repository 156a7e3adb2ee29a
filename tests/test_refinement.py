"""Tests for the refinement pipeline."""

import pytest

from campaign_studio.errors import ErrorKind, GenerationError
from campaign_studio.graph import handle_refinement
from campaign_studio.models import RefinementRequest
from conftest import BRAND_RESPONSE, EMAIL_HTML, LANDING_HTML
from scripted import (
    BRAND,
    BRAND_REFINE,
    CONTENT_REFINE,
    ROUTER,
    TECH_CONTEXT,
    TECH_REFINE,
)

EDITED_EMAIL = EMAIL_HTML.replace("<h1 ", '<h1 data-edited="1" ')
EDITED_LANDING = LANDING_HTML.replace("<h1>", '<h1 style="color:#2563EB">')


def _by_channel(email: str, landing: str):
    """Answer technical prompts per channel; exceptions are raised."""

    def answer(prompt: str) -> str:
        result = email if "this email" in prompt else landing
        if isinstance(result, Exception):
            raise result
        return result
    return answer


def _request(bundle, context, instruction):
    return RefinementRequest(bundle=bundle, instruction=instruction, context=context)


class TestTechnicalRefinement:
    def test_email_edit_leaves_landing_identical(self, bundle, context, provider):
        provider.on(TECH_REFINE, _by_channel(EDITED_EMAIL, "unused"))
        refined, route, error = handle_refinement(_request(bundle, context, "Make the email button bigger"), provider)

        assert error is None
        assert route.channels == ["email"]
        assert refined.email == EDITED_EMAIL
        assert refined.landing == LANDING_HTML
        assert refined.metadata == bundle.metadata

    def test_heading_colour_on_landing_only(self, landing_only_bundle, context, provider):
        provider.on(TECH_REFINE, EDITED_LANDING)
        refined, route, error = handle_refinement(
            _request(landing_only_bundle, context, "Make the heading blue"), provider
        )

        assert error is None
        assert route.target_agent == "technical"
        assert refined.landing == EDITED_LANDING
        assert refined.email is None
        assert provider.count(ROUTER) == 0

    def test_one_channel_failure_keeps_the_other(self, bundle, context, provider):
        provider.on(TECH_REFINE, _by_channel("I could not edit that.", EDITED_LANDING))
        refined, route, error = handle_refinement(_request(bundle, context, "Make the heading bigger"), provider)

        assert route.channels == ["email", "landing"]
        assert refined.landing == EDITED_LANDING
        assert refined.email == EMAIL_HTML
        assert error.kind is ErrorKind.MALFORMED_DOCUMENT
        assert error.stage == "email"

    def test_every_channel_failing_keeps_bundle(self, bundle, context, provider):
        outage = GenerationError(ErrorKind.UPSTREAM_UNAVAILABLE, "down")
        provider.on(TECH_REFINE, outage)
        refined, _, error = handle_refinement(_request(bundle, context, "Make the heading bigger"), provider)

        assert refined is bundle
        assert error.stage == "refine"
        assert error.kind is ErrorKind.UPSTREAM_UNAVAILABLE


class TestLayerRefinement:
    def test_brand_change_cascades(self, bundle, context, provider):
        serif = dict(BRAND_RESPONSE, typography=dict(BRAND_RESPONSE["typography"], headingFont="Georgia, serif"))
        provider.on(ROUTER, {"targetAgent": "brand", "refinementType": "typography"})
        provider.on(BRAND_REFINE, serif)
        provider.on(TECH_CONTEXT, _by_channel(EDITED_EMAIL, EDITED_LANDING))

        refined, route, error = handle_refinement(_request(bundle, context, "Use a classier font"), provider)

        assert error is None
        assert route.target_agent == "brand"
        assert refined.metadata.brand_system.typography.heading_font == "Georgia, serif"
        assert refined.metadata.brand_system.colors == bundle.metadata.brand_system.colors
        assert (refined.email, refined.landing) == (EDITED_EMAIL, EDITED_LANDING)
        assert all("Georgia, serif" in call for call in provider.calls_for(TECH_CONTEXT))

    def test_content_change_on_one_channel(self, bundle, context, provider):
        provider.on(ROUTER, {"targetAgent": "content", "refinementType": "copy"})
        provider.on(CONTENT_REFINE, {"headlines": {"email": "Your Tracklet beta seat is waiting"}})
        provider.on(TECH_CONTEXT, _by_channel(EDITED_EMAIL, "unused"))

        refined, route, error = handle_refinement(
            _request(bundle, context, "Rewrite the email so it sounds more exclusive"), provider
        )

        assert error is None
        assert route.channels == ["email"]
        assert refined.metadata.content_strategy.headlines.email == "Your Tracklet beta seat is waiting"
        assert refined.metadata.content_strategy.headlines.primary == bundle.metadata.content_strategy.headlines.primary
        assert refined.email == EDITED_EMAIL
        assert refined.landing == LANDING_HTML

    def test_partial_failure_still_updates_metadata(self, bundle, context, provider):
        provider.on(ROUTER, {"targetAgent": "content"})
        provider.on(CONTENT_REFINE, {"tone": {"voice": "bold"}})
        provider.on(TECH_CONTEXT, _by_channel(EDITED_EMAIL, "no html here"))

        refined, _, error = handle_refinement(_request(bundle, context, "Bolder voice"), provider)

        assert error.stage == "landing"
        assert refined.email == EDITED_EMAIL
        assert refined.landing == LANDING_HTML
        assert refined.metadata.content_strategy.tone.voice == "bold"


class TestRegeneration:
    def test_start_over_keeps_current_colours(self, bundle, context, provider):
        refined, route, error = handle_refinement(_request(bundle, context, "Let's start over"), provider)

        assert error is None
        assert route.target_agent == "all"
        assert refined.is_complete(["email", "landing"])
        assert refined.metadata.brand_system.colors == bundle.metadata.brand_system.colors
        assert provider.count(BRAND) == 1

    def test_failed_regeneration_keeps_bundle(self, bundle, context, provider):
        provider.on(BRAND, GenerationError(ErrorKind.UPSTREAM_UNAVAILABLE, "down"))
        refined, _, error = handle_refinement(_request(bundle, context, "Start from scratch"), provider)

        assert refined is bundle
        assert error.kind is ErrorKind.UPSTREAM_UNAVAILABLE


class TestInvariants:
    @pytest.mark.parametrize(
        "instruction",
        ["Make the heading bigger", "Make the email button red", "Start over", "Make it pop"],
    )
    def test_never_loses_every_channel(self, bundle, context, provider, instruction):
        provider.on(TECH_REFINE, GenerationError(ErrorKind.UPSTREAM_UNAVAILABLE, "down"))
        provider.on(ROUTER, "???")
        refined, _, _ = handle_refinement(_request(bundle, context, instruction), provider)
        assert refined.existing_channels()

    def test_router_outage_fails_turn(self, bundle, context, provider):
        provider.on(ROUTER, GenerationError(ErrorKind.UPSTREAM_UNAVAILABLE, "down"))
        refined, route, error = handle_refinement(_request(bundle, context, "Make it friendlier"), provider)

        assert refined is bundle
        assert route is None
        assert error.stage == "router"

    def test_empty_bundle_is_rejected(self, bundle, context, provider):
        empty = bundle.model_copy(update={"email": None, "landing": None})
        refined, route, error = handle_refinement(_request(empty, context, "Make it friendlier"), provider)
        assert error.kind is ErrorKind.AMBIGUOUS_INSTRUCTION
        assert route is None
