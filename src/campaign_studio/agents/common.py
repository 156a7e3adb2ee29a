"""Prompt-building helpers shared by the specialist agents."""

from __future__ import annotations

import json
from typing import Iterable

from pydantic import BaseModel

from campaign_studio.models import ChatTurn, RequirementsContext


def dump_json(model: BaseModel) -> str:
    """Pretty camelCase JSON for embedding a model in a prompt."""
    return json.dumps(model.model_dump(by_alias=True, mode="json", exclude_none=True), ensure_ascii=False, indent=2)


def transcript_text(transcript: Iterable[ChatTurn]) -> str:
    lines = [f"{turn.role}: {turn.content.strip()}" for turn in transcript if turn.content.strip()]
    return "\n".join(lines) if lines else "(empty conversation)"


def cta_rule(context: RequirementsContext) -> str:
    if context.cta_enabled and context.cta_link:
        label = context.cta_text or "the content strategy's cta.primary"
        return (
            f'Include a prominent call-to-action button labelled exactly "{label}" '
            f'as an <a> element with href="{context.cta_link}".'
        )
    return "Use cta.primary from the content strategy as the button label and link it to \"#\"."


def asset_rule(asset_url: str | None) -> str:
    if asset_url:
        return (
            f'Show the campaign image {asset_url} as an <img src="{asset_url}"> centred near the top, '
            "with descriptive alt text and max-width 100%."
        )
    return "There is no campaign image. Do not add placeholder images."


def channel_label(channel: str) -> str:
    return "email" if channel == "email" else "landing page"
