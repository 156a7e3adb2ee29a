"""Generator configuration, passed explicitly into providers."""

from __future__ import annotations

import os

from pydantic import BaseModel, Field


class GeneratorConfig(BaseModel):
    model: str = "gpt-4o"
    temperature: float = Field(default=0.7, ge=0.0, le=2.0)
    structured_temperature: float = Field(default=0.3, ge=0.0, le=2.0)
    timeout_seconds: float = Field(default=90.0, gt=0)
    # Retries performed by the HTTP transport, not by the pipeline.
    max_retries: int = Field(default=2, ge=0)
    # Extra "return only JSON" re-asks on unparsable structured output.
    schema_retries: int = Field(default=0, ge=0)

    @classmethod
    def from_env(cls, **overrides) -> "GeneratorConfig":
        """Build a config from CAMPAIGN_STUDIO_* variables, then apply overrides."""
        values: dict = {}
        if os.environ.get("CAMPAIGN_STUDIO_MODEL"):
            values["model"] = os.environ["CAMPAIGN_STUDIO_MODEL"]
        if os.environ.get("CAMPAIGN_STUDIO_TIMEOUT"):
            values["timeout_seconds"] = float(os.environ["CAMPAIGN_STUDIO_TIMEOUT"])
        if os.environ.get("CAMPAIGN_STUDIO_MAX_RETRIES"):
            values["max_retries"] = int(os.environ["CAMPAIGN_STUDIO_MAX_RETRIES"])
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls.model_validate(values)
