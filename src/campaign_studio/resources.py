"""Resource loading: prompt templates (prompts/*.txt) and profiles (profiles/*.yaml).

A private override directory can shadow any bundled file; set
CAMPAIGN_STUDIO_PRIVATE_DIR to a folder with the same relative layout.
"""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml

#   src/campaign_studio/resources.py -> ../../..
_REPO_ROOT = Path(__file__).resolve().parent.parent.parent


def get_private_dir() -> Path | None:
    private_dir = os.environ.get("CAMPAIGN_STUDIO_PRIVATE_DIR")
    if private_dir:
        p = Path(private_dir).expanduser().resolve()
        if p.is_dir():
            return p
    return None


def _resolve(rel_path: str) -> Path:
    private_dir = get_private_dir()
    if private_dir:
        private_path = private_dir / rel_path
        if private_path.exists():
            return private_path
    p = _REPO_ROOT / rel_path
    if not p.exists():
        raise FileNotFoundError(f"Resource not found: {p}")
    return p


def read_text(rel_path: str) -> str:
    return _resolve(rel_path).read_text(encoding="utf-8")


def read_yaml(rel_path: str) -> Any:
    return yaml.safe_load(read_text(rel_path))


@lru_cache(maxsize=None)
def load_profile(name: str) -> Any:
    """Parsed ``profiles/<name>.yaml``, cached for the life of the process."""
    return read_yaml(f"profiles/{name}.yaml")


def safe_format(template: str, **kwargs: str) -> str:
    """Substitute {key} placeholders without raising on unrecognised braces.

    Templates contain literal JSON examples, so str.format() is not usable.
    """
    for key, value in kwargs.items():
        template = template.replace("{" + key + "}", value)
    return template


def render_prompt(name: str, **kwargs: str) -> str:
    """Load ``prompts/<name>.txt`` and fill its placeholders."""
    return safe_format(read_text(f"prompts/{name}.txt"), **kwargs)
