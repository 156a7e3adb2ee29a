"""Filesystem run store used by the CLI.

A run is one campaign:

    runs/<timestamp>_<slug>/
        meta.json           RunMeta
        requirements.json   PartialRequirements
        bundle.json         GenerationBundle
        email.html, landing.html
        email_v1.html ...   earlier versions, kept before each refinement
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, List, Optional

from campaign_studio.models import CHANNELS, GenerationBundle

ARTIFACT_NAMES = ("meta", "requirements", "bundle", "email", "landing")


def slugify(name: str, max_len: int = 60) -> str:
    """Filesystem-safe, unicode-aware slug of a campaign name."""
    text = name.lower()
    text = re.sub(r"[\s_/\\:;.,!?]+", "-", text)
    text = re.sub(r"[^\w-]", "", text, flags=re.UNICODE)
    text = re.sub(r"-{2,}", "-", text).strip("-")
    return text[:max_len]


@dataclass
class RunPaths:
    run_dir: Path

    @property
    def run_id(self) -> str:
        return self.run_dir.name

    @property
    def meta_json(self) -> Path:
        return self.run_dir / "meta.json"

    @property
    def requirements_json(self) -> Path:
        return self.run_dir / "requirements.json"

    @property
    def bundle_json(self) -> Path:
        return self.run_dir / "bundle.json"

    def html(self, channel: str) -> Path:
        return self.run_dir / f"{channel}.html"


def create_run_dir(base_dir: str | Path, campaign: str) -> RunPaths:
    """Create a timestamped run folder."""
    base = Path(base_dir)
    base.mkdir(parents=True, exist_ok=True)

    ts = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S")
    slug = slugify(campaign)
    run_dir = base / (f"{ts}_{slug}" if slug else ts)
    suffix = 2
    while run_dir.exists():
        run_dir = base / f"{ts}_{slug}_{suffix}"
        suffix += 1
    run_dir.mkdir(parents=True)
    return RunPaths(run_dir)


def write_json(path: Path, data: Any) -> None:
    path.write_text(json.dumps(data, ensure_ascii=False, indent=2) + "\n", encoding="utf-8")


def read_json(path: Path) -> Any:
    return json.loads(path.read_text(encoding="utf-8"))


def write_text(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")


def list_runs(base_dir: str | Path, limit: int = 20) -> List[str]:
    """Run directory names, newest first."""
    base = Path(base_dir)
    if not base.is_dir():
        return []
    return sorted((d.name for d in base.iterdir() if d.is_dir()), reverse=True)[:limit]


def find_run_dir(base_dir: str | Path, run_id: str) -> Optional[Path]:
    """Find a run by exact name, then by prefix."""
    base = Path(base_dir)
    if not base.is_dir():
        return None
    exact = base / run_id
    if exact.is_dir():
        return exact
    for d in sorted(base.iterdir(), reverse=True):
        if d.is_dir() and d.name.startswith(run_id):
            return d
    return None


def artifact_path(run_dir: str | Path, name: str) -> Path:
    if name not in ARTIFACT_NAMES:
        raise ValueError(f"Unknown artifact '{name}'. Choose from: {', '.join(ARTIFACT_NAMES)}")
    paths = RunPaths(Path(run_dir))
    if name in CHANNELS:
        return paths.html(name)
    return paths.run_dir / f"{name}.json"


def version_artifact(run_dir: Path, channel: str) -> int:
    """Copy ``<channel>.html`` to the next free ``<channel>_vN.html``. Returns N, or 0."""
    current = artifact_path(run_dir, channel)
    if not current.exists():
        return 0
    version = 1
    while (run_dir / f"{channel}_v{version}.html").exists():
        version += 1
    (run_dir / f"{channel}_v{version}.html").write_text(current.read_text(encoding="utf-8"), encoding="utf-8")
    return version


def save_bundle(run_dir: Path, bundle: GenerationBundle) -> List[int]:
    """Write bundle.json and the channel HTML files, versioning changed files first.

    Returns the version numbers assigned to backed-up artifacts.
    """
    paths = RunPaths(run_dir)
    versions: List[int] = []
    for channel in CHANNELS:
        document = bundle.artifact(channel)
        target = paths.html(channel)
        if document is None:
            continue
        if target.exists() and target.read_text(encoding="utf-8") != document:
            versions.append(version_artifact(run_dir, channel))
        write_text(target, document)
    write_json(paths.bundle_json, bundle.to_wire())
    return versions


def load_bundle(run_dir: Path) -> Optional[GenerationBundle]:
    path = RunPaths(run_dir).bundle_json
    if not path.exists():
        return None
    return GenerationBundle.model_validate(read_json(path))
