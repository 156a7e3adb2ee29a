"""Typer CLI for campaign-studio."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional

import typer
import yaml
from pydantic import ValidationError
from rich import print as rprint
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from campaign_studio.agents.palettes import generate_palettes
from campaign_studio.agents.quality import proactive_message
from campaign_studio.config import GeneratorConfig
from campaign_studio.graph import GenerationStatus, handle_refinement, run_generation_pipeline
from campaign_studio.models import (
    CHANNELS,
    ChatTurn,
    ColorPalette,
    GenerationBundle,
    PartialRequirements,
    RefinementRequest,
    RunMeta,
    TurnRequest,
)
from campaign_studio.storage import (
    ARTIFACT_NAMES,
    RunPaths,
    artifact_path,
    create_run_dir,
    find_run_dir,
    list_runs,
    load_bundle,
    read_json,
    save_bundle,
    write_json,
)

app = typer.Typer(
    name="studio",
    help="campaign-studio: chat-driven email and landing-page campaigns.",
    add_completion=False,
)
console = Console()

DEFAULT_RUNS_DIR = "runs"
DEFAULT_MODEL = GeneratorConfig().model


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logging."),
) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), rich_tracebacks=True, show_path=False)],
        force=True,
    )


def _resolve_run(output: str, run_id: str) -> Path:
    """Find a run directory or exit with an error."""
    run_dir = find_run_dir(output, run_id)
    if run_dir is None:
        rprint(f"[red]Error:[/red] Run not found: {run_id}")
        raise typer.Exit(1)
    return run_dir


def _load_meta(run_dir: Path) -> RunMeta:
    return RunMeta.model_validate(read_json(run_dir / "meta.json"))


def _save_meta(run_dir: Path, meta: RunMeta) -> None:
    meta.updated_at = datetime.now(timezone.utc).isoformat()
    write_json(run_dir / "meta.json", meta.to_wire())


def _make_provider(model: str):
    """Instantiate the OpenAI provider, exiting gracefully if the key is missing."""
    try:
        from campaign_studio.llm.openai_provider import OpenAIProvider
        return OpenAIProvider(GeneratorConfig.from_env(model=model))
    except EnvironmentError as exc:
        rprint(f"[red]Error:[/red] {exc}")
        raise typer.Exit(1)


def _parse_channels(channels: str) -> List[str]:
    chosen = [c.strip() for c in channels.split(",") if c.strip()]
    unknown = [c for c in chosen if c not in CHANNELS]
    if unknown or not chosen:
        rprint(f"[red]Error:[/red] Invalid channels '{channels}'. Choose from: {', '.join(CHANNELS)}")
        raise typer.Exit(1)
    return chosen


def _palette_table(palettes: List[ColorPalette]) -> Table:
    table = Table(title="Colour Palettes", show_lines=False)
    table.add_column("#", style="dim", width=3)
    table.add_column("Name")
    table.add_column("Mood")
    for key in ("primary", "secondary", "accent", "background", "text"):
        table.add_column(key.capitalize())
    for p in palettes:
        swatches = [f"[on {v}]  [/] {v}" for v in p.colors.model_dump().values()]
        table.add_row(p.id, p.name, p.mood, *swatches)
    return table


def _load_palettes(path: str) -> List[ColorPalette]:
    """Read palettes saved by 'studio palettes --save' (JSON or YAML)."""
    source = Path(path)
    if not source.exists():
        rprint(f"[red]Error:[/red] Palette file not found: {source}")
        raise typer.Exit(1)
    try:
        items = yaml.safe_load(source.read_text(encoding="utf-8")) or []
        return [ColorPalette.model_validate(item) for item in items]
    except (yaml.YAMLError, ValidationError, TypeError) as exc:
        rprint(f"[red]Error:[/red] Invalid palette file {source}: {exc}")
        raise typer.Exit(1)


def _write_run(paths: RunPaths, requirements: PartialRequirements, meta: RunMeta, bundle) -> None:
    write_json(paths.requirements_json, requirements.to_wire())
    save_bundle(paths.run_dir, bundle)
    _save_meta(paths.run_dir, meta)


# ── palettes ─────────────────────────────────────────────────────────────────

@app.command()
def palettes(
    description: str = typer.Argument(..., help='Colour wishes, e.g. "a little red, mostly blue".'),
    context: str = typer.Option("", "--context", "-c", help="Product / audience context."),
    model: str = typer.Option(DEFAULT_MODEL, "--model", "-m", help="OpenAI model to use."),
    save: Optional[str] = typer.Option(None, "--save", "-s", help="Write the palettes to this JSON file."),
) -> None:
    """Suggest colour palettes for a description.

    Each call asks the model again, so pass the file written by --save to
    'studio generate --palette-file' to build with the palettes shown here.
    """
    provider = _make_provider(model)
    result = generate_palettes(description, context, provider)
    console.print(_palette_table(result))
    if save:
        write_json(Path(save), [p.to_wire() for p in result])
        rprint(f"[green]Saved palettes:[/green] {save}")


# ── generate ─────────────────────────────────────────────────────────────────

@app.command()
def generate(
    requirements_path: str = typer.Argument(..., help="Path to a YAML requirements file."),
    palette_id: str = typer.Option("1", "--palette", "-p", help="Palette number to use."),
    palette_file: Optional[str] = typer.Option(
        None, "--palette-file", help="Palettes saved by 'studio palettes --save'; skips palette generation."
    ),
    channels: str = typer.Option("email,landing", "--channels", help="Comma-separated channels."),
    asset_url: Optional[str] = typer.Option(None, "--asset-url", help="Campaign image URL."),
    model: str = typer.Option(DEFAULT_MODEL, "--model", "-m", help="OpenAI model to use."),
    output: str = typer.Option(DEFAULT_RUNS_DIR, "-o", "--output", help="Base directory for runs."),
) -> None:
    """Generate a campaign from a requirements file and save it as a run.

    Without --palette-file a fresh palette set is generated, so --palette N
    may not match a palette shown by an earlier 'studio palettes' call.
    """
    path = Path(requirements_path)
    if not path.exists():
        rprint(f"[red]Error:[/red] Requirements file not found: {path}")
        raise typer.Exit(1)

    try:
        requirements = PartialRequirements.model_validate(yaml.safe_load(path.read_text(encoding="utf-8")) or {})
        context = requirements.to_context()
    except (ValidationError, ValueError) as exc:
        rprint(f"[red]Error:[/red] Invalid requirements: {exc}")
        raise typer.Exit(1)

    wanted = _parse_channels(channels)
    provider = _make_provider(model)

    if palette_file:
        offered = _load_palettes(palette_file)
    else:
        rprint(f"[blue]Generating palettes[/blue] for [bold]{context.product}[/bold]...")
        offered = generate_palettes(
            context.color_preference or "",
            f"{context.product} for {context.audience}",
            provider,
            tone=context.tone,
            visual_style=context.visual_style,
        )
    palette = next((p for p in offered if p.id == palette_id), None)
    if palette is None:
        console.print(_palette_table(offered))
        rprint(f"[red]Error:[/red] No palette '{palette_id}'. Choose one of: {', '.join(p.id for p in offered)}")
        raise typer.Exit(1)

    rprint(f"[blue]Generating {', '.join(wanted)}[/blue] with palette [bold]{palette.name}[/bold]...")
    bundle, error = run_generation_pipeline(context, palette, provider, channels=wanted, asset_url=asset_url)

    paths = create_run_dir(output, context.campaign_name or context.product)
    meta = RunMeta(run_id=paths.run_id, campaign=context.campaign_name or context.product, model=model, palette=palette)
    if error is not None:
        meta.status = "error"
        meta.error_message = error.message
        write_json(paths.requirements_json, requirements.to_wire())
        _save_meta(paths.run_dir, meta)
        rprint(f"[red]Error during generation:[/red] {error.user_message()}")
        raise typer.Exit(1)

    meta.status = GenerationStatus.READY.value
    meta.channels = bundle.metadata.channels
    _write_run(paths, requirements, meta, bundle)

    rprint(f"[green]Run created:[/green] {paths.run_id}")
    for channel in bundle.existing_channels():
        rprint(f"  [dim]{paths.html(channel)}[/dim]")
    if bundle.metadata.analysis is not None:
        rprint(Panel(proactive_message(bundle.metadata.analysis), title="Review", border_style="dim"))


# ── refine ───────────────────────────────────────────────────────────────────

@app.command()
def refine(
    run_id: str = typer.Argument(..., help="Run ID (exact name or prefix)."),
    message: str = typer.Option(..., "-m", "--message", help="What to change."),
    asset_url: Optional[str] = typer.Option(None, "--asset-url", help="Campaign image URL."),
    model: str = typer.Option(DEFAULT_MODEL, "--model", help="OpenAI model to use."),
    output: str = typer.Option(DEFAULT_RUNS_DIR, "-o", "--output", help="Base directory for runs."),
) -> None:
    """Apply a free-text refinement to a saved campaign.

    Previous versions of changed artifacts are kept as <channel>_vN.html.
    """
    run_dir = _resolve_run(output, run_id)
    paths = RunPaths(run_dir)
    bundle = load_bundle(run_dir)
    if bundle is None or not bundle.existing_channels():
        rprint(f"[red]Error:[/red] No generated campaign in {run_dir}. Run 'studio generate' first.")
        raise typer.Exit(1)

    requirements = PartialRequirements.model_validate(read_json(paths.requirements_json))
    try:
        context = requirements.to_context()
    except ValueError as exc:
        rprint(f"[red]Error:[/red] {exc}")
        raise typer.Exit(1)

    meta = _load_meta(run_dir)
    provider = _make_provider(model)
    rprint(f"[blue]Refining[/blue] {run_dir.name}: [dim]{message}[/dim]")

    refined, route, error = handle_refinement(
        RefinementRequest(bundle=bundle, instruction=message, context=context),
        provider,
        asset_url=asset_url,
    )
    if error is not None and refined is bundle:
        meta.error_message = error.message
        _save_meta(run_dir, meta)
        rprint(f"[red]Error during refinement:[/red] {error.user_message()}")
        raise typer.Exit(1)

    versions = save_bundle(run_dir, refined)
    meta.refinements += 1
    meta.error_message = error.message if error else None
    _save_meta(run_dir, meta)

    rprint(f"[green]Refined via {route.target_agent}[/green] ({route.refinement_type}) on {', '.join(route.channels)}")
    if versions:
        rprint(f"  [dim]Previous versions kept: {', '.join(f'v{v}' for v in versions)}[/dim]")
    if error is not None:
        rprint(f"[yellow]Warning:[/yellow] {error.stage} could not be changed and keeps its previous version.")


# ── chat ─────────────────────────────────────────────────────────────────────

@app.command()
def chat(
    channels: str = typer.Option("email,landing", "--channels", help="Comma-separated channels."),
    asset_url: Optional[str] = typer.Option(None, "--asset-url", help="Campaign image URL."),
    model: str = typer.Option(DEFAULT_MODEL, "--model", "-m", help="OpenAI model to use."),
    output: str = typer.Option(DEFAULT_RUNS_DIR, "-o", "--output", help="Base directory for runs."),
) -> None:
    """Build a campaign conversationally. Type 'quit' to leave."""
    from campaign_studio.service import handle_turn

    wanted = _parse_channels(channels)
    provider = _make_provider(model)
    request = TurnRequest(transcript=[], selected_channels=wanted, asset_url=asset_url)
    paths: Optional[RunPaths] = None
    meta: Optional[RunMeta] = None

    rprint("[bold]Tell me about the campaign you'd like to create.[/bold]")
    while True:
        text = typer.prompt("you").strip()
        if text.lower() in ("quit", "exit"):
            break
        request.transcript.append(ChatTurn(role="user", content=text))
        response = handle_turn(request, provider)
        console.print(Panel(response.assistant_message, title="studio", border_style="blue"))
        if response.color_palettes and not response.email and not response.landing:
            console.print(_palette_table(response.color_palettes))
        request.transcript.append(ChatTurn(role="assistant", content=response.assistant_message))

        request.requirements_so_far = response.requirements or request.requirements_so_far
        request.color_palettes = response.color_palettes
        request.selected_palette = response.selected_palette or request.selected_palette
        if response.bundle_metadata is None:
            continue

        request.bundle = GenerationBundle(
            email=response.email, landing=response.landing, metadata=response.bundle_metadata
        )
        if paths is None:
            name = request.requirements_so_far.campaign_name or request.requirements_so_far.product or "campaign"
            paths = create_run_dir(output, name)
            meta = RunMeta(run_id=paths.run_id, campaign=name, model=model, palette=request.selected_palette)
        else:
            meta.refinements += 1
        meta.status = GenerationStatus.READY.value
        meta.channels = response.bundle_metadata.channels
        _write_run(paths, request.requirements_so_far, meta, request.bundle)
        rprint(f"  [dim]Saved to {paths.run_dir}[/dim]")


# ── list ─────────────────────────────────────────────────────────────────────

@app.command(name="list")
def list_cmd(
    output: str = typer.Option(DEFAULT_RUNS_DIR, "-o", "--output", help="Base directory for runs."),
    n: int = typer.Option(20, "--n", "-n", help="Number of recent runs to show."),
) -> None:
    """List recent runs."""
    runs = list_runs(output, limit=n)
    if not runs:
        rprint("[dim]No runs found.[/dim]")
        raise typer.Exit(0)

    table = Table(title="Recent Runs", show_lines=False)
    table.add_column("#", style="dim", width=4)
    table.add_column("Run ID")
    table.add_column("Status")
    table.add_column("Channels")
    for i, name in enumerate(runs, 1):
        meta_path = Path(output) / name / "meta.json"
        meta = RunMeta.model_validate(read_json(meta_path)) if meta_path.exists() else None
        table.add_row(
            str(i),
            name,
            meta.status if meta else "?",
            ", ".join(meta.channels) if meta else "",
        )
    console.print(table)


# ── show ─────────────────────────────────────────────────────────────────────

@app.command()
def show(
    run_id: str = typer.Argument(..., help="Run ID (exact name or prefix)."),
    output: str = typer.Option(DEFAULT_RUNS_DIR, "-o", "--output", help="Base directory for runs."),
    artifact: str = typer.Option("meta", "-a", "--artifact", help=f"Artifact to display: {', '.join(ARTIFACT_NAMES)}"),
) -> None:
    """Print an artifact from a run."""
    run_dir = _resolve_run(output, run_id)
    try:
        ap = artifact_path(run_dir, artifact)
    except ValueError as exc:
        rprint(f"[red]Error:[/red] {exc}")
        raise typer.Exit(1)

    if not ap.exists():
        rprint(f"[red]Error:[/red] Artifact not found: {ap}")
        raise typer.Exit(1)
    console.print(ap.read_text(encoding="utf-8"), markup=False, highlight=False)


# ── init ─────────────────────────────────────────────────────────────────────

EXAMPLE_REQUIREMENTS = '''# Example requirements for campaign-studio
# Copy this file and describe your own campaign.

campaignName: "Beta launch"
product: "project tracker app"
audience: "freelancers"
purpose: "beta signups"
tone: "friendly"            # professional | casual | playful | urgent | friendly
visualStyle: "modern"       # modern | minimal | bold | retro | elegant | tech | playful
ctaEnabled: true
ctaText: "Join Beta"
ctaLink: "https://example.com/beta"
colorPreference: "mostly blue with a little red"
'''


@app.command()
def init(
    output_dir: str = typer.Option(".", "-o", "--output", help="Directory to create the starter file in."),
    force: bool = typer.Option(False, "--force", help="Overwrite an existing file."),
) -> None:
    """Create a starter requirements.yaml.

        studio init
        studio generate requirements.yaml
    """
    out = Path(output_dir)
    out.mkdir(parents=True, exist_ok=True)

    path = out / "requirements.yaml"
    if path.exists() and not force:
        rprint(f"[yellow]Skipped:[/yellow] {path} already exists (use --force to overwrite)")
    else:
        path.write_text(EXAMPLE_REQUIREMENTS, encoding="utf-8")
        rprint(f"[green]Created:[/green] {path}")

    rprint()
    rprint("Next steps:")
    rprint(f"  1. Edit [bold]{path.name}[/bold] with your product, audience and goal")
    rprint("  2. Run: [bold]studio palettes \"<colour wishes>\"[/bold] to preview palettes")
    rprint(f"  3. Run: [bold]studio generate {path} --palette 1[/bold]")
    rprint()
    rprint("For private prompts and profiles, set:")
    rprint("  export CAMPAIGN_STUDIO_PRIVATE_DIR=/path/to/your/private/dir")


if __name__ == "__main__":
    app()
