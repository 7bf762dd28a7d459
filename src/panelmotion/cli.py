"""CLI entry point for the storyboard pipeline."""

import asyncio
import logging
import typer
from pathlib import Path
from typing import List, Optional

from . import __version__
from .config import config
from .exceptions import PanelMotionError
from .models import Character, FrameType, Scene, Storyboard, VideoModelId, VideoStatus
from .usage import InMemoryUsageLedger

app = typer.Typer(
    name="panelmotion",
    help="Turn comic pages into animated storyboard scenes",
    no_args_is_help=True
)


def setup_logging(verbose: bool = False) -> None:
    """Configure logging."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(levelname)s: %(message)s",
    )


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"panelmotion version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit"
    )
) -> None:
    """panelmotion - Storyboards and video clips from comic pages using AI."""
    pass


def parse_character(value: str) -> Character:
    """Parse ``NAME`` or ``NAME=DESCRIPTION``."""
    name, _, description = value.partition("=")
    name = name.strip()
    if not name:
        raise typer.BadParameter(f"Invalid character: '{value}'")
    return Character(name=name, description=description.strip() or None)


def create_orchestrator(ledger: InMemoryUsageLedger, with_video: bool = False):
    """Build an orchestrator wired to Claude, Imagen and (optionally) Veo."""
    from .pipeline import StoryboardOrchestrator
    from .services import VeoClient
    from .services.generation import StudioGenerationService

    config.validate_required()
    config.validate_google_required()
    video_service = None
    if with_video:
        config.validate_veo_required()
        video_service = VeoClient(download_dir=config.workspace / "videos")

    return StoryboardOrchestrator(
        StudioGenerationService(),
        video_service,
        ledger=ledger,
    )


def load_storyboard(directory: Path) -> Storyboard:
    try:
        return Storyboard.load(directory)
    except FileNotFoundError:
        typer.echo(f"❌ No storyboard found at {directory}")
        typer.echo("   Run 'panelmotion build' to create one")
        raise typer.Exit(1)
    except Exception as e:
        typer.echo(f"❌ Error loading storyboard: {e}")
        raise typer.Exit(1)


def save_storyboard(storyboard: Storyboard, directory: Path) -> None:
    try:
        path = storyboard.save(directory)
        typer.echo(f"\n✅ Storyboard saved: {path}")
    except Exception as e:
        typer.echo(f"❌ Error saving storyboard: {e}")
        raise typer.Exit(1)


def print_cost(ledger: InMemoryUsageLedger) -> None:
    if not ledger.records:
        return
    typer.echo(f"\n💰 Estimated cost: ${ledger.total_cost:.4f}")
    for task, totals in ledger.summary().items():
        typer.echo(f"   {task}: {totals['calls']:.0f} call(s), ${totals['cost_usd']:.4f}")


def scene_icon(scene: Scene) -> str:
    if scene.failed:
        return "❌"
    if scene.video_generation_status == VideoStatus.DONE:
        return "🎞️ "
    if scene.video_generation_status == VideoStatus.ERROR:
        return "⚠️ "
    return "⏳" if scene.is_loading else "✅"


def preview(text: str, length: int = 60) -> str:
    return text[:length] + "..." if len(text) > length else text


@app.command()
def build(
    pages: List[Path] = typer.Argument(
        ...,
        help="Comic page images in reading order",
        exists=True,
        file_okay=True,
        dir_okay=False
    ),
    character: Optional[List[str]] = typer.Option(
        None,
        "--character",
        "-c",
        help="Character as NAME or NAME=DESCRIPTION (repeatable)"
    ),
    output: Path = typer.Option(
        Path("storyboard"),
        "--output",
        "-o",
        help="Output storyboard directory"
    ),
    name: Optional[str] = typer.Option(
        None,
        "--name",
        "-n",
        help="Project name (defaults to the output directory name)"
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable verbose logging"
    ),
) -> None:
    """Build a storyboard from comic pages: scenes, keyframes and prompts."""
    from .models import Image

    setup_logging(verbose)
    characters = [parse_character(c) for c in character or []]

    typer.echo(f"🎬 Building storyboard from {len(pages)} page(s)")
    if characters:
        typer.echo(f"   Characters: {', '.join(c.name for c in characters)}")

    ledger = InMemoryUsageLedger()
    try:
        orchestrator = create_orchestrator(ledger)
    except PanelMotionError as e:
        typer.echo(f"❌ Configuration error: {e}")
        raise typer.Exit(1)

    images = [Image.from_path(p) for p in pages]
    try:
        scenes = asyncio.run(orchestrator.build_storyboard(images, characters))
    except PanelMotionError as e:
        typer.echo(f"❌ Error building storyboard: {e}")
        print_cost(ledger)
        raise typer.Exit(1)

    storyboard = Storyboard(
        project_name=name or output.resolve().name,
        pages=[str(p.resolve()) for p in pages],
        characters=characters,
        scenes=scenes,
        aspect_ratio=config.frame_aspect_ratio,
    )
    save_storyboard(storyboard, output)

    failed = [s for s in scenes if s.failed]
    typer.echo(f"\n📋 Summary:")
    typer.echo(f"   Scenes: {len(scenes)}")
    typer.echo(f"   Total duration: {sum(s.duration for s in scenes)}s")
    typer.echo(f"   Failed: {len(failed)}")
    print_cost(ledger)

    if failed:
        typer.echo(f"\n⚠️  {len(failed)} scene(s) failed; their keyframes are incomplete")
        raise typer.Exit(1)


@app.command()
def status(
    storyboard_dir: Path = typer.Option(
        Path("storyboard"),
        "--storyboard",
        "-s",
        help="Storyboard directory"
    )
) -> None:
    """Show storyboard status."""
    storyboard = load_storyboard(storyboard_dir)

    typer.echo(f"📁 Project: {storyboard.project_name}")
    typer.echo(f"   Aspect ratio: {storyboard.aspect_ratio}")
    typer.echo(f"   Pages: {len(storyboard.pages)}")
    typer.echo(f"   Scenes: {len(storyboard.scenes)}")
    typer.echo(f"   Total duration: {sum(s.duration for s in storyboard.scenes)}s")

    typer.echo("\n📽️  Scenes:")
    for scene in storyboard.scenes:
        model = scene.recommended_model.display_name if scene.recommended_model else "-"
        typer.echo(f"   {scene_icon(scene)} {scene.id}: {scene.duration}s, page {scene.source_page_index + 1}, {model}")
        typer.echo(f"      → {preview(scene.description)}")
        if scene.error:
            typer.echo(f"      ❌ {scene.error}")
        if scene.video_generation_progress and scene.video_generation_status != VideoStatus.IDLE:
            typer.echo(f"      🎞️  {scene.video_generation_progress}")
        if scene.generated_video_url:
            typer.echo(f"      📼 {scene.generated_video_url}")


@app.command()
def prompts(
    storyboard_dir: Path = typer.Option(
        Path("storyboard"),
        "--storyboard",
        "-s",
        help="Storyboard directory"
    ),
    scene_id: Optional[str] = typer.Option(
        None,
        "--scene",
        help="Only show this scene"
    ),
    model: Optional[VideoModelId] = typer.Option(
        None,
        "--model",
        "-m",
        help="Only show prompts for this video model"
    ),
) -> None:
    """Print the per-model video prompts of the storyboard."""
    storyboard = load_storyboard(storyboard_dir)

    scenes = storyboard.scenes
    if scene_id:
        scene = storyboard.get_scene(scene_id)
        if scene is None:
            typer.echo(f"❌ Scene not found: {scene_id}")
            raise typer.Exit(1)
        scenes = [scene]

    for scene in scenes:
        recommended = f" (recommended: {scene.recommended_model.value})" if scene.recommended_model else ""
        typer.echo(f"\n🎬 {scene.id}{recommended}")
        if scene.reasoning:
            typer.echo(f"   {scene.reasoning}")
        for model_id, prompt in scene.prompts.items():
            if model and model_id != model:
                continue
            typer.echo(f"\n--- {model_id.display_name} ---")
            typer.echo(prompt)


@app.command()
def regenerate(
    storyboard_dir: Path = typer.Option(
        Path("storyboard"),
        "--storyboard",
        "-s",
        help="Storyboard directory"
    ),
    scene_id: str = typer.Option(
        ...,
        "--scene",
        help="Scene to update"
    ),
    frame: FrameType = typer.Option(
        FrameType.START,
        "--frame",
        "-f",
        help="Which keyframe to regenerate"
    ),
    instruction: str = typer.Option(
        "",
        "--instruction",
        "-i",
        help="Edit instruction; leave empty for a creative alternative"
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable verbose logging"
    ),
) -> None:
    """Regenerate the start or end frame of a scene."""
    setup_logging(verbose)
    storyboard = load_storyboard(storyboard_dir)

    ledger = InMemoryUsageLedger()
    try:
        orchestrator = create_orchestrator(ledger)
        orchestrator.restore(storyboard, pages=[])
    except PanelMotionError as e:
        typer.echo(f"❌ Configuration error: {e}")
        raise typer.Exit(1)

    typer.echo(f"🎨 Regenerating {frame.value} frame of {scene_id}")
    if instruction:
        typer.echo(f"   Instruction: {instruction}")

    try:
        asyncio.run(orchestrator.regenerate_frame(scene_id, frame, instruction))
    except PanelMotionError as e:
        typer.echo(f"❌ Regeneration failed: {e}")
        raise typer.Exit(1)

    storyboard.scenes = orchestrator.scenes
    save_storyboard(storyboard, storyboard_dir)
    print_cost(ledger)


@app.command()
def video(
    storyboard_dir: Path = typer.Option(
        Path("storyboard"),
        "--storyboard",
        "-s",
        help="Storyboard directory"
    ),
    scene_id: Optional[str] = typer.Option(
        None,
        "--scene",
        help="Only render this scene (default: every runnable scene)"
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable verbose logging"
    ),
) -> None:
    """Render video clips for storyboard scenes using Google Veo."""
    setup_logging(verbose)
    storyboard = load_storyboard(storyboard_dir)

    ledger = InMemoryUsageLedger()
    try:
        orchestrator = create_orchestrator(ledger, with_video=True)
        orchestrator.restore(storyboard, pages=[])
    except PanelMotionError as e:
        typer.echo(f"❌ Configuration error: {e}")
        raise typer.Exit(1)

    if scene_id:
        targets = [scene_id]
    else:
        targets = [
            s.id for s in orchestrator.scenes
            if s.start_frame is not None and s.video_generation_status != VideoStatus.DONE
        ]

    if not targets:
        typer.echo("✅ No scenes to render")
        raise typer.Exit(0)

    typer.echo(f"🎬 Backend: {orchestrator.runner.backend.display_name}")
    typer.echo(f"⏳ Rendering {len(targets)} clip(s)...\n")

    async def render_all() -> List[Scene]:
        results = []
        for target in targets:
            try:
                results.append(await orchestrator.run_video_job(target))
            except PanelMotionError as e:
                typer.echo(f"   ❌ {target}: {e}")
        return results

    results = asyncio.run(render_all())
    for scene in results:
        if scene.video_generation_status == VideoStatus.DONE:
            typer.echo(f"   ✅ {scene.id}: {scene.generated_video_url}")
        else:
            typer.echo(f"   ❌ {scene.id}: {scene.video_generation_progress}")

    storyboard.scenes = orchestrator.scenes
    save_storyboard(storyboard, storyboard_dir)

    failed = len(targets) - sum(1 for s in results if s.video_generation_status == VideoStatus.DONE)
    typer.echo(f"\n📊 Summary:")
    typer.echo(f"   Rendered: {len(targets) - failed}")
    typer.echo(f"   Failed: {failed}")
    print_cost(ledger)

    if failed > 0:
        raise typer.Exit(1)


if __name__ == "__main__":
    app()
