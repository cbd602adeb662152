"""SceneWeaver CLI - typer application entry point."""

from __future__ import annotations

import atexit
from pathlib import Path
from typing import TYPE_CHECKING, Annotated, Any, NoReturn

import typer
from dotenv import load_dotenv
from pydantic import ValidationError
from rich.console import Console
from rich.table import Table

from sceneweaver.observability import close_file_logging, configure_logging

if TYPE_CHECKING:
    from sceneweaver.config import EngineConfig
    from sceneweaver.models.project import Project

# Load environment variables from .env file
load_dotenv()

app = typer.Typer(
    name="sw",
    help="SceneWeaver: scene-graph editing for branching visual novels.",
    no_args_is_help=True,
)
console = Console()
err_console = Console(stderr=True)

# Global state set by the callback, used by commands
_config_path: Path | None = None

ProjectArg = Annotated[Path, typer.Argument(help="Project snapshot (.json or .yaml).")]
OutputOpt = Annotated[
    Path | None,
    typer.Option("--output", "-o", help="Write the result here instead of the input file."),
]
StoryOpt = Annotated[str, typer.Option("--story", "-s", help="Story id.")]


@app.callback()
def main(
    verbose: Annotated[
        int,
        typer.Option(
            "-v",
            "--verbose",
            count=True,
            help="Increase verbosity: -v for INFO, -vv for DEBUG.",
        ),
    ] = 0,
    log_dir: Annotated[
        Path | None,
        typer.Option(
            "--log",
            help="Also write JSONL events to <dir>/logs/debug.jsonl.",
        ),
    ] = None,
    config: Annotated[
        Path | None,
        typer.Option(
            "--config",
            "-c",
            help="Config file, or a directory holding sceneweaver.yaml.",
            envvar="SW_CONFIG",
        ),
    ] = None,
) -> None:
    """SceneWeaver: scene-graph editing for branching visual novels."""
    global _config_path
    _config_path = config

    if log_dir is not None:
        configure_logging(verbosity=verbose, log_to_file=True, log_dir=log_dir)
        atexit.register(close_file_logging)
    else:
        configure_logging(verbosity=verbose)


def _fail(message: str) -> NoReturn:
    console.print(f"[red]Error:[/red] {message}")
    raise typer.Exit(1)


def _load_engine_config() -> EngineConfig:
    from sceneweaver.config import EngineConfigError, load_config

    try:
        return load_config(_config_path)
    except EngineConfigError as e:
        _fail(str(e))


def _read(path: Path, model: Any, kind: str) -> Any:
    """Read and validate a snapshot, exiting with a message on failure."""
    from sceneweaver.artifacts import ArtifactNotFoundError, ArtifactParseError, ArtifactReader

    try:
        return ArtifactReader().read_validated(path, model, kind)
    except (ArtifactNotFoundError, ArtifactParseError) as e:
        _fail(str(e))
    except ValidationError as e:
        _fail(f"Invalid {kind} in {path}:\n{e}")


def _read_raw(path: Path, kind: str) -> object:
    from sceneweaver.artifacts import ArtifactNotFoundError, ArtifactParseError, ArtifactReader

    try:
        return ArtifactReader().read(path, kind)
    except (ArtifactNotFoundError, ArtifactParseError) as e:
        _fail(str(e))


def _write(data: Any, path: Path, kind: str = "project") -> None:
    from sceneweaver.artifacts import ArtifactWriteError, ArtifactWriter

    try:
        ArtifactWriter().write(data, path, kind)
    except ArtifactWriteError as e:
        _fail(str(e))
    console.print(f"[green]✓[/green] Wrote {kind} to [bold]{path}[/bold]")


def _read_project(path: Path) -> Project:
    from sceneweaver.models.project import Project

    project: Project = _read(path, Project, "project")
    return project


@app.command()
def version() -> None:
    """Show version information."""
    from sceneweaver import __version__

    console.print(f"SceneWeaver v{__version__}")


@app.command()
def serialize(
    project: ProjectArg,
    output: Annotated[
        Path | None,
        typer.Option("--output", "-o", help="Write the document here instead of stdout."),
    ] = None,
) -> None:
    """Render a project snapshot as a Doc-format text document."""
    from sceneweaver.doc import serialize_project, unrepresentable_items

    snapshot = _read_project(project)
    text = serialize_project(snapshot)

    if output is None:
        typer.echo(text, nl=False)
    else:
        output.write_text(text, encoding="utf-8")
        console.print(f"[green]✓[/green] Wrote document to [bold]{output}[/bold]")

    dropped = unrepresentable_items(snapshot)
    if dropped:
        err_console.print(
            f"[yellow]Warning:[/yellow] {len(dropped)} item(s) have no Doc syntax and "
            "were left out of the document."
        )


@app.command()
def parse(
    document: Annotated[Path, typer.Argument(help="Doc-format text file.")],
    output: Annotated[
        Path,
        typer.Option("--output", "-o", help="Where to write the parsed project snapshot."),
    ],
    prior: Annotated[
        Path | None,
        typer.Option(
            "--prior",
            "-p",
            help="Snapshot supplying what the document cannot express (positions, sprites).",
        ),
    ] = None,
) -> None:
    """Parse a Doc-format document into a project snapshot."""
    from sceneweaver.doc import parse_doc
    from sceneweaver.graph import mint_id
    from sceneweaver.models.project import Project

    if not document.exists():
        _fail(f"Document not found: {document}")

    base = _read_project(prior) if prior else Project(id=mint_id("proj"), name="Untitled Project")
    result = parse_doc(
        document.read_text(encoding="utf-8"), base, config=_load_engine_config()
    )
    _write(result, output)

    scenes = sum(len(story.scenes) for story in result.stories.values())
    console.print(
        f"  {len(result.characters)} character(s), {len(result.stories)} story(ies), "
        f"{scenes} scene(s)"
    )


@app.command("validate-plan")
def validate_plan_command(
    plan: Annotated[Path, typer.Argument(help="Story plan (.json or .yaml).")],
    output: Annotated[
        Path | None,
        typer.Option("--output", "-o", help="Write the repaired plan here."),
    ] = None,
) -> None:
    """Repair outcome references of a generated story plan."""
    from sceneweaver.generation import parse_story_plan
    from sceneweaver.graph import GenerationShapeError, validate_plan

    try:
        story_plan = parse_story_plan(_read_raw(plan, "plan"))
    except GenerationShapeError as e:
        _fail("\n".join([str(e), *e.errors]))

    repaired = validate_plan(story_plan.scenes)

    table = Table(title="Plan outcomes")
    table.add_column("Scene", style="cyan")
    table.add_column("Before")
    table.add_column("After", style="bold")
    changed = 0
    for before, after in zip(story_plan.scenes, repaired, strict=True):
        was, now = _describe_outcome(before.outcome), _describe_outcome(after.outcome)
        if was != now:
            changed += 1
            now = f"[yellow]{now}[/yellow]"
        table.add_row(after.id, was, now)

    console.print()
    console.print(table)
    console.print(f"{changed} of {len(repaired)} outcome(s) repaired")

    if output is not None:
        fixed = story_plan.model_copy(update={"scenes": repaired})
        _write(fixed, output, "plan")


def _describe_outcome(outcome: Any) -> str:
    match outcome.type:
        case "transition":
            return f"-> {outcome.next_scene_id or '?'}"
        case "choice":
            targets = ", ".join(c.next_scene_id or "?" for c in outcome.choices or [])
            return f"choice ({targets})"
        case _:
            return "end"


@app.command("delete-scene")
def delete_scene_command(
    project: ProjectArg,
    story: StoryOpt,
    scene: Annotated[str, typer.Option("--scene", help="Scene id to delete.")],
    output: OutputOpt = None,
) -> None:
    """Delete a scene and unlink every outcome that pointed at it."""
    from sceneweaver.graph import GraphIntegrityError, delete_scene, put_story, require_story

    snapshot = _read_project(project)
    try:
        updated = delete_scene(require_story(snapshot, story), scene)
    except GraphIntegrityError as e:
        _fail(e.to_feedback())

    _write(put_story(snapshot, updated), output or project)


@app.command()
def splice(
    project: ProjectArg,
    fragment: Annotated[Path, typer.Argument(help="Scene fragment (.json or .yaml).")],
    story: StoryOpt,
    scene: Annotated[str, typer.Option("--after", help="Attachment scene id.")],
    output: OutputOpt = None,
) -> None:
    """Attach a generated scene fragment after an existing scene."""
    from sceneweaver.generation import parse_scene_fragment
    from sceneweaver.graph import GenerationShapeError, GraphIntegrityError, put_story, require_story
    from sceneweaver.graph import splice as splice_fragment

    snapshot = _read_project(project)
    try:
        target = require_story(snapshot, story)
        parsed = parse_scene_fragment(_read_raw(fragment, "fragment"))
    except GraphIntegrityError as e:
        _fail(e.to_feedback())
    except GenerationShapeError as e:
        _fail("\n".join([str(e), *e.errors]))

    if scene not in target.scenes:
        _fail(f"Scene '{scene}' not found in story '{story}'; nothing was spliced")

    updated = splice_fragment(
        target,
        scene,
        parsed,
        known_characters=snapshot.characters,
        config=_load_engine_config(),
    )
    _write(put_story(snapshot, updated), output or project)
    console.print(f"  {len(updated.scenes) - len(target.scenes)} scene(s) added")


@app.command()
def skeleton(
    project: ProjectArg,
    story: StoryOpt,
    scene: Annotated[str, typer.Option("--after", help="Attachment scene id.")],
    main_size: Annotated[int, typer.Option("--main", help="Main chain length.")] = 10,
    branch_size: Annotated[int, typer.Option("--branch", help="Sub-branch length.")] = 3,
    split_probability: Annotated[
        float, typer.Option("--split", help="Chance of a split node (0-1).")
    ] = 0.15,
    decision_probability: Annotated[
        float, typer.Option("--decision", help="Chance of a decision node (0-1).")
    ] = 0.15,
    seed: Annotated[
        int | None, typer.Option("--seed", help="Seed for a repeatable skeleton.")
    ] = None,
    output: OutputOpt = None,
) -> None:
    """Attach a rule-based skeleton of placeholder scenes after a scene."""
    import random

    from sceneweaver.generation import SkeletonConfig, generate_skeleton, skeleton_fragment
    from sceneweaver.graph import GraphIntegrityError, put_story, require_story
    from sceneweaver.graph import splice as splice_fragment

    try:
        config = SkeletonConfig(
            main_branch_size=main_size,
            split_branch_size=branch_size,
            split_probability=split_probability,
            decision_probability=decision_probability,
        )
    except ValueError as e:
        _fail(str(e))

    snapshot = _read_project(project)
    try:
        target = require_story(snapshot, story)
    except GraphIntegrityError as e:
        _fail(e.to_feedback())
    if scene not in target.scenes:
        _fail(f"Scene '{scene}' not found in story '{story}'; nothing was added")

    fragment = skeleton_fragment(generate_skeleton(config, random.Random(seed)))
    updated = splice_fragment(target, scene, fragment, config=_load_engine_config())
    _write(put_story(snapshot, updated), output or project)
    console.print(f"  {len(updated.scenes) - len(target.scenes)} scene(s) added")


@app.command()
def audit(project: ProjectArg) -> None:
    """Check every story of a project for graph integrity problems."""
    from sceneweaver.graph import audit_project

    snapshot = _read_project(project)
    reports = audit_project(snapshot)

    severity_icons = {
        "pass": "[green]✓[/green]",
        "warn": "[yellow]![/yellow]",
        "fail": "[red]✗[/red]",
    }
    failed = False
    for story_id, report in reports.items():
        table = Table(title=f"Story: {story_id}")
        table.add_column("", width=2)
        table.add_column("Check", style="cyan")
        table.add_column("Result")
        for check in report.checks:
            table.add_row(severity_icons[check.severity], check.name, check.message)
        console.print()
        console.print(table)
        console.print(f"  {report.summary}")
        failed |= report.has_failures

    if not reports:
        console.print("[yellow]Project has no stories.[/yellow]")
    if failed:
        raise typer.Exit(1)


@app.command()
def export(
    project: ProjectArg,
    format_name: Annotated[
        str,
        typer.Option("--format", "-f", help="Export format: twee or json."),
    ] = "twee",
    out_dir: Annotated[
        Path,
        typer.Option("--out-dir", help="Directory for exported files."),
    ] = Path("export"),
    story: Annotated[
        str | None,
        typer.Option("--story", "-s", help="Story id (twee); defaults to the first story."),
    ] = None,
) -> None:
    """Export a project to a playable or archival format."""
    from sceneweaver.export import get_exporter
    from sceneweaver.graph import GraphIntegrityError

    try:
        exporter = get_exporter(format_name)
    except ValueError as e:
        _fail(str(e))

    snapshot = _read_project(project)
    try:
        path = exporter.export(snapshot, out_dir, story_id=story)
    except GraphIntegrityError as e:
        _fail(e.to_feedback())
    except ValueError as e:
        _fail(str(e))

    console.print(f"[green]✓[/green] Exported {format_name} to [bold]{path}[/bold]")


@app.command("import-twee")
def import_twee_command(
    source: Annotated[Path, typer.Argument(help="Twee 3 file.")],
    output: Annotated[
        Path,
        typer.Option("--output", "-o", help="Where to write the project snapshot."),
    ],
    into: Annotated[
        Path | None,
        typer.Option("--into", help="Add the story to this project instead of a new one."),
    ] = None,
) -> None:
    """Import a Twee story as a new story of a project."""
    from sceneweaver.export import import_twee
    from sceneweaver.graph import mint_id, put_story
    from sceneweaver.models.project import Project

    if not source.exists():
        _fail(f"Twee file not found: {source}")

    base = _read_project(into) if into else Project(id=mint_id("proj"), name="Untitled Project")
    try:
        story, characters = import_twee(
            source.read_text(encoding="utf-8"),
            base.characters,
            config=_load_engine_config(),
        )
    except ValueError as e:
        _fail(str(e))

    result = put_story(base, story).model_copy(update={"characters": characters})
    _write(result, output)
    console.print(
        f"  {len(story.scenes)} scene(s), {len(characters) - len(base.characters)} new "
        f"character(s) in story [bold]{story.id}[/bold]"
    )


if __name__ == "__main__":
    app()
