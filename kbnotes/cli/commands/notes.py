"""
Note Commands.

Commands for reading, checking, creating and reformatting notes.
"""

import asyncio
from collections.abc import Awaitable
from typing import Any, List, Optional, TypeVar

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from kbnotes.core.concurrency import shutdown_pools
from kbnotes.core.dependencies import get_note_service
from kbnotes.core.exceptions import ApplicationError, MetadataFormatError
from kbnotes.core.logging import bind_log_context, get_logger
from kbnotes.schemas.note import Note, NoteCreate
from kbnotes.services.note import NoteService

app = typer.Typer(help="Note commands")
console = Console()
logger = get_logger(__name__)

T = TypeVar("T")


def _service(ctx: typer.Context, **context: Any) -> NoteService:
    """Build the service and bind the command context to its log records."""
    try:
        service = get_note_service((ctx.obj or {}).get("root"))
    except (FileNotFoundError, ValueError, RuntimeError) as e:
        console.print(f"[red]Error loading configuration: {escape(str(e))}[/red]")
        raise typer.Exit(1)

    bind_log_context(command=ctx.info_name, notes_root=str(service.repo.root), **context)
    return service


def _run(coro: Awaitable[T]) -> T:
    """Run a service coroutine, turning application errors into exit code 1."""

    async def runner() -> T:
        try:
            return await coro
        finally:
            await shutdown_pools()

    try:
        return asyncio.run(runner())
    except MetadataFormatError as e:
        console.print(f"[red]{escape(e.location())}: {escape(e.reason)}[/red]")
        raise typer.Exit(1)
    except ApplicationError as e:
        console.print(f"[red]Error: {escape(e.message)}[/red]")
        raise typer.Exit(1)


def _display_note(note: Note, show_body: bool) -> None:
    table = Table(show_header=False, box=None)
    table.add_column("Field", style="cyan")
    table.add_column("Value")

    table.add_row("title", escape(note.title))
    table.add_row("layout", escape(note.layout))
    table.add_row("tags", escape(", ".join(note.tags)))
    for key, value in note.extra.items():
        table.add_row(escape(key), escape(value))
    console.print(table)

    if show_body:
        console.rule()
        typer.echo(note.body, nl=False)


@app.command()
def show(
    ctx: typer.Context,
    path: str = typer.Argument(..., help="Note file, relative to the notes root"),
    as_json: bool = typer.Option(False, "--json", help="Print the decoded note as JSON"),
    body: bool = typer.Option(True, "--body/--no-body", help="Print the note body"),
) -> None:
    """
    Decode a single note and display its metadata.

    Examples:
        kbnotes notes show git-ignore.md
        kbnotes notes show git-ignore.md --json
    """
    note = _run(_service(ctx, path=path).load_note(path))

    if as_json:
        typer.echo(note.model_dump_json(indent=2))
    else:
        _display_note(note, body)


@app.command("list")
def list_notes(
    ctx: typer.Context,
    tag: Optional[str] = typer.Option(None, "--tag", "-t", help="Only notes with this tag"),
) -> None:
    """
    List notes with their title, layout and tags.
    """
    summaries = _run(_service(ctx).list_notes(tag=tag))

    table = Table(title="Notes", show_header=True)
    table.add_column("Path", style="cyan", no_wrap=True)
    table.add_column("Title")
    table.add_column("Layout")
    table.add_column("Tags")

    for summary in summaries:
        table.add_row(
            escape(summary.path),
            escape(summary.title),
            escape(summary.layout),
            escape(", ".join(summary.tags)),
        )

    console.print(table)
    console.print(f"{len(summaries)} note(s)")


@app.command()
def tags(ctx: typer.Context) -> None:
    """
    Show every tag and how many notes carry it.
    """
    index = _run(_service(ctx).tag_index())

    table = Table(title="Tags", show_header=True)
    table.add_column("Tag", style="cyan", no_wrap=True)
    table.add_column("Notes", justify="right")

    for tag, paths in index.items():
        table.add_row(escape(tag), str(len(paths)))

    console.print(table)


@app.command()
def check(ctx: typer.Context) -> None:
    """
    Validate every note and report problems.

    Exits with code 1 when any note has an error.
    """
    report = _run(_service(ctx).check())

    for issue in report.issues:
        location = issue.path
        if issue.line is not None:
            location += f":{issue.line}:{issue.column} (byte offset {issue.offset})"
        color = "red" if issue.severity == "error" else "yellow"
        console.print(
            f"{escape(location)}: [{color}]{issue.severity}[/{color}] "
            f"{issue.code} {escape(issue.message)}"
        )

    summary = (
        f"Checked {report.checked} note(s): "
        f"{len(report.errors)} error(s), {len(report.warnings)} warning(s)"
    )
    logger.info(
        "Check finished",
        extra={
            "checked": report.checked,
            "errors": len(report.errors),
            "warnings": len(report.warnings),
        },
    )

    if report.ok:
        console.print(f"[green]{summary}[/green]")
    else:
        console.print(f"[red]{summary}[/red]")
        raise typer.Exit(1)


@app.command()
def new(
    ctx: typer.Context,
    title: str = typer.Argument(..., help="Note title"),
    layout: Optional[str] = typer.Option(None, "--layout", "-l", help="Layout name (default from notes.yaml)"),
    tag: Optional[List[str]] = typer.Option(None, "--tag", "-t", help="Tag, repeat for several"),
) -> None:
    """
    Create a new note named after its title.

    Examples:
        kbnotes notes new "Ignoring build output" -t git -t tooling
    """
    try:
        data = NoteCreate(title=title, layout=layout, tags=tag or [])
    except ValueError as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        raise typer.Exit(1)

    service = _service(ctx)
    path = _run(service.create_note(data))
    console.print(f"Created {escape(service.repo.relative(path))}")


@app.command("format")
def format_notes(
    ctx: typer.Context,
    path: Optional[str] = typer.Argument(None, help="Note to format (default: all notes)"),
    check_only: bool = typer.Option(False, "--check", help="Report without writing; exit 1 if anything would change"),
) -> None:
    """
    Rewrite notes with canonical metadata.

    Notes whose metadata cannot be rewritten without changing values
    are skipped.
    """
    service = _service(ctx, path=path)
    verb = "Would reformat" if check_only else "Reformatted"

    if path is not None:
        changed = _run(service.format_note(path, check_only=check_only))
        if changed:
            console.print(f"{verb} {escape(path)}")
        else:
            console.print(f"{escape(path)} already canonical")
        if changed and check_only:
            raise typer.Exit(1)
        return

    result = _run(service.format_all(check_only=check_only))
    for changed_path in result.changed:
        console.print(f"{verb} {escape(changed_path)}")
    for skipped_path, reason in result.skipped.items():
        console.print(f"[yellow]Skipped {escape(skipped_path)}: {escape(reason)}[/yellow]")
    for error in result.errors:
        console.print(f"[red]{escape(error.location())}: {escape(error.reason)}[/red]")

    console.print(f"{len(result.changed)} note(s) {'would change' if check_only else 'changed'}")
    if result.errors or (check_only and result.changed):
        raise typer.Exit(1)


@app.command()
def delete(
    ctx: typer.Context,
    path: str = typer.Argument(..., help="Note file, relative to the notes root"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation"),
) -> None:
    """
    Delete a note file.
    """
    if not yes:
        typer.confirm(f"Delete {path}?", abort=True)

    _run(_service(ctx, path=path).delete_note(path))
    console.print(f"Deleted {escape(path)}")
