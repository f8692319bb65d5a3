"""
CLI Application.

Typer application for working with a directory of Markdown notes.

Usage:
    kbnotes --help                              # Show help

    # Notes
    kbnotes notes list                          # Table of notes
    kbnotes notes list --tag git                # Notes carrying a tag
    kbnotes notes show git-ignore.md            # Decode one note
    kbnotes notes tags                          # Tag counts
    kbnotes notes check                         # Validate every note
    kbnotes notes new "Title" -t tag            # Create a note
    kbnotes notes format --check                # Canonical form check
    kbnotes notes delete old-note.md --yes      # Remove a note

    # System info
    kbnotes system info                         # Show app info
    kbnotes system config                       # Show configuration

Options:
    --root PATH       Notes directory (overrides notes.yaml)
    --verbose, -v     Enable verbose output
    --debug           Enable debug mode (detailed logging)
    --help            Show help message
"""

from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.markup import escape

from kbnotes.cli.commands import notes_app, system_app
from kbnotes.core.config import find_project_root, get_settings
from kbnotes.core.logging import bind_log_context, clear_log_context, setup_logging

app = typer.Typer(
    name="kbnotes",
    help="Knowledge-base notes CLI - decode, validate and maintain Markdown notes.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

err_console = Console(stderr=True)

app.add_typer(notes_app, name="notes")
app.add_typer(system_app, name="system")


def _validate_project_root() -> None:
    """Validate that we're running inside a project with a .project_root marker."""
    try:
        find_project_root()
    except RuntimeError:
        err_console.print("[red]Error: .project_root not found. Run from project root.[/red]")
        raise typer.Exit(1)


@app.callback()
def main(
    ctx: typer.Context,
    root: Optional[Path] = typer.Option(
        None,
        "--root",
        "-r",
        help="Notes directory (overrides notes.yaml and KBNOTES_NOTES_ROOT)",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable verbose output (INFO level logging)",
    ),
    debug: bool = typer.Option(
        False,
        "--debug",
        "-d",
        help="Enable debug mode (DEBUG level logging)",
    ),
) -> None:
    """
    Knowledge-base notes CLI.

    Decode, validate, list and reformat Markdown notes with front matter.
    Built with Typer for type-safe commands and Rich for formatted output.
    """
    _validate_project_root()

    try:
        if debug:
            setup_logging(level="DEBUG", format_type="console")
            err_console.print("[dim]Debug mode enabled[/dim]")
        elif verbose:
            setup_logging(level="INFO", format_type="console")
        else:
            setup_logging(level=get_settings().log_level)
    except (FileNotFoundError, ValueError) as e:
        err_console.print(f"[red]Error loading configuration: {escape(str(e))}[/red]")
        raise typer.Exit(1)

    clear_log_context()
    bind_log_context(source="cli")
    ctx.obj = {"root": root}


if __name__ == "__main__":
    app()
