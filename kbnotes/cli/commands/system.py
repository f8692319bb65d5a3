"""
System Commands.

Commands for application information and configuration.
"""

from typing import Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.tree import Tree

from kbnotes.core.config import get_app_config, get_notes_root

app = typer.Typer(help="System information commands")
console = Console()


@app.command()
def info(ctx: typer.Context) -> None:
    """
    Display application information.

    Shows app name, version and the notes directory in use.
    """
    try:
        app_config = get_app_config()
        notes_root = get_notes_root((ctx.obj or {}).get("root"))
    except (FileNotFoundError, ValueError, RuntimeError) as e:
        console.print(f"[red]Error loading configuration: {e}[/red]")
        raise typer.Exit(1)

    application = app_config.application
    console.print(Panel(
        f"[bold]{application.name}[/bold]\n"
        f"Version: {application.version}\n"
        f"Description: {application.description}\n"
        f"Notes root: {notes_root}",
        title="Application Info",
    ))


@app.command()
def config(
    section: Optional[str] = typer.Argument(None, help="Config section to show (application, notes, logging, concurrency)"),
) -> None:
    """
    Display configuration settings.

    Shows all configuration or a specific section.
    """
    try:
        app_config = get_app_config()
    except (FileNotFoundError, ValueError, RuntimeError) as e:
        console.print(f"[red]Error loading configuration: {e}[/red]")
        raise typer.Exit(1)

    sections = {
        "application": app_config.application.model_dump(),
        "notes": app_config.notes.model_dump(),
        "logging": app_config.logging.model_dump(),
        "concurrency": app_config.concurrency.model_dump(),
    }

    if section:
        if section not in sections:
            console.print(f"[red]Unknown section: {section}[/red]")
            console.print(f"Available sections: {', '.join(sections.keys())}")
            raise typer.Exit(1)

        _display_config_section(section, sections[section])
    else:
        for name, data in sections.items():
            _display_config_section(name, data)
            console.print()


def _display_config_section(name: str, data: dict) -> None:
    """Display a configuration section as a tree."""
    tree = Tree(f"[bold cyan]{name}[/bold cyan]")

    def add_items(parent: Tree, items: dict) -> None:
        for key, value in items.items():
            if isinstance(value, dict):
                branch = parent.add(f"[cyan]{key}[/cyan]")
                add_items(branch, value)
            else:
                parent.add(f"[cyan]{key}[/cyan]: {value}")

    add_items(tree, data)
    console.print(tree)


@app.command()
def version() -> None:
    """
    Display version information.
    """
    try:
        console.print(f"[bold]{get_app_config().application.version}[/bold]")
    except (FileNotFoundError, ValueError, RuntimeError):
        console.print("[yellow]unknown[/yellow]")
