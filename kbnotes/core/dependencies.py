"""
Shared Dependencies.

Builds repositories and services from configuration so entry points
do not wire them by hand.
"""

from pathlib import Path

from kbnotes.core.config import get_app_config, get_notes_root
from kbnotes.repositories.note import NoteRepository
from kbnotes.services.note import NoteService


def get_note_repository(root: str | Path | None = None) -> NoteRepository:
    """
    Create a repository for the configured notes directory.

    Args:
        root: Optional override for the notes directory
    """
    notes_config = get_app_config().notes
    return NoteRepository(
        get_notes_root(root),
        extensions=notes_config.extensions,
        exclude_dirs=notes_config.exclude_dirs,
    )


def get_note_service(root: str | Path | None = None) -> NoteService:
    """Create a NoteService over the configured (or overridden) notes directory."""
    return NoteService(get_note_repository(root), get_app_config().notes)
