"""
Root Pytest Fixtures.

Shared fixtures available to all test types.

Note Store Fixtures:
    Tests that touch note files get a temporary notes directory populated
    with a few notes. The real config/settings files are used for
    everything else, so tests run from the project root.
"""

from pathlib import Path

import pytest

from kbnotes.core.config_schema import NotesSchema
from kbnotes.repositories.note import NoteRepository
from kbnotes.services.note import NoteService


# =============================================================================
# Note Documents
# =============================================================================


GIT_NOTE = """\
---
title: Ignoring build output in Git
layout: note
tags:
  - git
  - tooling
---
Use `git rm --cached` for files that are already tracked.
"""

CI_NOTE = """\
---
title: Setting up continuous integration
layout: note
tags:
  - ci
  - tooling
---
Run the tests on every push.
"""

PLAIN_NOTE = "Just text, no metadata.\n"

BROKEN_NOTE = """\
---
title: Never closed
layout: note
Body that was meant to follow the block.
"""


@pytest.fixture
def note_documents() -> dict[str, str]:
    """Relative path to document text for the temporary notes directory."""
    return {
        "git-ignore.md": GIT_NOTE,
        "ci/continuous-integration.md": CI_NOTE,
        "scratch.md": PLAIN_NOTE,
        "broken.md": BROKEN_NOTE,
    }


@pytest.fixture
def notes_dir(tmp_path: Path, note_documents: dict[str, str]) -> Path:
    """
    Create a notes directory populated with note_documents.

    Usage:
        def test_listing(notes_dir: Path):
            assert (notes_dir / "git-ignore.md").exists()
    """
    root = tmp_path / "notes"
    for relative, text in note_documents.items():
        path = root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")
    return root


# =============================================================================
# Service Fixtures
# =============================================================================


@pytest.fixture
def notes_config() -> NotesSchema:
    """Notes settings used by service tests, independent of notes.yaml."""
    return NotesSchema(
        root="notes",
        extensions=[".md"],
        exclude_dirs=["_site"],
        new_note_dir="",
        default_layout="note",
        required_fields=["title", "layout"],
        allowed_layouts=["note"],
    )


@pytest.fixture
def note_repository(notes_dir: Path, notes_config: NotesSchema) -> NoteRepository:
    """Repository over the temporary notes directory."""
    return NoteRepository(
        notes_dir,
        extensions=notes_config.extensions,
        exclude_dirs=notes_config.exclude_dirs,
    )


@pytest.fixture
def note_service(note_repository: NoteRepository, notes_config: NotesSchema) -> NoteService:
    """NoteService over the temporary notes directory."""
    return NoteService(note_repository, notes_config)
