"""
Unit Tests for Note Service.

Tests the NoteService business logic against a temporary notes directory.
"""

from pathlib import Path

import pytest

from kbnotes.core.config_schema import NotesSchema
from kbnotes.core.exceptions import (
    ConflictError,
    MetadataFormatError,
    NotFoundError,
    ValidationError,
)
from kbnotes.parsing.front_matter import parse_note
from kbnotes.schemas.note import Note, NoteCreate, NoteUpdate
from kbnotes.services.note import NoteService


class TestNoteServiceLoad:
    """Tests for loading notes."""

    @pytest.mark.asyncio
    async def test_load_note(self, note_service: NoteService):
        note = await note_service.load_note("git-ignore.md")

        assert note.title == "Ignoring build output in Git"
        assert note.layout == "note"
        assert note.tags == ["git", "tooling"]
        assert note.body.startswith("Use `git rm --cached`")

    @pytest.mark.asyncio
    async def test_load_note_malformed(self, note_service: NoteService):
        with pytest.raises(MetadataFormatError) as exc_info:
            await note_service.load_note("broken.md")

        assert exc_info.value.source == "broken.md"
        assert exc_info.value.offset == 0

    @pytest.mark.asyncio
    async def test_load_note_missing(self, note_service: NoteService):
        with pytest.raises(NotFoundError):
            await note_service.load_note("missing.md")

    @pytest.mark.asyncio
    async def test_load_all_keeps_going_past_errors(self, note_service: NoteService):
        """A malformed note should be reported without hiding the others."""
        # Act
        result = await note_service.load_all()

        # Assert
        assert [path for path, _ in result.notes] == [
            "ci/continuous-integration.md",
            "git-ignore.md",
            "scratch.md",
        ]
        assert [error.source for error in result.errors] == ["broken.md"]

    @pytest.mark.asyncio
    async def test_list_notes_by_tag(self, note_service: NoteService):
        summaries = await note_service.list_notes(tag="git")

        assert [summary.path for summary in summaries] == ["git-ignore.md"]
        assert summaries[0].title == "Ignoring build output in Git"

    @pytest.mark.asyncio
    async def test_list_notes_without_tag(self, note_service: NoteService):
        summaries = await note_service.list_notes()

        assert len(summaries) == 3

    @pytest.mark.asyncio
    async def test_tag_index(self, note_service: NoteService):
        index = await note_service.tag_index()

        assert index == {
            "ci": ["ci/continuous-integration.md"],
            "git": ["git-ignore.md"],
            "tooling": ["ci/continuous-integration.md", "git-ignore.md"],
        }


class TestNoteServiceValidate:
    """Tests for metadata validation rules."""

    def test_valid_note_has_no_issues(self, note_service: NoteService):
        note = Note(title="X", layout="note", tags=["a"])

        assert note_service.validate("x.md", note) == []

    def test_missing_required_fields(self, note_service: NoteService):
        issues = note_service.validate("x.md", Note(body="text"))

        assert [issue.code for issue in issues] == ["NOTE_MISSING_FIELD", "NOTE_MISSING_FIELD"]
        assert "'title'" in issues[0].message
        assert "'layout'" in issues[1].message
        assert all(issue.severity == "error" for issue in issues)

    def test_required_extra_field(self, note_service: NoteService, notes_config: NotesSchema):
        notes_config.required_fields = ["title", "date"]
        note = Note(title="X", extra={"date": "2021-03-04"})

        assert note_service.validate("x.md", note) == []

    def test_unknown_layout_is_a_warning(self, note_service: NoteService):
        issues = note_service.validate("x.md", Note(title="X", layout="post"))

        assert len(issues) == 1
        assert issues[0].code == "NOTE_UNKNOWN_LAYOUT"
        assert issues[0].severity == "warning"

    def test_any_layout_when_none_configured(self, note_service: NoteService, notes_config: NotesSchema):
        notes_config.allowed_layouts = []

        assert note_service.validate("x.md", Note(title="X", layout="post")) == []

    def test_duplicate_tags_are_a_warning(self, note_service: NoteService):
        issues = note_service.validate("x.md", Note(title="X", layout="note", tags=["a", "b", "a"]))

        assert len(issues) == 1
        assert issues[0].code == "NOTE_DUPLICATE_TAG"
        assert "a" in issues[0].message


class TestNoteServiceCheck:
    """Tests for checking the whole store."""

    @pytest.mark.asyncio
    async def test_check_reports_every_problem(self, note_service: NoteService):
        # Act
        report = await note_service.check()

        # Assert
        assert report.checked == 4
        assert not report.ok
        assert [(issue.path, issue.code) for issue in report.issues] == [
            ("broken.md", "NOTE_METADATA_FORMAT"),
            ("scratch.md", "NOTE_MISSING_FIELD"),
            ("scratch.md", "NOTE_MISSING_FIELD"),
        ]
        broken = report.issues[0]
        assert (broken.offset, broken.line, broken.column) == (0, 1, 1)

    @pytest.mark.asyncio
    async def test_check_clean_store(self, note_service: NoteService, notes_dir: Path):
        (notes_dir / "broken.md").unlink()
        (notes_dir / "scratch.md").unlink()

        report = await note_service.check()

        assert report.ok
        assert report.checked == 2
        assert report.issues == []

    @pytest.mark.asyncio
    async def test_check_reports_undecodable_file(self, note_service: NoteService, notes_dir: Path):
        """A file that is not UTF-8 is one issue, not the end of the run."""
        # Arrange
        (notes_dir / "latin1.md").write_bytes(b"---\ntitle: \xff\xfe\n---\nbody\n")

        # Act
        report = await note_service.check()

        # Assert
        assert report.checked == 5
        latin1 = [issue for issue in report.issues if issue.path == "latin1.md"]
        assert [issue.code for issue in latin1] == ["NOTE_METADATA_FORMAT"]
        assert (latin1[0].offset, latin1[0].line, latin1[0].column) == (11, 2, 8)
        assert any(issue.path == "broken.md" for issue in report.issues)

    @pytest.mark.asyncio
    async def test_check_reports_unconstructable_extra(self, note_service: NoteService, notes_dir: Path):
        (notes_dir / "typed.md").write_text("---\ntitle: X\nx: {a: !!int abc}\n---\n", encoding="utf-8")

        report = await note_service.check()

        typed = [issue for issue in report.issues if issue.path == "typed.md"]
        assert [issue.code for issue in typed] == ["NOTE_METADATA_FORMAT"]
        assert typed[0].line == 3
        assert report.checked == 5

    @pytest.mark.asyncio
    async def test_check_offsets_count_byte_order_mark(self, note_service: NoteService, notes_dir: Path):
        (notes_dir / "bom.md").write_bytes(b"\xef\xbb\xbf---\ntitle: a\ntitle: b\n---\n")

        report = await note_service.check()

        bom = [issue for issue in report.issues if issue.path == "bom.md"]
        assert (bom[0].offset, bom[0].line, bom[0].column) == (16, 3, 1)


class TestNoteServiceLifecycle:
    """Tests for creating, editing and deleting notes."""

    @pytest.mark.asyncio
    async def test_create_note(self, note_service: NoteService, notes_dir: Path):
        # Arrange
        data = NoteCreate(title="Café Notes!", tags=["food"], body="Menu\n")

        # Act
        path = await note_service.create_note(data)

        # Assert
        assert path == notes_dir.resolve() / "cafe-notes.md"
        note = parse_note(path.read_text(encoding="utf-8"))
        assert note == Note(title="Café Notes!", layout="note", tags=["food"], body="Menu\n")

    @pytest.mark.asyncio
    async def test_create_note_in_configured_dir(
        self, note_service: NoteService, notes_config: NotesSchema, notes_dir: Path
    ):
        notes_config.new_note_dir = "inbox"

        path = await note_service.create_note(NoteCreate(title="Idea", layout="draft"))

        assert path == notes_dir.resolve() / "inbox" / "idea.md"
        assert parse_note(path.read_text(encoding="utf-8")).layout == "draft"

    @pytest.mark.asyncio
    async def test_create_note_conflict(self, note_service: NoteService):
        with pytest.raises(ConflictError):
            await note_service.create_note(NoteCreate(title="Git ignore"))

    @pytest.mark.asyncio
    async def test_update_note(self, note_service: NoteService, notes_dir: Path):
        updated = await note_service.update_note("git-ignore.md", NoteUpdate(tags=["git"]))

        assert updated.tags == ["git"]
        assert updated.title == "Ignoring build output in Git"
        reloaded = await note_service.load_note("git-ignore.md")
        assert reloaded == updated

    @pytest.mark.asyncio
    async def test_update_without_changes_leaves_file(self, note_service: NoteService, notes_dir: Path):
        before = (notes_dir / "git-ignore.md").read_bytes()

        await note_service.update_note("git-ignore.md", NoteUpdate())

        assert (notes_dir / "git-ignore.md").read_bytes() == before

    @pytest.mark.asyncio
    async def test_update_malformed_note(self, note_service: NoteService):
        with pytest.raises(MetadataFormatError):
            await note_service.update_note("broken.md", NoteUpdate(title="Fixed"))

    @pytest.mark.asyncio
    async def test_delete_note(self, note_service: NoteService, notes_dir: Path):
        await note_service.delete_note("scratch.md")

        assert not (notes_dir / "scratch.md").exists()

    @pytest.mark.asyncio
    async def test_delete_missing_note(self, note_service: NoteService):
        with pytest.raises(NotFoundError):
            await note_service.delete_note("missing.md")


class TestNoteServiceFormat:
    """Tests for canonical reformatting."""

    @pytest.mark.asyncio
    async def test_canonical_note_is_unchanged(self, note_service: NoteService):
        assert await note_service.format_note("git-ignore.md") is False

    @pytest.mark.asyncio
    async def test_format_rewrites_metadata(self, note_service: NoteService, notes_dir: Path):
        # Arrange
        path = notes_dir / "messy.md"
        path.write_text("---\ntags: [b, a]\ntitle:   X\n---\nbody\n", encoding="utf-8")

        # Act
        changed = await note_service.format_note("messy.md")

        # Assert
        assert changed is True
        assert path.read_text(encoding="utf-8") == "---\ntitle: X\ntags:\n  - b\n  - a\n---\nbody\n"

    @pytest.mark.asyncio
    async def test_check_only_does_not_write(self, note_service: NoteService, notes_dir: Path):
        path = notes_dir / "messy.md"
        path.write_text("---\ntitle:   X\n---\n", encoding="utf-8")

        assert await note_service.format_note("messy.md", check_only=True) is True
        assert path.read_text(encoding="utf-8") == "---\ntitle:   X\n---\n"

    @pytest.mark.asyncio
    async def test_lossy_rewrite_is_refused(self, note_service: NoteService, notes_dir: Path):
        path = notes_dir / "nested.md"
        path.write_text("---\ntitle: X\nlinks:\n  repo: example.org\n---\n", encoding="utf-8")

        with pytest.raises(ValidationError):
            await note_service.format_note("nested.md")

    @pytest.mark.asyncio
    async def test_typed_scalars_survive_formatting(self, note_service: NoteService, notes_dir: Path):
        path = notes_dir / "typed.md"
        path.write_text("---\ntitle: 2024\ndate:   2021-03-04\n---\n", encoding="utf-8")

        assert await note_service.format_note("typed.md") is True
        assert path.read_text(encoding="utf-8") == "---\ntitle: 2024\ndate: 2021-03-04\n---\n"

    @pytest.mark.asyncio
    async def test_format_all(self, note_service: NoteService, notes_dir: Path):
        # Arrange
        (notes_dir / "messy.md").write_text("---\ntitle:   X\n---\n", encoding="utf-8")
        (notes_dir / "nested.md").write_text("---\nlinks: {a: 1}\n---\n", encoding="utf-8")

        # Act
        result = await note_service.format_all()

        # Assert
        assert result.changed == ["messy.md"]
        assert list(result.skipped) == ["nested.md"]
        assert [error.source for error in result.errors] == ["broken.md"]
        assert (notes_dir / "messy.md").read_text(encoding="utf-8") == "---\ntitle: X\n---\n"

    @pytest.mark.asyncio
    async def test_unloadable_scalar_is_refused(self, note_service: NoteService, notes_dir: Path):
        """A date the YAML loader rejects cannot be checked for a lossless rewrite."""
        path = notes_dir / "bad-date.md"
        path.write_text("---\ntitle:   X\ndate: 2021-13-45\n---\n", encoding="utf-8")

        with pytest.raises(ValidationError):
            await note_service.format_note("bad-date.md")

        assert path.read_text(encoding="utf-8") == "---\ntitle:   X\ndate: 2021-13-45\n---\n"

    @pytest.mark.asyncio
    async def test_format_all_skips_unloadable_scalar(self, note_service: NoteService, notes_dir: Path):
        (notes_dir / "bad-date.md").write_text("---\ndate: 2021-13-45\n---\n", encoding="utf-8")
        (notes_dir / "messy.md").write_text("---\ntitle:   X\n---\n", encoding="utf-8")

        result = await note_service.format_all()

        assert list(result.skipped) == ["bad-date.md"]
        assert result.changed == ["messy.md"]

    @pytest.mark.asyncio
    async def test_empty_block_before_delimiter_body_is_kept(
        self, note_service: NoteService, notes_dir: Path
    ):
        """A body that starts with a delimiter keeps the empty block in front of it."""
        text = "---\n---\n---\nfoo\n---\nrest\n"
        (notes_dir / "rule.md").write_text(text, encoding="utf-8")

        assert await note_service.format_note("rule.md") is False
        note = await note_service.load_note("rule.md")
        assert note.body == "---\nfoo\n---\nrest\n"
        assert not note.has_metadata

    @pytest.mark.asyncio
    async def test_format_drops_byte_order_mark(self, note_service: NoteService, notes_dir: Path):
        path = notes_dir / "bom.md"
        path.write_bytes(b"\xef\xbb\xbf---\ntitle: X\n---\nbody\n")

        assert await note_service.format_note("bom.md") is True
        assert path.read_bytes() == b"---\ntitle: X\n---\nbody\n"
