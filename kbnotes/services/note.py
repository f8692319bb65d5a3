"""
Note Service.

Business logic layer for notes. Loads and decodes note files, validates
their metadata against the configured rules, and implements the note
lifecycle: create, edit in place, delete, reformat.

Every note decodes independently. Bulk operations fan the reads out to
the I/O pool and report results in path order.
"""

import asyncio
from collections import Counter, defaultdict
from dataclasses import dataclass, field
from pathlib import Path

import yaml

from kbnotes.core.config_schema import NotesSchema
from kbnotes.core.exceptions import MetadataFormatError, ValidationError
from kbnotes.core.utils import slugify
from kbnotes.parsing.front_matter import (
    parse_note,
    render_metadata,
    render_note,
    split_front_matter,
)
from kbnotes.repositories.note import NoteRepository
from kbnotes.schemas.note import (
    CheckReport,
    Note,
    NoteCreate,
    NoteIssue,
    NoteSummary,
    NoteUpdate,
)
from kbnotes.services.base import BaseService

_NOTE_FIELDS = ("title", "layout", "tags", "body")


@dataclass
class LoadResult:
    """Notes that decoded, keyed by relative path, and the ones that did not."""

    notes: list[tuple[str, Note]] = field(default_factory=list)
    errors: list[MetadataFormatError] = field(default_factory=list)


@dataclass
class FormatResult:
    """Outcome of reformatting every note in the store."""

    changed: list[str] = field(default_factory=list)
    skipped: dict[str, str] = field(default_factory=dict)
    errors: list[MetadataFormatError] = field(default_factory=list)


class NoteService(BaseService):
    """
    Service for note business logic.

    Handles note loading, validation, creation, updates and
    reformatting on top of a NoteRepository.
    """

    def __init__(self, repo: NoteRepository, config: NotesSchema) -> None:
        super().__init__()
        self.repo = repo
        self.config = config

    # -------------------------------------------------------------------------
    # Loading
    # -------------------------------------------------------------------------

    def _read(self, path: Path) -> Note:
        text = self.repo.read_text(path)
        return parse_note(text, source=self.repo.relative(path))

    def _read_or_error(self, path: Path) -> Note | MetadataFormatError:
        try:
            return self._read(path)
        except MetadataFormatError as e:
            self._logger.warning(
                "Malformed note metadata",
                extra={"path": e.source, "offset": e.offset, "error": e.reason},
            )
            return e

    async def load_note(self, path: str | Path) -> Note:
        """
        Load and decode a single note.

        Args:
            path: Note path, absolute or relative to the notes root

        Returns:
            Decoded note

        Raises:
            NotFoundError: If the file does not exist
            MetadataFormatError: If the metadata block is malformed
        """
        target = self.repo.resolve(path)
        return await self._run_blocking(self._read, target)

    async def load_all(self) -> LoadResult:
        """
        Load every note in the store.

        A malformed note is recorded in ``errors`` and does not stop the
        others from loading.

        Returns:
            LoadResult with notes and errors in path order
        """
        paths = await self._run_blocking(self.repo.list_paths)
        self._log_debug("Loading notes", count=len(paths), root=str(self.repo.root))

        decoded = await asyncio.gather(
            *(self._run_blocking(self._read_or_error, path) for path in paths)
        )

        result = LoadResult()
        for path, outcome in zip(paths, decoded):
            if isinstance(outcome, MetadataFormatError):
                result.errors.append(outcome)
            else:
                result.notes.append((self.repo.relative(path), outcome))
        return result

    async def list_notes(self, tag: str | None = None) -> list[NoteSummary]:
        """
        List decodable notes, optionally restricted to one tag.

        Args:
            tag: Only include notes carrying this tag

        Returns:
            Summaries in path order
        """
        result = await self.load_all()
        return [
            NoteSummary(path=path, title=note.title, layout=note.layout, tags=note.tags)
            for path, note in result.notes
            if tag is None or tag in note.tags
        ]

    async def tag_index(self) -> dict[str, list[str]]:
        """
        Map each tag to the notes that carry it.

        Returns:
            Tags in sorted order, each with its sorted note paths
        """
        result = await self.load_all()
        index: dict[str, set[str]] = defaultdict(set)
        for path, note in result.notes:
            for tag in note.tags:
                index[tag].add(path)
        return {tag: sorted(index[tag]) for tag in sorted(index)}

    # -------------------------------------------------------------------------
    # Validation
    # -------------------------------------------------------------------------

    def validate(self, path: str, note: Note) -> list[NoteIssue]:
        """
        Check a decoded note against the configured rules.

        Args:
            path: Relative note path, used in the issues
            note: Decoded note

        Returns:
            Issues found; empty when the note is valid
        """
        issues = []
        for name in self.config.required_fields:
            value = getattr(note, name) if name in _NOTE_FIELDS else note.extra.get(name)
            if not value:
                issues.append(NoteIssue(
                    path=path,
                    code="NOTE_MISSING_FIELD",
                    message=f"missing required field '{name}'",
                ))

        if self.config.allowed_layouts and note.layout and note.layout not in self.config.allowed_layouts:
            issues.append(NoteIssue(
                path=path,
                code="NOTE_UNKNOWN_LAYOUT",
                message=f"layout '{note.layout}' is not one of: {', '.join(self.config.allowed_layouts)}",
                severity="warning",
            ))

        repeated = sorted(tag for tag, count in Counter(note.tags).items() if count > 1)
        if repeated:
            issues.append(NoteIssue(
                path=path,
                code="NOTE_DUPLICATE_TAG",
                message=f"tags listed more than once: {', '.join(repeated)}",
                severity="warning",
            ))
        return issues

    async def check(self) -> CheckReport:
        """
        Decode and validate every note in the store.

        Returns:
            Report with one issue per problem, in path order
        """
        result = await self.load_all()

        issues = [
            NoteIssue(
                path=error.source or "",
                code=error.code,
                message=error.reason,
                offset=error.offset,
                line=error.line,
                column=error.column,
            )
            for error in result.errors
        ]
        for path, note in result.notes:
            issues.extend(self.validate(path, note))
        issues.sort(key=lambda issue: (issue.path, issue.line or 0))

        report = CheckReport(checked=len(result.notes) + len(result.errors), issues=issues)
        self._log_operation(
            "Notes checked",
            checked=report.checked,
            errors=len(report.errors),
            warnings=len(report.warnings),
        )
        return report

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def _new_note_path(self, title: str) -> Path:
        extension = self.config.extensions[0] if self.config.extensions else ".md"
        return Path(self.config.new_note_dir) / f"{slugify(title)}{extension}"

    async def create_note(self, data: NoteCreate) -> Path:
        """
        Create a new note file named after its title.

        Args:
            data: Note creation data

        Returns:
            Absolute path of the created file

        Raises:
            ConflictError: If a note with the same file name exists
        """
        note = Note(
            title=data.title,
            layout=data.layout or self.config.default_layout,
            tags=data.tags,
            body=data.body,
        )
        relative = self._new_note_path(data.title)
        self._log_operation("Creating note", title=data.title, path=relative.as_posix())

        return await self._run_blocking(self.repo.write_text, relative, render_note(note))

    async def update_note(self, path: str | Path, data: NoteUpdate) -> Note:
        """
        Edit a note in place.

        Args:
            path: Note path
            data: Update data (only fields that were set are applied)

        Returns:
            Updated note

        Raises:
            NotFoundError: If the note does not exist
            MetadataFormatError: If the existing metadata is malformed
        """
        target = self.repo.resolve(path)
        note = await self.load_note(target)

        changes = data.model_dump(exclude_unset=True, exclude_none=True)
        if not changes:
            return note

        self._log_operation(
            "Updating note",
            path=self.repo.relative(target),
            fields=list(changes.keys()),
        )
        updated = note.model_copy(update=changes)
        await self._run_blocking(self.repo.write_text, target, render_note(updated), overwrite=True)
        return updated

    async def delete_note(self, path: str | Path) -> None:
        """
        Delete a note.

        Raises:
            NotFoundError: If the note does not exist
        """
        target = self.repo.resolve(path)
        self._log_operation("Deleting note", path=self.repo.relative(target))
        await self._run_blocking(self.repo.delete, target)

    # -------------------------------------------------------------------------
    # Formatting
    # -------------------------------------------------------------------------

    def _canonical_text(self, path: Path) -> tuple[str, str]:
        """
        Read a note and produce its canonical form.

        Returns:
            Tuple of (current text, canonical text)

        Raises:
            MetadataFormatError: If the metadata block is malformed
            ValidationError: If rewriting would change metadata values
        """
        text = self.repo.read_text(path)
        source = self.repo.relative(path)
        note = parse_note(text, source=source)

        front = split_front_matter(text, source=source)
        try:
            original = yaml.safe_load(front.metadata or "") or {}
            rendered = yaml.safe_load(render_metadata(note)) if note.has_metadata else {}
        except (ValueError, TypeError, yaml.YAMLError) as e:
            # scalars such as "2021-13-45" are kept as text but do not load
            raise ValidationError(
                "Metadata values cannot be compared after rewriting",
                details={"path": source, "error": str(e)},
            ) from e
        if original != rendered:
            raise ValidationError(
                "Canonical form would change metadata values",
                details={"path": source},
            )
        return text, render_note(note)

    def _format(self, path: Path, check_only: bool) -> bool:
        text, canonical = self._canonical_text(path)
        if canonical == text:
            return False
        if not check_only:
            self.repo.write_text(path, canonical, overwrite=True)
        return True

    async def format_note(self, path: str | Path, check_only: bool = False) -> bool:
        """
        Rewrite a note in canonical form.

        Args:
            path: Note path
            check_only: Report without writing

        Returns:
            Whether the file changed (or would change)

        Raises:
            MetadataFormatError: If the metadata block is malformed
            ValidationError: If the canonical form would alter metadata
                values, for example nested collections or typed scalars
        """
        target = self.repo.resolve(path)
        changed = await self._run_blocking(self._format, target, check_only)
        if changed and not check_only:
            self._log_operation("Note reformatted", path=self.repo.relative(target))
        return changed

    async def format_all(self, check_only: bool = False) -> FormatResult:
        """
        Rewrite every note in canonical form.

        Notes that are malformed or cannot be rewritten losslessly are
        reported and left untouched.
        """
        paths = await self._run_blocking(self.repo.list_paths)
        result = FormatResult()
        for path in paths:
            relative = self.repo.relative(path)
            try:
                if await self._run_blocking(self._format, path, check_only):
                    result.changed.append(relative)
            except MetadataFormatError as e:
                result.errors.append(e)
            except ValidationError as e:
                result.skipped[relative] = e.message
        return result
