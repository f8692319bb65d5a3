"""
Note Repository.

Data access layer for notes. A note is one UTF-8 text file under the
notes root; creating, editing and deleting a note is creating, rewriting
and removing its file.

Methods are blocking. The service runs them on the I/O thread pool.
"""

from pathlib import Path

from kbnotes.core.exceptions import (
    ConflictError,
    MetadataFormatError,
    NotFoundError,
    ValidationError,
)
from kbnotes.core.logging import get_logger

logger = get_logger(__name__)


class NoteRepository:
    """
    Repository for note files.

    Paths handed in may be absolute or relative to the root; paths that
    resolve outside the root are rejected.
    """

    def __init__(
        self,
        root: Path,
        extensions: list[str] | tuple[str, ...] = (".md",),
        exclude_dirs: list[str] | tuple[str, ...] = (),
    ) -> None:
        self.root = Path(root).resolve()
        self.extensions = frozenset(ext.lower() for ext in extensions)
        self.exclude_dirs = frozenset(exclude_dirs)

    def resolve(self, path: str | Path) -> Path:
        """
        Resolve a note path against the root.

        Raises:
            ValidationError: If the path points outside the root
        """
        candidate = Path(path).expanduser()
        if not candidate.is_absolute():
            candidate = self.root / candidate
        candidate = candidate.resolve()

        if not candidate.is_relative_to(self.root):
            raise ValidationError(
                "Note path is outside the notes root",
                details={"path": str(path), "root": str(self.root)},
            )
        return candidate

    def relative(self, path: Path) -> str:
        """Path relative to the root, with forward slashes."""
        return path.relative_to(self.root).as_posix()

    def _is_note_file(self, path: Path) -> bool:
        if not path.is_file() or path.suffix.lower() not in self.extensions:
            return False
        parts = path.relative_to(self.root).parts[:-1]
        return not any(part.startswith(".") or part in self.exclude_dirs for part in parts)

    def list_paths(self) -> list[Path]:
        """
        List every note file under the root.

        Hidden directories and configured excluded directories are skipped.

        Returns:
            Sorted absolute paths; empty when the root does not exist
        """
        if not self.root.is_dir():
            logger.warning("Notes root does not exist", extra={"root": str(self.root)})
            return []
        return sorted(path for path in self.root.rglob("*") if self._is_note_file(path))

    def exists(self, path: str | Path) -> bool:
        """Check if a note file exists."""
        return self.resolve(path).is_file()

    def read_text(self, path: str | Path) -> str:
        """
        Read a note file.

        Line endings and a leading byte order mark are kept, so positions
        in the text match the bytes on disk.

        Raises:
            NotFoundError: If the file does not exist
            MetadataFormatError: If the file is not valid UTF-8
        """
        target = self.resolve(path)
        try:
            data = target.read_bytes()
        except FileNotFoundError as e:
            raise NotFoundError(f"Note not found: {path}") from e

        try:
            return data.decode("utf-8")
        except UnicodeDecodeError as e:
            line_start = data.rfind(b"\n", 0, e.start) + 1
            raise MetadataFormatError(
                f"file is not valid UTF-8: {e.reason}",
                offset=e.start,
                line=data.count(b"\n", 0, e.start) + 1,
                column=len(data[line_start:e.start].decode("utf-8", "replace")) + 1,
                source=self.relative(target),
            ) from e

    def write_text(self, path: str | Path, text: str, overwrite: bool = False) -> Path:
        """
        Write a note file, creating parent directories.

        Args:
            path: Note path
            text: Full document text
            overwrite: Replace an existing file

        Returns:
            Absolute path written

        Raises:
            ConflictError: If the file exists and overwrite is False
        """
        target = self.resolve(path)
        if target.exists() and not overwrite:
            raise ConflictError(f"Note already exists: {self.relative(target)}")

        target.parent.mkdir(parents=True, exist_ok=True)
        # newline="" keeps line endings exactly as given
        with open(target, "w", encoding="utf-8", newline="") as f:
            f.write(text)
        logger.debug("Note written", extra={"path": self.relative(target)})
        return target

    def delete(self, path: str | Path) -> None:
        """
        Delete a note file.

        Raises:
            NotFoundError: If the file does not exist
        """
        target = self.resolve(path)
        try:
            target.unlink()
        except FileNotFoundError as e:
            raise NotFoundError(f"Note not found: {path}") from e
        logger.debug("Note deleted", extra={"path": self.relative(target)})
