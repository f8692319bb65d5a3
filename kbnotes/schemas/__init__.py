# Pydantic schemas package
from kbnotes.schemas.note import (
    CheckReport,
    Note,
    NoteCreate,
    NoteIssue,
    NoteSummary,
    NoteUpdate,
)

__all__ = [
    "CheckReport",
    "Note",
    "NoteCreate",
    "NoteIssue",
    "NoteSummary",
    "NoteUpdate",
]
