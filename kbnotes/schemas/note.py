"""
Note Schemas.

Pydantic schemas for note records, note input, and validation reports.
"""

from typing import Literal

from pydantic import BaseModel, Field, field_validator


class Note(BaseModel):
    """A decoded note: metadata fields plus the untouched body text."""

    title: str = Field(default="", description="Note title")
    layout: str = Field(
        default="",
        description="Rendering template name, resolved by the site generator",
        examples=["note"],
    )
    tags: list[str] = Field(
        default_factory=list,
        description="Category labels in source order",
        examples=[["git", "tooling"]],
    )
    body: str = Field(default="", description="Body text after the metadata block")
    extra: dict[str, str] = Field(
        default_factory=dict,
        description="Metadata keys other than title, layout and tags",
    )

    @field_validator("extra")
    @classmethod
    def _extra_keys_not_reserved(cls, value: dict[str, str]) -> dict[str, str]:
        reserved = sorted(set(value) & {"title", "layout", "tags"})
        if reserved:
            raise ValueError(f"extra cannot hold reserved keys: {', '.join(reserved)}")
        return value

    @property
    def has_metadata(self) -> bool:
        """Whether any metadata field is set."""
        return bool(self.title or self.layout or self.tags or self.extra)


class NoteCreate(BaseModel):
    """Schema for creating a new note."""

    title: str = Field(
        ...,
        min_length=1,
        max_length=255,
        description="Note title",
        examples=["Ignoring build output in Git"],
    )
    layout: str | None = Field(
        default=None,
        description="Layout name; falls back to the configured default",
    )
    tags: list[str] = Field(default_factory=list, description="Note tags")
    body: str = Field(default="", description="Initial body text")


class NoteUpdate(BaseModel):
    """Schema for editing an existing note in place."""

    title: str | None = Field(
        default=None,
        min_length=1,
        max_length=255,
        description="Note title",
    )
    layout: str | None = Field(default=None, description="Layout name")
    tags: list[str] | None = Field(default=None, description="Replacement tag list")
    body: str | None = Field(default=None, description="Replacement body text")


class NoteSummary(BaseModel):
    """Schema for note listings."""

    path: str
    title: str
    layout: str
    tags: list[str]


class NoteIssue(BaseModel):
    """A single problem found while checking a note."""

    path: str
    code: str
    message: str
    severity: Literal["error", "warning"] = "error"
    offset: int | None = None
    line: int | None = None
    column: int | None = None


class CheckReport(BaseModel):
    """Result of checking every note in the store."""

    checked: int = 0
    issues: list[NoteIssue] = Field(default_factory=list)

    @property
    def errors(self) -> list[NoteIssue]:
        return [issue for issue in self.issues if issue.severity == "error"]

    @property
    def warnings(self) -> list[NoteIssue]:
        return [issue for issue in self.issues if issue.severity == "warning"]

    @property
    def ok(self) -> bool:
        """True when no issue has error severity."""
        return not self.errors
