"""
Front Matter Parsing.

Splits a note document into its leading metadata block and body, decodes
the metadata into a Note, and renders a Note back to canonical text.

Document format:

    ---
    title: Ignoring build output
    layout: note
    tags:
      - git
      - tooling
    ---
    Body text, kept byte-for-byte.

The block must start on the first line. Both delimiter lines are exactly
``---`` (trailing blanks allowed, LF or CRLF endings). The content between
them is YAML and must be a mapping. A document whose first line is not a
delimiter has no metadata and its whole text is the body. A leading byte
order mark is allowed before the opening delimiter.

Usage:
    from kbnotes.parsing.front_matter import parse_note, render_note

    note = parse_note(text, source="notes/git-ignore.md")
    assert parse_note(render_note(note)) == note
"""

import re
from dataclasses import dataclass
from typing import Any

import yaml
from yaml.nodes import MappingNode, Node, ScalarNode, SequenceNode
from yaml.reader import ReaderError

from kbnotes.core.exceptions import MetadataFormatError
from kbnotes.core.utils import line_and_column, utf8_offset
from kbnotes.schemas.note import Note

DELIMITER = "---"

RESERVED_KEYS = ("title", "layout", "tags")

_OPENING = re.compile(r"---[ \t]*(?:\r\n|\n|\Z)")
_CLOSING = re.compile(r"^---[ \t]*(?:\r\n|\n|\Z)", re.MULTILINE)

_BOM = "\ufeff"

_NULL_TAG = "tag:yaml.org,2002:null"
_STR_TAG = "tag:yaml.org,2002:str"


@dataclass(frozen=True)
class FrontMatter:
    """
    Result of locating the metadata block.

    ``metadata`` is None when the document has no block. ``metadata_start``
    and ``body_start`` are character indexes into the original text.
    """

    metadata: str | None
    body: str
    metadata_start: int = 0
    body_start: int = 0


def _error(
    text: str,
    index: int,
    message: str,
    source: str | None,
) -> MetadataFormatError:
    line, column = line_and_column(text, index)
    return MetadataFormatError(
        message,
        offset=utf8_offset(text, index),
        line=line,
        column=column,
        source=source,
    )


def _match_opening(text: str) -> re.Match | None:
    # a leading byte order mark is skipped but still counts towards offsets
    return _OPENING.match(text, 1 if text.startswith(_BOM) else 0)


def split_front_matter(text: str, source: str | None = None) -> FrontMatter:
    """
    Locate the metadata block at the start of ``text``.

    Args:
        text: Whole document
        source: File identifier used in error messages

    Returns:
        FrontMatter with the raw metadata text and the untouched body

    Raises:
        MetadataFormatError: If the block is opened but never closed
    """
    opening = _match_opening(text)
    if opening is None:
        return FrontMatter(metadata=None, body=text)

    closing = _CLOSING.search(text, opening.end())
    if closing is None:
        raise _error(text, opening.start(), "metadata block is never closed", source)

    return FrontMatter(
        metadata=text[opening.end():closing.start()],
        body=text[closing.end():],
        metadata_start=opening.end(),
        body_start=closing.end(),
    )


class _MetadataReader:
    """Decodes one metadata block from its YAML node graph."""

    def __init__(self, text: str, front: FrontMatter, source: str | None) -> None:
        self._text = text
        self._front = front
        self._source = source
        self._loader: yaml.SafeLoader | None = None

    def _fail(self, index: int, message: str) -> MetadataFormatError:
        return _error(self._text, self._front.metadata_start + index, message, self._source)

    def _fail_at(self, node: Node, message: str) -> MetadataFormatError:
        return self._fail(node.start_mark.index, message)

    def _from_yaml_error(self, exc: yaml.YAMLError) -> MetadataFormatError:
        if isinstance(exc, ReaderError):
            return self._fail(exc.position, exc.reason)
        if isinstance(exc, yaml.MarkedYAMLError):
            mark = exc.problem_mark or exc.context_mark
            message = exc.problem or exc.context or "invalid metadata"
            return self._fail(mark.index if mark else 0, message)
        return self._fail(0, str(exc))

    def read(self) -> dict[str, Any]:
        try:
            # the reader rejects non-printable characters on construction
            self._loader = yaml.SafeLoader(self._front.metadata or "")
            return self._read_root(self._loader.get_single_node())
        except yaml.YAMLError as exc:
            raise self._from_yaml_error(exc) from exc
        finally:
            if self._loader is not None:
                self._loader.dispose()

    def _read_root(self, root: Node | None) -> dict[str, Any]:
        fields: dict[str, Any] = {"title": "", "layout": "", "tags": [], "extra": {}}
        if root is None or (isinstance(root, ScalarNode) and root.tag == _NULL_TAG):
            return fields
        if not isinstance(root, MappingNode):
            raise self._fail_at(root, "metadata must be a mapping of keys to values")

        seen: set[str] = set()
        for key_node, value_node in root.value:
            if not isinstance(key_node, ScalarNode):
                raise self._fail_at(key_node, "metadata keys must be plain values")
            key = key_node.value
            if key in seen:
                raise self._fail_at(key_node, f"duplicate key '{key}'")
            seen.add(key)

            if key in ("title", "layout"):
                fields[key] = self._single_value(key, value_node)
            elif key == "tags":
                fields["tags"] = self._tags(value_node)
            else:
                fields["extra"][key] = self._extra_value(value_node)
        return fields

    @staticmethod
    def _scalar_text(node: ScalarNode) -> str:
        return "" if node.tag == _NULL_TAG else node.value

    def _single_value(self, key: str, node: Node) -> str:
        if not isinstance(node, ScalarNode):
            raise self._fail_at(node, f"'{key}' must be a single value")
        return self._scalar_text(node)

    def _tags(self, node: Node) -> list[str]:
        if isinstance(node, ScalarNode):
            # space separated form: "tags: git tooling"
            return self._scalar_text(node).split()
        if not isinstance(node, SequenceNode):
            raise self._fail_at(node, "'tags' must be a list of values")

        tags = []
        for item in node.value:
            if not isinstance(item, ScalarNode):
                raise self._fail_at(item, "each tag must be a single value")
            if item.tag != _NULL_TAG:
                tags.append(item.value)
        return tags

    def _extra_value(self, node: Node) -> str:
        if isinstance(node, ScalarNode):
            return self._scalar_text(node)
        try:
            value = self._loader.construct_object(node, deep=True)
        except (ValueError, TypeError) as exc:
            # constructors reject values such as impossible dates or "!!int abc"
            raise self._fail_at(node, str(exc)) from exc
        return yaml.safe_dump(
            value,
            default_flow_style=True,
            allow_unicode=True,
            sort_keys=False,
            width=float("inf"),
        ).strip()


def parse_note(text: str, source: str | None = None) -> Note:
    """
    Decode a note document.

    Args:
        text: Whole document
        source: File identifier used in error messages

    Returns:
        Decoded Note. Without a metadata block, all metadata is empty and
        the body is the entire input.

    Raises:
        MetadataFormatError: If the block is unterminated or its content
            is not a valid key/value mapping
    """
    front = split_front_matter(text, source=source)
    if front.metadata is None:
        return Note(body=text)

    fields = _MetadataReader(text, front, source).read()
    return Note(body=front.body, **fields)


class _NoteDumper(yaml.SafeDumper):
    """SafeDumper that indents block sequences under their key."""

    def increase_indent(self, flow: bool = False, indentless: bool = False) -> None:
        return super().increase_indent(flow, False)


def _represent_text(dumper: _NoteDumper, data: str) -> ScalarNode:
    # Tag strings the way the resolver reads them back so values such as
    # dates and numbers stay unquoted. Non-empty null words must be quoted,
    # since a null decodes to "".
    tag = dumper.resolve(ScalarNode, data, (True, False))
    if tag == _NULL_TAG and data:
        tag = _STR_TAG
    return dumper.represent_scalar(tag, data)


class _TagText(str):
    """Tag value. An empty tag is written quoted, since null entries are dropped."""


def _represent_tag(dumper: _NoteDumper, data: _TagText) -> ScalarNode:
    if not data:
        return dumper.represent_scalar(_STR_TAG, "")
    return _represent_text(dumper, str(data))


_NoteDumper.add_representer(str, _represent_text)
_NoteDumper.add_representer(_TagText, _represent_tag)


def render_metadata(note: Note) -> str:
    """Render the YAML between the delimiters, in canonical key order."""
    data: dict[str, Any] = {}
    if note.title:
        data["title"] = note.title
    if note.layout:
        data["layout"] = note.layout
    if note.tags:
        data["tags"] = [_TagText(tag) for tag in note.tags]
    data.update(note.extra)

    return yaml.dump(
        data,
        Dumper=_NoteDumper,
        default_flow_style=False,
        allow_unicode=True,
        sort_keys=False,
        width=float("inf"),
    )


def render_note(note: Note) -> str:
    """
    Encode a Note as canonical document text.

    A note without any metadata renders as its body alone, unless the body
    itself starts with a delimiter line; an empty block is written first
    then so the body is not read back as metadata. Otherwise the
    block holds title, layout and tags (each only when set) followed by the
    extra keys in insertion order, and the body follows unchanged. Values
    are written unquoted whenever YAML allows it, so ``date: 2021-03-04``
    keeps its meaning for the site generator.
    """
    if not note.has_metadata:
        if _match_opening(note.body) is None:
            return note.body
        return f"{DELIMITER}\n{DELIMITER}\n{note.body}"
    return f"{DELIMITER}\n{render_metadata(note)}{DELIMITER}\n{note.body}"
