"""Language binding interface and the declaration model it produces.

A binding maps its syntax tree onto a flat list of Declarations. The finder,
patcher and minifier only ever dispatch on DeclKind, so adding a language
means writing the mapping and the comment renderer, nothing else.
"""

from __future__ import annotations

import enum
import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, List, Optional, Tuple

from tree_sitter import Node, Parser

from docpilot.nodes import SyntaxTree, parse
from docpilot.nodes.comments import line_comment

if TYPE_CHECKING:
    from docpilot.minify import MinifyStep

logger = logging.getLogger(__name__)


class DeclKind(enum.Enum):
    FUNCTION = "function"
    METHOD = "method"
    TYPE = "type"
    VALUE = "value"
    INTERFACE_METHOD = "interface method"
    PROPERTY = "property"


class DocStyle(enum.Enum):
    LINE = "line"
    DOCSTRING = "docstring"


@dataclass
class DocSlot:
    """Where the documentation of one declaration lives.

    ``start``/``end`` delimit the existing documentation. When there is none,
    the range is the insertion point. It may be non-empty for inline slots,
    where ``original`` holds the bytes to restore when cleared.
    """

    start: int
    end: int
    indent: str
    style: DocStyle
    has_doc: bool = False
    original: bytes = b""
    # the declaration shares its line with code in front of it
    inline: bool = False
    # Python docstrings only
    follow: str = ""
    clear: Optional[bytes] = None

    @property
    def key(self) -> str:
        return f"doc:{self.start}"


@dataclass
class Declaration:
    kind: DeclKind
    name: str
    slot: DocSlot
    owner: str = ""
    pointer: bool = False
    keyword: str = ""
    exported: bool = True
    test: bool = False
    # further names bound by the same value spec; they share the slot
    aliases: Tuple[str, ...] = ()
    # byte range of the declaration itself, used for error reporting
    span: Tuple[int, int] = (0, 0)

    @property
    def documented(self) -> bool:
        return self.slot.has_doc

    @property
    def identifier(self) -> str:
        if self.kind == DeclKind.TYPE:
            return f"type:{self.name}"
        if self.kind == DeclKind.VALUE:
            return f"{self.keyword or 'var'}:{self.name}"
        if self.kind == DeclKind.PROPERTY:
            return f"prop:{self.owner}.{self.name}"
        if self.kind in (DeclKind.METHOD, DeclKind.INTERFACE_METHOD):
            owner = f"(*{self.owner})" if self.pointer else self.owner
            return f"func:{owner}.{self.name}"
        return f"func:{self.name}"


class Language(ABC):
    """A source language docpilot can find, minify and patch."""

    name: str = ""
    extensions: Tuple[str, ...] = ()
    title: str = ""

    def __init__(self) -> None:
        self._parser: Optional[Parser] = None
        self._lock = threading.Lock()

    @property
    def parser(self) -> Parser:
        if self._parser is None:
            self._parser = self._make_parser()
        return self._parser

    @abstractmethod
    def _make_parser(self) -> Parser:
        ...

    def parse(self, code: bytes) -> SyntaxTree:
        # parsers are not safe to share between threads
        with self._lock:
            return parse(self.parser, code, self.name)

    def format(self, tree: SyntaxTree) -> bytes:
        """Serialize tree, applying its pending edits."""
        return tree.render()

    @abstractmethod
    def declarations(self, tree: SyntaxTree) -> List[Declaration]:
        """Top-level declarations, with nested members flattened in."""

    @abstractmethod
    def render_doc(self, slot: DocSlot, text: str) -> bytes:
        """Bytes replacing slot.start:slot.end so that the doc becomes text."""

    @abstractmethod
    def strip(self, tree: SyntaxTree, step: "MinifyStep") -> SyntaxTree:
        """Apply one minification step and return the re-parsed result."""

    @abstractmethod
    def instructions(self, identifier: str, target: str, file: str = "") -> str:
        """The fixed part of a generation prompt for one symbol."""

    def is_exported(self, name: str) -> bool:
        return bool(name)

    @property
    def minifier_enabled(self) -> bool:
        return True

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


def leading_comments(tree: SyntaxTree, node: Node) -> List[Node]:
    """The run of comments directly above node, with no blank line between."""
    comments: List[Node] = []
    current = node
    prev = node.prev_named_sibling
    while (
        prev is not None
        and prev.type == "comment"
        and prev.end_point[0] == current.start_point[0] - 1
        and tree.starts_line(prev)
    ):
        comments.insert(0, prev)
        current = prev
        prev = prev.prev_named_sibling
    return comments


def line_slot(tree: SyntaxTree, node: Node) -> DocSlot:
    """Slot for line-comment documentation placed above node."""
    comments = leading_comments(tree, node)
    indent = tree.indent_of(node.start_byte)
    if comments:
        start = tree.line_start(comments[0].start_byte)
        end = tree.line_end(comments[-1].end_byte)
        return DocSlot(
            start, end, indent, DocStyle.LINE, has_doc=True, original=tree.code[start:end]
        )
    start = tree.line_start(node.start_byte)
    return DocSlot(start, start, indent, DocStyle.LINE)


def inline_slot(tree: SyntaxTree, node: Node, indent: str) -> DocSlot:
    """Slot for a node that shares its line with a sibling before it.

    The slot spans the whitespace between the two, so a rendered comment
    moves node onto a line of its own.
    """
    prev = node.prev_sibling
    start = prev.end_byte if prev is not None else node.start_byte
    end = node.start_byte
    return DocSlot(
        start, end, indent, DocStyle.LINE, original=tree.code[start:end], inline=True
    )


def render_line_doc(slot: DocSlot, text: str, marker: str) -> bytes:
    """Line comments for slot; empty text clears them."""
    if not text.strip():
        return slot.original if slot.inline else b""
    comment = line_comment(text, marker, slot.indent)
    if slot.inline:
        return f"\n{comment}{slot.indent}".encode("utf-8")
    return comment.encode("utf-8")
