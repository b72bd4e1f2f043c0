"""Syntax tree plumbing shared by the language bindings.

A SyntaxTree wraps the parsed tree-sitter tree together with the exact source
bytes it came from. Changes are queued as byte-range edits keyed by an anchor,
so that untouched regions are re-emitted byte for byte on render().
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional, Tuple

from tree_sitter import Node, Parser, Tree

logger = logging.getLogger(__name__)


class ParseError(ValueError):
    """Raised when source code cannot be parsed without syntax errors."""

    def __init__(self, language: str, line: int = 0, file: str = "") -> None:
        where = f"{file}:" if file else "line "
        super().__init__(f"failed to parse {language} source at {where}{line + 1}")
        self.language = language
        self.line = line
        self.file = file


@dataclass(frozen=True)
class Edit:
    """Replace code[start:end] with text."""

    start: int
    end: int
    text: bytes


class SyntaxTree:
    """Parsed source plus a set of pending byte-range edits."""

    def __init__(self, code: bytes, tree: Tree, language: str) -> None:
        self.code = code
        self.tree = tree
        self.language = language
        self._edits: Dict[str, Edit] = {}

    @property
    def root(self) -> Node:
        return self.tree.root_node

    def text(self, node: Optional[Node]) -> str:
        if node is None:
            return ""
        return self.code[node.start_byte:node.end_byte].decode("utf-8")

    def line_start(self, offset: int) -> int:
        """Byte offset of the first character on the line containing offset."""
        return self.code.rfind(b"\n", 0, offset) + 1

    def line_end(self, offset: int) -> int:
        """Byte offset just past the newline ending the line containing offset."""
        idx = self.code.find(b"\n", offset)
        return len(self.code) if idx < 0 else idx + 1

    def indent_of(self, offset: int) -> str:
        """Whitespace between the start of the line and offset."""
        prefix = self.code[self.line_start(offset):offset]
        if prefix.strip():
            return ""
        return prefix.decode("utf-8")

    def line_indent(self, offset: int) -> str:
        """Leading whitespace of the line containing offset."""
        line = self.code[self.line_start(offset):self.line_end(offset)]
        return line[: len(line) - len(line.lstrip(b" \t"))].decode("utf-8")

    def starts_line(self, node: Node) -> bool:
        """True when only whitespace precedes node on its line."""
        return not self.code[self.line_start(node.start_byte):node.start_byte].strip()

    def edit(self, key: str, start: int, end: int, text: bytes) -> None:
        """Queue an edit; a later edit under the same key replaces the earlier one."""
        self._edits[key] = Edit(start, end, text)

    def pending(self, key: str) -> Optional[Edit]:
        return self._edits.get(key)

    @property
    def edits(self) -> List[Edit]:
        return sorted(self._edits.values(), key=lambda e: (e.start, -e.end))

    @property
    def dirty(self) -> bool:
        return bool(self._edits)

    def render(self) -> bytes:
        """Return the source with every pending edit applied.

        Edits that overlap an earlier, wider edit are dropped.
        """
        out = bytearray()
        pos = 0
        for e in self.edits:
            if e.start < pos:
                logger.debug("dropping overlapping edit at %d-%d", e.start, e.end)
                continue
            out += self.code[pos:e.start]
            out += e.text
            pos = e.end
        out += self.code[pos:]
        return bytes(out)


def parse(parser: Parser, code: bytes, language: str) -> SyntaxTree:
    """Parse code and raise ParseError on any syntax error node."""
    tree = parser.parse(code)
    root = tree.root_node
    if root.has_error:
        raise ParseError(language, _first_error_line(root))
    return SyntaxTree(code, tree, language)


def _first_error_line(root: Node) -> int:
    """Line of the first error, following erroneous children down from root.

    Errors in hidden grammar rules have no node of their own, so the search
    stops at the innermost visible node containing them.
    """
    current = root
    while True:
        if current is not root and (current.type == "ERROR" or current.is_missing):
            return current.start_point[0]
        child = next((c for c in current.children if c.has_error or c.is_missing), None)
        if child is None:
            return current.start_point[0]
        current = child


def walk(node: Node) -> Iterator[Node]:
    """Depth-first pre-order traversal."""
    stack = [node]
    while stack:
        current = stack.pop()
        yield current
        stack.extend(reversed(current.children))


def find_all(node: Node, *types: str) -> List[Node]:
    return [n for n in walk(node) if n.type in types]


def removal_range(tree: SyntaxTree, node: Node) -> Tuple[int, int]:
    """Byte range to delete so that node disappears cleanly.

    A node alone on its lines takes those lines with it. A trailing node takes
    the whitespace in front of it.
    """
    start, end = node.start_byte, node.end_byte
    line_start = tree.line_start(start)
    line_end = tree.line_end(end)
    before = tree.code[line_start:start]
    after = tree.code[end:line_end]
    if not before.strip() and not after.strip():
        return line_start, line_end
    if not after.strip():
        return line_start + len(before.rstrip()), end
    return start, end
