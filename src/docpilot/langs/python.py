"""Python language binding.

Functions, methods, properties and classes are documented with docstrings.
Module-level values get ``#`` comments on the lines above them, which is the
closest thing Python has to attached documentation for a variable.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Dict, Iterator, List, Optional, Tuple

from tree_sitter import Node, Parser
from tree_sitter_language_pack import get_language

from docpilot.config.defaults import PYTHON_COMMENT_MARKER, PYTHON_INDENT
from docpilot.langs.base import (
    DeclKind,
    Declaration,
    DocSlot,
    DocStyle,
    Language,
    inline_slot,
    line_slot,
    render_line_doc,
)
from docpilot.nodes import SyntaxTree, find_all, removal_range
from docpilot.nodes.comments import docstring

if TYPE_CHECKING:
    from docpilot.minify import MinifyStep

logger = logging.getLogger(__name__)

_DEFINITIONS = ("function_definition", "class_definition")
_PROPERTY_DECORATORS = ("property", "cached_property")
_ACCESSOR_DECORATORS = ("setter", "deleter")
_NAME_TARGETS = ("pattern_list", "tuple_pattern", "list_pattern")


def _is_docstring(node: Optional[Node]) -> bool:
    return (
        node is not None
        and node.type == "expression_statement"
        and len(node.named_children) == 1
        and node.named_children[0].type == "string"
    )


def _is_stub(node: Node) -> bool:
    """pass or a bare ``...``"""
    if node.type == "pass_statement":
        return True
    return (
        node.type == "expression_statement"
        and len(node.named_children) == 1
        and node.named_children[0].type == "ellipsis"
    )


def _statements(block: Node) -> List[Node]:
    return [c for c in block.named_children if c.type != "comment"]


def _decorator_names(tree: SyntaxTree, node: Node) -> List[str]:
    """Last dotted component of each decorator, call arguments dropped."""
    names = []
    for dec in node.named_children:
        if dec.type != "decorator":
            continue
        text = tree.text(dec).lstrip("@").split("(", 1)[0].strip()
        names.append(text.rsplit(".", 1)[-1])
    return names


class PythonLanguage(Language):
    """Python source files."""

    name = "python"
    extensions = (".py",)
    title = "Python"

    def _make_parser(self) -> Parser:
        return Parser(get_language("python"))

    def is_exported(self, name: str) -> bool:
        return bool(name) and not name.startswith("_")

    def is_test(self, name: str, kind: DeclKind) -> bool:
        if kind == DeclKind.TYPE:
            return name.startswith("Test")
        return name == "test" or name.startswith("test_")

    # -------------------------------------------------------------------------
    # Declarations
    # -------------------------------------------------------------------------

    def declarations(self, tree: SyntaxTree) -> List[Declaration]:
        # a redefinition shadows the earlier binding, keep the last one
        seen: Dict[str, Declaration] = {}
        for decl, _ in self._definitions(tree):
            seen.pop(decl.identifier, None)
            seen[decl.identifier] = decl
        return list(seen.values())

    def _definitions(self, tree: SyntaxTree) -> Iterator[Tuple[Declaration, Optional[Node]]]:
        """Every declaration paired with its def/class node (None for values)."""
        for node in tree.root.named_children:
            if node.type == "expression_statement":
                yield from ((d, None) for d in self._values(tree, node))
                continue
            unwrapped = self._unwrap(tree, node)
            if unwrapped is None:
                continue
            definition, decorators = unwrapped
            if definition.type == "function_definition":
                name = tree.text(definition.child_by_field_name("name"))
                yield self._declaration(tree, DeclKind.FUNCTION, name, "", node, definition), definition
            else:
                yield from self._class(tree, node, definition)

    def _unwrap(self, tree: SyntaxTree, node: Node) -> Optional[Tuple[Node, List[str]]]:
        decorators: List[str] = []
        if node.type == "decorated_definition":
            decorators = _decorator_names(tree, node)
            node = node.child_by_field_name("definition")
        if node is None or node.type not in _DEFINITIONS:
            return None
        if "overload" in decorators:
            return None
        return node, decorators

    def _class(self, tree: SyntaxTree, outer: Node, cls: Node) -> Iterator[Tuple[Declaration, Optional[Node]]]:
        owner = tree.text(cls.child_by_field_name("name"))
        yield self._declaration(tree, DeclKind.TYPE, owner, "", outer, cls), cls
        body = cls.child_by_field_name("body")
        if body is None:
            return
        for member in body.named_children:
            unwrapped = self._unwrap(tree, member)
            if unwrapped is None:
                continue
            definition, decorators = unwrapped
            if definition.type != "function_definition":
                continue
            if any(d in _ACCESSOR_DECORATORS for d in decorators):
                continue
            kind = DeclKind.PROPERTY if any(d in _PROPERTY_DECORATORS for d in decorators) else DeclKind.METHOD
            name = tree.text(definition.child_by_field_name("name"))
            yield self._declaration(tree, kind, name, owner, member, definition), definition

    def _declaration(
        self,
        tree: SyntaxTree,
        kind: DeclKind,
        name: str,
        owner: str,
        outer: Node,
        definition: Node,
    ) -> Declaration:
        exported = self.is_exported(name) and (not owner or self.is_exported(owner))
        if owner:
            test = self.is_test(owner, DeclKind.TYPE)
        else:
            test = self.is_test(name, kind)
        return Declaration(
            kind=kind,
            name=name,
            owner=owner,
            slot=self._docstring_slot(tree, definition),
            exported=exported,
            test=test,
            span=(outer.start_byte, outer.end_byte),
        )

    def _values(self, tree: SyntaxTree, stmt: Node) -> Iterator[Declaration]:
        children = stmt.named_children
        if len(children) != 1 or children[0].type != "assignment":
            return
        left = children[0].child_by_field_name("left")
        if left is None:
            return
        if left.type == "identifier":
            names = [left]
        elif left.type in _NAME_TARGETS:
            names = [c for c in left.named_children if c.type == "identifier"]
        else:
            return
        if not names:
            return
        if tree.starts_line(stmt):
            slot = line_slot(tree, stmt)
        else:
            slot = inline_slot(tree, stmt, tree.line_indent(stmt.start_byte))
        texts = [tree.text(n) for n in names]
        exported = [n for n in texts if self.is_exported(n)]
        name = exported[0] if exported else texts[0]
        yield Declaration(
            kind=DeclKind.VALUE,
            name=name,
            slot=slot,
            keyword="const" if name.isupper() else "var",
            exported=bool(exported),
            span=(stmt.start_byte, stmt.end_byte),
            aliases=tuple(n for n in texts if n != name),
        )

    def _docstring_slot(self, tree: SyntaxTree, definition: Node) -> DocSlot:
        body = definition.child_by_field_name("body")
        colon = [c for c in definition.children if c.type == ":"][-1]
        stmts = _statements(body)
        first = stmts[0]
        inline = first.start_point[0] == colon.end_point[0]
        if inline:
            indent = tree.line_indent(definition.start_byte) + PYTHON_INDENT
        else:
            indent = tree.indent_of(first.start_byte)

        if _is_docstring(first):
            content = [c for c in first.named_children[0].named_children if c.type == "string_content"]
            has_doc = any(tree.text(c).strip() for c in content)
            nxt = first.next_named_sibling
            if not inline and nxt is not None and nxt.start_point[0] > first.end_point[0]:
                end = nxt.start_byte
                follow = tree.code[first.end_byte:end]
                clear = b"" if len(stmts) > 1 else b"pass" + follow
            else:
                end = first.end_byte
                follow = b""
                clear = b"pass"
            return DocSlot(
                first.start_byte,
                end,
                indent,
                DocStyle.DOCSTRING,
                has_doc=has_doc,
                original=tree.code[first.start_byte:end],
                follow=follow.decode("utf-8"),
                clear=clear,
            )

        if inline:
            start, end = colon.end_byte, first.start_byte
            return DocSlot(
                start, end, indent, DocStyle.DOCSTRING,
                original=tree.code[start:end], inline=True,
            )
        return DocSlot(
            first.start_byte, first.start_byte, indent, DocStyle.DOCSTRING,
            follow="\n" + indent,
        )

    # -------------------------------------------------------------------------
    # Documentation
    # -------------------------------------------------------------------------

    def render_doc(self, slot: DocSlot, text: str) -> bytes:
        if slot.style == DocStyle.LINE:
            return render_line_doc(slot, text, PYTHON_COMMENT_MARKER)

        if not text.strip():
            return slot.clear if slot.clear is not None else slot.original
        literal = docstring(text, slot.indent)
        if slot.inline:
            return f"\n{slot.indent}{literal}\n{slot.indent}".encode("utf-8")
        return f"{literal}{slot.follow}".encode("utf-8")

    def instructions(self, identifier: str, target: str, file: str = "") -> str:
        source = f" from {file}" if file else ""
        return (
            f"Write the documentation for {target}{source} in the style of a "
            "PEP 257 docstring. Do not include external links, source code or "
            "code examples.\n\n"
            "Start with a one-line summary in the imperative mood that describes "
            "what it does, not what it technically is. Add a short paragraph "
            "only when the behavior is not obvious from the summary.\n\n"
            "Output only the documentation text, without quotes or comment markers.\n\n"
            "Here is the source code for reference:"
        )

    # -------------------------------------------------------------------------
    # Minification
    # -------------------------------------------------------------------------

    def strip(self, tree: SyntaxTree, step: "MinifyStep") -> SyntaxTree:
        if step.bodies:
            tree = self._strip_bodies(tree, step)
        if step.comments:
            tree = self._strip_comments(tree, step)
        return tree

    def _strip_bodies(self, tree: SyntaxTree, step: "MinifyStep") -> SyntaxTree:
        for decl, definition in self._definitions(tree):
            if definition is None or definition.type != "function_definition":
                continue
            if decl.exported and not step.exported:
                continue
            body = definition.child_by_field_name("body")
            stmts = _statements(body)
            if stmts and _is_docstring(stmts[0]):
                stmts = stmts[1:]
            if not stmts or (len(stmts) == 1 and _is_stub(stmts[0])):
                continue
            tree.edit(f"body:{body.start_byte}", stmts[0].start_byte, body.end_byte, b"...")
        return self._reparse(tree)

    def _strip_comments(self, tree: SyntaxTree, step: "MinifyStep") -> SyntaxTree:
        if not step.exported:
            for decl, _ in self._definitions(tree):
                if decl.exported or (decl.slot.clear is None and not decl.slot.has_doc):
                    continue
                tree.edit(decl.slot.key, decl.slot.start, decl.slot.end, self.render_doc(decl.slot, ""))
            return self._reparse(tree)

        for comment in find_all(tree.root, "comment"):
            start, end = removal_range(tree, comment)
            tree.edit(f"comment:{start}", start, end, b"")
        tree = self._reparse(tree)

        for definition in find_all(tree.root, *_DEFINITIONS):
            slot = self._docstring_slot(tree, definition)
            if slot.clear is not None:
                tree.edit(slot.key, slot.start, slot.end, slot.clear)
        module = _statements(tree.root)
        if module and _is_docstring(module[0]):
            doc = module[0]
            nxt = doc.next_named_sibling
            end = nxt.start_byte if nxt is not None else tree.line_end(doc.end_byte)
            tree.edit("module-doc", doc.start_byte, end, b"")
        return self._reparse(tree)

    def _reparse(self, tree: SyntaxTree) -> SyntaxTree:
        return self.parse(tree.render()) if tree.dirty else tree
