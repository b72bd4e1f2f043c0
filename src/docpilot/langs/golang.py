"""Go language binding."""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING, Iterator, List, Optional, Tuple

from tree_sitter import Node, Parser
from tree_sitter_language_pack import get_language

from docpilot.config.defaults import GO_COMMENT_MARKER, GO_INDENT
from docpilot.langs.base import (
    DeclKind,
    Declaration,
    DocSlot,
    Language,
    inline_slot,
    line_slot,
    render_line_doc,
)
from docpilot.nodes import SyntaxTree, find_all, removal_range

if TYPE_CHECKING:
    from docpilot.minify import MinifyStep

logger = logging.getLogger(__name__)

_GROUPS = {
    "type_declaration": "type",
    "const_declaration": "const",
    "var_declaration": "var",
}
_SPECS = ("type_spec", "type_alias", "const_spec", "var_spec")
_INTERFACE_METHODS = ("method_elem", "method_spec")

_RECEIVER_NOISE = re.compile(r"[\s()*]")


def receiver_owner(receiver: str) -> Tuple[str, bool]:
    """Split a receiver type expression into (owner, pointer).

    >>> receiver_owner("*Foo[T]")
    ('Foo', True)
    """
    pointer = "*" in receiver
    owner = _RECEIVER_NOISE.sub("", receiver).split("[", 1)[0]
    return owner, pointer


class GoLanguage(Language):
    """Go source files, documented with ``//`` line comments."""

    name = "go"
    extensions = (".go",)
    title = "Go"

    def _make_parser(self) -> Parser:
        return Parser(get_language("go"))

    def is_exported(self, name: str) -> bool:
        return bool(name) and name[0].isupper()

    def is_test(self, name: str) -> bool:
        return name.startswith("Test")

    # -------------------------------------------------------------------------
    # Declarations
    # -------------------------------------------------------------------------

    def declarations(self, tree: SyntaxTree) -> List[Declaration]:
        decls: List[Declaration] = []
        for node in tree.root.named_children:
            if node.type == "function_declaration":
                decls.append(self._function(tree, node))
            elif node.type == "method_declaration":
                method = self._method(tree, node)
                if method is not None:
                    decls.append(method)
            elif node.type in _GROUPS:
                decls.extend(self._group(tree, node))
        return decls

    def _function(self, tree: SyntaxTree, node: Node) -> Declaration:
        name = tree.text(node.child_by_field_name("name"))
        return Declaration(
            kind=DeclKind.FUNCTION,
            name=name,
            slot=line_slot(tree, node),
            exported=self.is_exported(name),
            test=self.is_test(name),
            span=(node.start_byte, node.end_byte),
        )

    def _receiver(self, tree: SyntaxTree, node: Node) -> Optional[Tuple[str, bool]]:
        receiver = node.child_by_field_name("receiver")
        if receiver is None:
            return None
        params = [c for c in receiver.named_children if c.type == "parameter_declaration"]
        if not params:
            return None
        owner, pointer = receiver_owner(tree.text(params[0].child_by_field_name("type")))
        return (owner, pointer) if owner else None

    def _method(self, tree: SyntaxTree, node: Node) -> Optional[Declaration]:
        recv = self._receiver(tree, node)
        if recv is None:
            logger.debug("skipping method without receiver at byte %d", node.start_byte)
            return None
        owner, pointer = recv
        name = tree.text(node.child_by_field_name("name"))
        return Declaration(
            kind=DeclKind.METHOD,
            name=name,
            owner=owner,
            pointer=pointer,
            slot=line_slot(tree, node),
            exported=self.is_exported(name) and self.is_exported(owner),
            test=self.is_test(name),
            span=(node.start_byte, node.end_byte),
        )

    def _specs(self, decl: Node) -> List[Node]:
        specs = []
        for child in decl.named_children:
            if child.type in _SPECS:
                specs.append(child)
            elif child.type.endswith("_spec_list"):
                specs.extend(c for c in child.named_children if c.type in _SPECS)
        return specs

    def _group(self, tree: SyntaxTree, decl: Node) -> Iterator[Declaration]:
        keyword = _GROUPS[decl.type]
        specs = self._specs(decl)
        group_slot = line_slot(tree, decl)
        member_indent = tree.line_indent(decl.start_byte) + GO_INDENT
        for spec in specs:
            if len(specs) == 1:
                # a sole member documents the whole group
                spec_slot = line_slot(tree, spec) if tree.starts_line(spec) else None
                slot = spec_slot if spec_slot is not None and spec_slot.has_doc else group_slot
            elif tree.starts_line(spec):
                slot = line_slot(tree, spec)
            else:
                slot = inline_slot(tree, spec, member_indent)

            if keyword == "type":
                name_node = spec.child_by_field_name("name")
                name = tree.text(name_node)
                yield Declaration(
                    kind=DeclKind.TYPE,
                    name=name,
                    slot=slot,
                    keyword=keyword,
                    exported=self.is_exported(name),
                    span=(spec.start_byte, spec.end_byte),
                )
                body = spec.child_by_field_name("type")
                if body is not None and body.type == "interface_type":
                    yield from self._interface_methods(tree, name, body)
                continue

            names = [tree.text(n) for n in spec.children_by_field_name("name")]
            if not names:
                continue
            # one comment documents every name of the spec
            exported = [n for n in names if self.is_exported(n)]
            name = exported[0] if exported else names[0]
            yield Declaration(
                kind=DeclKind.VALUE,
                name=name,
                slot=slot,
                keyword=keyword,
                exported=bool(exported),
                span=(spec.start_byte, spec.end_byte),
                aliases=tuple(n for n in names if n != name),
            )

    def _interface_methods(self, tree: SyntaxTree, owner: str, iface: Node) -> Iterator[Declaration]:
        for elem in iface.named_children:
            if elem.type not in _INTERFACE_METHODS:
                continue
            name = tree.text(elem.child_by_field_name("name"))
            yield Declaration(
                kind=DeclKind.INTERFACE_METHOD,
                name=name,
                owner=owner,
                slot=line_slot(tree, elem),
                exported=self.is_exported(name) and self.is_exported(owner),
                span=(elem.start_byte, elem.end_byte),
            )

    # -------------------------------------------------------------------------
    # Documentation
    # -------------------------------------------------------------------------

    def render_doc(self, slot: DocSlot, text: str) -> bytes:
        return render_line_doc(slot, text, GO_COMMENT_MARKER)

    def instructions(self, identifier: str, target: str, file: str = "") -> str:
        simple = identifier.split(":", 1)[-1].rsplit(".", 1)[-1]
        source = f" from {file}" if file else ""
        return (
            f"Write a GoDoc comment for {target}{source}. "
            "Do not include external links, source code or code examples.\n\n"
            f"Describe what {simple} does, not what it technically is. "
            'For a function that adds two integers, write "adds two integers", '
            'not "function that adds two integers".\n\n'
            "Enclose references to other types in brackets, "
            'for example "returns a [*Foo]".\n\n'
            f'Begin the comment exactly with "{simple} " and keep the style of the '
            "Go standard library documentation. Keep it as short as possible while "
            "still being descriptive.\n\n"
            "Output only the comment text, without comment markers (//).\n\n"
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
        for node in tree.root.named_children:
            if node.type == "function_declaration":
                decl = self._function(tree, node)
            elif node.type == "method_declaration":
                decl = self._method(tree, node)
            else:
                continue
            if decl is None or (decl.exported and not step.exported):
                continue
            body = node.child_by_field_name("body")
            if body is None or body.prev_sibling is None:
                continue
            start = body.prev_sibling.end_byte
            tree.edit(f"body:{node.start_byte}", start, body.end_byte, b"")
        return self._reparse(tree)

    def _strip_comments(self, tree: SyntaxTree, step: "MinifyStep") -> SyntaxTree:
        if step.exported:
            for comment in find_all(tree.root, "comment"):
                start, end = removal_range(tree, comment)
                tree.edit(f"comment:{start}", start, end, b"")
        else:
            for decl in self.declarations(tree):
                if decl.exported or not decl.slot.has_doc:
                    continue
                tree.edit(decl.slot.key, decl.slot.start, decl.slot.end, b"")
        return self._reparse(tree)

    def _reparse(self, tree: SyntaxTree) -> SyntaxTree:
        return self.parse(tree.render()) if tree.dirty else tree
