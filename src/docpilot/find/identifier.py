"""Canonical identifiers and the human readable targets derived from them."""

from __future__ import annotations

import re
from dataclasses import dataclass

_METHOD = re.compile(r"^(?:\(\*(?P<ptr>[^)]+)\)|(?P<owner>[^.()]+))\.(?P<name>[^.]+)$")

KINDS = ("func", "type", "var", "const", "prop")


@dataclass(frozen=True)
class Identifier:
    """Parsed form of an identifier such as ``func:(*Foo).Bar``."""

    kind: str
    name: str
    owner: str = ""
    pointer: bool = False

    @classmethod
    def parse(cls, identifier: str) -> "Identifier":
        kind, sep, path = identifier.partition(":")
        if not sep or kind not in KINDS or not path:
            raise ValueError(f"invalid identifier: {identifier!r}")
        if "." not in path:
            return cls(kind, path)
        m = _METHOD.match(path)
        if m is None:
            raise ValueError(f"invalid identifier: {identifier!r}")
        if m.group("ptr"):
            return cls(kind, m.group("name"), owner=m.group("ptr"), pointer=True)
        return cls(kind, m.group("name"), owner=m.group("owner"))

    @property
    def path(self) -> str:
        if not self.owner:
            return self.name
        owner = f"(*{self.owner})" if self.pointer else self.owner
        return f"{owner}.{self.name}"

    def __str__(self) -> str:
        return f"{self.kind}:{self.path}"


def target(identifier: str) -> str:
    """Describe an identifier for use in a prompt.

    >>> target("func:(*Foo).Bar")
    "method 'Bar' of 'Foo'"
    """
    try:
        ident = Identifier.parse(identifier)
    except ValueError:
        return repr(identifier)
    if ident.kind == "func":
        if ident.owner:
            return f"method '{ident.name}' of '{ident.owner}'"
        return f"function '{ident.name}()'"
    if ident.kind == "prop":
        return f"property '{ident.name}' of '{ident.owner}'"
    if ident.kind == "type":
        return f"type '{ident.name}'"
    if ident.kind == "const":
        return f"constant '{ident.name}'"
    return f"variable '{ident.name}'"
