"""Finder for undocumented declarations in a single source file."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Union

from docpilot.find.identifier import target
from docpilot.langs.base import DeclKind, Declaration, Language

logger = logging.getLogger(__name__)


@dataclass(frozen=True, order=True)
class Finding:
    """An undocumented symbol.

    Ordering compares (file, identifier), which is the order find results are
    reported in.
    """

    file: str
    identifier: str
    target: str = ""
    language: str = ""

    def __str__(self) -> str:
        return f"{self.file}@{self.identifier}" if self.file else self.identifier


def describe(decl: Declaration) -> str:
    if decl.kind == DeclKind.INTERFACE_METHOD:
        return f"interface method '{decl.name}' of '{decl.owner}'"
    return target(decl.identifier)


class Finder:
    """Walks one file's declarations and reports those lacking documentation.

    Only exported declarations are reported. Test declarations and documented
    ones are skipped unless asked for.
    """

    def __init__(
        self,
        language: Language,
        *,
        include_documented: bool = False,
        include_tests: bool = False,
    ) -> None:
        self.language = language
        self.include_documented = include_documented
        self.include_tests = include_tests

    def find(self, code: Union[bytes, str], file: str = "") -> List[Finding]:
        """Return findings sorted by identifier.

        Raises:
            ParseError: the code does not parse.
        """
        if isinstance(code, str):
            code = code.encode("utf-8")
        tree = self.language.parse(code)

        findings = {}
        for decl in self.language.declarations(tree):
            if not decl.exported:
                continue
            if decl.test and not self.include_tests:
                continue
            if decl.documented and not self.include_documented:
                continue
            ident = decl.identifier
            if ident in findings:
                continue
            findings[ident] = Finding(
                file=file,
                identifier=ident,
                target=describe(decl),
                language=self.language.name,
            )

        logger.debug("found %d undocumented symbols in %s", len(findings), file or "<source>")
        return sorted(findings.values(), key=lambda f: f.identifier)
