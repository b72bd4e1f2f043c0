"""Applying generated documentation to source files."""

from __future__ import annotations

import logging
import re
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence, Union

from docpilot.find.identifier import Identifier
from docpilot.langs import LanguageRegistry, UnknownLanguageError, default_languages
from docpilot.langs.base import DeclKind, Declaration, Language
from docpilot.nodes import ParseError, SyntaxTree

from .errors import AlreadyDocumentedError, PatchApplyError, SymbolNotFoundError

logger = logging.getLogger(__name__)

_GENERIC_PARAMS = re.compile(r"\[.*\]$")


def _owner(name: str) -> str:
    return _GENERIC_PARAMS.sub("", name.strip("()").lstrip("*"))


def _match_function(ident: Identifier, decl: Declaration) -> bool:
    return ident.kind == "func" and not ident.owner and decl.kind == DeclKind.FUNCTION and decl.name == ident.name


def _match_method(ident: Identifier, decl: Declaration) -> bool:
    return (
        ident.kind == "func"
        and decl.kind == DeclKind.METHOD
        and decl.name == ident.name
        and _owner(decl.owner) == _owner(ident.owner)
    )


def _match_type(ident: Identifier, decl: Declaration) -> bool:
    return ident.kind == "type" and decl.kind == DeclKind.TYPE and decl.name == ident.name


def _match_value(ident: Identifier, decl: Declaration) -> bool:
    return ident.kind in ("var", "const") and decl.kind == DeclKind.VALUE and decl.name == ident.name


def _match_value_alias(ident: Identifier, decl: Declaration) -> bool:
    return ident.kind in ("var", "const") and decl.kind == DeclKind.VALUE and ident.name in decl.aliases


def _match_interface_method(ident: Identifier, decl: Declaration) -> bool:
    return (
        ident.kind == "func"
        and decl.kind == DeclKind.INTERFACE_METHOD
        and decl.name == ident.name
        and decl.owner == _owner(ident.owner)
    )


def _match_property(ident: Identifier, decl: Declaration) -> bool:
    return (
        ident.kind == "prop"
        and decl.kind == DeclKind.PROPERTY
        and decl.name == ident.name
        and decl.owner == ident.owner
    )


# First match wins.
MATCHERS: Sequence[Callable[[Identifier, Declaration], bool]] = (
    _match_function,
    _match_method,
    _match_type,
    _match_value,
    _match_interface_method,
    _match_property,
    _match_value_alias,
)


def resolve(declarations: Sequence[Declaration], identifier: str) -> Optional[Declaration]:
    """Find the declaration an identifier refers to."""
    try:
        ident = Identifier.parse(identifier)
    except ValueError:
        return None
    for matcher in MATCHERS:
        for decl in declarations:
            if matcher(ident, decl):
                return decl
    return None


@dataclass
class _File:
    language: Language
    tree: SyntaxTree
    declarations: List[Declaration]
    lock: threading.Lock = field(default_factory=threading.Lock)
    # doc text currently queued per slot key
    texts: Dict[str, str] = field(default_factory=dict)
    identifiers: List[str] = field(default_factory=list)


class Patch:
    """Documentation changes for a set of files under one root.

    Every file is read and parsed once. All comment() calls on it accumulate
    on the same tree, which is rendered once by apply() or dry_run(). Calls on
    different files may run concurrently; calls on the same file are
    serialized by a per-file lock.
    """

    def __init__(
        self,
        root: Union[str, Path],
        languages: Optional[LanguageRegistry] = None,
        *,
        override: bool = False,
    ) -> None:
        self.root = Path(root)
        self.languages = languages or default_languages()
        self.override = override
        self._files: Dict[str, _File] = {}
        self._loading: Dict[str, threading.Lock] = {}
        self._lock = threading.Lock()

    def _file(self, file: str) -> _File:
        with self._lock:
            cached = self._files.get(file)
            if cached is not None:
                return cached
            loading = self._loading.setdefault(file, threading.Lock())

        # only callers asking for the same file wait for each other here
        with loading:
            with self._lock:
                cached = self._files.get(file)
            if cached is not None:
                return cached
            language = self.languages.for_file(file)
            if language is None:
                raise UnknownLanguageError(file)
            code = (self.root / file).read_bytes()
            try:
                tree = language.parse(code)
            except ParseError as err:
                raise ParseError(err.language, err.line, file=file) from err
            entry = _File(language, tree, language.declarations(tree))
            with self._lock:
                self._files[file] = entry
            logger.debug("parsed %s (%d declarations)", file, len(entry.declarations))
            return entry

    def comment(self, file: str, identifier: str, text: str) -> None:
        """Set the documentation of identifier in file to text.

        Empty text removes the documentation.

        Raises:
            SymbolNotFoundError: identifier does not exist in file.
            AlreadyDocumentedError: the symbol has documentation and the
                patch was not created with override.
            ParseError: file does not parse.
        """
        entry = self._file(file)
        with entry.lock:
            decl = resolve(entry.declarations, identifier)
            if decl is None:
                raise SymbolNotFoundError(file, identifier)

            slot = decl.slot
            if slot.key in entry.texts:
                documented = bool(entry.texts[slot.key].strip())
            else:
                documented = slot.has_doc
            if documented and not self.override:
                raise AlreadyDocumentedError(file, identifier)

            rendered = entry.language.render_doc(slot, text)
            entry.tree.edit(slot.key, slot.start, slot.end, rendered)
            entry.texts[slot.key] = text
            entry.identifiers.append(identifier)
        logger.debug("commented %s@%s", file, identifier)

    @property
    def files(self) -> List[str]:
        with self._lock:
            return sorted(self._files)

    def identifiers(self) -> Dict[str, List[str]]:
        """Applied identifiers per file, in the order they were applied."""
        with self._lock:
            entries = dict(self._files)
        out = {}
        for file, entry in sorted(entries.items()):
            with entry.lock:
                if entry.identifiers:
                    out[file] = list(entry.identifiers)
        return out

    def _render(self, file: str, entry: _File) -> bytes:
        with entry.lock:
            code = entry.language.format(entry.tree)
        try:
            entry.language.parse(code)
        except ParseError as err:
            raise ParseError(err.language, err.line, file=file) from err
        return code

    def dry_run(self) -> Dict[str, bytes]:
        """Rendered contents of every touched file, without writing."""
        with self._lock:
            entries = dict(self._files)
        return {file: self._render(file, entry) for file, entry in sorted(entries.items())}

    def apply(self, root: Optional[Union[str, Path]] = None) -> None:
        """Write every touched file below root (default: the patch root).

        A failing file does not stop the others.

        Raises:
            PatchApplyError: listing every file that failed.
        """
        target = Path(root) if root is not None else self.root
        with self._lock:
            entries = dict(self._files)

        failures: Dict[str, Exception] = {}
        for file, entry in sorted(entries.items()):
            try:
                code = self._render(file, entry)
                path = target / file
                path.parent.mkdir(parents=True, exist_ok=True)
                path.write_bytes(code)
                logger.info("Patched %s", file)
            except (OSError, ParseError) as exc:
                logger.warning("Failed to patch %s: %s", file, exc)
                failures[file] = exc
        if failures:
            raise PatchApplyError(failures)
