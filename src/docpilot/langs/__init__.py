"""Language bindings and the registry that resolves them by name or file."""

from __future__ import annotations

import logging
import threading
from pathlib import PurePath
from typing import Dict, Iterable, List, Optional, Union

from docpilot.langs.base import DeclKind, Declaration, DocSlot, DocStyle, Language
from docpilot.langs.golang import GoLanguage
from docpilot.langs.python import PythonLanguage

logger = logging.getLogger(__name__)

__all__ = [
    "DeclKind",
    "Declaration",
    "DocSlot",
    "DocStyle",
    "GoLanguage",
    "Language",
    "LanguageRegistry",
    "PythonLanguage",
    "UnknownLanguageError",
    "default_languages",
]


class UnknownLanguageError(KeyError):
    """Raised when no binding is registered for a language name or file."""

    def __init__(self, key: str) -> None:
        super().__init__(key)
        self.key = key

    def __str__(self) -> str:
        return f"no language registered for {self.key!r}"


class LanguageRegistry:
    """Maps language names and file extensions to bindings."""

    def __init__(self, languages: Iterable[Language] = ()) -> None:
        self._by_name: Dict[str, Language] = {}
        self._by_ext: Dict[str, Language] = {}
        for lang in languages:
            self.register(lang)

    def register(self, language: Language) -> None:
        self._by_name[language.name] = language
        for ext in language.extensions:
            self._by_ext[ext] = language
        logger.debug("Registered %s for %s", language.name, ", ".join(language.extensions))

    def get(self, name: str) -> Language:
        try:
            return self._by_name[name]
        except KeyError:
            raise UnknownLanguageError(name) from None

    def for_file(self, path: Union[str, PurePath]) -> Optional[Language]:
        return self._by_ext.get(PurePath(path).suffix.lower())

    @property
    def names(self) -> List[str]:
        return sorted(self._by_name)

    @property
    def extensions(self) -> List[str]:
        return sorted(self._by_ext)

    def __contains__(self, name: object) -> bool:
        return name in self._by_name

    def __iter__(self):
        return iter(self._by_name.values())


_default: Optional[LanguageRegistry] = None
_default_lock = threading.Lock()


def default_languages() -> LanguageRegistry:
    """Shared registry with the Go and Python bindings."""
    global _default
    with _default_lock:
        if _default is None:
            _default = LanguageRegistry([GoLanguage(), PythonLanguage()])
        return _default
