"""Exceptions raised while patching documentation into source files."""

from __future__ import annotations

from typing import Dict


class PatchError(Exception):
    """Base class for patching failures."""


class SymbolNotFoundError(PatchError):
    """The identifier does not name a declaration in the file."""

    def __init__(self, file: str, identifier: str) -> None:
        super().__init__(f"{file}: no declaration matches {identifier!r}")
        self.file = file
        self.identifier = identifier


class AlreadyDocumentedError(PatchError):
    """The declaration already has documentation and override is off."""

    def __init__(self, file: str, identifier: str) -> None:
        super().__init__(f"{file}: {identifier!r} is already documented")
        self.file = file
        self.identifier = identifier


class PatchApplyError(PatchError):
    """One or more files could not be written."""

    def __init__(self, failures: Dict[str, Exception]) -> None:
        files = ", ".join(sorted(failures))
        super().__init__(f"failed to apply patch to {len(failures)} file(s): {files}")
        self.failures = failures
