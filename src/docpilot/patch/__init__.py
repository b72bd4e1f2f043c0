"""AST-safe documentation patching."""

from .errors import (
    AlreadyDocumentedError,
    PatchApplyError,
    PatchError,
    SymbolNotFoundError,
)
from .patch import MATCHERS, Patch, resolve

__all__ = [
    "MATCHERS",
    "AlreadyDocumentedError",
    "Patch",
    "PatchApplyError",
    "PatchError",
    "SymbolNotFoundError",
    "resolve",
]
