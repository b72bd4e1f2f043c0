"""Data classes for the generate package."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, List, Optional, Protocol

from docpilot.find.identifier import target as describe_identifier

if TYPE_CHECKING:
    from .pool import CancelScope


@dataclass(frozen=True)
class Input:
    """One symbol to document, with the full source of its file."""

    code: bytes
    language: str
    identifier: str
    file: str = ""
    # display target, derived from identifier when empty
    target: str = ""

    @property
    def display(self) -> str:
        return self.target or describe_identifier(self.identifier)


@dataclass(frozen=True)
class Documentation:
    """Generated documentation text for one identifier."""

    input: Input
    text: str

    @property
    def identifier(self) -> str:
        return self.input.identifier

    @property
    def file(self) -> str:
        return self.input.file


@dataclass
class GeneratedFile:
    path: str
    docs: List[Documentation] = field(default_factory=list)


class GenerationError(Exception):
    """Generating documentation for one symbol failed."""

    def __init__(self, input: Input, cause: BaseException) -> None:
        super().__init__(f"{input.file}@{input.identifier}: {cause}")
        self.input = input
        self.__cause__ = cause

    @property
    def identifier(self) -> str:
        return self.input.identifier

    @property
    def file(self) -> str:
        return self.input.file


@dataclass
class GenerationContext:
    """What a generation service gets to see for one symbol."""

    input: Input
    instructions: str
    code: str
    scope: Optional["CancelScope"] = None

    @property
    def prompt(self) -> str:
        header = f"# {self.input.file}\n" if self.input.file else ""
        return f"{self.instructions}\n---\n{header}{self.code}"

    @property
    def language(self) -> str:
        return self.input.language

    @property
    def identifier(self) -> str:
        return self.input.identifier

    @property
    def file(self) -> str:
        return self.input.file

    @property
    def cancelled(self) -> bool:
        return self.scope is not None and self.scope.cancelled


class Service(Protocol):
    """Produces documentation text for one symbol."""

    async def generate_doc(self, ctx: GenerationContext) -> str:
        ...
