"""High-level entry point tying discovery, generation and patching together."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence, Union

from docpilot.find import Finder, Finding, find_files
from docpilot.generate import Documentation, Generator, Input, Service
from docpilot.langs import LanguageRegistry, UnknownLanguageError, default_languages
from docpilot.nodes import ParseError
from docpilot.patch import Patch, PatchError

logger = logging.getLogger(__name__)


class GenerationFailedError(RuntimeError):
    """Raised in strict mode when any symbol failed."""

    def __init__(self, errors: List[Exception]) -> None:
        super().__init__(f"documentation generation failed for {len(errors)} symbol(s)")
        self.errors = errors


@dataclass
class GenerationResult:
    patch: Patch
    docs: List[Documentation] = field(default_factory=list)
    errors: List[Exception] = field(default_factory=list)


class Docpilot:
    """Finds and documents undocumented symbols in a repository."""

    def __init__(
        self,
        root: Union[str, Path],
        *,
        languages: Optional[LanguageRegistry] = None,
        match: Sequence[str] = (),
    ) -> None:
        self.root = Path(root)
        self.languages = languages or default_languages()
        self.match = [re.compile(m) for m in match]

    def _matches(self, identifier: str) -> bool:
        return not self.match or any(m.search(identifier) for m in self.match)

    def _read(self, file: str) -> bytes:
        return (self.root / file).read_bytes()

    def find(
        self,
        *,
        include: Sequence[str] = (),
        exclude: Optional[Sequence[str]] = None,
        include_tests: bool = False,
        include_documented: bool = False,
    ) -> List[Finding]:
        """Undocumented symbols in every source file, sorted by (file, identifier).

        Raises:
            ParseError: a source file does not parse.
        """
        files = find_files(
            self.root,
            extensions=self.languages.extensions,
            include=include,
            exclude=exclude,
        )
        logger.info("Searching %d files in %s", len(files), self.root)

        findings: List[Finding] = []
        for file in files:
            language = self.languages.for_file(file)
            if language is None:
                continue
            finder = Finder(
                language,
                include_documented=include_documented,
                include_tests=include_tests,
            )
            try:
                found = finder.find(self._read(file), file)
            except ParseError as err:
                raise ParseError(err.language, err.line, file=file) from err
            findings.extend(f for f in found if self._matches(f.identifier))
        return sorted(findings)

    def inputs(self, findings: Iterable[Finding]) -> Dict[str, List[Input]]:
        """Group findings into generation inputs per file."""
        codes: Dict[str, bytes] = {}
        grouped: Dict[str, List[Input]] = {}
        for f in findings:
            if f.file not in codes:
                codes[f.file] = self._read(f.file)
            language = f.language
            if not language:
                lang = self.languages.for_file(f.file)
                if lang is None:
                    raise UnknownLanguageError(f.file)
                language = lang.name
            grouped.setdefault(f.file, []).append(
                Input(codes[f.file], language, f.identifier, f.file, f.target)
            )
        return grouped

    async def generate(
        self,
        findings: Iterable[Finding],
        service: Service,
        *,
        override: bool = False,
        strict: bool = False,
        **options: Any,
    ) -> GenerationResult:
        """Generate documentation for findings and collect it into a Patch.

        By default a symbol that fails to generate or patch is reported in
        ``errors`` and skipped while the others are patched. With strict,
        any failure raises GenerationFailedError instead.

        Extra keyword arguments are passed to Generator.
        """
        generator = Generator(service, languages=self.languages, **options)
        run = generator.files(self.inputs(findings))
        generated, gen_errors = await run.collect()
        errors: List[Exception] = list(gen_errors)
        if strict and errors:
            raise GenerationFailedError(errors)

        patch = Patch(self.root, self.languages, override=override)
        docs = sorted(
            (doc for file in generated for doc in file.docs),
            key=lambda d: (d.file, d.identifier),
        )
        for doc in docs:
            try:
                patch.comment(doc.file, doc.identifier, doc.text)
            except (PatchError, ParseError) as exc:
                logger.warning("Skipping %s@%s: %s", doc.file, doc.identifier, exc)
                errors.append(exc)
        if strict and errors:
            raise GenerationFailedError(errors)

        logger.info("Generated %d docs, %d failures", len(docs), len(errors))
        return GenerationResult(patch, docs, errors)

    def clear(self, findings: Iterable[Finding]) -> Patch:
        """A patch removing the documentation of every finding."""
        patch = Patch(self.root, self.languages, override=True)
        for f in findings:
            patch.comment(f.file, f.identifier, "")
        return patch
