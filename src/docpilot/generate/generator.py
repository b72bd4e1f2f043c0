"""Concurrent documentation generation across files and symbols."""

from __future__ import annotations

import asyncio
import logging
import os
import threading
from typing import AsyncIterator, Dict, List, Optional, Sequence, Tuple

from docpilot.config.defaults import (
    GENERATE_FILE_WORKERS_MAX,
    GENERATE_FOOTER_SEPARATOR,
    GENERATE_SYMBOL_WORKERS_MAX,
    MINIFY_DEFAULT_MAX_TOKENS,
)
from docpilot.langs import LanguageRegistry, default_languages
from docpilot.langs.base import Language
from docpilot.minify import DEFAULT_STEPS, Minifier, MinifyStep
from docpilot.tokenizer import Tokenizer

from .models import (
    Documentation,
    GeneratedFile,
    GenerationContext,
    GenerationError,
    Input,
    Service,
)
from .pool import CancelScope, Cancelled, WorkerPool

logger = logging.getLogger(__name__)

_DONE = object()


def _default_workers(cap: int) -> int:
    return max(1, min(cap, os.cpu_count() or 1))


async def _drain(stream: AsyncIterator) -> list:
    return [item async for item in stream]


class GenerationRun:
    """Handle on a running generation.

    Results arrive on two streams, generated files and per-symbol errors.
    Both are closed once every worker has exited. The queues behind them are
    unbounded, so workers never block on a slow consumer.
    """

    def __init__(self, scope: CancelScope) -> None:
        self.scope = scope
        self._files: asyncio.Queue = asyncio.Queue()
        self._errors: asyncio.Queue = asyncio.Queue()
        self._task: Optional[asyncio.Task] = None

    def _close(self) -> None:
        self._files.put_nowait(_DONE)
        self._errors.put_nowait(_DONE)

    @staticmethod
    async def _stream(queue: asyncio.Queue) -> AsyncIterator:
        while True:
            item = await queue.get()
            if item is _DONE:
                return
            yield item

    def files(self) -> AsyncIterator[GeneratedFile]:
        return self._stream(self._files)

    def errors(self) -> AsyncIterator[GenerationError]:
        return self._stream(self._errors)

    def cancel(self) -> None:
        self.scope.cancel()

    async def wait(self) -> None:
        if self._task is not None:
            await self._task

    async def collect(self) -> Tuple[List[GeneratedFile], List[GenerationError]]:
        """Drain both streams until the run is over."""
        files, errors = await asyncio.gather(_drain(self.files()), _drain(self.errors()))
        await self.wait()
        return files, errors


class Generator:
    """Generates documentation for many symbols through a Service.

    Files are processed by a pool of ``file_workers``, and the symbols of each
    file by a nested pool of ``symbol_workers``. ``limit`` caps the number of
    generations in the whole run, ``per_file_limit`` the generations per
    file and ``file_limit`` the number of files. Reaching a limit stops
    workers from starting new work; work in flight is finished.

    When a tokenizer is given, source code is minified to fit ``max_tokens``
    together with the prompt before it is sent to the service.
    """

    def __init__(
        self,
        service: Service,
        *,
        languages: Optional[LanguageRegistry] = None,
        file_workers: int = 0,
        symbol_workers: int = 0,
        limit: int = 0,
        per_file_limit: int = 0,
        file_limit: int = 0,
        footer: str = "",
        tokenizer: Optional[Tokenizer] = None,
        max_tokens: int = MINIFY_DEFAULT_MAX_TOKENS,
        steps: Sequence[MinifyStep] = DEFAULT_STEPS,
        force_minify: bool = False,
    ) -> None:
        self.service = service
        self.languages = languages or default_languages()
        self.file_workers = file_workers or _default_workers(GENERATE_FILE_WORKERS_MAX)
        self.symbol_workers = symbol_workers or _default_workers(GENERATE_SYMBOL_WORKERS_MAX)
        self.limit = limit
        self.per_file_limit = per_file_limit
        self.file_limit = file_limit
        self.footer = footer
        self.tokenizer = tokenizer
        self.max_tokens = max_tokens
        self.steps = tuple(steps)
        self.force_minify = force_minify
        # one per language; each remembers the stripped stages of every file
        self._minifiers: Dict[str, Minifier] = {}
        self._lock = threading.Lock()

    def _minifier(self, language: Language) -> Minifier:
        with self._lock:
            minifier = self._minifiers.get(language.name)
            if minifier is None:
                minifier = Minifier(
                    language,
                    self.tokenizer,
                    max_tokens=self.max_tokens,
                    steps=self.steps,
                    force=self.force_minify,
                    cache=True,
                )
                self._minifiers[language.name] = minifier
            return minifier

    def context(self, input: Input, scope: Optional[CancelScope] = None) -> GenerationContext:
        """Build the service context for input, minifying its code if needed."""
        language = self.languages.get(input.language)
        instructions = language.instructions(input.identifier, input.display, input.file)
        code = input.code
        if self.tokenizer is not None and language.minifier_enabled:
            prepend = GenerationContext(input, instructions, "").prompt
            result = self._minifier(language).minify(code, prepend=prepend)
            if result.chosen.step is not None:
                logger.debug(
                    "minified %s with %s (%d tokens)",
                    input.file, result.chosen.step.name, result.chosen.tokens,
                )
            code = result.code
        return GenerationContext(input, instructions, code.decode("utf-8"), scope)

    async def generate(self, input: Input, scope: Optional[CancelScope] = None) -> str:
        """Generate the documentation text for one symbol."""
        scope = scope or CancelScope()
        # parsing and token counting block, keep them off the event loop
        loop = asyncio.get_running_loop()
        ctx = await loop.run_in_executor(None, self.context, input, scope)
        text = (await scope.race(self.service.generate_doc(ctx))).strip()
        if self.footer:
            text = f"{text}{GENERATE_FOOTER_SEPARATOR}{self.footer}"
        return text

    def files(self, files: Dict[str, List[Input]], scope: Optional[CancelScope] = None) -> GenerationRun:
        """Start generating documentation for files in the running event loop."""
        run = GenerationRun(scope or CancelScope())
        run._task = asyncio.ensure_future(self._run(run, files))
        return run

    async def _run(self, run: GenerationRun, files: Dict[str, List[Input]]) -> None:
        scope = run.scope
        started = 0
        dispatched = 0

        def limit_reached() -> bool:
            return bool(self.limit) and started >= self.limit

        def admit_file(_: Tuple[str, List[Input]]) -> bool:
            nonlocal dispatched
            if limit_reached() or (self.file_limit and dispatched >= self.file_limit):
                return False
            dispatched += 1
            return True

        async def handle_file(item: Tuple[str, List[Input]]) -> None:
            path, inputs = item
            docs: List[Documentation] = []
            per_file = 0

            def admit_symbol(_: Input) -> bool:
                nonlocal started, per_file
                if limit_reached() or (self.per_file_limit and per_file >= self.per_file_limit):
                    return False
                started += 1
                per_file += 1
                return True

            async def handle_symbol(input: Input) -> None:
                try:
                    text = await self.generate(input, scope)
                except Cancelled:
                    return
                except Exception as exc:
                    logger.warning("Generation failed for %s@%s: %s", input.file, input.identifier, exc)
                    run._errors.put_nowait(GenerationError(input, exc))
                    return
                logger.debug("generated %s@%s", input.file, input.identifier)
                docs.append(Documentation(input, text))

            logger.info("Generating docs for %s (%d symbols)", path, len(inputs))
            pool = WorkerPool(
                self.symbol_workers, handle_symbol, scope, admit=admit_symbol, name=f"symbols[{path}]"
            )
            await pool.run(inputs)
            if docs:
                run._files.put_nowait(GeneratedFile(path, docs))

        try:
            pool = WorkerPool(self.file_workers, handle_file, scope, admit=admit_file, name="files")
            await pool.run(files.items())
        finally:
            run._close()
