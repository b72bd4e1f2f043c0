"""Token-budget minification of source files.

A prompt is fixed instructions plus source code, and together they have to
fit the model's context. When a file is too large, the minifier walks an
ordered list of MinifySteps, each removing more detail from the syntax tree,
and stops at the first one whose output fits.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple, Union

from docpilot.config.defaults import MINIFY_DEFAULT_MAX_TOKENS
from docpilot.langs.base import Language
from docpilot.tokenizer import Tokenizer

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MinifyStep:
    """One transformation of a syntax tree.

    Attributes:
        name: Label used in logs and results.
        bodies: Strip function bodies.
        comments: Strip documentation (all comments when ``exported`` is set).
        exported: Also apply to exported declarations.
    """

    name: str
    bodies: bool = False
    comments: bool = False
    exported: bool = False


# Each step runs on the output of the previous one.
DEFAULT_STEPS: Tuple[MinifyStep, ...] = (
    MinifyStep("unexported-bodies", bodies=True),
    MinifyStep("unexported-comments", comments=True),
    MinifyStep("exported-bodies", bodies=True, exported=True),
    MinifyStep("all-comments", comments=True, exported=True),
)


@dataclass
class Minification:
    input: bytes
    minified: bytes
    tokens: int
    # None when the source was returned untouched
    step: Optional[MinifyStep] = None


@dataclass
class MinifyResult:
    chosen: Minification
    steps: List[Minification] = field(default_factory=list)

    @property
    def code(self) -> bytes:
        return self.chosen.minified


class SourceTooLargeError(RuntimeError):
    """Raised when even the last step leaves the source over budget."""

    def __init__(self, max_tokens: int, tokens: int, result: MinifyResult) -> None:
        super().__init__(
            f"source is too large to be minified to {max_tokens} tokens "
            f"(minified source has {tokens} tokens)"
        )
        self.max_tokens = max_tokens
        self.tokens = tokens
        self.result = result


class Minifier:
    """Shrinks source files for one language until they fit a token budget."""

    def __init__(
        self,
        language: Language,
        tokenizer: Tokenizer,
        *,
        max_tokens: int = MINIFY_DEFAULT_MAX_TOKENS,
        steps: Sequence[MinifyStep] = DEFAULT_STEPS,
        prepend: str = "",
        force: bool = False,
        cache: bool = False,
    ) -> None:
        self.language = language
        self.tokenizer = tokenizer
        self.max_tokens = max_tokens
        self.steps = tuple(steps)
        self.prepend = prepend
        self.force = force
        # source -> output of each step applied so far
        self._stages: Optional[Dict[bytes, List[bytes]]] = {} if cache else None
        self._lock = threading.Lock()

    def count(self, code: bytes, prepend: str) -> int:
        return len(self.tokenizer.encode(prepend + code.decode("utf-8")))

    def _stripped(self, code: bytes, index: int, stages: List[bytes]) -> bytes:
        while len(stages) <= index:
            tree = self.language.parse(stages[-1] if stages else code)
            tree = self.language.strip(tree, self.steps[len(stages)])
            stages.append(self.language.format(tree))
        return stages[index]

    def stage(self, code: bytes, index: int) -> bytes:
        """code after steps[0] through steps[index], each applied to the last."""
        if self._stages is None:
            return self._stripped(code, index, [])
        with self._lock:
            return self._stripped(code, index, self._stages.setdefault(code, []))

    def minify(self, code: Union[bytes, str], *, prepend: Optional[str] = None) -> MinifyResult:
        """Minify code until prepend + code fits max_tokens.

        Raises:
            SourceTooLargeError: no step fits and force is off.
            ParseError: the code does not parse.
        """
        if isinstance(code, str):
            code = code.encode("utf-8")
        prepend = self.prepend if prepend is None else prepend

        if not code:
            return MinifyResult(Minification(code, code, self.count(code, prepend)))

        tokens = self.count(code, prepend)
        original = Minification(code, code, tokens)
        if tokens <= self.max_tokens or not self.steps:
            return MinifyResult(original)

        attempted: List[Minification] = []
        stages: List[bytes] = []
        for index, step in enumerate(self.steps):
            if self._stages is None:
                minified = self._stripped(code, index, stages)
            else:
                minified = self.stage(code, index)
            tokens = self.count(minified, prepend)
            result = Minification(code, minified, tokens, step)
            attempted.append(result)
            logger.debug("minify step %s: %d tokens (budget %d)", step.name, tokens, self.max_tokens)
            if tokens <= self.max_tokens:
                return MinifyResult(result, attempted)

        last = attempted[-1]
        outcome = MinifyResult(last, attempted)
        if self.force:
            logger.warning(
                "Source still has %d tokens after minification (budget %d), continuing anyway",
                last.tokens,
                self.max_tokens,
            )
            return outcome
        raise SourceTooLargeError(self.max_tokens, last.tokens, outcome)
