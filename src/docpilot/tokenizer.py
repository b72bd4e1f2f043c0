"""Token counting for prompt budgets.

Counts are measured with tiktoken. The Tokenizer protocol keeps the minifier
independent of it so tests can plug in something cheaper.
"""

from __future__ import annotations

import logging
import threading
from typing import Dict, List, Protocol

import tiktoken

from docpilot.config.defaults import (
    MINIFY_RESERVED_OUTPUT_TOKENS,
    MODEL_CONTEXT_WINDOW_DEFAULT,
    MODEL_CONTEXT_WINDOWS,
    TOKENIZER_FALLBACK_ENCODING,
)

logger = logging.getLogger(__name__)


class Tokenizer(Protocol):
    def encode(self, text: str) -> List[int]:
        ...


class TiktokenTokenizer:
    """Tokenizer backed by the tiktoken encoding of a model."""

    def __init__(self, model: str) -> None:
        self.model = model
        try:
            self._encoding = tiktoken.encoding_for_model(model)
        except KeyError:
            logger.debug("No tiktoken encoding for %s, using %s", model, TOKENIZER_FALLBACK_ENCODING)
            self._encoding = tiktoken.get_encoding(TOKENIZER_FALLBACK_ENCODING)

    def encode(self, text: str) -> List[int]:
        # special tokens are ordinary text in source code
        return self._encoding.encode(text, disallowed_special=())

    def count(self, text: str) -> int:
        return len(self.encode(text))


_tokenizers: Dict[str, TiktokenTokenizer] = {}
_tokenizers_lock = threading.Lock()


def get_tokenizer(model: str) -> TiktokenTokenizer:
    """Shared tokenizer per model; loading an encoding is slow."""
    with _tokenizers_lock:
        tok = _tokenizers.get(model)
        if tok is None:
            tok = _tokenizers[model] = TiktokenTokenizer(model)
        return tok


def context_window(model: str) -> int:
    if model in MODEL_CONTEXT_WINDOWS:
        return MODEL_CONTEXT_WINDOWS[model]
    # dated snapshots share the window of their family, e.g. gpt-4o-2024-08-06
    for name in sorted(MODEL_CONTEXT_WINDOWS, key=len, reverse=True):
        if model.startswith(name):
            return MODEL_CONTEXT_WINDOWS[name]
    return MODEL_CONTEXT_WINDOW_DEFAULT


def token_budget(model: str, max_output_tokens: int = MINIFY_RESERVED_OUTPUT_TOKENS) -> int:
    """Tokens available to prompt plus code for model."""
    return max(context_window(model) - max_output_tokens, 0)
