"""
Minify command - show how a file is shrunk to fit a token budget.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from docpilot.cli.output import ConsoleOutput
from docpilot.langs import default_languages
from docpilot.minify import Minifier, SourceTooLargeError
from docpilot.nodes import ParseError
from docpilot.tokenizer import get_tokenizer, token_budget


def run(
    file: Path,
    *,
    model: str,
    max_tokens: int = 0,
    force: bool = False,
    console: Optional[ConsoleOutput] = None,
) -> int:
    """Run the minify command."""
    console = console or ConsoleOutput()
    language = default_languages().for_file(str(file))
    if language is None:
        console.print_error(f"Unsupported file type: {file}")
        return 1
    if not file.exists():
        console.print_error(f"File not found: {file}")
        return 1

    budget = max_tokens or token_budget(model)
    minifier = Minifier(language, get_tokenizer(model), max_tokens=budget, force=force)
    try:
        result = minifier.minify(file.read_bytes())
    except ParseError as e:
        console.print_error(f"{file}: {e}")
        return 1
    except SourceTooLargeError as e:
        console.print_error(str(e))
        return 1

    for attempt in result.steps:
        console.print_dim(f"{attempt.step.name}: {attempt.tokens} tokens")
    step = result.chosen.step.name if result.chosen.step else "none"
    console.print_info(f"{result.chosen.tokens} tokens (budget {budget}, step {step})")
    console.print_code(str(file), result.code.decode("utf-8"), language.name)
    return 0
