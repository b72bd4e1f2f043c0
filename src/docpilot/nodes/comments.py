"""Formatting of generated documentation text into source comments."""

from __future__ import annotations

import re
import textwrap
from typing import List

from docpilot.config.defaults import COMMENT_WRAP_WIDTH

_PARAGRAPH_BREAK = re.compile(r"\n\s*\n")


def paragraphs(text: str) -> List[str]:
    """Split text on blank lines, collapsing whitespace inside each paragraph."""
    text = text.strip()
    if not text:
        return []
    return [" ".join(p.split()) for p in _PARAGRAPH_BREAK.split(text) if p.strip()]


def wrap(text: str, width: int = COMMENT_WRAP_WIDTH) -> List[str]:
    """Word-wrap text to width columns.

    Paragraph breaks survive as empty strings between the wrapped lines.
    Words longer than width are kept whole.
    """
    lines: List[str] = []
    for i, para in enumerate(paragraphs(text)):
        if i:
            lines.append("")
        lines.extend(
            textwrap.wrap(para, width=width, break_long_words=False, break_on_hyphens=False)
        )
    return lines


def line_comment(text: str, marker: str, indent: str = "", width: int = COMMENT_WRAP_WIDTH) -> str:
    """Render text as consecutive line comments, each ending with a newline."""
    out = []
    for line in wrap(text, width):
        out.append(f"{indent}{marker} {line}" if line else f"{indent}{marker}")
    return "".join(f"{line}\n" for line in out)


def _escape_docstring(line: str) -> str:
    return line.replace("\\", "\\\\").replace('"""', '\\"\\"\\"')


def docstring(text: str, indent: str = "", width: int = COMMENT_WRAP_WIDTH) -> str:
    """Render text as a PEP 257 docstring literal.

    The first line is not indented; continuation lines carry indent.
    """
    lines = [_escape_docstring(line) for line in wrap(text, width)]
    if not lines:
        return '""""""'
    if len(lines) == 1 and len(indent) + len(lines[0]) + 6 <= width + 3:
        body = lines[0]
        if body.endswith('"'):
            body = body[:-1] + '\\"'
        return f'"""{body}"""'
    rest = "".join(f"\n{indent}{line}" if line else "\n" for line in lines[1:])
    return f'"""{lines[0]}{rest}\n{indent}"""'
