"""
Clear command - remove existing documentation.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from docpilot.app import Docpilot
from docpilot.cli.output import ConsoleOutput
from docpilot.config import DocpilotConfig

from .generate import write_patch


def run(
    root: Path,
    config: DocpilotConfig,
    *,
    dry_run: bool = False,
    commit: bool = False,
    console: Optional[ConsoleOutput] = None,
) -> int:
    """Run the clear command."""
    console = console or ConsoleOutput()
    app = Docpilot(root, match=config.match)
    findings = app.find(
        include=config.include,
        exclude=config.exclude or None,
        include_documented=True,
    )
    patch = app.clear(findings)
    return write_patch(
        console, root, patch, dry_run=dry_run, commit=commit, branch=config.branch
    )
