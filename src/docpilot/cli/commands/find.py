"""
Find command - list undocumented symbols.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import List, Optional

from docpilot.app import Docpilot
from docpilot.cli.output import ConsoleOutput
from docpilot.config import DocpilotConfig
from docpilot.nodes import ParseError


def run(
    root: Path,
    config: DocpilotConfig,
    *,
    include_tests: bool = False,
    include_documented: bool = False,
    json_output: bool = False,
    console: Optional[ConsoleOutput] = None,
) -> int:
    """Run the find command."""
    console = console or ConsoleOutput()
    app = Docpilot(root, match=config.match)
    try:
        findings = app.find(
            include=config.include,
            exclude=config.exclude or None,
            include_tests=include_tests,
            include_documented=include_documented,
        )
    except ParseError as e:
        console.print_error(str(e))
        return 1

    if json_output:
        rows: List[dict] = [
            {"file": f.file, "identifier": f.identifier, "target": f.target, "language": f.language}
            for f in findings
        ]
        console.console.print_json(json.dumps(rows))
        return 0

    console.print_findings(findings)
    return 0
