"""
Generate command - write documentation for undocumented symbols.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from docpilot.app import Docpilot, GenerationFailedError
from docpilot.cli.output import ConsoleOutput
from docpilot.config import DocpilotConfig
from docpilot.git import Repository
from docpilot.llm import create_service
from docpilot.patch import Patch, PatchApplyError
from docpilot.tokenizer import get_tokenizer, token_budget


def show_patch(console: ConsoleOutput, patch: Patch) -> None:
    """Print the patched content of every file."""
    for path, code in patch.dry_run().items():
        language = Path(path).suffix.lstrip(".") or "text"
        console.print_code(path, code.decode("utf-8"), language)


def write_patch(
    console: ConsoleOutput,
    root: Path,
    patch: Patch,
    *,
    dry_run: bool,
    commit: bool,
    branch: str,
) -> int:
    """Print, commit or apply patch. Shared by generate and clear."""
    if not patch.files:
        console.print_dim("Nothing to patch.")
        return 0
    if dry_run:
        show_patch(console, patch)
        return 0
    try:
        if commit:
            created = Repository(root).commit(patch, branch=branch)
            console.print_success(f"Committed {len(patch.files)} file(s) to branch {created}")
        else:
            patch.apply()
            console.print_success(f"Patched {len(patch.files)} file(s)")
    except PatchApplyError as e:
        console.print_failures(e.failures.values())
        return 1
    return 0


async def run(
    root: Path,
    config: DocpilotConfig,
    *,
    override: bool = False,
    strict: bool = False,
    dry_run: bool = False,
    commit: bool = False,
    console: Optional[ConsoleOutput] = None,
) -> int:
    """Run the generate command."""
    console = console or ConsoleOutput()
    app = Docpilot(root, match=config.match)

    findings = app.find(include=config.include, exclude=config.exclude or None)
    if not findings:
        console.print_success("No undocumented symbols found.")
        return 0
    console.print_info(f"Generating documentation for {len(findings)} symbol(s)")

    service = create_service(config)
    try:
        result = await app.generate(
            findings,
            service,
            override=override,
            strict=strict,
            file_workers=config.file_workers,
            symbol_workers=config.symbol_workers,
            limit=config.limit,
            file_limit=config.file_limit,
            per_file_limit=config.per_file_limit,
            footer=config.footer,
            tokenizer=get_tokenizer(config.model),
            max_tokens=token_budget(config.model, config.max_output_tokens),
            force_minify=config.force_minify,
        )
    except GenerationFailedError as e:
        console.print_failures(e.errors)
        return 1

    console.print_dim(f"{len(result.docs)} documentation(s) generated")
    status = write_patch(
        console, root, result.patch, dry_run=dry_run, commit=commit, branch=config.branch
    )
    if result.errors:
        console.print_failures(result.errors)
        return 1
    return status
