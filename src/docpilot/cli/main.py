#!/usr/bin/env python
from __future__ import annotations

import argparse
import asyncio
import dataclasses
import logging
import sys
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

from docpilot import __version__

logger = logging.getLogger(__name__)


def _add_filters(p: argparse.ArgumentParser) -> None:
    p.add_argument("root", nargs="?", type=Path, default=Path("."), help="Repository root")
    p.add_argument("--match", action="append", default=[], metavar="RE",
                   help="Only symbols whose identifier matches RE (repeatable)")
    p.add_argument("--include", action="append", default=[], metavar="GLOB",
                   help="Only files matching GLOB (repeatable)")
    p.add_argument("--exclude", action="append", default=[], metavar="GLOB",
                   help="Skip files matching GLOB (repeatable)")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="docpilot",
        description="docpilot - generate missing documentation for Go and Python code",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    parser.add_argument("--version", action="version", version=f"docpilot {__version__}")

    subparsers = parser.add_subparsers(dest="command", metavar="COMMAND")

    # --- Command Definitions ---
    find_p = subparsers.add_parser("find", help="List undocumented symbols")
    _add_filters(find_p)
    find_p.add_argument("--tests", action="store_true", help="Include test functions")
    find_p.add_argument("--documented", action="store_true", help="Include documented symbols")
    find_p.add_argument("--json", action="store_true", help="Output JSON")

    gen_p = subparsers.add_parser("generate", help="Generate missing documentation")
    _add_filters(gen_p)
    gen_p.add_argument("--provider", choices=["openai", "anthropic"], help="LLM provider")
    gen_p.add_argument("--model", help="Model name")
    gen_p.add_argument("--limit", type=int, help="Max symbols in the run")
    gen_p.add_argument("--file-limit", type=int, help="Max files in the run")
    gen_p.add_argument("--per-file-limit", type=int, help="Max symbols per file")
    gen_p.add_argument("--workers", type=int, nargs=2, metavar=("FILES", "SYMBOLS"),
                       help="File and symbol worker counts")
    gen_p.add_argument("--override", action="store_true", help="Replace existing documentation")
    gen_p.add_argument("--strict", action="store_true", help="Fail the whole run on any error")
    gen_p.add_argument("--footer", help="Text appended to every generated comment")
    gen_p.add_argument("--force-minify", action="store_true",
                       help="Send sources that stay over budget after minification")
    gen_p.add_argument("--dry-run", action="store_true", help="Print patched files instead of writing")
    gen_p.add_argument("--commit", action="store_true", help="Commit the patch on a new branch")
    gen_p.add_argument("--branch", help="Branch name for --commit")

    clear_p = subparsers.add_parser("clear", help="Remove existing documentation")
    _add_filters(clear_p)
    clear_p.add_argument("--dry-run", action="store_true", help="Print patched files instead of writing")
    clear_p.add_argument("--commit", action="store_true", help="Commit the patch on a new branch")
    clear_p.add_argument("--branch", help="Branch name for --commit")

    min_p = subparsers.add_parser("minify", help="Minify a source file to a token budget")
    min_p.add_argument("file", type=Path, help="Source file")
    min_p.add_argument("--max-tokens", type=int, default=0, help="Token budget")
    min_p.add_argument("--model", help="Model whose tokenizer and context window to use")
    min_p.add_argument("--force", action="store_true", help="Print the result even when over budget")

    return parser


def _overrides(args: argparse.Namespace) -> dict:
    """Config fields set on the command line."""
    values = {
        "match": args.match or None,
        "include": args.include or None,
        "exclude": args.exclude or None,
        "provider": getattr(args, "provider", None),
        "model": getattr(args, "model", None),
        "limit": getattr(args, "limit", None),
        "file_limit": getattr(args, "file_limit", None),
        "per_file_limit": getattr(args, "per_file_limit", None),
        "footer": getattr(args, "footer", None),
        "branch": getattr(args, "branch", None),
    }
    if getattr(args, "workers", None):
        values["file_workers"], values["symbol_workers"] = args.workers
    if getattr(args, "force_minify", False):
        values["force_minify"] = True
    return {k: v for k, v in values.items() if v is not None}


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.command is None:
        parser.print_help()
        return 1

    from docpilot.cli.output import ConsoleOutput, setup_logging
    from docpilot.config import load_config

    setup_logging(args.verbose)
    console = ConsoleOutput()

    root = args.file.parent if args.command == "minify" else args.root
    load_dotenv(Path(root).resolve() / ".env")

    # --- Logic ---
    from docpilot.cli.commands import clear, find, generate, minify

    try:
        config = load_config(root)
        if args.command == "minify":
            return minify.run(
                args.file,
                model=args.model or config.model,
                max_tokens=args.max_tokens,
                force=args.force,
                console=console,
            )

        overrides = _overrides(args)
        if "provider" in overrides and "model" not in overrides:
            # let the provider pick its default model
            overrides["model"] = ""
        config = dataclasses.replace(config, **overrides)

        if args.command == "find":
            return find.run(
                args.root,
                config,
                include_tests=args.tests,
                include_documented=args.documented,
                json_output=args.json,
                console=console,
            )
        elif args.command == "generate":
            return asyncio.run(generate.run(
                args.root,
                config,
                override=args.override,
                strict=args.strict,
                dry_run=args.dry_run,
                commit=args.commit,
                console=console,
            ))
        elif args.command == "clear":
            return clear.run(
                args.root,
                config,
                dry_run=args.dry_run,
                commit=args.commit,
                console=console,
            )
    except KeyboardInterrupt:
        console.print_warning("Interrupted")
        return 130
    except Exception as e:
        logger.debug("Command %s failed", args.command, exc_info=True)
        console.print_error(str(e))
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
