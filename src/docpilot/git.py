"""
Git integration: commit a documentation patch on a fresh branch.
"""

from __future__ import annotations

import logging
import os
import subprocess
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Protocol, Union

from docpilot.config.defaults import (
    COMMIT_FOOTER,
    COMMIT_MESSAGE,
    GIT_COMMAND_TIMEOUT_SECONDS,
    GIT_DEFAULT_BRANCH,
)

logger = logging.getLogger(__name__)


class GitError(RuntimeError):
    """A git command exited with a non-zero status."""

    def __init__(self, cmd: List[str], returncode: int, output: str) -> None:
        super().__init__(f"{' '.join(cmd)} failed ({returncode}): {output.strip()}")
        self.cmd = cmd
        self.returncode = returncode
        self.output = output


class Applicable(Protocol):
    def apply(self, root: Union[str, Path, None] = None) -> None:
        ...

    def identifiers(self) -> Dict[str, List[str]]:
        ...


@dataclass
class CommitMessage:
    msg: str = COMMIT_MESSAGE
    desc: List[str] = field(default_factory=list)
    footer: str = COMMIT_FOOTER

    @classmethod
    def for_patch(cls, patch: Applicable, footer: str = COMMIT_FOOTER) -> "CommitMessage":
        lines = [
            f"  - {file}@{ident}"
            for file, idents in patch.identifiers().items()
            for ident in idents
        ]
        desc = ["Updated docs:", *lines] if lines else []
        return cls(desc=desc, footer=footer)

    def paragraphs(self) -> List[str]:
        out = [self.msg or COMMIT_MESSAGE]
        if self.desc:
            out.append("\n".join(self.desc))
        if self.footer:
            out.append(self.footer)
        return out

    def __str__(self) -> str:
        return "\n\n".join(self.paragraphs())


def _run_command(
    cmd: List[str],
    timeout: int = GIT_COMMAND_TIMEOUT_SECONDS,
    cwd: Path = None,
) -> subprocess.CompletedProcess:
    """Shared subprocess.run wrapper."""
    return subprocess.run(
        cmd,
        cwd=cwd,
        capture_output=True,
        text=True,
        timeout=timeout,
        env=os.environ.copy(),
    )


class Repository:
    """A git working tree that patches get committed to."""

    def __init__(self, root: Union[str, Path]) -> None:
        self.root = Path(root)

    def git(self, *args: str, check: bool = True) -> subprocess.CompletedProcess:
        cmd = ["git", *args]
        result = _run_command(cmd, cwd=self.root)
        if check and result.returncode != 0:
            raise GitError(cmd, result.returncode, result.stderr or result.stdout)
        return result

    def branch_exists(self, branch: str) -> bool:
        return self.git("rev-parse", "--verify", "--quiet", branch, check=False).returncode == 0

    def commit(
        self,
        patch: Applicable,
        *,
        branch: str = GIT_DEFAULT_BRANCH,
        message: CommitMessage = None,
    ) -> str:
        """Apply patch on a new branch and commit it.

        When branch already exists a ``_<unix millis>`` suffix is appended.
        Returns the name of the branch that was created.
        """
        if self.branch_exists(branch):
            branch = f"{branch}_{int(time.time() * 1000)}"
        message = message or CommitMessage.for_patch(patch)

        logger.info("Committing patch to branch %s", branch)
        self.git("checkout", "-b", branch)
        patch.apply(self.root)
        self.git("add", ".")

        args = ["commit"]
        for paragraph in message.paragraphs():
            args += ["-m", paragraph]
        self.git(*args)
        return branch
