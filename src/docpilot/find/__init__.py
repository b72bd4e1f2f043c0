"""Symbol and file discovery."""

from docpilot.find.files import find_files, match_glob
from docpilot.find.finder import Finder, Finding, describe
from docpilot.find.identifier import Identifier, target

__all__ = [
    "Finder",
    "Finding",
    "Identifier",
    "describe",
    "find_files",
    "match_glob",
    "target",
]
