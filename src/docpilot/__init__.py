"""docpilot: find undocumented symbols and generate documentation for them."""

from docpilot.app import Docpilot, GenerationFailedError, GenerationResult
from docpilot.find import Finder, Finding, Identifier
from docpilot.generate import Generator, Input
from docpilot.minify import DEFAULT_STEPS, Minifier, MinifyStep
from docpilot.patch import Patch

__version__ = "0.1.0"

__all__ = [
    "DEFAULT_STEPS",
    "Docpilot",
    "Finder",
    "Finding",
    "GenerationFailedError",
    "GenerationResult",
    "Generator",
    "Identifier",
    "Input",
    "Minifier",
    "MinifyStep",
    "Patch",
    "__version__",
]
