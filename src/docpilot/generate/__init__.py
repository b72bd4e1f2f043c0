"""Concurrent documentation generation."""

from .generator import GenerationRun, Generator
from .models import (
    Documentation,
    GeneratedFile,
    GenerationContext,
    GenerationError,
    Input,
    Service,
)
from .pool import CancelScope, Cancelled, WorkerPool

__all__ = [
    "CancelScope",
    "Cancelled",
    "Documentation",
    "GeneratedFile",
    "GenerationContext",
    "GenerationError",
    "GenerationRun",
    "Generator",
    "Input",
    "Service",
    "WorkerPool",
]
