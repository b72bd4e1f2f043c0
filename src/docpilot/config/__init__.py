"""Runtime configuration for docpilot.

Values are layered: package defaults, then ``.docpilot.yaml`` in the
repository root, then ``DOCPILOT_*`` environment variables. The CLI applies
its own flags on top via ``dataclasses.replace``.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from docpilot.config.defaults import (
    CONFIG_FILE_NAME,
    DEFAULT_ANTHROPIC_MODEL,
    DEFAULT_MODEL,
    DEFAULT_PROVIDER,
    GIT_DEFAULT_BRANCH,
    LLM_MAX_OUTPUT_TOKENS,
    LLM_TEMPERATURE,
)

logger = logging.getLogger(__name__)

__all__ = ["DocpilotConfig", "load_config"]


@dataclass
class DocpilotConfig:
    """Configuration for a docpilot run."""

    provider: str = DEFAULT_PROVIDER
    model: str = ""
    base_url: str = ""
    api_key: str = ""
    max_output_tokens: int = LLM_MAX_OUTPUT_TOKENS
    temperature: float = LLM_TEMPERATURE

    # 0 means "pick from available parallelism"
    file_workers: int = 0
    symbol_workers: int = 0

    limit: int = 0
    file_limit: int = 0
    per_file_limit: int = 0

    include: List[str] = field(default_factory=list)
    exclude: List[str] = field(default_factory=list)
    match: List[str] = field(default_factory=list)

    footer: str = ""
    branch: str = GIT_DEFAULT_BRANCH
    force_minify: bool = False

    def __post_init__(self) -> None:
        if not self.model:
            self.model = DEFAULT_ANTHROPIC_MODEL if self.provider == "anthropic" else DEFAULT_MODEL

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DocpilotConfig":
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            logger.warning("Ignoring unknown config keys: %s", ", ".join(unknown))
        return cls(**{k: v for k, v in data.items() if k in known})

    def to_dict(self) -> Dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self) if f.name != "api_key"}

    @classmethod
    def from_env(cls, base: Optional["DocpilotConfig"] = None) -> "DocpilotConfig":
        """Overlay DOCPILOT_* environment variables on base (or defaults)."""
        data = base.to_dict() if base else {}
        if base:
            data["api_key"] = base.api_key
        env = os.environ
        for name, cast in (
            ("provider", str),
            ("model", str),
            ("base_url", str),
            ("api_key", str),
            ("max_output_tokens", int),
            ("temperature", float),
            ("file_workers", int),
            ("symbol_workers", int),
            ("limit", int),
            ("file_limit", int),
            ("per_file_limit", int),
            ("footer", str),
            ("branch", str),
        ):
            value = env.get(f"DOCPILOT_{name.upper()}")
            if value:
                data[name] = cast(value)
        if "DOCPILOT_FORCE_MINIFY" in env:
            data["force_minify"] = env["DOCPILOT_FORCE_MINIFY"].lower() in ("1", "true", "yes")
        return cls.from_dict(data)

    def resolve_api_key(self) -> str:
        """The configured key, else the one from the provider's own variable.

        Called when a service is built, so a provider chosen on the command
        line picks up its matching key.
        """
        if self.api_key:
            return self.api_key
        key_var = "ANTHROPIC_API_KEY" if self.provider == "anthropic" else "OPENAI_API_KEY"
        return os.environ.get(key_var, "")


def load_config(root: Path) -> DocpilotConfig:
    """Load configuration for the repository at root."""
    config_path = Path(root) / CONFIG_FILE_NAME
    data: Dict[str, Any] = {}
    if config_path.exists():
        with open(config_path, encoding="utf-8") as f:
            loaded = yaml.safe_load(f) or {}
        if not isinstance(loaded, dict):
            raise ValueError(f"{config_path}: expected a mapping, got {type(loaded).__name__}")
        data = loaded
        logger.debug("Loaded config from %s", config_path)
    return DocpilotConfig.from_env(DocpilotConfig.from_dict(data))
