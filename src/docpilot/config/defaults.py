"""Default configuration values for docpilot.

Every tunable number and string lives here so the rest of the package can
import a named constant instead of hard-coding it.

Usage:
    from docpilot.config.defaults import (
        COMMENT_WRAP_WIDTH,
        GENERATE_FILE_WORKERS_MAX,
    )
"""

from __future__ import annotations

# =============================================================================
# Comment Formatting
# =============================================================================

COMMENT_WRAP_WIDTH = 77
GO_COMMENT_MARKER = "//"
GO_INDENT = "\t"
PYTHON_COMMENT_MARKER = "#"
PYTHON_INDENT = "    "


# =============================================================================
# Generation
# =============================================================================

GENERATE_FILE_WORKERS_MAX = 4
GENERATE_SYMBOL_WORKERS_MAX = 2
GENERATE_FOOTER_SEPARATOR = "\n\n"


# =============================================================================
# Minification
# =============================================================================

MINIFY_DEFAULT_MAX_TOKENS = 4096
# Tokens kept free for the model's answer when computing a prompt budget
MINIFY_RESERVED_OUTPUT_TOKENS = 512


# =============================================================================
# Tokenizer / Models
# =============================================================================

TOKENIZER_FALLBACK_ENCODING = "cl100k_base"

DEFAULT_PROVIDER = "openai"
DEFAULT_MODEL = "gpt-4o-mini"
DEFAULT_ANTHROPIC_MODEL = "claude-3-5-haiku-latest"

# Context window sizes (tokens)
MODEL_CONTEXT_WINDOWS = {
    "gpt-3.5-turbo": 16385,
    "gpt-4": 8192,
    "gpt-4-32k": 32768,
    "gpt-4-turbo": 128000,
    "gpt-4o": 128000,
    "gpt-4o-mini": 128000,
    "claude-3-5-haiku-latest": 200000,
    "claude-3-5-sonnet-latest": 200000,
}
MODEL_CONTEXT_WINDOW_DEFAULT = 8192


# =============================================================================
# LLM Services
# =============================================================================

OPENAI_API_URL = "https://api.openai.com/v1/chat/completions"
ANTHROPIC_API_URL = "https://api.anthropic.com/v1/messages"
ANTHROPIC_API_VERSION = "2023-06-01"

LLM_MAX_OUTPUT_TOKENS = 512
LLM_TEMPERATURE = 0.2
LLM_REQUEST_TIMEOUT_SECONDS = 60.0


# =============================================================================
# Retry Defaults
# =============================================================================

RETRY_BASE_DELAY = 1.0  # seconds
RETRY_MAX_DELAY = 30.0  # seconds
RETRY_MAX_RETRIES = 3


# =============================================================================
# Git / Commit
# =============================================================================

GIT_DEFAULT_BRANCH = "docpilot-patch"
GIT_COMMAND_TIMEOUT_SECONDS = 30
COMMIT_MESSAGE = "docs: add missing documentation"
COMMIT_FOOTER = "This commit was created by docpilot."


# =============================================================================
# File Discovery
# =============================================================================

CONFIG_FILE_NAME = ".docpilot.yaml"

DEFAULT_EXCLUDE = (
    "**/.*/**",
    "**/dist/**",
    "**/node_modules/**",
    "**/vendor/**",
    "**/testdata/**",
    "**/test/**",
    "**/tests/**",
    "**/__pycache__/**",
    "**/venv/**",
)
