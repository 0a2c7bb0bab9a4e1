"""guidecheck constants and default values."""

import re
from enum import Enum
from pathlib import Path
from typing import Final


class ValidationStatus(str, Enum):
    """Outcome of validating a code block or example file."""

    PASSED = "passed"
    FAILED = "failed"
    SKIPPED = "skipped"
    WARNING = "warning"


class BlockMode(str, Enum):
    """What the validator does with a code block."""

    SKIP = "skip"
    SYNTAX = "syntax"
    EXECUTE = "execute"


class LinkKind(str, Enum):
    """Category of a link found in a guide."""

    EXTERNAL = "external"
    ANCHOR = "anchor"
    RELATIVE = "relative"
    MAILTO = "mailto"
    OTHER = "other"


# Directory structure
STATE_DIR: Final[str] = ".guidecheck"
CONFIG_FILE: Final[str] = "config.json"
RESULTS_DB: Final[str] = "results.db"

# Guide discovery
DEFAULT_GUIDES_ROOT: Final[str] = "source"
DEFAULT_GUIDE_PATTERN: Final[str] = "*.md"
GUIDE_FILE_EXTENSION: Final[str] = ".md"
DEFAULT_CONTRIBUTING_GUIDE: Final[str] = "contributing.md"
README_FILE: Final[str] = "README.md"

# Timeouts (seconds)
DEFAULT_BLOCK_TIMEOUT: Final[int] = 10
DEFAULT_SYNTAX_TIMEOUT: Final[int] = 10
DEFAULT_EXAMPLE_TIMEOUT: Final[int] = 30
DEFAULT_EXTERNAL_LINK_TIMEOUT: Final[float] = 5.0

# Gate
DEFAULT_MIN_SUCCESS_RATE: Final[float] = 80.0

# Watch mode
DEFAULT_DEBOUNCE_MS: Final[int] = 300

# Reports
DEFAULT_REPORT_FILE: Final[str] = "example_validation_report.json"
KEY_OUTPUT_LINES: Final[int] = 3

# Languages validated when nothing is configured
DEFAULT_LANGUAGES: Final[tuple[str, ...]] = ("ruby", "python", "bash", "json", "yaml")

# Languages whose blocks are executed (the rest are syntax-checked only)
DEFAULT_EXECUTE_LANGUAGES: Final[tuple[str, ...]] = ("ruby", "python")

# Info-string attributes controlling validation
SKIP_ATTRIBUTES: Final[frozenset[str]] = frozenset({"ignore", "skip", "no-validate"})
SYNTAX_ONLY_ATTRIBUTES: Final[frozenset[str]] = frozenset({"no_run", "no-run", "syntax-only"})

# Environment markers set for every executed snippet
EXAMPLE_MODE_ENV: Final[dict[str, str]] = {
    "GUIDECHECK_EXAMPLE_MODE": "true",
    "RAAF_EXAMPLE_MODE": "true",
    "RAAF_LOG_LEVEL": "warn",
}

# Dummy credentials exported in test mode
DEFAULT_TEST_ENV: Final[dict[str, str]] = {
    "OPENAI_API_KEY": "test-api-key-for-validation",
    "TAVILY_API_KEY": "test-tavily-key-for-validation",
    "ANTHROPIC_API_KEY": "test-anthropic-key-for-validation",
    "RAAF_TEST_MODE": "true",
    "RAAF_MOCK_RESPONSES": "true",
}

# =============================================================================
# Failure markers
# =============================================================================

MARKER_COMMENT_TEMPLATE: Final[str] = "<!-- VALIDATION_FAILED: {location} -->"
MARKER_WARNING_TEMPLATE: Final[str] = (
    "WARNING: **EXAMPLE VALIDATION FAILED** - This example needs work and "
    "contributions are welcome! Please see [Contributing]({contributing}) "
    "for guidance. Error: {error}"
)

MARKER_COMMENT_RE: Final[re.Pattern[str]] = re.compile(
    r"^<!-- VALIDATION_FAILED: .+ -->$"
)
MARKER_WARNING_RE: Final[re.Pattern[str]] = re.compile(
    r"^(?:WARNING: \*\*(?:EXAMPLE )?VALIDATION FAILED\*\*|❌ \*\*VALIDATION FAILED\*\*)"
)

# =============================================================================
# Outcome analysis patterns
# =============================================================================

DEFAULT_SUCCESS_PATTERNS: Final[tuple[str, ...]] = (
    r"(?i)Created agent:",
    r"(?i)=== .* Example",
    r"Conversation:",
    r"SYSTEM:",
    r"USER:",
    r"✓",
    r"(?i)agents in \d+\.\d+ seconds",
)

DEFAULT_ACCEPTABLE_FAILURE_PATTERNS: Final[tuple[str, ...]] = (
    r"(?i)Missing required environment",
    r"(?i)API key not set",
    r"(?i)requires.*setup",
    r"(?i)Invalid API key",
    r"AuthenticationError",
    r"(?i)Authentication failed",
)

AUTH_ERROR_PATTERNS: Final[tuple[str, ...]] = (
    r"(?i)Invalid API key",
    r"AuthenticationError",
    r"\b401\b",
    r"(?i)Unauthorized",
    r"(?i)Authentication failed",
    r"(?i)API key.*not.*set",
    r"(?i)Missing.*API.*key",
)

# Ordered (pattern, reason) table; first match wins
SKIP_REASONS: Final[tuple[tuple[str, str], ...]] = (
    (
        r"(?i)Missing required environment.*OPENAI_API_KEY|OPENAI_API_KEY.*not set",
        "Skipped: OPENAI_API_KEY not configured",
    ),
    (
        r"(?i)Missing required environment.*TAVILY_API_KEY|TAVILY_API_KEY.*not set",
        "Skipped: TAVILY_API_KEY not configured",
    ),
    (
        r"(?i)Missing required environment.*ANTHROPIC_API_KEY|ANTHROPIC_API_KEY.*not set",
        "Skipped: ANTHROPIC_API_KEY not configured",
    ),
    (r"(?i)API key not set|Missing.*API.*key", "Skipped: Required API key not configured"),
    (
        r"(?i)Invalid API key|AuthenticationError|\b401\b|Unauthorized",
        "Skipped: Authentication failed (invalid or missing API key)",
    ),
    (r"(?i)requires.*setup", "Skipped: Additional setup required"),
    (r"(?i)Missing required environment", "Skipped: Required environment variable not set"),
)
GENERIC_SKIP_REASON: Final[str] = "Skipped: Configuration or dependency issue"

# Output lines ignored when extracting key output
NOISE_OUTPUT_RE: Final[re.Pattern[str]] = re.compile(r"(?i)bundler|loading")


def get_state_root(base_path: Path | None = None) -> Path:
    """Get the .guidecheck state directory path."""
    if base_path is None:
        base_path = Path.cwd()
    return base_path / STATE_DIR


def get_config_path(base_path: Path | None = None) -> Path:
    """Get the configuration file path."""
    return get_state_root(base_path) / CONFIG_FILE


def get_results_db_path(base_path: Path | None = None) -> Path:
    """Get the result cache database path."""
    return get_state_root(base_path) / RESULTS_DB
