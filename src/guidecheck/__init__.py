"""guidecheck - code sample and link validation for Markdown guides.

Extracts fenced code blocks from a tree of guides, syntax checks and runs
them, marks the ones that fail, and checks that the links between guides
still resolve.
"""

__version__ = "0.1.0"

from guidecheck.core import (
    BlockMode,
    GuidecheckConfig,
    GuidecheckError,
    ValidationStatus,
)

__all__ = [
    "__version__",
    # Core enums
    "BlockMode",
    "ValidationStatus",
    # Config
    "GuidecheckConfig",
    # Base exception
    "GuidecheckError",
]
