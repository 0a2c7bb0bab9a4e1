"""guidecheck core - constants, configuration, and exceptions."""

from guidecheck.core.config import (
    ExamplesConfig,
    GuidecheckConfig,
    GuidesConfig,
    LinksConfig,
    SetupSnippet,
    ValidationConfig,
)
from guidecheck.core.constants import BlockMode, LinkKind, ValidationStatus
from guidecheck.core.exceptions import (
    ConfigurationError,
    EnvironmentCheckError,
    GuidecheckError,
    GuideFileError,
    HarnessError,
    LinkCheckError,
    MarkerError,
    ParseError,
    RunnerError,
    RunnerNotAvailableError,
    StoreError,
    ValidationError,
    WatcherError,
)

__all__ = [
    # Enums
    "BlockMode",
    "LinkKind",
    "ValidationStatus",
    # Config
    "GuidecheckConfig",
    "GuidesConfig",
    "ValidationConfig",
    "ExamplesConfig",
    "LinksConfig",
    "SetupSnippet",
    # Exceptions
    "GuidecheckError",
    "ConfigurationError",
    "GuideFileError",
    "ParseError",
    "MarkerError",
    "ValidationError",
    "RunnerError",
    "RunnerNotAvailableError",
    "HarnessError",
    "EnvironmentCheckError",
    "LinkCheckError",
    "StoreError",
    "WatcherError",
]
