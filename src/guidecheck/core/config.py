"""guidecheck configuration loading and validation."""

import json
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Self

from guidecheck.core.constants import (
    DEFAULT_ACCEPTABLE_FAILURE_PATTERNS,
    DEFAULT_BLOCK_TIMEOUT,
    DEFAULT_CONTRIBUTING_GUIDE,
    DEFAULT_EXAMPLE_TIMEOUT,
    DEFAULT_EXECUTE_LANGUAGES,
    DEFAULT_EXTERNAL_LINK_TIMEOUT,
    DEFAULT_GUIDE_PATTERN,
    DEFAULT_GUIDES_ROOT,
    DEFAULT_LANGUAGES,
    DEFAULT_MIN_SUCCESS_RATE,
    DEFAULT_REPORT_FILE,
    DEFAULT_SUCCESS_PATTERNS,
    DEFAULT_SYNTAX_TIMEOUT,
    DEFAULT_TEST_ENV,
    get_config_path,
)
from guidecheck.core.exceptions import ConfigurationError

VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


@dataclass(frozen=True)
class SetupSnippet:
    """Setup code injected ahead of a snippet that needs it."""

    pattern: str
    code: str
    unless: str | None = None
    language: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "pattern": self.pattern,
            "code": self.code,
            "unless": self.unless,
            "language": self.language,
        }


@dataclass(frozen=True)
class GuidesConfig:
    """Guide discovery configuration."""

    root: str = DEFAULT_GUIDES_ROOT
    pattern: str = DEFAULT_GUIDE_PATTERN
    exclude: tuple[str, ...] = ()
    contributing_guide: str = DEFAULT_CONTRIBUTING_GUIDE


@dataclass(frozen=True)
class ValidationConfig:
    """Code block validation configuration."""

    languages: tuple[str, ...] = DEFAULT_LANGUAGES
    execute_languages: tuple[str, ...] = DEFAULT_EXECUTE_LANGUAGES
    block_timeout: int = DEFAULT_BLOCK_TIMEOUT
    syntax_timeout: int = DEFAULT_SYNTAX_TIMEOUT
    min_success_rate: float = DEFAULT_MIN_SUCCESS_RATE
    skip_marked: bool = True
    workers: int = 1
    test_mode: bool = False
    ci_mode: bool = False
    env_vars: dict[str, str] = field(default_factory=dict)
    test_env: dict[str, str] = field(default_factory=lambda: dict(DEFAULT_TEST_ENV))
    preludes: dict[str, str] = field(default_factory=dict)
    setup_snippets: tuple[SetupSnippet, ...] = ()


@dataclass(frozen=True)
class ExamplesConfig:
    """Example script validation configuration."""

    directory: str = "examples"
    pattern: str = "*.py"
    timeout: int = DEFAULT_EXAMPLE_TIMEOUT
    skip_files: tuple[str, ...] = ()
    syntax_only_files: tuple[str, ...] = ()
    required_env: tuple[str, ...] = ()
    success_patterns: tuple[str, ...] = DEFAULT_SUCCESS_PATTERNS
    acceptable_failure_patterns: tuple[str, ...] = DEFAULT_ACCEPTABLE_FAILURE_PATTERNS
    validate_readme: bool = True
    report_file: str = DEFAULT_REPORT_FILE


@dataclass(frozen=True)
class LinksConfig:
    """Link integrity configuration."""

    check_external: bool = False
    external_timeout: float = DEFAULT_EXTERNAL_LINK_TIMEOUT
    ignore: tuple[str, ...] = ()
    html_aliases: bool = True


@dataclass(frozen=True)
class GuidecheckConfig:
    """Complete guidecheck configuration."""

    version: str = "1.0"
    log_level: str = "WARNING"
    guides: GuidesConfig = field(default_factory=GuidesConfig)
    validation: ValidationConfig = field(default_factory=ValidationConfig)
    examples: ExamplesConfig = field(default_factory=ExamplesConfig)
    links: LinksConfig = field(default_factory=LinksConfig)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Self:
        """Create config from dictionary."""
        validation = dict(data.get("validation", {}))
        if "setup_snippets" in validation:
            validation["setup_snippets"] = tuple(
                SetupSnippet(**snippet) for snippet in validation["setup_snippets"]
            )

        log_level = str(data.get("log_level", "WARNING")).upper()
        if log_level not in VALID_LOG_LEVELS:
            raise ValueError(f"log_level must be one of {', '.join(VALID_LOG_LEVELS)}")

        return cls(
            version=data.get("version", "1.0"),
            log_level=log_level,
            guides=GuidesConfig(**_tupled(data.get("guides", {}), ("exclude",))),
            validation=ValidationConfig(
                **_tupled(validation, ("languages", "execute_languages"))
            ),
            examples=ExamplesConfig(
                **_tupled(
                    data.get("examples", {}),
                    (
                        "skip_files",
                        "syntax_only_files",
                        "required_env",
                        "success_patterns",
                        "acceptable_failure_patterns",
                    ),
                )
            ),
            links=LinksConfig(**_tupled(data.get("links", {}), ("ignore",))),
        )

    @classmethod
    def load(cls, base_path: Path | None = None) -> Self:
        """Load configuration from file or use defaults."""
        config_path = get_config_path(base_path)

        if not config_path.exists():
            return cls()

        try:
            with open(config_path, "r", encoding="utf-8") as f:
                data = json.load(f)
            return cls.from_dict(data)
        except json.JSONDecodeError as e:
            raise ConfigurationError(
                f"Invalid JSON in config file: {e}",
                details={"path": str(config_path)},
            ) from e
        except (TypeError, ValueError) as e:
            raise ConfigurationError(
                f"Invalid configuration values: {e}",
                details={"path": str(config_path)},
            ) from e

    def with_env_overrides(self, environ: Mapping[str, str]) -> Self:
        """Apply EXAMPLE_TIMEOUT, CI, GUIDECHECK_TEST_MODE and GUIDE_PATTERN."""
        validation = self.validation
        examples = self.examples
        guides = self.guides

        if environ.get("CI", "false").lower() == "true":
            validation = replace(validation, ci_mode=True)
        if environ.get("GUIDECHECK_TEST_MODE", "false").lower() == "true":
            validation = replace(validation, test_mode=True)
        if environ.get("GUIDE_PATTERN"):
            guides = replace(guides, pattern=environ["GUIDE_PATTERN"])
        if environ.get("EXAMPLE_TIMEOUT"):
            try:
                timeout = int(environ["EXAMPLE_TIMEOUT"])
            except ValueError as e:
                raise ConfigurationError(
                    "EXAMPLE_TIMEOUT must be an integer",
                    details={"value": environ["EXAMPLE_TIMEOUT"]},
                ) from e
            examples = replace(examples, timeout=timeout)

        return replace(self, guides=guides, validation=validation, examples=examples)

    def to_dict(self) -> dict[str, Any]:
        """Convert config to dictionary."""
        return {
            "version": self.version,
            "log_level": self.log_level,
            "guides": {
                "root": self.guides.root,
                "pattern": self.guides.pattern,
                "exclude": list(self.guides.exclude),
                "contributing_guide": self.guides.contributing_guide,
            },
            "validation": {
                "languages": list(self.validation.languages),
                "execute_languages": list(self.validation.execute_languages),
                "block_timeout": self.validation.block_timeout,
                "syntax_timeout": self.validation.syntax_timeout,
                "min_success_rate": self.validation.min_success_rate,
                "skip_marked": self.validation.skip_marked,
                "workers": self.validation.workers,
                "test_mode": self.validation.test_mode,
                "ci_mode": self.validation.ci_mode,
                "env_vars": dict(self.validation.env_vars),
                "test_env": dict(self.validation.test_env),
                "preludes": dict(self.validation.preludes),
                "setup_snippets": [s.to_dict() for s in self.validation.setup_snippets],
            },
            "examples": {
                "directory": self.examples.directory,
                "pattern": self.examples.pattern,
                "timeout": self.examples.timeout,
                "skip_files": list(self.examples.skip_files),
                "syntax_only_files": list(self.examples.syntax_only_files),
                "required_env": list(self.examples.required_env),
                "success_patterns": list(self.examples.success_patterns),
                "acceptable_failure_patterns": list(self.examples.acceptable_failure_patterns),
                "validate_readme": self.examples.validate_readme,
                "report_file": self.examples.report_file,
            },
            "links": {
                "check_external": self.links.check_external,
                "external_timeout": self.links.external_timeout,
                "ignore": list(self.links.ignore),
                "html_aliases": self.links.html_aliases,
            },
        }

    def save(self, base_path: Path | None = None) -> None:
        """Save configuration to file."""
        config_path = get_config_path(base_path)
        config_path.parent.mkdir(parents=True, exist_ok=True)

        with open(config_path, "w", encoding="utf-8") as f:
            json.dump(self.to_dict(), f, indent=2)


def _tupled(section: dict[str, Any], keys: tuple[str, ...]) -> dict[str, Any]:
    """Convert JSON lists to tuples for the given keys."""
    result = dict(section)
    for key in keys:
        if key in result:
            value = result[key]
            if isinstance(value, str) or not isinstance(value, (list, tuple)):
                raise TypeError(f"'{key}' must be a list")
            result[key] = tuple(value)
    return result
