"""
Validation of a package's standalone example scripts and README snippets.

Every script in the examples directory is syntax checked and, unless listed in
``syntax_only_files``, executed. A clean exit without any recognised success
output is a warning rather than a pass; failures caused by missing credentials
or services are skipped with a reason.
"""

import logging
import os
from collections.abc import Callable, Mapping
from dataclasses import replace
from pathlib import Path
from typing import Any

from guidecheck.core.config import GuidecheckConfig
from guidecheck.core.constants import README_FILE, ValidationStatus
from guidecheck.core.exceptions import EnvironmentCheckError, RunnerError
from guidecheck.models.result import ValidationResult, ValidationSummary
from guidecheck.validation.outcome import OutcomeAnalyzer
from guidecheck.validation.runners import RunnerRegistry
from guidecheck.validation.validator import CodeValidator, build_environment

logger = logging.getLogger(__name__)


class ExampleValidator:
    """Runs the example scripts that ship with a package."""

    def __init__(
        self,
        name: str,
        directory: Path,
        config: GuidecheckConfig | None = None,
        registry: RunnerRegistry | None = None,
        environ: Mapping[str, str] | None = None,
    ) -> None:
        self._name = name
        self._directory = Path(directory)
        self._config = config or GuidecheckConfig()
        self._registry = registry or RunnerRegistry()
        self._environ = dict(os.environ if environ is None else environ)
        self._env = build_environment(self._config, self._environ)
        self._analyzer = OutcomeAnalyzer(
            success_patterns=self._config.examples.success_patterns,
            acceptable_failure_patterns=self._config.examples.acceptable_failure_patterns,
            test_mode=self._config.validation.test_mode,
            require_success_pattern=True,
        )
        self._results: list[ValidationResult] = []

    @property
    def name(self) -> str:
        return self._name

    @property
    def directory(self) -> Path:
        return self._directory

    @property
    def examples_dir(self) -> Path:
        return self._directory / self._config.examples.directory

    @property
    def results(self) -> list[ValidationResult]:
        return self._results

    def check_environment(self) -> dict[str, bool]:
        """
        Check the package directory and required environment variables.

        Returns:
            Mapping of required variable name to whether it is set

        Raises:
            EnvironmentCheckError: If the directory is missing, or a required
                variable is missing in CI mode outside test mode
        """
        if not self._directory.is_dir():
            raise EnvironmentCheckError(
                f"Not a package directory: {self._directory}",
                details={"directory": str(self._directory)},
            )

        validation = self._config.validation
        present = {
            var: bool(self._env.get(var)) for var in self._config.examples.required_env
        }
        if validation.test_mode:
            logger.info("Test mode enabled; dummy credentials are provided")
            return present

        missing = [var for var, ok in present.items() if not ok]
        if missing and validation.ci_mode:
            raise EnvironmentCheckError(
                "Required environment variables missing in CI mode "
                "(set GUIDECHECK_TEST_MODE=true to use dummy credentials)",
                missing=missing,
            )
        for var in missing:
            logger.warning("%s is not set; some examples may be skipped", var)
        return present

    def example_files(self) -> list[Path]:
        if not self.examples_dir.is_dir():
            logger.info("No examples directory found for %s", self._name)
            return []
        return sorted(p for p in self.examples_dir.glob(self._config.examples.pattern) if p.is_file())

    def validate_example_file(self, path: Path) -> ValidationResult:
        """Validate one example script and record the result."""
        result = self._validate_file(Path(path))
        self._results.append(result)
        return result

    def validate_readme(self) -> list[ValidationResult]:
        """Validate the code blocks of the package README."""
        readme = self._directory / README_FILE
        if not readme.is_file():
            return []

        config = replace(
            self._config,
            guides=replace(self._config.guides, root=".", pattern=README_FILE, exclude=()),
        )
        validator = CodeValidator(
            config,
            base_path=self._directory,
            registry=self._registry,
            environ=self._environ,
        )
        blocks = validator.extract_code_blocks()
        if not blocks:
            logger.info("No code blocks found in %s", readme)
            return []

        results = validator.validate_code_blocks(blocks)
        self._results.extend(results)
        return results

    def run(
        self, progress: Callable[[ValidationResult], None] | None = None
    ) -> dict[str, list[ValidationResult]]:
        """Check the environment, then validate every example and the README."""
        self._results = []
        self.check_environment()

        for path in self.example_files():
            result = self.validate_example_file(path)
            if progress:
                progress(result)

        if self._config.examples.validate_readme:
            for result in self.validate_readme():
                if progress:
                    progress(result)

        return self.summary().by_status()

    def summary(self) -> ValidationSummary:
        return ValidationSummary(results=list(self._results))

    def statistics(self) -> dict[str, Any]:
        return self.summary().to_dict()

    def exit_code(self) -> int:
        return 1 if self.summary().failed else 0

    def _validate_file(self, path: Path) -> ValidationResult:
        filename = path.name
        examples = self._config.examples

        if filename in examples.skip_files:
            return self._result(ValidationStatus.SKIPPED, filename, "Explicitly skipped in configuration")

        runner = self._registry.for_path(path)
        if runner is None:
            return self._result(ValidationStatus.SKIPPED, filename, f"No runner for {path.suffix} files")
        if not runner.available():
            return self._result(
                ValidationStatus.SKIPPED, filename, f"Interpreter for {runner.name} not available"
            )

        try:
            code = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            return self._result(ValidationStatus.FAILED, filename, "Cannot read example", error=str(e))

        try:
            syntax_error = runner.check_syntax(code, self._config.validation.syntax_timeout)
            if syntax_error:
                return self._result(
                    ValidationStatus.FAILED, filename, "Syntax errors found", error=syntax_error
                )
            if filename in examples.syntax_only_files or not runner.executable:
                return self._result(ValidationStatus.PASSED, filename, "Syntax check passed")

            outcome = runner.execute(path, self._env, examples.timeout, cwd=self._directory)
        except RunnerError as e:
            return self._result(ValidationStatus.FAILED, filename, "Execution error", error=str(e))

        result = self._analyzer.analyze(filename, outcome, examples.timeout)
        if result.status == ValidationStatus.PASSED:
            result.message = "Executed successfully with expected output"
        return result

    def _result(
        self, status: ValidationStatus, subject: str, message: str, error: str | None = None
    ) -> ValidationResult:
        return ValidationResult(status=status, subject=subject, message=message, error=error)
