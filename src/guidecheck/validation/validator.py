"""Validates the code blocks embedded in guides."""

import logging
import os
import tempfile
import time
from collections.abc import Callable, Mapping
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

from guidecheck.core.config import GuidecheckConfig
from guidecheck.core.constants import EXAMPLE_MODE_ENV, BlockMode, ValidationStatus
from guidecheck.core.exceptions import RunnerError
from guidecheck.guides.catalog import GuideCatalog
from guidecheck.guides.parser import GuideParser, ParseError
from guidecheck.models.guide import CodeBlock
from guidecheck.models.result import ValidationResult, ValidationSummary
from guidecheck.validation.cache import ResultCache
from guidecheck.validation.classifier import BlockClassifier
from guidecheck.validation.harness import Harness
from guidecheck.validation.outcome import OutcomeAnalyzer
from guidecheck.validation.runners import RunnerRegistry

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[ValidationResult], None]


def build_environment(
    config: GuidecheckConfig, environ: Mapping[str, str] | None = None
) -> dict[str, str]:
    """Environment for snippet subprocesses."""
    env = dict(os.environ if environ is None else environ)
    env.update(EXAMPLE_MODE_ENV)
    if config.validation.test_mode:
        for key, value in config.validation.test_env.items():
            env.setdefault(key, value)
    env.update(config.validation.env_vars)
    return env


class CodeValidator:
    """Extracts, classifies, and runs guide code blocks."""

    def __init__(
        self,
        config: GuidecheckConfig | None = None,
        base_path: Path | None = None,
        registry: RunnerRegistry | None = None,
        cache: ResultCache | None = None,
        parser: GuideParser | None = None,
        environ: Mapping[str, str] | None = None,
    ) -> None:
        self._config = config or GuidecheckConfig()
        self._base_path = base_path or Path.cwd()
        self._registry = registry or RunnerRegistry()
        self._cache = cache
        self._parser = parser or GuideParser()
        self._env = build_environment(self._config, environ)

        validation = self._config.validation
        self._languages = tuple(self._registry.canonical(lang) for lang in validation.languages)
        self._classifier = BlockClassifier(
            languages=self._languages,
            execute_languages=tuple(
                self._registry.canonical(lang) for lang in validation.execute_languages
            ),
            executable=self._registry.executable_languages(),
        )
        self._harness = Harness(
            preludes=validation.preludes,
            setup_snippets=validation.setup_snippets,
            base_path=self._base_path,
        )
        self._analyzer = OutcomeAnalyzer(
            success_patterns=(),
            acceptable_failure_patterns=(),
            test_mode=validation.test_mode,
        )

        self._catalog: GuideCatalog | None = None
        self._load_errors: list[ParseError] = []
        self._results: list[ValidationResult] = []

    @property
    def guides_root(self) -> Path:
        return self._base_path / self._config.guides.root

    @property
    def catalog(self) -> GuideCatalog | None:
        """Catalog built by the last extract_code_blocks() call."""
        return self._catalog

    @property
    def load_errors(self) -> list[ParseError]:
        return self._load_errors

    @property
    def results(self) -> list[ValidationResult]:
        return self._results

    def extract_code_blocks(self, pattern: str | None = None) -> list[CodeBlock]:
        """Load guides and return the blocks of validated languages."""
        self._catalog = GuideCatalog(
            self.guides_root,
            pattern=pattern or self._config.guides.pattern,
            exclude=self._config.guides.exclude,
            parser=self._parser,
        )
        loaded = self._catalog.load()
        self._load_errors = loaded.errors

        blocks = [
            block
            for block in self._catalog.iter_code_blocks()
            if self._registry.canonical(block.language) in self._languages
        ]
        logger.info("Extracted %d code blocks from %d guides", len(blocks), len(loaded.guides))
        return blocks

    def validate_block(self, block: CodeBlock) -> ValidationResult:
        """Validate a single code block."""
        start = time.perf_counter()
        result = self._validate(block)
        result.code_block = block
        result.duration_ms = (time.perf_counter() - start) * 1000
        return result

    def validate_code_blocks(
        self,
        blocks: list[CodeBlock],
        progress: ProgressCallback | None = None,
    ) -> list[ValidationResult]:
        """Validate blocks in order, reusing cached passes for unchanged snippets."""
        results: list[ValidationResult | None] = [None] * len(blocks)
        pending: list[int] = []

        for index, block in enumerate(blocks):
            cached = self._from_cache(block)
            if cached is not None:
                results[index] = cached
                if progress:
                    progress(cached)
            else:
                pending.append(index)

        workers = max(1, self._config.validation.workers)
        if workers > 1 and len(pending) > 1:
            with ThreadPoolExecutor(max_workers=workers) as executor:
                computed = executor.map(self.validate_block, [blocks[i] for i in pending])
                for index, result in zip(pending, computed):
                    results[index] = self._record(blocks[index], result, progress)
        else:
            for index in pending:
                results[index] = self._record(blocks[index], self.validate_block(blocks[index]), progress)

        self._results = [r for r in results if r is not None]
        summary = self.summary()
        logger.info(
            "Validated %d blocks: %d passed, %d failed, %d skipped",
            summary.total,
            summary.passed,
            summary.failed,
            summary.skipped,
        )
        return self._results

    def summary(self) -> ValidationSummary:
        return ValidationSummary(results=list(self._results))

    def passed_gate(self, strict: bool = False) -> bool:
        """Success rate meets the threshold (and, in strict mode, nothing failed)."""
        summary = self.summary()
        if strict and summary.failed:
            return False
        return summary.meets_threshold(self._config.validation.min_success_rate)

    def _validate(self, block: CodeBlock) -> ValidationResult:
        language = self._registry.canonical(block.language)

        if block.marked_failed and self._config.validation.skip_marked:
            return self._skipped(block, "Marked as known failure")

        classification = self._classifier.classify(block, language)
        if classification.mode == BlockMode.SKIP:
            return self._skipped(block, classification.reason)

        runner = self._registry.get(language)
        if runner is None:
            return self._skipped(block, f"No runner for language: {language}")
        if not runner.available():
            return self._skipped(block, f"Interpreter for {language} not available")

        code = self._harness.build(block, language)
        timeout = self._config.validation.block_timeout

        try:
            syntax_error = runner.check_syntax(code, self._config.validation.syntax_timeout)
            if syntax_error:
                return ValidationResult(
                    status=ValidationStatus.FAILED,
                    subject=block.location,
                    message="Syntax errors found",
                    error=syntax_error,
                )

            if classification.mode == BlockMode.SYNTAX:
                return ValidationResult(
                    status=ValidationStatus.PASSED,
                    subject=block.location,
                    message=f"Syntax check passed ({classification.reason})",
                )

            with tempfile.TemporaryDirectory(prefix="guidecheck_") as tmp:
                script = Path(tmp) / f"code_block{runner.suffix}"
                script.write_text(code, encoding="utf-8")
                outcome = runner.execute(script, self._env, timeout, cwd=self._base_path)
        except RunnerError as e:
            return ValidationResult(
                status=ValidationStatus.FAILED,
                subject=block.location,
                message="Execution error",
                error=str(e),
            )

        return self._analyzer.analyze(block.location, outcome, timeout)

    def _skipped(self, block: CodeBlock, reason: str) -> ValidationResult:
        return ValidationResult(
            status=ValidationStatus.SKIPPED,
            subject=block.location,
            message=reason,
        )

    def _from_cache(self, block: CodeBlock) -> ValidationResult | None:
        if self._cache is None:
            return None
        if block.marked_failed and self._config.validation.skip_marked:
            return None

        fingerprint = self._fingerprint(block)
        if fingerprint is None:
            return None
        entry = self._cache.get(block.content_hash, fingerprint)
        if entry is None:
            return None
        return ValidationResult(
            status=ValidationStatus.PASSED,
            subject=block.location,
            message=f"{entry['message']} (cached)",
            output=entry["output"],
            code_block=block,
            cached=True,
        )

    def _record(
        self,
        block: CodeBlock,
        result: ValidationResult,
        progress: ProgressCallback | None,
    ) -> ValidationResult:
        fingerprint = None
        if self._cache is not None and result.status != ValidationStatus.SKIPPED:
            fingerprint = self._fingerprint(block)
        if fingerprint is not None:
            self._cache.put(
                block.content_hash,
                fingerprint,
                self._registry.canonical(block.language),
                result.status,
                result.message,
                output=result.output,
                location=block.location,
            )
        if progress:
            progress(result)
        return result

    def _fingerprint(self, block: CodeBlock) -> str | None:
        """Cache key part covering the harness, fence attributes and mode; None if skipped."""
        language = self._registry.canonical(block.language)
        classification = self._classifier.classify(block, language)
        if classification.mode == BlockMode.SKIP:
            return None
        return self._harness.fingerprint(
            language, classification.mode.value, *sorted(block.attributes)
        )
