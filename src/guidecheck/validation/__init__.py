"""guidecheck validation module - classification, execution, and reporting."""

from guidecheck.validation.cache import ResultCache
from guidecheck.validation.classifier import BlockClassifier, Classification
from guidecheck.validation.examples import ExampleValidator
from guidecheck.validation.harness import Harness
from guidecheck.validation.outcome import OutcomeAnalyzer, extract_key_output
from guidecheck.validation.report import build_report, write_report
from guidecheck.validation.runners import (
    ExecutionOutcome,
    LanguageRunner,
    RunnerRegistry,
)
from guidecheck.validation.validator import CodeValidator

__all__ = [
    # Classification
    "BlockClassifier",
    "Classification",
    # Execution
    "Harness",
    "LanguageRunner",
    "RunnerRegistry",
    "ExecutionOutcome",
    "OutcomeAnalyzer",
    "extract_key_output",
    # Validators
    "CodeValidator",
    "ExampleValidator",
    # Cache and reports
    "ResultCache",
    "build_report",
    "write_report",
]
