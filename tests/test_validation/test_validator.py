"""Tests for the guide code block validator."""

from dataclasses import replace
from pathlib import Path

import pytest

from guidecheck.core.config import GuidecheckConfig
from guidecheck.core.constants import ValidationStatus
from guidecheck.guides.parser import GuideParser
from guidecheck.validation.cache import ResultCache
from guidecheck.validation.runners import PythonRunner, RubyRunner, RunnerRegistry
from guidecheck.validation.validator import CodeValidator, build_environment


def _validator(
    base: Path,
    parser: GuideParser,
    config: GuidecheckConfig | None = None,
    **kwargs,
) -> CodeValidator:
    return CodeValidator(config or GuidecheckConfig(), base_path=base, parser=parser, **kwargs)


def _with_validation(config: GuidecheckConfig, **changes) -> GuidecheckConfig:
    return replace(config, validation=replace(config.validation, **changes))


class TestExtraction:
    """Tests for extract_code_blocks."""

    def test_only_validated_languages(self, sample_guides: Path, parser: GuideParser) -> None:
        validator = _validator(sample_guides.parent, parser)

        blocks = validator.extract_code_blocks()

        assert [b.language for b in blocks] == ["python", "python", "python", "json"]
        assert validator.catalog is not None
        assert validator.load_errors == []

    def test_pattern(self, sample_guides: Path, parser: GuideParser) -> None:
        validator = _validator(sample_guides.parent, parser)

        blocks = validator.extract_code_blocks("configuration.md")

        assert [b.file for b in blocks] == ["configuration.md"]

    def test_aliases_resolved(self, guides_root: Path, parser: GuideParser) -> None:
        (guides_root / "a.md").write_text("# A\n\n```py\nprint(1)\n```\n")
        validator = _validator(guides_root.parent, parser)

        assert len(validator.extract_code_blocks()) == 1


class TestValidation:
    """Tests for validate_block and validate_code_blocks."""

    def test_sample_guides(self, sample_guides: Path, parser: GuideParser) -> None:
        validator = _validator(sample_guides.parent, parser)
        blocks = validator.extract_code_blocks()

        results = validator.validate_code_blocks(blocks)

        assert [r.status for r in results] == [
            ValidationStatus.FAILED,
            ValidationStatus.PASSED,
            ValidationStatus.PASSED,
            ValidationStatus.PASSED,
        ]
        failed = results[0]
        assert failed.subject == "configuration.md:8"
        assert failed.error == "RuntimeError: broken example"
        assert results[1].message == "Executed successfully"
        assert results[1].output == "hello from a guide"
        assert results[2].message.startswith("Syntax check passed")
        assert all(r.code_block is not None for r in results)

        summary = validator.summary()
        assert summary.success_rate == 75.0
        assert not validator.passed_gate()

    def test_gate_threshold(self, sample_guides: Path, parser: GuideParser) -> None:
        config = _with_validation(GuidecheckConfig(), min_success_rate=70.0)
        validator = _validator(sample_guides.parent, parser, config)
        validator.validate_code_blocks(validator.extract_code_blocks())

        assert validator.passed_gate()
        assert not validator.passed_gate(strict=True)

    def test_syntax_error(self, guides_root: Path, parser: GuideParser) -> None:
        (guides_root / "a.md").write_text("# A\n\n```python\nprint('unclosed\n```\n")
        validator = _validator(guides_root.parent, parser)

        result = validator.validate_block(validator.extract_code_blocks()[0])

        assert result.status == ValidationStatus.FAILED
        assert result.message == "Syntax errors found"
        assert result.duration_ms >= 0

    def test_invalid_json(self, guides_root: Path, parser: GuideParser) -> None:
        (guides_root / "a.md").write_text('# A\n\n```json\n{"a": 1,}\n```\n')
        validator = _validator(guides_root.parent, parser)

        result = validator.validate_block(validator.extract_code_blocks()[0])

        assert result.status == ValidationStatus.FAILED
        assert result.error.startswith("Invalid JSON")

    def test_marked_blocks(self, guides_root: Path, parser: GuideParser) -> None:
        (guides_root / "a.md").write_text(
            "# A\n\n<!-- VALIDATION_FAILED: a.md:6 -->\n\n```python\nprint('fixed now')\n```\n"
        )

        skipping = _validator(guides_root.parent, parser)
        running = _validator(
            guides_root.parent, parser, _with_validation(GuidecheckConfig(), skip_marked=False)
        )

        skipped = skipping.validate_block(skipping.extract_code_blocks()[0])
        ran = running.validate_block(running.extract_code_blocks()[0])

        assert skipped.status == ValidationStatus.SKIPPED
        assert skipped.message == "Marked as known failure"
        assert ran.status == ValidationStatus.PASSED

    def test_unavailable_interpreter(self, guides_root: Path, parser: GuideParser) -> None:
        class MissingRuby(RubyRunner):
            interpreter = "definitely-not-ruby"

        (guides_root / "a.md").write_text("# A\n\n```ruby\nputs 1\n```\n")
        registry = RunnerRegistry([PythonRunner(), MissingRuby()])
        validator = _validator(guides_root.parent, parser, registry=registry)

        result = validator.validate_block(validator.extract_code_blocks()[0])

        assert result.status == ValidationStatus.SKIPPED
        assert result.message == "Interpreter for ruby not available"

    def test_classifier_skip(self, guides_root: Path, parser: GuideParser) -> None:
        (guides_root / "a.md").write_text("# A\n\n```python skip\nraise SystemExit(1)\n```\n")
        validator = _validator(guides_root.parent, parser)

        result = validator.validate_block(validator.extract_code_blocks()[0])

        assert result.status == ValidationStatus.SKIPPED
        assert result.message == "Skipped by fence attribute"

    def test_prelude_and_env(self, guides_root: Path, parser: GuideParser) -> None:
        base = guides_root.parent
        (base / "prelude.py").write_text("import os\nGREETING = 'hi'\n")
        (guides_root / "a.md").write_text(
            "# A\n\n```python\n"
            "assert os.environ['GUIDECHECK_EXAMPLE_MODE'] == 'true'\n"
            "print(GREETING, os.environ['PROJECT_FLAG'])\n"
            "```\n"
        )
        config = _with_validation(
            GuidecheckConfig(),
            preludes={"python": "prelude.py"},
            env_vars={"PROJECT_FLAG": "on"},
        )
        validator = _validator(base, parser, config)

        result = validator.validate_block(validator.extract_code_blocks()[0])

        assert result.status == ValidationStatus.PASSED
        assert result.output == "hi on"

    def test_workers_preserve_order(self, guides_root: Path, parser: GuideParser) -> None:
        body = "# A\n\n" + "".join(f"```python\nprint({i})\n```\n\n" for i in range(6))
        (guides_root / "a.md").write_text(body)
        config = _with_validation(GuidecheckConfig(), workers=3)
        validator = _validator(guides_root.parent, parser, config)
        seen: list[str] = []

        results = validator.validate_code_blocks(
            validator.extract_code_blocks(), progress=lambda r: seen.append(r.subject)
        )

        assert [r.output for r in results] == [str(i) for i in range(6)]
        assert sorted(seen) == sorted(r.subject for r in results)


class TestCaching:
    """Tests for result cache integration."""

    @pytest.fixture
    def cache(self, temp_dir: Path):
        cache = ResultCache(temp_dir / "cache" / "results.db")
        cache.initialize()
        yield cache
        cache.close()

    def test_passes_are_reused(
        self, sample_guides: Path, parser: GuideParser, cache: ResultCache
    ) -> None:
        first = _validator(sample_guides.parent, parser, cache=cache)
        first.validate_code_blocks(first.extract_code_blocks())

        second = _validator(sample_guides.parent, parser, cache=cache)
        results = second.validate_code_blocks(second.extract_code_blocks())

        assert [r.cached for r in results] == [False, True, True, True]
        assert results[1].message.endswith("(cached)")
        assert results[0].status == ValidationStatus.FAILED
        assert cache.stats()["entries"] == 3

    def test_harness_change_invalidates(
        self, sample_guides: Path, parser: GuideParser, cache: ResultCache
    ) -> None:
        base = sample_guides.parent
        first = _validator(base, parser, cache=cache)
        first.validate_code_blocks(first.extract_code_blocks())

        (base / "prelude.py").write_text("VALUE = 1\n")
        config = _with_validation(GuidecheckConfig(), preludes={"python": "prelude.py"})
        second = _validator(base, parser, config, cache=cache)
        results = second.validate_code_blocks(second.extract_code_blocks())

        python_results = [r for r in results if r.code_block.language == "python"]
        assert not any(r.cached for r in python_results)

    def test_syntax_only_pass_not_reused_when_run(
        self, guides_root: Path, parser: GuideParser, cache: ResultCache
    ) -> None:
        guide = guides_root / "a.md"
        guide.write_text("# A\n\n```python no_run\nraise SystemExit(3)\n```\n")
        first = _validator(guides_root.parent, parser, cache=cache)
        checked = first.validate_code_blocks(first.extract_code_blocks())
        assert checked[0].status == ValidationStatus.PASSED

        guide.write_text("# A\n\n```python\nraise SystemExit(3)\n```\n")
        second = _validator(guides_root.parent, parser, cache=cache)
        results = second.validate_code_blocks(second.extract_code_blocks())

        assert results[0].status == ValidationStatus.FAILED
        assert not results[0].cached

    def test_enabling_execution_invalidates(
        self, guides_root: Path, parser: GuideParser, cache: ResultCache
    ) -> None:
        (guides_root / "a.md").write_text("# A\n\n```python\nraise SystemExit(3)\n```\n")
        syntax_only = _with_validation(GuidecheckConfig(), execute_languages=())
        first = _validator(guides_root.parent, parser, syntax_only, cache=cache)
        assert first.validate_code_blocks(first.extract_code_blocks())[0].status == (
            ValidationStatus.PASSED
        )

        second = _validator(guides_root.parent, parser, cache=cache)
        results = second.validate_code_blocks(second.extract_code_blocks())

        assert results[0].status == ValidationStatus.FAILED
        assert not results[0].cached


class TestEnvironment:
    """Tests for build_environment."""

    def test_example_mode_flags(self) -> None:
        env = build_environment(GuidecheckConfig(), {"PATH": "/bin"})

        assert env["PATH"] == "/bin"
        assert env["GUIDECHECK_EXAMPLE_MODE"] == "true"
        assert "OPENAI_API_KEY" not in env

    def test_test_mode_keeps_real_keys(self) -> None:
        config = _with_validation(GuidecheckConfig(), test_mode=True)

        env = build_environment(config, {"OPENAI_API_KEY": "real"})

        assert env["OPENAI_API_KEY"] == "real"
        assert env["ANTHROPIC_API_KEY"] == config.validation.test_env["ANTHROPIC_API_KEY"]

    def test_env_vars_win(self) -> None:
        config = _with_validation(GuidecheckConfig(), env_vars={"GUIDECHECK_EXAMPLE_MODE": "false"})
        assert build_environment(config, {})["GUIDECHECK_EXAMPLE_MODE"] == "false"
