"""Tests for configuration loading and overrides."""

import json
from pathlib import Path

import pytest

from guidecheck.core.config import GuidecheckConfig, SetupSnippet
from guidecheck.core.constants import (
    DEFAULT_BLOCK_TIMEOUT,
    DEFAULT_MIN_SUCCESS_RATE,
    get_config_path,
)
from guidecheck.core.exceptions import ConfigurationError


class TestDefaults:
    """Tests for default configuration values."""

    def test_defaults(self) -> None:
        config = GuidecheckConfig()

        assert config.guides.root == "source"
        assert config.guides.pattern == "*.md"
        assert config.validation.block_timeout == DEFAULT_BLOCK_TIMEOUT
        assert config.validation.min_success_rate == DEFAULT_MIN_SUCCESS_RATE
        assert config.validation.skip_marked is True
        assert config.examples.timeout == 30
        assert config.examples.report_file == "example_validation_report.json"
        assert config.links.check_external is False

    def test_test_env_has_dummy_keys(self) -> None:
        config = GuidecheckConfig()
        assert "OPENAI_API_KEY" in config.validation.test_env


class TestSerialization:
    """Tests for dict and file round trips."""

    def test_from_dict_converts_lists(self) -> None:
        config = GuidecheckConfig.from_dict(
            {
                "guides": {"root": "docs", "exclude": ["drafts/*"]},
                "validation": {
                    "languages": ["python"],
                    "setup_snippets": [{"pattern": "Agent", "code": "import agents"}],
                },
                "links": {"ignore": ["https://example.com/*"]},
            }
        )

        assert config.guides.root == "docs"
        assert config.guides.exclude == ("drafts/*",)
        assert config.validation.languages == ("python",)
        assert config.validation.setup_snippets == (
            SetupSnippet(pattern="Agent", code="import agents"),
        )
        assert config.links.ignore == ("https://example.com/*",)

    def test_from_dict_rejects_bad_log_level(self) -> None:
        with pytest.raises(ValueError):
            GuidecheckConfig.from_dict({"log_level": "LOUD"})

    def test_from_dict_rejects_string_for_list(self) -> None:
        with pytest.raises(TypeError):
            GuidecheckConfig.from_dict({"guides": {"exclude": "drafts/*"}})

    def test_save_and_load(self, temp_dir: Path) -> None:
        original = GuidecheckConfig.from_dict(
            {"guides": {"root": "guides"}, "validation": {"workers": 4}}
        )
        original.save(temp_dir)

        loaded = GuidecheckConfig.load(temp_dir)

        assert loaded == original
        assert get_config_path(temp_dir).exists()

    def test_load_missing_file_gives_defaults(self, temp_dir: Path) -> None:
        assert GuidecheckConfig.load(temp_dir) == GuidecheckConfig()

    def test_load_invalid_json(self, temp_dir: Path) -> None:
        path = get_config_path(temp_dir)
        path.parent.mkdir(parents=True)
        path.write_text("{not json")

        with pytest.raises(ConfigurationError, match="Invalid JSON"):
            GuidecheckConfig.load(temp_dir)

    def test_load_unknown_key(self, temp_dir: Path) -> None:
        path = get_config_path(temp_dir)
        path.parent.mkdir(parents=True)
        path.write_text(json.dumps({"guides": {"nonsense": True}}))

        with pytest.raises(ConfigurationError, match="Invalid configuration values"):
            GuidecheckConfig.load(temp_dir)


class TestEnvironmentOverrides:
    """Tests for with_env_overrides."""

    def test_ci_and_test_mode(self) -> None:
        config = GuidecheckConfig().with_env_overrides(
            {"CI": "true", "GUIDECHECK_TEST_MODE": "true"}
        )
        assert config.validation.ci_mode is True
        assert config.validation.test_mode is True

    def test_pattern_and_timeout(self) -> None:
        config = GuidecheckConfig().with_env_overrides(
            {"GUIDE_PATTERN": "*_guide.md", "EXAMPLE_TIMEOUT": "45"}
        )
        assert config.guides.pattern == "*_guide.md"
        assert config.examples.timeout == 45

    def test_invalid_timeout(self) -> None:
        with pytest.raises(ConfigurationError):
            GuidecheckConfig().with_env_overrides({"EXAMPLE_TIMEOUT": "soon"})

    def test_no_overrides(self) -> None:
        assert GuidecheckConfig().with_env_overrides({}) == GuidecheckConfig()
