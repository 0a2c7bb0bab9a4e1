"""Pytest configuration and fixtures for guidecheck tests."""

import shutil
import tempfile
from pathlib import Path
from typing import Generator

import pytest

from guidecheck.core.config import GuidecheckConfig
from guidecheck.guides.parser import GuideParser, TokenCounter


class WordCounter(TokenCounter):
    """Token counter that counts words, so tests never fetch an encoding."""

    def count(self, text: str) -> int:
        return len(text.split())


@pytest.fixture(autouse=True)
def offline_token_counts(monkeypatch: pytest.MonkeyPatch) -> None:
    """Parsers built without an explicit counter count words too."""
    monkeypatch.setattr(TokenCounter, "count", WordCounter.count)


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    tmp = Path(tempfile.mkdtemp())
    yield tmp
    shutil.rmtree(tmp, ignore_errors=True)


@pytest.fixture
def guides_root(temp_dir: Path) -> Path:
    """Create an empty guides directory."""
    root = temp_dir / "source"
    root.mkdir()
    return root


@pytest.fixture
def config() -> GuidecheckConfig:
    """Create default configuration."""
    return GuidecheckConfig()


@pytest.fixture
def token_counter() -> TokenCounter:
    return WordCounter()


@pytest.fixture
def parser(token_counter: TokenCounter) -> GuideParser:
    """Create parser instance."""
    return GuideParser(token_counter=token_counter)


@pytest.fixture
def sample_guide_content() -> str:
    """Sample guide with frontmatter, headings, links and code blocks."""
    return """---
title: Getting Started
description: First steps
---

# Getting Started

Read the [configuration guide](configuration.md#settings) first, then come
back to [the basics](#basics).

## Basics

```python
print("hello from a guide")
```

```python
def helper(value):
    return value * 2
```

## Data

```json
{"name": "agent", "model": "gpt-4o"}
```

```text
plain output, never validated
```
"""


@pytest.fixture
def configuration_guide_content() -> str:
    return """# Configuration

## Settings

Settings live in a JSON file. See the [start](getting_started.md).

```python
raise RuntimeError("broken example")
```
"""


@pytest.fixture
def sample_guides(
    guides_root: Path,
    sample_guide_content: str,
    configuration_guide_content: str,
) -> Path:
    """Write two guides into the guides root and return the root."""
    (guides_root / "getting_started.md").write_text(sample_guide_content, encoding="utf-8")
    (guides_root / "configuration.md").write_text(configuration_guide_content, encoding="utf-8")
    return guides_root
