"""Assembles the program that is actually run for a snippet."""

import hashlib
import logging
import re
from pathlib import Path

from guidecheck.core.config import SetupSnippet
from guidecheck.core.exceptions import HarnessError
from guidecheck.models.guide import CodeBlock

logger = logging.getLogger(__name__)


class Harness:
    """Prepends per-language preludes and pattern-triggered setup code."""

    def __init__(
        self,
        preludes: dict[str, str] | None = None,
        setup_snippets: tuple[SetupSnippet, ...] | list[SetupSnippet] = (),
        base_path: Path | None = None,
    ) -> None:
        """
        Args:
            preludes: Language to prelude file path (relative to base_path)
            setup_snippets: Setup code injected when its pattern matches
            base_path: Directory prelude paths are resolved against
        """
        self._preludes = dict(preludes or {})
        self._snippets = tuple(setup_snippets)
        self._base_path = base_path or Path.cwd()
        self._prelude_cache: dict[str, str] = {}

    def build(self, block: CodeBlock, language: str | None = None) -> str:
        """Return prelude + triggered setup + snippet code."""
        language = language or block.language
        parts: list[str] = []

        prelude = self.prelude(language)
        if prelude:
            parts.append(prelude.rstrip("\n") + "\n")

        for snippet in self.triggered(block.content, language):
            parts.append(snippet.code.rstrip("\n") + "\n")

        parts.append(block.content)
        return "".join(parts)

    def prelude(self, language: str) -> str:
        """Load the prelude for a language, or an empty string."""
        if language in self._prelude_cache:
            return self._prelude_cache[language]

        configured = self._preludes.get(language)
        if not configured:
            return ""

        path = Path(configured)
        if not path.is_absolute():
            path = self._base_path / path
        try:
            text = path.read_text(encoding="utf-8")
        except OSError as e:
            raise HarnessError(
                f"Cannot read prelude for {language}: {e}",
                details={"path": str(path)},
            ) from e

        self._prelude_cache[language] = text
        return text

    def triggered(self, code: str, language: str) -> list[SetupSnippet]:
        """Setup snippets whose pattern appears and whose `unless` does not."""
        selected = []
        for snippet in self._snippets:
            if snippet.language and snippet.language != language:
                continue
            try:
                if not re.search(snippet.pattern, code, re.MULTILINE):
                    continue
                if snippet.unless and re.search(snippet.unless, code, re.MULTILINE):
                    continue
            except re.error as e:
                raise HarnessError(
                    f"Invalid setup snippet pattern: {e}",
                    details={"pattern": snippet.pattern},
                ) from e
            selected.append(snippet)
        return selected

    def fingerprint(self, language: str, *extra: str) -> str:
        """Hash of everything besides the snippet that affects a run, plus `extra`."""
        digest = hashlib.sha256()
        digest.update(language.encode("utf-8"))
        for part in extra:
            digest.update(b"\0" + part.encode("utf-8"))
        digest.update(self.prelude(language).encode("utf-8"))
        for snippet in self._snippets:
            if snippet.language in (None, language):
                digest.update(repr(snippet.to_dict()).encode("utf-8"))
        return digest.hexdigest()[:16]
