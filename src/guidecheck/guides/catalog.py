"""Guide discovery and loading."""

import fnmatch
import logging
from collections.abc import Iterator
from dataclasses import dataclass, field
from pathlib import Path

from guidecheck.core.constants import DEFAULT_GUIDE_PATTERN
from guidecheck.core.exceptions import GuideFileError, ParseError
from guidecheck.guides.parser import GuideParser, ParseWarning
from guidecheck.models.guide import CodeBlock, Guide

logger = logging.getLogger(__name__)


@dataclass
class LoadResult:
    """Outcome of loading every guide in a catalog."""

    guides: list[Guide] = field(default_factory=list)
    warnings: list[ParseWarning] = field(default_factory=list)
    errors: list[ParseError] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.errors


class GuideCatalog:
    """Finds and parses the guides under a directory."""

    def __init__(
        self,
        root: Path,
        pattern: str = DEFAULT_GUIDE_PATTERN,
        exclude: tuple[str, ...] | list[str] = (),
        parser: GuideParser | None = None,
    ) -> None:
        self._root = root
        self._pattern = pattern
        self._exclude = tuple(exclude)
        self._parser = parser or GuideParser()
        self._guides: dict[str, Guide] = {}

    @property
    def root(self) -> Path:
        return self._root

    @property
    def pattern(self) -> str:
        return self._pattern

    @property
    def parser(self) -> GuideParser:
        return self._parser

    @property
    def guides(self) -> list[Guide]:
        """Guides loaded so far, in path order."""
        return [self._guides[key] for key in sorted(self._guides)]

    def discover(self) -> list[Path]:
        """Find guide files matching the pattern, minus excluded ones."""
        if not self._root.is_dir():
            raise GuideFileError("Guides directory not found", path=self._root)

        paths = []
        for path in self._root.glob(self._pattern):
            if not path.is_file():
                continue
            relative = path.relative_to(self._root).as_posix()
            if self._is_excluded(relative):
                logger.debug("Excluding %s", relative)
                continue
            paths.append(path)
        return sorted(paths)

    def matches(self, path: Path) -> bool:
        """Check whether a path would be picked up by discover()."""
        if not self._root.is_dir():
            return False
        target = path.resolve()
        return any(candidate.resolve() == target for candidate in self.discover())

    def load(self) -> LoadResult:
        """Parse every discovered guide."""
        result = LoadResult()
        self._guides.clear()

        for path in self.discover():
            parsed = self._parser.parse(path, self._root)
            result.warnings.extend(parsed.warnings)
            if parsed.error is not None:
                logger.warning("Failed to parse %s: %s", path, parsed.error)
                result.errors.append(parsed.error)
                continue
            self._guides[parsed.guide.path] = parsed.guide
            result.guides.append(parsed.guide)

        logger.info("Loaded %d guides from %s", len(result.guides), self._root)
        return result

    def get(self, relative_path: str) -> Guide | None:
        """Get a loaded guide by its path relative to the root."""
        return self._guides.get(relative_path)

    def iter_code_blocks(self, languages: tuple[str, ...] | None = None) -> Iterator[CodeBlock]:
        """Iterate code blocks across loaded guides in file order."""
        for guide in self.guides:
            for block in guide.code_blocks:
                if languages is None or block.language in languages:
                    yield block

    def _is_excluded(self, relative: str) -> bool:
        return any(fnmatch.fnmatch(relative, pattern) for pattern in self._exclude)
