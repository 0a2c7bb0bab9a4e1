"""Guide file data models."""

import hashlib
from dataclasses import dataclass, field
from typing import Any

from guidecheck.core.constants import LinkKind


@dataclass
class CodeBlock:
    """A fenced code block extracted from a guide."""

    content: str
    file: str
    line_number: int
    language: str = ""
    attributes: tuple[str, ...] = ()
    fence_line: int = 0
    end_line: int = 0
    marked_failed: bool = False

    def __post_init__(self) -> None:
        if not self.fence_line:
            self.fence_line = self.line_number - 1

    @property
    def location(self) -> str:
        """Get file:line location of the first content line."""
        return f"{self.file}:{self.line_number}"

    @property
    def content_hash(self) -> str:
        """Hash of language and content, stable across line shifts."""
        digest = hashlib.sha256()
        digest.update(self.language.encode("utf-8"))
        digest.update(b"\0")
        digest.update(self.content.encode("utf-8"))
        return digest.hexdigest()

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "file": self.file,
            "line_number": self.line_number,
            "language": self.language,
            "attributes": list(self.attributes),
            "fence_line": self.fence_line,
            "end_line": self.end_line,
            "marked_failed": self.marked_failed,
            "content": self.content,
        }


@dataclass
class Heading:
    """A heading with its computed anchor."""

    level: int
    text: str
    anchor: str
    line_number: int


@dataclass
class Link:
    """A link or image reference found in a guide."""

    target: str
    text: str
    line_number: int
    kind: LinkKind

    @property
    def path(self) -> str:
        """Get the target without its fragment."""
        return self.target.split("#", 1)[0]

    @property
    def fragment(self) -> str | None:
        """Get the fragment after '#', if any."""
        if "#" not in self.target:
            return None
        return self.target.split("#", 1)[1] or None


@dataclass
class Guide:
    """Represents a parsed Markdown guide."""

    path: str
    title: str
    body: str
    token_count: int
    metadata: dict[str, Any] = field(default_factory=dict)
    code_blocks: list[CodeBlock] = field(default_factory=list)
    headings: list[Heading] = field(default_factory=list)
    links: list[Link] = field(default_factory=list)
    extra_anchors: set[str] = field(default_factory=set)
    file_hash: str = ""

    @property
    def anchors(self) -> set[str]:
        """All anchors a fragment link may point at."""
        return {h.anchor for h in self.headings} | self.extra_anchors

    @property
    def marked_blocks(self) -> list[CodeBlock]:
        """Blocks carrying a VALIDATION_FAILED marker."""
        return [b for b in self.code_blocks if b.marked_failed]

    def blocks_for(self, language: str) -> list[CodeBlock]:
        """Get code blocks for a single language."""
        return [b for b in self.code_blocks if b.language == language]

    def language_counts(self) -> dict[str, int]:
        """Count code blocks per language."""
        counts: dict[str, int] = {}
        for block in self.code_blocks:
            key = block.language or "(none)"
            counts[key] = counts.get(key, 0) + 1
        return counts

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "path": self.path,
            "title": self.title,
            "token_count": self.token_count,
            "metadata": self.metadata,
            "code_blocks": len(self.code_blocks),
            "marked_blocks": len(self.marked_blocks),
            "languages": self.language_counts(),
            "headings": len(self.headings),
            "links": len(self.links),
            "file_hash": self.file_hash,
        }
