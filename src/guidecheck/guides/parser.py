"""Guide parser: frontmatter, headings, links, fenced code blocks and token counts."""

import hashlib
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import frontmatter
import tiktoken
import yaml

from guidecheck.core.constants import (
    MARKER_COMMENT_RE,
    MARKER_WARNING_RE,
    LinkKind,
)
from guidecheck.core.exceptions import ParseError
from guidecheck.models.guide import CodeBlock, Guide, Heading, Link

logger = logging.getLogger(__name__)

FENCE_OPEN_RE = re.compile(r"^(?P<indent> {0,3})(?P<fence>`{3,}|~{3,})(?P<info>.*)$")
HEADING_RE = re.compile(r"^(#{1,6})\s+(.+?)\s*#*\s*$")
EXPLICIT_ANCHOR_RE = re.compile(r"\s*\{#([\w\-:.]+)\}\s*$")
HTML_ANCHOR_RE = re.compile(r"<[^>]+?\b(?:id|name)=[\"']([^\"']+)[\"']")
INLINE_CODE_RE = re.compile(r"`+[^`]*`+")
INLINE_LINK_RE = re.compile(
    r"!?\[(?P<text>[^\]]*)\]\(\s*<?(?P<target>[^)\s>]+)>?(?:\s+[\"'(][^)]*)?\s*\)"
)
REFERENCE_DEF_RE = re.compile(
    r"^\s{0,3}\[(?P<text>[^\]]+)\]:\s*<?(?P<target>\S+?)>?(?:\s+[\"'(].*)?\s*$"
)
AUTOLINK_RE = re.compile(r"<(?P<target>https?://[^>\s]+)>")
SCHEME_RE = re.compile(r"^[a-zA-Z][a-zA-Z0-9+.\-]*:")
MARKDOWN_LINK_TEXT_RE = re.compile(r"\[([^\]]*)\]\([^)]*\)")


@dataclass
class ParseWarning:
    """Non-fatal problem found while parsing a guide."""

    path: Path
    warning_type: str
    message: str
    line: int | None = None
    suggestion: str | None = None

    def __str__(self) -> str:
        where = f"{self.path}:{self.line}" if self.line else str(self.path)
        msg = f"[{self.warning_type}] {where}: {self.message}"
        if self.suggestion:
            msg += f" (suggestion: {self.suggestion})"
        return msg


@dataclass
class ParseResult:
    """Result of parsing a guide file."""

    guide: Guide | None = None
    warnings: list[ParseWarning] = field(default_factory=list)
    error: ParseError | None = None

    @property
    def success(self) -> bool:
        """Check if parsing succeeded."""
        return self.guide is not None and self.error is None


class TokenCounter:
    """Token counter using tiktoken."""

    def __init__(self, encoding_name: str = "cl100k_base") -> None:
        """Initialize with specified encoding; the encoding loads on first use."""
        self._encoding_name = encoding_name
        self._encoding: tiktoken.Encoding | None = None

    def count(self, text: str) -> int:
        """Count tokens in text."""
        if not text:
            return 0
        if self._encoding is None:
            self._encoding = tiktoken.get_encoding(self._encoding_name)
        return len(self._encoding.encode(text))


def classify_target(target: str) -> LinkKind:
    """Categorise a link target."""
    lowered = target.lower()
    if lowered.startswith(("http://", "https://")):
        return LinkKind.EXTERNAL
    if lowered.startswith("mailto:"):
        return LinkKind.MAILTO
    if target.startswith("#"):
        return LinkKind.ANCHOR
    if SCHEME_RE.match(target) or target.startswith("//"):
        return LinkKind.OTHER
    return LinkKind.RELATIVE


def slugify(text: str) -> str:
    """GitHub-style heading anchor."""
    text = MARKDOWN_LINK_TEXT_RE.sub(r"\1", text)
    text = re.sub(r"[^\w\- ]", "", text.strip().lower())
    return text.replace(" ", "-")


def is_marker_line(line: str) -> bool:
    """Check whether a line is a VALIDATION_FAILED marker."""
    stripped = line.strip()
    return bool(MARKER_COMMENT_RE.match(stripped) or MARKER_WARNING_RE.match(stripped))


def scan_fences(lines: list[str], start: int = 0) -> list[tuple[int, int, str]]:
    """
    Find fenced regions.

    Returns (open_index, close_index, info) tuples using 0-based line indexes.
    An unclosed fence is returned with close_index -1.
    """
    regions: list[tuple[int, int, str]] = []
    index = start
    while index < len(lines):
        match = FENCE_OPEN_RE.match(lines[index].rstrip("\r\n"))
        if match is None:
            index += 1
            continue

        fence = match.group("fence")
        info = match.group("info").strip()
        if fence[0] == "`" and "`" in info:
            index += 1
            continue

        close = -1
        for candidate in range(index + 1, len(lines)):
            stripped = lines[candidate].strip()
            if (
                len(stripped) >= len(fence)
                and stripped.startswith(fence)
                and set(stripped) == {fence[0]}
            ):
                close = candidate
                break

        regions.append((index, close, info))
        if close == -1:
            break
        index = close + 1
    return regions


class GuideParser:
    """Parser for Markdown guide files."""

    def __init__(self, token_counter: TokenCounter | None = None) -> None:
        """Initialize parser with a token counter."""
        self._token_counter = token_counter or TokenCounter()

    def parse(self, path: Path, root: Path | None = None) -> ParseResult:
        """
        Parse a guide file.

        Returns ParseResult with either a Guide or an error.
        """
        try:
            raw = path.read_bytes()
            content = raw.decode("utf-8")
        except OSError as e:
            return ParseResult(
                error=ParseError(f"Failed to read file: {e}", path=path, error_type="io")
            )
        except UnicodeDecodeError as e:
            return ParseResult(
                error=ParseError(f"File is not valid UTF-8: {e}", path=path, error_type="io")
            )

        relative = self._relative_path(path, root)
        warnings: list[ParseWarning] = []
        try:
            guide = self.parse_text(content, relative, warnings=warnings, path=path)
        except ParseError as e:
            return ParseResult(error=e, warnings=warnings)

        guide.file_hash = hashlib.sha256(raw).hexdigest()
        return ParseResult(guide=guide, warnings=warnings)

    def parse_text(
        self,
        content: str,
        relative_path: str,
        warnings: list[ParseWarning] | None = None,
        path: Path | None = None,
    ) -> Guide:
        """Parse guide text. Raises ParseError on malformed frontmatter."""
        warnings = warnings if warnings is not None else []
        path = path or Path(relative_path)

        try:
            post = frontmatter.loads(content)
        except (yaml.YAMLError, ValueError) as e:
            raise ParseError(
                f"Failed to parse YAML frontmatter: {e}",
                path=path,
                error_type="yaml",
            ) from e

        metadata: dict[str, Any] = dict(post.metadata)
        lines = content.splitlines(keepends=True)
        body_start = self._body_start(lines) if metadata else 0

        code_blocks = self.extract_code_blocks(
            lines, relative_path, start=body_start, warnings=warnings, path=path
        )
        fenced = self._fenced_indexes(lines, body_start)
        headings, extra_anchors = self._extract_headings(lines, body_start, fenced)
        links = self._extract_links(lines, body_start, fenced)

        title = metadata.get("title")
        if not title:
            title = next((h.text for h in headings if h.level == 1), None)
        if not title:
            warnings.append(
                ParseWarning(
                    path=path,
                    warning_type="missing_title",
                    message="No title in frontmatter and no H1 heading found",
                    suggestion="Add a title using # Heading syntax",
                )
            )
            title = Path(relative_path).stem.replace("_", " ").replace("-", " ").title()

        return Guide(
            path=relative_path,
            title=str(title),
            body=post.content,
            token_count=self._token_counter.count(post.content),
            metadata=metadata,
            code_blocks=code_blocks,
            headings=headings,
            links=links,
            extra_anchors=extra_anchors,
        )

    def extract_code_blocks(
        self,
        lines: list[str],
        file: str,
        start: int = 0,
        warnings: list[ParseWarning] | None = None,
        path: Path | None = None,
    ) -> list[CodeBlock]:
        """Extract fenced code blocks; line numbers are 1-based file lines."""
        blocks: list[CodeBlock] = []
        for open_index, close_index, info in scan_fences(lines, start):
            if close_index == -1:
                if warnings is not None:
                    warnings.append(
                        ParseWarning(
                            path=path or Path(file),
                            warning_type="unclosed_fence",
                            message="Code fence is never closed",
                            line=open_index + 1,
                        )
                    )
                logger.debug("Unclosed fence in %s at line %d", file, open_index + 1)
                continue

            body_lines = lines[open_index + 1 : close_index]
            if not body_lines:
                continue

            tokens = [t for t in re.split(r"[\s,]+", info) if t]
            language = tokens[0].lower().lstrip("{.").rstrip("}") if tokens else ""

            blocks.append(
                CodeBlock(
                    content="".join(body_lines),
                    file=file,
                    line_number=open_index + 2,
                    language=language,
                    attributes=tuple(t.lower() for t in tokens[1:]),
                    fence_line=open_index + 1,
                    end_line=close_index + 1,
                    marked_failed=self._is_marked(lines, open_index),
                )
            )
        return blocks

    def _is_marked(self, lines: list[str], fence_index: int) -> bool:
        """Check the first non-blank line above a fence for a marker."""
        index = fence_index - 1
        while index >= 0 and not lines[index].strip():
            index -= 1
        return index >= 0 and is_marker_line(lines[index])

    def _body_start(self, lines: list[str]) -> int:
        """Index of the first line after the frontmatter block."""
        if not lines or lines[0].strip() != "---":
            return 0
        for index in range(1, len(lines)):
            if lines[index].strip() in ("---", "..."):
                return index + 1
        return 0

    def _fenced_indexes(self, lines: list[str], start: int) -> set[int]:
        """Line indexes inside (or delimiting) fenced blocks."""
        fenced: set[int] = set()
        for open_index, close_index, _ in scan_fences(lines, start):
            end = close_index if close_index != -1 else len(lines) - 1
            fenced.update(range(open_index, end + 1))
        return fenced

    def _extract_headings(
        self, lines: list[str], start: int, fenced: set[int]
    ) -> tuple[list[Heading], set[str]]:
        """Extract ATX headings with de-duplicated anchors, plus HTML anchors."""
        headings: list[Heading] = []
        extra: set[str] = set()
        seen: dict[str, int] = {}

        for index in range(start, len(lines)):
            if index in fenced:
                continue
            line = lines[index].rstrip("\r\n")

            for html_anchor in HTML_ANCHOR_RE.findall(line):
                extra.add(html_anchor)

            match = HEADING_RE.match(line)
            if match is None:
                continue

            text = match.group(2).strip()
            explicit = EXPLICIT_ANCHOR_RE.search(text)
            if explicit:
                anchor = explicit.group(1)
                text = text[: explicit.start()].strip()
            else:
                base = anchor = slugify(text)
                while anchor in seen:
                    seen[base] += 1
                    anchor = f"{base}-{seen[base]}"
            seen.setdefault(anchor, 0)

            headings.append(
                Heading(
                    level=len(match.group(1)),
                    text=text,
                    anchor=anchor,
                    line_number=index + 1,
                )
            )
        return headings, extra

    def _extract_links(self, lines: list[str], start: int, fenced: set[int]) -> list[Link]:
        """Extract inline links, images, reference definitions and autolinks."""
        links: list[Link] = []
        for index in range(start, len(lines)):
            if index in fenced:
                continue
            line = INLINE_CODE_RE.sub("", lines[index].rstrip("\r\n"))
            if is_marker_line(line):
                continue

            ref = REFERENCE_DEF_RE.match(line)
            if ref:
                target = ref.group("target")
                links.append(Link(target, ref.group("text"), index + 1, classify_target(target)))
                continue

            for match in INLINE_LINK_RE.finditer(line):
                target = match.group("target")
                links.append(
                    Link(target, match.group("text"), index + 1, classify_target(target))
                )
            for match in AUTOLINK_RE.finditer(line):
                target = match.group("target")
                links.append(Link(target, target, index + 1, LinkKind.EXTERNAL))
        return links

    def _relative_path(self, path: Path, root: Path | None) -> str:
        """Path relative to the guides root in POSIX form."""
        if root is not None:
            try:
                return path.resolve().relative_to(root.resolve()).as_posix()
            except ValueError:
                pass
        return path.name
