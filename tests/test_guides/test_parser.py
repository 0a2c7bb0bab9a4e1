"""Tests for the guide parser."""

from pathlib import Path

from guidecheck.core.constants import LinkKind
from guidecheck.guides.parser import (
    GuideParser,
    TokenCounter,
    classify_target,
    is_marker_line,
    scan_fences,
    slugify,
)


class TestHelpers:
    """Tests for module-level helpers."""

    def test_slugify(self) -> None:
        assert slugify("Getting Started") == "getting-started"
        assert slugify("What's new in 2.0?") == "whats-new-in-20"
        assert slugify("Use [RunConfig](run.md) objects") == "use-runconfig-objects"

    def test_classify_target(self) -> None:
        assert classify_target("https://example.com") == LinkKind.EXTERNAL
        assert classify_target("mailto:team@example.com") == LinkKind.MAILTO
        assert classify_target("#install") == LinkKind.ANCHOR
        assert classify_target("ftp://files.example.com") == LinkKind.OTHER
        assert classify_target("../guides/setup.md") == LinkKind.RELATIVE

    def test_is_marker_line(self) -> None:
        assert is_marker_line("<!-- VALIDATION_FAILED: guide.md:12 -->")
        assert is_marker_line("WARNING: **EXAMPLE VALIDATION FAILED** - needs work")
        assert is_marker_line("❌ **VALIDATION FAILED**: boom")
        assert not is_marker_line("Validation failed for some reason")

    def test_scan_fences(self) -> None:
        lines = ["text\n", "```ruby\n", "x\n", "```\n", "~~~~\n", "```\n", "~~~~\n"]
        assert scan_fences(lines) == [(1, 3, "ruby"), (4, 6, "")]

    def test_scan_fences_unclosed(self) -> None:
        assert scan_fences(["```python\n", "x = 1\n"]) == [(0, -1, "python")]

    def test_token_counter_empty(self) -> None:
        assert TokenCounter().count("") == 0


class TestCodeBlocks:
    """Tests for fenced code block extraction."""

    def test_blocks_and_line_numbers(
        self, parser: GuideParser, sample_guide_content: str
    ) -> None:
        guide = parser.parse_text(sample_guide_content, "getting_started.md")
        blocks = guide.code_blocks

        assert [b.language for b in blocks] == ["python", "python", "json", "text"]
        first = blocks[0]
        assert first.line_number == 14
        assert first.fence_line == 13
        assert first.end_line == 15
        assert first.content == 'print("hello from a guide")\n'
        assert first.location == "getting_started.md:14"
        assert blocks[1].line_number == 18

    def test_info_string_attributes(self, parser: GuideParser) -> None:
        text = "# T\n\n```Ruby no_run, title=example\nputs 1\n```\n"
        block = parser.parse_text(text, "t.md").code_blocks[0]

        assert block.language == "ruby"
        assert block.attributes == ("no_run", "title=example")

    def test_longer_closing_fence_and_nested_backticks(self, parser: GuideParser) -> None:
        text = "# T\n\n````markdown\n```ruby\nputs 1\n```\n````\n"
        blocks = parser.parse_text(text, "t.md").code_blocks

        assert len(blocks) == 1
        assert blocks[0].language == "markdown"
        assert "```ruby" in blocks[0].content

    def test_empty_block_dropped(self, parser: GuideParser) -> None:
        text = "# T\n\n```ruby\n```\n"
        assert parser.parse_text(text, "t.md").code_blocks == []

    def test_unclosed_fence_warns(self, parser: GuideParser) -> None:
        warnings: list = []
        guide = parser.parse_text("# T\n\n```ruby\nputs 1\n", "t.md", warnings=warnings)

        assert guide.code_blocks == []
        assert [w.warning_type for w in warnings] == ["unclosed_fence"]
        assert warnings[0].line == 3

    def test_marked_block(self, parser: GuideParser) -> None:
        text = (
            "# T\n\n"
            "<!-- VALIDATION_FAILED: t.md:7 -->\n"
            "WARNING: **EXAMPLE VALIDATION FAILED** - Error: boom\n"
            "\n"
            "```ruby\nputs 1\n```\n\n"
            "```ruby\nputs 2\n```\n"
        )
        blocks = parser.parse_text(text, "t.md").code_blocks

        assert blocks[0].marked_failed
        assert blocks[0].line_number == 7
        assert not blocks[1].marked_failed


class TestGuideStructure:
    """Tests for titles, headings and links."""

    def test_title_from_frontmatter(
        self, parser: GuideParser, sample_guide_content: str
    ) -> None:
        guide = parser.parse_text(sample_guide_content, "getting_started.md")

        assert guide.title == "Getting Started"
        assert guide.metadata["description"] == "First steps"
        assert guide.token_count > 0

    def test_title_from_h1(self, parser: GuideParser) -> None:
        guide = parser.parse_text("Intro\n\n# Real Title\n", "t.md")
        assert guide.title == "Real Title"

    def test_title_from_filename(self, parser: GuideParser) -> None:
        warnings: list = []
        guide = parser.parse_text("no headings here\n", "tool_calling-basics.md", warnings=warnings)

        assert guide.title == "Tool Calling Basics"
        assert warnings[0].warning_type == "missing_title"

    def test_headings_and_anchors(self, parser: GuideParser) -> None:
        text = (
            "# Guide\n\n## Setup\n\n## Setup\n\n### Custom {#my-anchor}\n\n"
            '<a name="legacy"></a>\n\n```ruby\n# Not a heading\n```\n'
        )
        guide = parser.parse_text(text, "t.md")

        assert [h.anchor for h in guide.headings] == ["guide", "setup", "setup-1", "my-anchor"]
        assert guide.headings[3].text == "Custom"
        assert "legacy" in guide.anchors
        assert "not-a-heading" not in guide.anchors

    def test_duplicate_anchor_skips_taken_suffix(self, parser: GuideParser) -> None:
        guide = parser.parse_text("# Foo-1\n\n## Foo\n\n## Foo\n\n## Foo\n", "t.md")

        assert [h.anchor for h in guide.headings] == ["foo-1", "foo", "foo-2", "foo-3"]

    def test_links(self, parser: GuideParser, sample_guide_content: str) -> None:
        guide = parser.parse_text(sample_guide_content, "getting_started.md")

        targets = [(link.target, link.line_number, link.kind) for link in guide.links]
        assert targets == [
            ("configuration.md#settings", 8, LinkKind.RELATIVE),
            ("#basics", 9, LinkKind.ANCHOR),
        ]

    def test_link_forms(self, parser: GuideParser) -> None:
        text = (
            "# T\n\n"
            '![diagram](images/flow.png "Flow")\n'
            "See <https://example.com/docs> and `[not](a-link.md)`.\n"
            "[ref]: ../other.md\n"
            "```markdown\n[inside](fence.md)\n```\n"
        )
        guide = parser.parse_text(text, "t.md")

        assert [link.target for link in guide.links] == [
            "images/flow.png",
            "https://example.com/docs",
            "../other.md",
        ]


class TestParseFile:
    """Tests for parsing from disk."""

    def test_parse_sets_relative_path_and_hash(
        self, parser: GuideParser, sample_guides: Path
    ) -> None:
        nested = sample_guides / "advanced"
        nested.mkdir()
        path = nested / "tools.md"
        path.write_text("# Tools\n")

        result = parser.parse(path, sample_guides)

        assert result.success
        assert result.guide.path == "advanced/tools.md"
        assert len(result.guide.file_hash) == 64

    def test_parse_missing_file(self, parser: GuideParser, temp_dir: Path) -> None:
        result = parser.parse(temp_dir / "missing.md")

        assert not result.success
        assert result.error.error_type == "io"

    def test_parse_invalid_utf8(self, parser: GuideParser, temp_dir: Path) -> None:
        path = temp_dir / "binary.md"
        path.write_bytes(b"# Title\n\xff\xfe\n")

        result = parser.parse(path)
        assert result.error.error_type == "io"

    def test_parse_bad_frontmatter(self, parser: GuideParser, temp_dir: Path) -> None:
        path = temp_dir / "bad.md"
        path.write_text("---\ntitle: [unclosed\n---\n# Bad\n")

        result = parser.parse(path)

        assert not result.success
        assert result.error.error_type == "yaml"
