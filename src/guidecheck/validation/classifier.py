"""Decides whether a code block is skipped, syntax-checked, or executed."""

import re
from dataclasses import dataclass

import yaml

from guidecheck.core.constants import (
    DEFAULT_EXECUTE_LANGUAGES,
    DEFAULT_LANGUAGES,
    SKIP_ATTRIBUTES,
    SYNTAX_ONLY_ATTRIBUTES,
    BlockMode,
)
from guidecheck.models.guide import CodeBlock

COMMENT_PREFIXES: dict[str, tuple[str, ...]] = {
    "ruby": ("#",),
    "python": ("#",),
    "bash": ("#",),
    "yaml": ("#",),
    "json": (),
}

YAML_KEY_LINE_RE = re.compile(r"^\w+:")
CONVERSATION_LINE_RE = re.compile(r"^\s*(user|assistant|agent|system)\s*:", re.IGNORECASE)
DEFINITION_KEYWORD_RE = re.compile(r"\b(def|class|module)\s")
RUBY_HEREDOC_RE = re.compile(r"<<[~-]?(['\"]?)(\w+)\1")
CONSTRUCTOR_RE = re.compile(r"^[A-Z]\w*(?:(?:::|\.)[A-Z]\w*)*(?:\.new)?\s*\(")
DEFINITION_START_RE: dict[str, re.Pattern[str]] = {
    "ruby": re.compile(r"^(def|class|module)\s+\w+"),
    "python": re.compile(r"^(async\s+def|def|class)\s+\w+"),
}


@dataclass(frozen=True)
class Classification:
    """How a block will be validated and why."""

    mode: BlockMode
    reason: str


class BlockClassifier:
    """Heuristics for snippets that cannot be run as-is."""

    def __init__(
        self,
        languages: tuple[str, ...] = DEFAULT_LANGUAGES,
        execute_languages: tuple[str, ...] = DEFAULT_EXECUTE_LANGUAGES,
        executable: frozenset[str] | None = None,
    ) -> None:
        """
        Args:
            languages: Canonical languages to validate at all
            execute_languages: Languages whose snippets may be executed
            executable: Languages with a runner able to execute code
        """
        self._languages = set(languages)
        self._execute = set(execute_languages)
        self._executable = executable if executable is not None else frozenset(self._execute)

    def classify(self, block: CodeBlock, language: str | None = None) -> Classification:
        """Classify a block; `language` is the canonical name if already resolved."""
        language = language or block.language
        attributes = set(block.attributes)

        if attributes & SKIP_ATTRIBUTES:
            return Classification(BlockMode.SKIP, "Skipped by fence attribute")

        if language not in self._languages:
            return Classification(BlockMode.SKIP, f"Language not validated: {language or 'none'}")

        if attributes & SYNTAX_ONLY_ATTRIBUTES:
            return Classification(BlockMode.SYNTAX, "Syntax only by fence attribute")

        code = block.content
        if self._is_empty(code, language):
            return Classification(BlockMode.SKIP, "Empty or comments only")

        if language in ("json", "yaml"):
            return Classification(BlockMode.SYNTAX, "Data format")

        if "**" in code and "##" in code:
            return Classification(BlockMode.SKIP, "Mixed markdown content")

        if self._is_yaml_content(code):
            return Classification(BlockMode.SKIP, "YAML content")

        if self._is_conversation(code):
            return Classification(BlockMode.SKIP, "Conversation example")

        if language == "ruby":
            reason = self._ruby_skip_reason(code)
            if reason:
                return Classification(BlockMode.SKIP, reason)

        if self._is_definition(code, language):
            return Classification(BlockMode.SYNTAX, "Definition - syntax validation only")

        if language not in self._execute or language not in self._executable:
            return Classification(BlockMode.SYNTAX, "Execution not enabled for language")

        return Classification(BlockMode.EXECUTE, "Executable snippet")

    def _is_empty(self, code: str, language: str) -> bool:
        prefixes = COMMENT_PREFIXES.get(language, ("#",))
        for line in code.splitlines():
            stripped = line.strip()
            if not stripped:
                continue
            if prefixes and stripped.startswith(prefixes):
                continue
            return False
        return True

    def _is_yaml_content(self, code: str) -> bool:
        """A mapping written in YAML rather than code."""
        stripped = code.strip()
        if not YAML_KEY_LINE_RE.match(stripped) or DEFINITION_KEYWORD_RE.search(code):
            return False
        key_lines = sum(1 for line in code.splitlines() if YAML_KEY_LINE_RE.match(line.strip()))
        if key_lines <= 2:
            return False
        try:
            return isinstance(yaml.safe_load(code), dict)
        except yaml.YAMLError:
            return False

    def _is_conversation(self, code: str) -> bool:
        """Transcript of user/assistant turns."""
        roles = {
            match.group(1).lower()
            for line in code.splitlines()
            if (match := CONVERSATION_LINE_RE.match(line))
        }
        return "user" in roles and bool(roles & {"assistant", "agent"})

    def _ruby_skip_reason(self, code: str) -> str | None:
        for match in RUBY_HEREDOC_RE.finditer(code):
            terminator = match.group(2)
            remainder = code[match.end() :]
            if not re.search(rf"^\s*{re.escape(terminator)}\s*$", remainder, re.MULTILINE):
                return "Unterminated heredoc"

        if re.search(r"\bretry\b", code) and not re.search(r"\brescue\b", code):
            return "Invalid retry usage"

        if '"""' in code:
            return "Problematic string literals"

        return None

    def _is_definition(self, code: str, language: str) -> bool:
        first = next((line.strip() for line in code.splitlines() if line.strip()), "")
        pattern = DEFINITION_START_RE.get(language)
        if pattern is not None and pattern.match(first):
            return True
        return bool(CONSTRUCTOR_RE.match(first))
