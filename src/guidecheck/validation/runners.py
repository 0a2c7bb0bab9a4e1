"""
Language runners for syntax checking and executing snippets.

Each runner knows how to syntax-check source text and, where the language is
executable, how to run a file in a subprocess. Runners for data formats (JSON,
YAML) only parse.
"""

import json
import logging
import shutil
import subprocess
import sys
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path

import yaml

from guidecheck.core.exceptions import RunnerError, RunnerNotAvailableError

logger = logging.getLogger(__name__)


@dataclass
class ExecutionOutcome:
    """Raw result of running a snippet in a subprocess."""

    returncode: int
    stdout: str = ""
    stderr: str = ""
    timed_out: bool = False

    @property
    def success(self) -> bool:
        return self.returncode == 0 and not self.timed_out

    @property
    def combined_output(self) -> str:
        return f"{self.stdout}\n{self.stderr}".strip()


class LanguageRunner(ABC):
    """Abstract interface for a language's syntax check and execution."""

    name: str = ""
    aliases: tuple[str, ...] = ()
    suffix: str = ".txt"
    executable: bool = False

    def available(self) -> bool:
        """Check whether the interpreter this runner needs is installed."""
        return True

    @abstractmethod
    def check_syntax(self, code: str, timeout: int) -> str | None:
        """Return an error message, or None when the code parses."""

    def command(self, path: Path) -> list[str]:
        """Command line that executes a source file."""
        raise RunnerError(f"{self.name} snippets cannot be executed", language=self.name)

    def execute(
        self,
        path: Path,
        env: dict[str, str],
        timeout: int,
        cwd: Path | None = None,
    ) -> ExecutionOutcome:
        """Run a source file and capture its output."""
        cmd = self.command(path)
        logger.debug("Running %s", " ".join(cmd))
        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                timeout=timeout,
                env=env,
                cwd=str(cwd) if cwd else None,
            )
        except subprocess.TimeoutExpired as e:
            return ExecutionOutcome(
                returncode=-1,
                stdout=_decode(e.stdout),
                stderr=_decode(e.stderr),
                timed_out=True,
            )
        except OSError as e:
            raise RunnerError(f"Failed to start {cmd[0]}: {e}", language=self.name) from e

        return ExecutionOutcome(
            returncode=result.returncode,
            stdout=result.stdout,
            stderr=result.stderr,
        )


class PythonRunner(LanguageRunner):
    """Python snippets; syntax is checked in-process with compile()."""

    name = "python"
    aliases = ("py", "python3", "pycon")
    suffix = ".py"
    executable = True

    def check_syntax(self, code: str, timeout: int) -> str | None:
        try:
            compile(code, "<snippet>", "exec", dont_inherit=True)
        except SyntaxError as e:
            return f"SyntaxError: {e.msg} (line {e.lineno})"
        except ValueError as e:
            return f"ValueError: {e}"
        return None

    def command(self, path: Path) -> list[str]:
        return [sys.executable, str(path)]


class InterpreterRunner(LanguageRunner):
    """Runner backed by an external interpreter with a syntax-check flag."""

    interpreter: str = ""
    syntax_flag: str = ""

    def available(self) -> bool:
        return shutil.which(self.interpreter) is not None

    def check_syntax(self, code: str, timeout: int) -> str | None:
        try:
            result = subprocess.run(
                [self.interpreter, self.syntax_flag],
                input=code,
                capture_output=True,
                text=True,
                timeout=timeout,
            )
        except subprocess.TimeoutExpired:
            return "Syntax check timed out"
        except FileNotFoundError as e:
            raise RunnerNotAvailableError(
                f"{self.interpreter} is not installed", language=self.name
            ) from e
        except OSError as e:
            raise RunnerError(
                f"Failed to start {self.interpreter}: {e}", language=self.name
            ) from e

        if result.returncode == 0:
            return None
        message = (result.stderr or result.stdout).strip()
        return message.splitlines()[0] if message else "Syntax errors found"

    def command(self, path: Path) -> list[str]:
        return [self.interpreter, str(path)]


class RubyRunner(InterpreterRunner):
    name = "ruby"
    aliases = ("rb",)
    suffix = ".rb"
    executable = True
    interpreter = "ruby"
    syntax_flag = "-c"


class ShellRunner(InterpreterRunner):
    name = "bash"
    aliases = ("sh", "shell", "zsh")
    suffix = ".sh"
    executable = True
    interpreter = "bash"
    syntax_flag = "-n"


class JsonRunner(LanguageRunner):
    name = "json"
    aliases = ("jsonc",)
    suffix = ".json"

    def check_syntax(self, code: str, timeout: int) -> str | None:
        try:
            json.loads(code)
        except json.JSONDecodeError as e:
            return f"Invalid JSON: {e.msg} (line {e.lineno}, column {e.colno})"
        return None


class YamlRunner(LanguageRunner):
    name = "yaml"
    aliases = ("yml",)
    suffix = ".yml"

    def check_syntax(self, code: str, timeout: int) -> str | None:
        try:
            list(yaml.safe_load_all(code))
        except yaml.YAMLError as e:
            return f"Invalid YAML: {' '.join(str(e).split())}"
        return None


class RunnerRegistry:
    """Resolves fence languages (and aliases) to runners."""

    def __init__(self, runners: list[LanguageRunner] | None = None) -> None:
        self._runners: dict[str, LanguageRunner] = {}
        self._aliases: dict[str, str] = {}
        for runner in runners if runners is not None else default_runners():
            self.register(runner)

    def register(self, runner: LanguageRunner) -> None:
        self._runners[runner.name] = runner
        self._aliases[runner.name] = runner.name
        for alias in runner.aliases:
            self._aliases[alias] = runner.name

    def canonical(self, language: str) -> str:
        """Canonical language name, or the input when unknown."""
        return self._aliases.get(language.lower(), language.lower())

    def get(self, language: str) -> LanguageRunner | None:
        return self._runners.get(self.canonical(language))

    def for_path(self, path: Path) -> LanguageRunner | None:
        """Runner whose file suffix matches `path`."""
        suffix = path.suffix.lower()
        for runner in self._runners.values():
            if runner.suffix == suffix:
                return runner
        return None

    def executable_languages(self) -> frozenset[str]:
        return frozenset(name for name, r in self._runners.items() if r.executable)

    @property
    def languages(self) -> list[str]:
        return sorted(self._runners)


def default_runners() -> list[LanguageRunner]:
    return [PythonRunner(), RubyRunner(), ShellRunner(), JsonRunner(), YamlRunner()]


def _decode(value: str | bytes | None) -> str:
    if value is None:
        return ""
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return value
