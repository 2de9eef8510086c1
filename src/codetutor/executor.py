"""Contract between the evaluation cascade and whatever actually runs code.

The cascade never looks inside an execution; it only sees the structured
results below. Transient failures (timeouts, a crashed worker) are reported by
raising ``ExecutorError`` and are shown to the learner as runtime errors.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Protocol, Sequence


class ExecutorError(Exception):
    """The executor could not produce a result for a run."""


class UnsupportedLanguageError(ValueError):
    pass


@dataclass(frozen=True)
class OpaqueOutput:
    """A returned value that cannot be carried out of the executor, kept as its repr."""

    text: str

    def __repr__(self) -> str:
        return self.text


@dataclass(frozen=True)
class RunResult:
    output: Any = None
    stdout: str = ""
    raised_error: str | None = None
    is_stack_overflow: bool = False

    @property
    def failed(self) -> bool:
        return self.is_stack_overflow or self.raised_error is not None


@dataclass(frozen=True)
class SyntaxCheck:
    valid: bool
    error_message: str | None = None
    error_line_number: int | None = None


@dataclass(frozen=True)
class WrongLanguageError:
    construct: str
    line_number: int


@dataclass(frozen=True)
class PrerequisiteCheck:
    has_global_code: bool = False
    missing_functions: tuple[str, ...] = ()
    disallowed_imports: tuple[str, ...] = ()
    wrong_language_errors: tuple[WrongLanguageError, ...] = field(default_factory=tuple)

    @property
    def ok(self) -> bool:
        return not (
            self.has_global_code
            or self.missing_functions
            or self.disallowed_imports
            or self.wrong_language_errors
        )


class Executor(Protocol):
    async def run_cases(
        self,
        code: str,
        function_name: str,
        inputs: Sequence[Any],
        language: str,
        *,
        input_function_name: str | None = None,
        output_function_name: str | None = None,
    ) -> list[RunResult]:
        """Call ``function_name`` on each input, in order, against one loaded program.

        Returns one result per input, stopping after the first failed run.
        """
        ...

    async def check_syntax(self, code: str, language: str) -> SyntaxCheck: ...

    async def check_prerequisites(
        self, code: str, starter_code: str, language: str
    ) -> PrerequisiteCheck: ...
