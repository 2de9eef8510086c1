from __future__ import annotations
import enum
from dataclasses import dataclass, field
from typing import Any, Iterator


def _as_tuple(raw: Any) -> tuple:
    if raw is None:
        return ()
    if isinstance(raw, (list, tuple)):
        return tuple(raw)
    raise ValueError(f"expected a list, got {type(raw).__name__}")


@dataclass(frozen=True)
class TestCase:
    __test__ = False  # not a pytest class

    input: Any
    allowed_outputs: tuple

    def matches_output(self, output: Any) -> bool:
        return any(values_equal(output, allowed) for allowed in self.allowed_outputs)

    @classmethod
    def from_dict(cls, raw: dict) -> "TestCase":
        return cls(input=raw["input"], allowed_outputs=_as_tuple(raw["allowedOutputs"]))


def values_equal(a: Any, b: Any) -> bool:
    # True == 1 in Python; a learner returning 1 for a boolean question is wrong.
    if isinstance(a, bool) != isinstance(b, bool):
        return False
    return a == b


@dataclass(frozen=True)
class TestSuite:
    __test__ = False

    id: str
    human_readable_name: str
    test_cases: tuple[TestCase, ...]

    @classmethod
    def from_dict(cls, raw: dict) -> "TestSuite":
        return cls(
            id=raw["id"],
            human_readable_name=raw.get("humanReadableName") or raw["id"],
            test_cases=tuple(TestCase.from_dict(tc) for tc in _as_tuple(raw.get("testCases"))),
        )


@dataclass(frozen=True)
class BuggyOutputTest:
    buggy_function_name: str
    ignored_test_suite_ids: frozenset[str]
    messages: tuple[str, ...]

    @classmethod
    def from_dict(cls, raw: dict) -> "BuggyOutputTest":
        return cls(
            buggy_function_name=raw["buggyFunctionName"],
            ignored_test_suite_ids=frozenset(_as_tuple(raw.get("ignoredTestSuiteIds"))),
            messages=_as_tuple(raw["messages"]),
        )


@dataclass(frozen=True)
class SuiteLevelTest:
    test_suite_ids_that_must_pass: frozenset[str]
    test_suite_ids_that_must_fail: frozenset[str]
    messages: tuple[str, ...]

    def is_triggered(self, suite_results: dict[str, bool]) -> bool:
        must_pass = all(suite_results.get(sid, False) for sid in self.test_suite_ids_that_must_pass)
        must_fail = all(not suite_results.get(sid, False) for sid in self.test_suite_ids_that_must_fail)
        return must_pass and must_fail

    @classmethod
    def from_dict(cls, raw: dict) -> "SuiteLevelTest":
        return cls(
            test_suite_ids_that_must_pass=frozenset(_as_tuple(raw.get("testSuiteIdsThatMustPass"))),
            test_suite_ids_that_must_fail=frozenset(_as_tuple(raw.get("testSuiteIdsThatMustFail"))),
            messages=_as_tuple(raw["messages"]),
        )


@dataclass(frozen=True)
class Task:
    main_function_name: str
    test_suites: tuple[TestSuite, ...]
    buggy_output_tests: tuple[BuggyOutputTest, ...] = ()
    suite_level_tests: tuple[SuiteLevelTest, ...] = ()
    input_function_name: str | None = None
    output_function_name: str | None = None
    instructions: tuple = ()
    prerequisite_skills: tuple = ()
    acquired_skills: tuple = ()

    def get_test_suite(self, suite_id: str) -> TestSuite | None:
        for suite in self.test_suites:
            if suite.id == suite_id:
                return suite
        return None

    def iter_test_cases(self) -> Iterator[tuple[TestSuite, TestCase]]:
        for suite in self.test_suites:
            for case in suite.test_cases:
                yield suite, case

    @classmethod
    def from_dict(cls, raw: dict) -> "Task":
        return cls(
            main_function_name=raw["mainFunctionName"],
            input_function_name=raw.get("inputFunctionName") or None,
            output_function_name=raw.get("outputFunctionName") or None,
            test_suites=tuple(TestSuite.from_dict(s) for s in _as_tuple(raw.get("testSuites"))),
            buggy_output_tests=tuple(
                BuggyOutputTest.from_dict(b) for b in _as_tuple(raw.get("buggyOutputTests"))
            ),
            suite_level_tests=tuple(
                SuiteLevelTest.from_dict(s) for s in _as_tuple(raw.get("suiteLevelTests"))
            ),
            instructions=_as_tuple(raw.get("instructions")),
            prerequisite_skills=_as_tuple(raw.get("prerequisiteSkills")),
            acquired_skills=_as_tuple(raw.get("acquiredSkills")),
        )


class FeedbackCategory(str, enum.Enum):
    PREREQ_FAILURE = "prereq_failure"
    SYNTAX_ERROR = "syntax_error"
    STACK_OVERFLOW = "stack_overflow"
    RUNTIME_ERROR = "runtime_error"
    CORRECTNESS_FAILURE = "correctness_failure"
    KNOWN_BUG_FAILURE = "known_bug_failure"
    SUITE_LEVEL_FAILURE = "suite_level_failure"
    SUCCESS = "success"


HINT_CYCLE_CATEGORIES = frozenset(
    {FeedbackCategory.KNOWN_BUG_FAILURE, FeedbackCategory.SUITE_LEVEL_FAILURE}
)


@dataclass(frozen=True)
class FeedbackKey:
    category: FeedbackCategory
    task_index: int | None = None
    specific_test_index: int | None = None


@dataclass(frozen=True)
class FeedbackDetails:
    category: FeedbackCategory
    task_index: int | None = None
    specific_test_index: int | None = None
    message_index: int | None = None
    hints_exhausted: bool = False

    @property
    def key(self) -> FeedbackKey:
        return FeedbackKey(self.category, self.task_index, self.specific_test_index)


class ParagraphKind(str, enum.Enum):
    TEXT = "text"
    CODE = "code"
    OUTPUT = "output"


@dataclass(frozen=True)
class FeedbackParagraph:
    kind: ParagraphKind
    content: str

    def is_text_paragraph(self) -> bool:
        return self.kind is ParagraphKind.TEXT

    def is_code_paragraph(self) -> bool:
        return self.kind is ParagraphKind.CODE

    def is_output_paragraph(self) -> bool:
        return self.kind is ParagraphKind.OUTPUT


@dataclass
class Feedback:
    paragraphs: list[FeedbackParagraph] = field(default_factory=list)
    is_answer_correct: bool = False
    error_line_number: int | None = None
    needs_language_unfamiliarity_prompt: bool = False

    def append_text(self, content: str) -> None:
        self.paragraphs.append(FeedbackParagraph(ParagraphKind.TEXT, content))

    def append_code(self, content: str) -> None:
        self.paragraphs.append(FeedbackParagraph(ParagraphKind.CODE, content))

    def append_output(self, content: str) -> None:
        self.paragraphs.append(FeedbackParagraph(ParagraphKind.OUTPUT, content))


@dataclass
class SubmissionResult:
    feedback: Feedback
    stdout: str | None
    details: FeedbackDetails


@dataclass(frozen=True)
class Question:
    title: str
    starter_code: str
    auxiliary_code: str
    tasks: tuple[Task, ...]

    @classmethod
    def from_dict(cls, raw: dict) -> "Question":
        return cls(
            title=raw.get("title") or "",
            starter_code=raw.get("starterCode") or "",
            auxiliary_code=raw.get("auxiliaryCode") or "",
            tasks=tuple(Task.from_dict(task) for task in _as_tuple(raw.get("tasks"))),
        )
