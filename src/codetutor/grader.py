from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from typing import Any, Callable, Sequence

from . import feedback as fb
from .config import Settings
from .executor import Executor, ExecutorError, RunResult
from .hints import HintSelection, select_message
from .models import (
    Feedback,
    FeedbackCategory,
    FeedbackDetails,
    FeedbackKey,
    SubmissionResult,
    Task,
    TestCase,
    TestSuite,
    values_equal,
)
from .python_executor import LocalPythonExecutor
from .state import ErrorStreakTracker, LearnerSessionState

logger = logging.getLogger(__name__)

StreakUpdate = Callable[[ErrorStreakTracker], None]


@dataclass
class Evaluation:
    details: FeedbackDetails
    feedback: Feedback
    stdout: str | None

    @property
    def error_line_number(self) -> int | None:
        return self.feedback.error_line_number


@dataclass
class _Outcome:
    details: FeedbackDetails
    feedback: Feedback
    stdout: str | None
    streak_update: StreakUpdate | None = None


@dataclass(frozen=True)
class _CaseRun:
    suite: TestSuite
    case: TestCase
    output: Any


def _clear_streaks(streaks: ErrorStreakTracker) -> None:
    streaks.record_runtime_error(None)


def _runtime_streak(error_string: str) -> StreakUpdate:
    def update(streaks: ErrorStreakTracker) -> None:
        streaks.record_runtime_error(error_string)
    return update


def link_program(starter_code: str, auxiliary_code: str, student_code: str) -> str:
    # Student definitions come last so they shadow the starter stubs.
    parts = [starter_code, auxiliary_code, student_code]
    return "\n\n".join(p for p in parts if p and p.strip()) + "\n"


class SubmissionGrader:
    """Turns one submission into exactly one piece of feedback.

    The grader owns the learner's session state; create one per learner per
    question and feed it submissions in order.
    """

    def __init__(
        self,
        executor: Executor,
        *,
        settings: Settings | None = None,
        state: LearnerSessionState | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self.executor = executor
        self.settings = settings or Settings()
        self.state = state or LearnerSessionState(
            streaks=ErrorStreakTracker(threshold=self.settings.language_unfamiliarity_threshold)
        )
        self._rng = rng or random.Random()

    @classmethod
    def with_local_executor(
        cls,
        *,
        settings: Settings | None = None,
        rng: random.Random | None = None,
    ) -> "SubmissionGrader":
        settings = settings or Settings()
        executor = LocalPythonExecutor(
            supported_libraries=settings.supported_python_libs,
            timeout_sec=settings.execution_timeout_sec,
        )
        return cls(executor, settings=settings, rng=rng)

    def needs_language_unfamiliarity_prompt(self) -> bool:
        return self.state.streaks.needs_language_unfamiliarity_prompt()

    def dismiss_language_unfamiliarity_prompt(self) -> None:
        self.state.streaks.reset()

    async def process_solution(
        self,
        ordered_tasks: Sequence[Task],
        starter_code: str,
        student_code: str,
        auxiliary_code: str,
        language: str,
    ) -> SubmissionResult:
        evaluation = await self.evaluate(
            ordered_tasks, starter_code, student_code, auxiliary_code, language
        )
        return SubmissionResult(
            feedback=evaluation.feedback,
            stdout=evaluation.stdout,
            details=evaluation.details,
        )

    async def evaluate(
        self,
        ordered_tasks: Sequence[Task],
        starter_code: str,
        student_code: str,
        auxiliary_code: str,
        language: str,
    ) -> Evaluation:
        ticket = self.state.begin_submission()
        outcome = await self._run_cascade(
            ordered_tasks, starter_code, student_code or "", auxiliary_code or "", language
        )
        committed = self.state.commit(ticket, raw_code=student_code, details=outcome.details)
        if committed and outcome.streak_update is not None:
            outcome.streak_update(self.state.streaks)
        outcome.feedback.needs_language_unfamiliarity_prompt = self.needs_language_unfamiliarity_prompt()
        logger.info(
            "submission: evaluated category=%s task_index=%s specific_test_index=%s "
            "message_index=%s hints_exhausted=%s committed=%s",
            outcome.details.category.value,
            outcome.details.task_index,
            outcome.details.specific_test_index,
            outcome.details.message_index,
            outcome.details.hints_exhausted,
            committed,
        )
        return Evaluation(details=outcome.details, feedback=outcome.feedback, stdout=outcome.stdout)

    async def _run_cascade(
        self,
        ordered_tasks: Sequence[Task],
        starter_code: str,
        student_code: str,
        auxiliary_code: str,
        language: str,
    ) -> _Outcome:
        prereq_outcome = await self._check_prerequisites(student_code, starter_code, language)
        if prereq_outcome is not None:
            return prereq_outcome

        syntax = await self.executor.check_syntax(student_code, language)
        if not syntax.valid:
            logger.info("submission: syntax_error line=%s", syntax.error_line_number)
            return _Outcome(
                FeedbackDetails(FeedbackCategory.SYNTAX_ERROR),
                fb.syntax_error_feedback(syntax.error_message, syntax.error_line_number),
                None,
                ErrorStreakTracker.record_syntax_error,
            )

        program = link_program(starter_code, auxiliary_code, student_code)
        stdout_parts: list[str] = []
        for task_index, task in enumerate(ordered_tasks):
            cases = list(task.iter_test_cases())
            if not cases:
                continue
            try:
                results = await self._run_student(program, task, [case.input for _, case in cases], language)
                if len(results) < len(cases) and not any(result.failed for result in results):
                    raise ExecutorError(f"expected {len(cases)} results, got {len(results)}")
            except ExecutorError as exc:
                logger.warning(
                    "submission: executor_failed task_index=%s error=%s", task_index, exc
                )
                error_string = f"ExecutorError: {exc}"
                failed_input = cases[0][1].input
                return _Outcome(
                    FeedbackDetails(FeedbackCategory.RUNTIME_ERROR, task_index),
                    fb.executor_failure_feedback(failed_input, error_string),
                    "".join(stdout_parts),
                    _runtime_streak(error_string),
                )
            runs: list[_CaseRun] = []
            for (suite, case), result in zip(cases, results):
                stdout_parts.append(result.stdout)
                if result.is_stack_overflow:
                    return _Outcome(
                        FeedbackDetails(FeedbackCategory.STACK_OVERFLOW, task_index),
                        fb.stack_overflow_feedback(),
                        "".join(stdout_parts),
                        _runtime_streak(result.raised_error or "RecursionError"),
                    )
                if result.raised_error is not None:
                    return _Outcome(
                        FeedbackDetails(FeedbackCategory.RUNTIME_ERROR, task_index),
                        fb.runtime_error_feedback(result.raised_error, case.input),
                        "".join(stdout_parts),
                        _runtime_streak(result.raised_error),
                    )
                runs.append(_CaseRun(suite, case, result.output))

            failing = next((run for run in runs if not run.case.matches_output(run.output)), None)
            if failing is None:
                logger.debug("submission: task_passed task_index=%s", task_index)
                continue
            feedback, details = await self._diagnose_failure(
                task_index, task, runs, failing, program, student_code, language
            )
            return _Outcome(details, feedback, "".join(stdout_parts), _clear_streaks)

        return _Outcome(
            FeedbackDetails(FeedbackCategory.SUCCESS),
            fb.success_feedback(),
            "".join(stdout_parts),
            _clear_streaks,
        )

    async def _check_prerequisites(
        self, student_code: str, starter_code: str, language: str
    ) -> _Outcome | None:
        check = await self.executor.check_prerequisites(student_code, starter_code, language)
        if check.ok:
            return None
        details = FeedbackDetails(FeedbackCategory.PREREQ_FAILURE)
        if check.missing_functions:
            logger.info("submission: prereq_missing_functions names=%s", ",".join(check.missing_functions))
            return _Outcome(details, fb.missing_starter_code_feedback(starter_code), None)
        if check.disallowed_imports:
            logger.info("submission: prereq_bad_import libs=%s", ",".join(check.disallowed_imports))
            supported = self.settings.supported_libs_for(language)
            return _Outcome(details, fb.bad_import_feedback(check.disallowed_imports, supported), None)
        if check.has_global_code:
            logger.info("submission: prereq_global_code")
            return _Outcome(details, fb.global_code_feedback(), None)
        first = check.wrong_language_errors[0]
        logger.info(
            "submission: prereq_wrong_language construct=%s line=%s", first.construct, first.line_number
        )
        return _Outcome(
            details,
            fb.wrong_language_feedback(first),
            None,
            ErrorStreakTracker.record_prereq_wrong_language_error,
        )

    async def _run_student(
        self, program: str, task: Task, inputs: list[Any], language: str
    ) -> list[RunResult]:
        return await self.executor.run_cases(
            program,
            task.main_function_name,
            inputs,
            language,
            input_function_name=task.input_function_name,
            output_function_name=task.output_function_name,
        )

    async def _diagnose_failure(
        self,
        task_index: int,
        task: Task,
        runs: list[_CaseRun],
        failing: _CaseRun,
        program: str,
        student_code: str,
        language: str,
    ) -> tuple[Feedback, FeedbackDetails]:
        for buggy_index, buggy in enumerate(task.buggy_output_tests):
            compared = [run for run in runs if run.suite.id not in buggy.ignored_test_suite_ids]
            if await self._reproduces_buggy_output(program, task, buggy.buggy_function_name, compared, language):
                key = FeedbackKey(FeedbackCategory.KNOWN_BUG_FAILURE, task_index, buggy_index)
                selection = select_message(key, buggy.messages, student_code, self.state)
                return self._hint_or_fallback(selection, failing)

        suite_results: dict[str, bool] = {}
        for run in runs:
            passed = run.case.matches_output(run.output)
            suite_results[run.suite.id] = suite_results.get(run.suite.id, True) and passed
        for suite in task.test_suites:
            suite_results.setdefault(suite.id, True)

        for suite_test_index, suite_test in enumerate(task.suite_level_tests):
            if suite_test.is_triggered(suite_results):
                key = FeedbackKey(FeedbackCategory.SUITE_LEVEL_FAILURE, task_index, suite_test_index)
                selection = select_message(key, suite_test.messages, student_code, self.state)
                return self._hint_or_fallback(selection, failing)

        details = FeedbackDetails(FeedbackCategory.CORRECTNESS_FAILURE, task_index)
        return self._correctness_feedback(failing), details

    async def _reproduces_buggy_output(
        self,
        program: str,
        task: Task,
        buggy_function_name: str,
        compared: list[_CaseRun],
        language: str,
    ) -> bool:
        if not compared:
            return False
        try:
            results = await self.executor.run_cases(
                program,
                buggy_function_name,
                [run.case.input for run in compared],
                language,
                input_function_name=task.input_function_name,
                output_function_name=task.output_function_name,
            )
        except ExecutorError as exc:
            logger.warning("submission: buggy_run_failed function=%s error=%s", buggy_function_name, exc)
            return False
        failed = next((result for result in results if result.failed), None)
        if failed is not None:
            logger.warning(
                "submission: buggy_function_raised function=%s error=%s",
                buggy_function_name,
                failed.raised_error,
            )
            return False
        if len(results) != len(compared):
            return False
        reproduces_wrong_answer = False
        for run, buggy in zip(compared, results):
            if not values_equal(buggy.output, run.output):
                return False
            if not run.case.matches_output(run.output):
                reproduces_wrong_answer = True
        return reproduces_wrong_answer

    def _hint_or_fallback(self, selection: HintSelection, failing: _CaseRun) -> tuple[Feedback, FeedbackDetails]:
        if selection.message is None:
            logger.info(
                "submission: hints_exhausted category=%s task_index=%s specific_test_index=%s",
                selection.details.category.value,
                selection.details.task_index,
                selection.details.specific_test_index,
            )
            return self._correctness_feedback(failing), selection.details
        return fb.hint_feedback(selection.message), selection.details

    def _correctness_feedback(self, failing: _CaseRun) -> Feedback:
        if failing.suite.id in self.settings.sample_input_suite_ids:
            return fb.output_diff_feedback(failing.case, failing.output, self._rng)
        return fb.input_to_try_feedback(failing.case, self._rng)
