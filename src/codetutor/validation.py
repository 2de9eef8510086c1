from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from .models import Task


@dataclass(frozen=True)
class ValidationIssue:
    severity: str  # "error" | "warning"
    message: str
    task_index: int | None = None
    suite_id: str | None = None
    test_index: int | None = None


def _unknown_suite_ids(task: Task, suite_ids: Iterable[str]) -> list[str]:
    known = {suite.id for suite in task.test_suites}
    return sorted(sid for sid in suite_ids if sid not in known)


def validate_task(task: Task, task_index: int | None = None) -> list[ValidationIssue]:
    issues: list[ValidationIssue] = []
    if not task.main_function_name:
        issues.append(ValidationIssue("error", "mainFunctionName is required", task_index))
    if not task.test_suites:
        issues.append(ValidationIssue("warning", "task has no test suites", task_index))

    seen: set[str] = set()
    for suite in task.test_suites:
        if suite.id in seen:
            issues.append(
                ValidationIssue("error", "duplicate test suite id", task_index, suite_id=suite.id)
            )
        seen.add(suite.id)
        if not suite.test_cases:
            issues.append(
                ValidationIssue("error", "test suite has no test cases", task_index, suite_id=suite.id)
            )
        for case_index, case in enumerate(suite.test_cases):
            if not case.allowed_outputs:
                issues.append(
                    ValidationIssue(
                        "error",
                        "allowedOutputs must be a non-empty list",
                        task_index,
                        suite_id=suite.id,
                        test_index=case_index,
                    )
                )

    for idx, buggy in enumerate(task.buggy_output_tests):
        if not buggy.buggy_function_name:
            issues.append(
                ValidationIssue("error", "buggyFunctionName is required", task_index, test_index=idx)
            )
        if not buggy.messages:
            issues.append(
                ValidationIssue("error", "buggy output test needs at least one message", task_index, test_index=idx)
            )
        for sid in _unknown_suite_ids(task, buggy.ignored_test_suite_ids):
            issues.append(
                ValidationIssue(
                    "error",
                    "ignoredTestSuiteIds refers to an unknown suite",
                    task_index,
                    suite_id=sid,
                    test_index=idx,
                )
            )

    for idx, suite_test in enumerate(task.suite_level_tests):
        if not suite_test.messages:
            issues.append(
                ValidationIssue("error", "suite-level test needs at least one message", task_index, test_index=idx)
            )
        referenced = suite_test.test_suite_ids_that_must_pass | suite_test.test_suite_ids_that_must_fail
        for sid in _unknown_suite_ids(task, referenced):
            issues.append(
                ValidationIssue(
                    "error",
                    "suite-level test refers to an unknown suite",
                    task_index,
                    suite_id=sid,
                    test_index=idx,
                )
            )
        overlap = suite_test.test_suite_ids_that_must_pass & suite_test.test_suite_ids_that_must_fail
        for sid in sorted(overlap):
            issues.append(
                ValidationIssue(
                    "error",
                    "suite cannot be required to both pass and fail",
                    task_index,
                    suite_id=sid,
                    test_index=idx,
                )
            )
    return issues


def validate_tasks(tasks: Iterable[Task]) -> list[ValidationIssue]:
    issues: list[ValidationIssue] = []
    for idx, task in enumerate(tasks):
        issues.extend(validate_task(task, idx))
    return issues
