from __future__ import annotations

import json
import random
import re
from typing import Any, Sequence

from .executor import WrongLanguageError
from .models import Feedback, TestCase
from .texts import (
    CORRECTNESS_FEEDBACK_TEXT,
    FEEDBACK_TYPE_INPUT_TO_TRY,
    FEEDBACK_TYPE_OUTPUT_ENABLED,
    WRONG_LANGUAGE_REPLACEMENTS,
    t,
)

_NAME_ERROR = re.compile(r"^NameError: name '(\w+)' is not defined")
_INDEX_ERROR = re.compile(r"^IndexError: .*out of range")


def render_value(value: Any) -> str:
    if isinstance(value, str):
        return json.dumps(value, ensure_ascii=False)
    if isinstance(value, list):
        return "[" + ", ".join(render_value(v) for v in value) + "]"
    if isinstance(value, tuple):
        inner = ", ".join(render_value(v) for v in value)
        return f"({inner},)" if len(value) == 1 else f"({inner})"
    if isinstance(value, dict):
        items = ", ".join(f"{render_value(k)}: {render_value(v)}" for k, v in value.items())
        return "{" + items + "}"
    if isinstance(value, (set, frozenset)):
        if not value:
            return "set()"
        return "{" + ", ".join(sorted(render_value(v) for v in value)) + "}"
    return repr(value)


def missing_starter_code_feedback(starter_code: str) -> Feedback:
    feedback = Feedback()
    feedback.append_text(t("missing_starter_code"))
    feedback.append_code(starter_code)
    return feedback


def bad_import_feedback(libraries: Sequence[str], supported: Sequence[str]) -> Feedback:
    feedback = Feedback()
    feedback.append_text(t("bad_import_intro"))
    feedback.append_code(", ".join(libraries))
    feedback.append_text(t("bad_import_supported"))
    feedback.append_code(", ".join(supported))
    return feedback


def global_code_feedback() -> Feedback:
    feedback = Feedback()
    feedback.append_text(t("global_code"))
    return feedback


def wrong_language_feedback(error: WrongLanguageError) -> Feedback:
    replacement = WRONG_LANGUAGE_REPLACEMENTS.get(error.construct, error.construct)
    feedback = Feedback(error_line_number=error.line_number)
    feedback.append_text(
        t(
            "wrong_language",
            construct=f"`{error.construct}`",
            line_number=error.line_number,
            replacement=f"`{replacement}`",
        )
    )
    return feedback


def syntax_error_feedback(error_message: str | None, error_line_number: int | None) -> Feedback:
    message = error_message or "SyntaxError: invalid syntax"
    if error_line_number is not None:
        message = f"{message} on line {error_line_number}"
    feedback = Feedback(error_line_number=error_line_number)
    feedback.append_text(t("syntax_error_intro"))
    feedback.append_code(message)
    return feedback


def stack_overflow_feedback() -> Feedback:
    feedback = Feedback()
    feedback.append_text(t("stack_overflow"))
    return feedback


def runtime_error_feedback(error_string: str, input_value: Any) -> Feedback:
    rendered = render_value(input_value)
    name_match = _NAME_ERROR.match(error_string)
    if name_match:
        text = t("runtime_error_undeclared", name=name_match.group(1), input=rendered)
    elif _INDEX_ERROR.match(error_string):
        text = t("runtime_error_index", input=rendered)
    else:
        text = t("runtime_error", input=rendered)
    feedback = Feedback()
    feedback.append_text(text)
    feedback.append_code(error_string)
    return feedback


def executor_failure_feedback(input_value: Any, reason: str) -> Feedback:
    feedback = Feedback()
    feedback.append_text(t("executor_failure", input=render_value(input_value)))
    feedback.append_code(reason)
    return feedback


def hint_feedback(message: str) -> Feedback:
    feedback = Feedback()
    feedback.append_text(message)
    return feedback


def input_to_try_feedback(test_case: TestCase, rng: random.Random) -> Feedback:
    feedback = Feedback()
    feedback.append_text(rng.choice(CORRECTNESS_FEEDBACK_TEXT[FEEDBACK_TYPE_INPUT_TO_TRY]))
    feedback.append_code(t("input_line", input=render_value(test_case.input)))
    return feedback


def output_diff_feedback(test_case: TestCase, actual_output: Any, rng: random.Random) -> Feedback:
    expected = test_case.allowed_outputs[0] if test_case.allowed_outputs else None
    feedback = Feedback()
    feedback.append_text(rng.choice(CORRECTNESS_FEEDBACK_TEXT[FEEDBACK_TYPE_OUTPUT_ENABLED]))
    feedback.append_output(
        t(
            "output_diff",
            input=render_value(test_case.input),
            expected=render_value(expected),
            actual=render_value(actual_output),
        )
    )
    return feedback


def success_feedback() -> Feedback:
    feedback = Feedback(is_answer_correct=True)
    feedback.append_text(t("success"))
    return feedback
