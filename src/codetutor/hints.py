from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from .models import HINT_CYCLE_CATEGORIES, FeedbackDetails, FeedbackKey
from .state import LearnerSessionState


@dataclass(frozen=True)
class HintSelection:
    message: str | None
    details: FeedbackDetails

    @property
    def exhausted(self) -> bool:
        return self.message is None


def select_message(
    key: FeedbackKey,
    messages: Sequence[str],
    raw_code: str,
    state: LearnerSessionState,
) -> HintSelection:
    """Pick the hint to show for a known-bug or suite-level rule.

    Resubmitting the same code repeats the previous hint; changed code that
    still trips the same rule moves to the next hint; anything else starts
    again from the first hint. Running past the end of ``messages`` returns
    ``message=None`` so the caller can fall back to generic feedback.
    """
    if key.category not in HINT_CYCLE_CATEGORIES:
        raise ValueError(f"Invalid feedback category: {key.category}")
    if not messages:
        raise ValueError("messages must not be empty")

    previous = state.previous_feedback_details
    if previous is None or previous.key != key:
        index = 0
        exhausted = False
    elif not state.has_raw_code_changed(raw_code):
        index = previous.message_index or 0
        exhausted = previous.hints_exhausted
    else:
        index = (previous.message_index or 0) + 1
        exhausted = previous.hints_exhausted

    if exhausted or index >= len(messages):
        details = FeedbackDetails(
            key.category,
            key.task_index,
            key.specific_test_index,
            message_index=len(messages) - 1,
            hints_exhausted=True,
        )
        return HintSelection(None, details)

    details = FeedbackDetails(
        key.category,
        key.task_index,
        key.specific_test_index,
        message_index=index,
    )
    return HintSelection(messages[index], details)
