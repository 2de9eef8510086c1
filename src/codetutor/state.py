from __future__ import annotations

import itertools
import logging
from dataclasses import dataclass, field

from .config import LANGUAGE_UNFAMILIARITY_THRESHOLD
from .models import FeedbackDetails

logger = logging.getLogger(__name__)


@dataclass
class ErrorStreakTracker:
    """Counts consecutive signs that the learner is fighting the language itself.

    Syntax errors and wrong-language constructs share one counter; repeats of
    the exact same runtime error share another. Recording either kind zeroes
    the other, so a streak only survives uninterrupted runs of one kind.
    """

    threshold: int = LANGUAGE_UNFAMILIARITY_THRESHOLD
    num_consecutive_language_unfamiliarity_errors: int = 0
    num_consecutive_same_runtime_errors: int = 0
    previous_runtime_error_string: str | None = None

    def record_syntax_error(self) -> None:
        self._record_language_unfamiliarity_error()

    def record_prereq_wrong_language_error(self) -> None:
        self._record_language_unfamiliarity_error()

    def _record_language_unfamiliarity_error(self) -> None:
        self.num_consecutive_language_unfamiliarity_errors += 1
        self.num_consecutive_same_runtime_errors = 0
        self.previous_runtime_error_string = None

    def record_runtime_error(self, runtime_error_string: str | None) -> None:
        if runtime_error_string:
            if runtime_error_string == self.previous_runtime_error_string:
                self.num_consecutive_same_runtime_errors += 1
            else:
                self.num_consecutive_same_runtime_errors = 1
        else:
            self.num_consecutive_same_runtime_errors = 0
        self.num_consecutive_language_unfamiliarity_errors = 0
        self.previous_runtime_error_string = runtime_error_string or None

    def needs_language_unfamiliarity_prompt(self) -> bool:
        longest = max(
            self.num_consecutive_language_unfamiliarity_errors,
            self.num_consecutive_same_runtime_errors,
        )
        return longest >= self.threshold

    def reset(self) -> None:
        self.num_consecutive_language_unfamiliarity_errors = 0
        self.num_consecutive_same_runtime_errors = 0
        self.previous_runtime_error_string = None


@dataclass
class LearnerSessionState:
    previous_raw_code: str | None = None
    previous_feedback_details: FeedbackDetails | None = None
    streaks: ErrorStreakTracker = field(default_factory=ErrorStreakTracker)
    _tickets: itertools.count = field(default_factory=lambda: itertools.count(1), repr=False)
    _last_committed_ticket: int = field(default=0, repr=False)

    def has_raw_code_changed(self, raw_code: str) -> bool:
        return raw_code != self.previous_raw_code

    def begin_submission(self) -> int:
        return next(self._tickets)

    def is_stale(self, ticket: int) -> bool:
        return ticket < self._last_committed_ticket

    def commit(self, ticket: int, *, raw_code: str, details: FeedbackDetails) -> bool:
        if self.is_stale(ticket):
            logger.warning(
                "learner_state: stale_submission_discarded ticket=%s last_committed=%s",
                ticket,
                self._last_committed_ticket,
            )
            return False
        self._last_committed_ticket = ticket
        self.previous_raw_code = raw_code
        self.previous_feedback_details = details
        return True
