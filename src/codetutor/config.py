from __future__ import annotations
import os
from dataclasses import dataclass, field
from typing import List
from dotenv import load_dotenv

LANGUAGE_UNFAMILIARITY_THRESHOLD = 5
SAMPLE_INPUT_SUITE_ID = "SAMPLE_INPUT"
DEFAULT_EXECUTION_TIMEOUT_SEC = 5.0

SUPPORTED_PYTHON_LIBS = [
    "array",
    "bisect",
    "collections",
    "copy",
    "datetime",
    "decimal",
    "fractions",
    "functools",
    "heapq",
    "itertools",
    "math",
    "numbers",
    "operator",
    "random",
    "re",
    "string",
    "time",
    "types",
]

def _split_csv(s: str) -> List[str]:
    out = []
    for part in (s or "").split(","):
        part = part.strip()
        if part:
            out.append(part)
    return out

@dataclass(frozen=True)
class Settings:
    language_unfamiliarity_threshold: int = LANGUAGE_UNFAMILIARITY_THRESHOLD
    sample_input_suite_ids: frozenset[str] = frozenset({SAMPLE_INPUT_SUITE_ID})
    supported_python_libs: tuple[str, ...] = field(default_factory=lambda: tuple(SUPPORTED_PYTHON_LIBS))
    execution_timeout_sec: float = DEFAULT_EXECUTION_TIMEOUT_SEC

    def supported_libs_for(self, language: str) -> tuple[str, ...]:
        if language == "python":
            return self.supported_python_libs
        return ()


def _parse_number(name: str, default, convert):
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return convert(raw)
    except ValueError as exc:
        raise RuntimeError(f"{name} must be a number, got {raw!r}") from exc


def load_settings() -> Settings:
    load_dotenv()
    threshold = _parse_number("LANGUAGE_UNFAMILIARITY_THRESHOLD", LANGUAGE_UNFAMILIARITY_THRESHOLD, int)
    if threshold < 1:
        raise RuntimeError("LANGUAGE_UNFAMILIARITY_THRESHOLD must be >= 1")

    sample_ids = _split_csv(os.getenv("SAMPLE_INPUT_SUITE_IDS", SAMPLE_INPUT_SUITE_ID))
    libs = _split_csv(os.getenv("SUPPORTED_PYTHON_LIBS", "")) or list(SUPPORTED_PYTHON_LIBS)

    timeout = _parse_number("EXECUTION_TIMEOUT_SEC", DEFAULT_EXECUTION_TIMEOUT_SEC, float)
    if not timeout > 0:
        raise RuntimeError("EXECUTION_TIMEOUT_SEC must be positive")

    return Settings(
        language_unfamiliarity_threshold=threshold,
        sample_input_suite_ids=frozenset(sample_ids),
        supported_python_libs=tuple(libs),
        execution_timeout_sec=timeout,
    )
