from __future__ import annotations

import ast
import asyncio
import io
import json
import logging
import re
import secrets
import subprocess
import sys
import tokenize
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable, Sequence

from .config import DEFAULT_EXECUTION_TIMEOUT_SEC, SUPPORTED_PYTHON_LIBS
from .executor import (
    ExecutorError,
    OpaqueOutput,
    PrerequisiteCheck,
    RunResult,
    SyntaxCheck,
    UnsupportedLanguageError,
    WrongLanguageError,
)
from .sandbox_runner import decode_value, encode_value

logger = logging.getLogger(__name__)

_STARTER_DEFINITION = re.compile(r"^(?:async\s+)?(?:def|class)\s+(\w+)", re.MULTILINE)
_DEFINES_PUSH = re.compile(r"^\s*(?:async\s+)?def\s+push\s*\(", re.MULTILINE)
_ALLOWED_TOP_LEVEL = (ast.FunctionDef, ast.AsyncFunctionDef, ast.ClassDef, ast.Import, ast.ImportFrom)
_JS_LITERALS = {"true", "false", "null"}
_RUNNER_PATH = Path(__file__).with_name("sandbox_runner.py")


def _ensure_python(language: str) -> None:
    if language != "python":
        raise UnsupportedLanguageError(f"unsupported language: {language}")


def _parse(code: str) -> ast.Module | None:
    try:
        return ast.parse(code or "")
    except (SyntaxError, ValueError):
        # Unparseable code is reported by the syntax check instead.
        return None


def starter_function_names(starter_code: str) -> list[str]:
    return _STARTER_DEFINITION.findall(starter_code or "")


def find_missing_functions(code: str, starter_code: str) -> list[str]:
    missing = []
    for name in starter_function_names(starter_code):
        pattern = re.compile(rf"^\s*(?:async\s+)?(?:def|class)\s+{re.escape(name)}\b", re.MULTILINE)
        if not pattern.search(code or ""):
            missing.append(name)
    return missing


def find_imported_libraries(code: str) -> list[str]:
    tree = _parse(code)
    if tree is None:
        return []
    imports = [node for node in ast.walk(tree) if isinstance(node, (ast.Import, ast.ImportFrom))]
    imports.sort(key=lambda node: (node.lineno, node.col_offset))
    found: list[str] = []
    for node in imports:
        if isinstance(node, ast.Import):
            names = [alias.name for alias in node.names]
        elif node.level == 0 and node.module:
            names = [node.module]
        else:
            continue
        for name in names:
            top = name.split(".")[0]
            if top not in found:
                found.append(top)
    return found


def has_global_code(code: str) -> bool:
    tree = _parse(code)
    if tree is None:
        return False
    for node in tree.body:
        if isinstance(node, _ALLOWED_TOP_LEVEL):
            continue
        if isinstance(node, ast.Expr) and isinstance(node.value, ast.Constant) and isinstance(node.value.value, str):
            continue
        return True
    return False


def _iter_tokens(code: str) -> Iterable[tokenize.TokenInfo]:
    readline = io.StringIO(code or "").readline
    try:
        for tok in tokenize.generate_tokens(readline):
            yield tok
    except (tokenize.TokenError, IndentationError, SyntaxError):
        return


def find_wrong_language_constructs(code: str) -> list[WrongLanguageError]:
    tokens = [
        tok for tok in _iter_tokens(code)
        if tok.type not in (tokenize.COMMENT, tokenize.NL, tokenize.INDENT, tokenize.DEDENT)
    ]
    errors: list[WrongLanguageError] = []
    defines_push = bool(_DEFINES_PUSH.search(code or ""))
    for idx, tok in enumerate(tokens):
        prev = tokens[idx - 1] if idx > 0 else None
        nxt = tokens[idx + 1] if idx + 1 < len(tokens) else None
        line = tok.start[0]
        if tok.string in ("&", "|") and nxt is not None and nxt.string == tok.string and nxt.start == tok.end:
            errors.append(WrongLanguageError(tok.string * 2, line))
        elif (
            tok.type == tokenize.NAME
            and tok.string == "push"
            and not defines_push
            and prev is not None
            and prev.string == "."
            and nxt is not None
            and nxt.string == "("
        ):
            errors.append(WrongLanguageError("push", line))
        elif (
            tok.type == tokenize.NAME
            and tok.string == "else"
            and nxt is not None
            and nxt.string == "if"
            and nxt.start[0] == line
        ):
            errors.append(WrongLanguageError("else if", line))
        elif tok.type == tokenize.NAME and tok.string in _JS_LITERALS:
            if prev is not None and prev.string in (".", "def", "class"):
                continue
            if nxt is not None and nxt.string == "=":
                continue
            errors.append(WrongLanguageError(tok.string, line))
    return errors


def _decode_result(raw: dict) -> RunResult:
    if raw.get("error") is not None:
        return RunResult(
            stdout=raw.get("stdout", ""),
            raised_error=raw["error"],
            is_stack_overflow=bool(raw.get("stack_overflow")),
        )
    return RunResult(output=decode_value(raw["output"], OpaqueOutput), stdout=raw.get("stdout", ""))


@dataclass
class LocalPythonExecutor:
    """Runs each batch of cases in a fresh child interpreter.

    The child is killed when it exceeds ``timeout_sec``. It is a separate
    process but not a security sandbox: it has the host's filesystem and
    network access.
    """

    supported_libraries: tuple[str, ...] = field(default_factory=lambda: tuple(SUPPORTED_PYTHON_LIBS))
    timeout_sec: float = DEFAULT_EXECUTION_TIMEOUT_SEC
    python_executable: str = field(default_factory=lambda: sys.executable)

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
        _ensure_python(language)
        sentinel = f"--codetutor-result-{secrets.token_hex(16)}--"
        request = {
            "code": code,
            "function_name": function_name,
            "inputs": [encode_value(value) for value in inputs],
            "input_function_name": input_function_name,
            "output_function_name": output_function_name,
            "sentinel": sentinel,
        }
        try:
            completed = await asyncio.to_thread(
                subprocess.run,
                [self.python_executable, "-I", str(_RUNNER_PATH)],
                input=json.dumps(request),
                capture_output=True,
                text=True,
                timeout=self.timeout_sec,
            )
        except subprocess.TimeoutExpired as exc:
            logger.warning(
                "executor: run_timed_out function=%s cases=%s timeout_sec=%s",
                function_name,
                len(inputs),
                self.timeout_sec,
            )
            raise ExecutorError(f"execution timed out after {self.timeout_sec}s") from exc

        _, found, payload = completed.stdout.rpartition(sentinel)
        if not found:
            logger.warning(
                "executor: runner_no_result function=%s returncode=%s stderr=%s",
                function_name,
                completed.returncode,
                completed.stderr[-500:],
            )
            raise ExecutorError(f"the program stopped before reporting results (exit code {completed.returncode})")
        try:
            results = [_decode_result(raw) for raw in json.loads(payload)["results"]]
        except (ValueError, KeyError, TypeError) as exc:
            raise ExecutorError("could not read the program's results") from exc
        logger.debug(
            "executor: run function=%s cases=%s results=%s failed=%s",
            function_name,
            len(inputs),
            len(results),
            any(result.failed for result in results),
        )
        return results

    async def check_syntax(self, code: str, language: str) -> SyntaxCheck:
        _ensure_python(language)
        try:
            compile(code or "", "<submission>", "exec")
        except SyntaxError as exc:
            return SyntaxCheck(
                valid=False,
                error_message=f"{type(exc).__name__}: {exc.msg}",
                error_line_number=exc.lineno,
            )
        except ValueError as exc:
            # e.g. source containing null bytes
            return SyntaxCheck(valid=False, error_message=f"SyntaxError: {exc}")
        return SyntaxCheck(valid=True)

    async def check_prerequisites(self, code: str, starter_code: str, language: str) -> PrerequisiteCheck:
        _ensure_python(language)
        supported = set(self.supported_libraries)
        disallowed = [lib for lib in find_imported_libraries(code) if lib not in supported]
        return PrerequisiteCheck(
            has_global_code=has_global_code(code),
            missing_functions=tuple(find_missing_functions(code, starter_code)),
            disallowed_imports=tuple(disallowed),
            wrong_language_errors=tuple(find_wrong_language_constructs(code)),
        )
