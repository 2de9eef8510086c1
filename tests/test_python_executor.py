import asyncio

import pytest

from codetutor.executor import ExecutorError, OpaqueOutput, UnsupportedLanguageError
from codetutor.python_executor import (
    LocalPythonExecutor,
    find_imported_libraries,
    find_missing_functions,
    find_wrong_language_constructs,
    has_global_code,
)
from codetutor.sandbox_runner import STACK_OVERFLOW_ERROR

MULTI_ERROR_CODE = "\n".join(
    [
        "def mockMainFunction(input):",
        "    return True",
        "def myFunction(arg):",
        "    arg = arg / 2",
        "    arg--",
        "    return arg",
        "def myFunction2(arg):",
        "    arg++",
        "    return arg",
        "",
    ]
)


def test_syntax_error_reports_first_line():
    check = asyncio.run(LocalPythonExecutor().check_syntax(MULTI_ERROR_CODE, "python"))
    assert check.valid is False
    assert check.error_line_number == 5
    assert check.error_message.startswith("SyntaxError:")


def test_valid_syntax():
    check = asyncio.run(LocalPythonExecutor().check_syntax("def f(x):\n    return x\n", "python"))
    assert check.valid is True
    assert check.error_message is None


def test_indentation_error_category():
    check = asyncio.run(LocalPythonExecutor().check_syntax("def f(x):\nreturn x\n", "python"))
    assert check.valid is False
    assert check.error_message.startswith("IndentationError:")
    assert check.error_line_number == 2


def test_missing_functions():
    starter = "def main(x):\n    pass\n\ndef helper(y):\n    pass\n"
    assert find_missing_functions("def main(x):\n    return 1\n", starter) == ["helper"]
    assert find_missing_functions("", starter) == ["main", "helper"]


def test_imported_libraries():
    code = "import math, os.path as p\nfrom collections import deque\nfrom . import sibling\n"
    assert find_imported_libraries(code) == ["math", "os", "collections"]


def test_imported_libraries_ignore_comments_and_strings():
    code = 'import math  # for sqrt\n"""\nimport os\n"""\ndef f(x):\n    from re import sub\n    return x\n'
    assert find_imported_libraries(code) == ["math", "re"]


def test_push_is_allowed_when_the_program_defines_it():
    code = "\n".join(
        [
            "class Stack:",
            "    def push(self, item):",
            "        self.items.append(item)",
            "def f(stack):",
            "    stack.push(1)",
        ]
    )
    assert find_wrong_language_constructs(code) == []


@pytest.mark.parametrize(
    "code, expected",
    [
        ("def f():\n    return 1\n", False),
        ('"""doc"""\nimport math\nclass A:\n    pass\n', False),
        ("def f():\n    return 1\nf()\n", True),
        ("x = 3\n", True),
        ("def f(:\n", False),
    ],
)
def test_global_code(code, expected):
    assert has_global_code(code) is expected


def test_wrong_language_constructs():
    code = "\n".join(
        [
            "def f(a, b):",
            "    if a && b:",
            "        return true",
            "    else if a || b:",
            "        items.push(1)",
            "    return null",
        ]
    )
    found = [(e.construct, e.line_number) for e in find_wrong_language_constructs(code)]
    assert ("&&", 2) in found
    assert ("true", 3) in found
    assert ("else if", 4) in found
    assert ("||", 4) in found
    assert ("push", 5) in found
    assert ("null", 6) in found


def test_wrong_language_ignores_strings_and_python():
    code = 'def f(a):\n    s = "true && false"\n    return a and True\n'
    assert find_wrong_language_constructs(code) == []


def _run(code, function_name, inputs, executor=None, **kwargs):
    executor = executor or LocalPythonExecutor()
    return asyncio.run(executor.run_cases(code, function_name, inputs, "python", **kwargs))


def test_run_cases_returns_output_and_stdout():
    code = "def f(x):\n    print('got', x)\n    return x * 2\n"
    [result] = _run(code, "f", [21])
    assert result.output == 42
    assert result.stdout == "got 21\n"
    assert result.failed is False


def test_run_cases_applies_input_and_output_functions():
    code = "\n".join(
        [
            "def parse(raw):",
            "    return raw.split(',')",
            "def main(items):",
            "    return len(items)",
            "class Out:",
            "    @classmethod",
            "    def fmt(cls, n):",
            "        return str(n)",
        ]
    )
    [result] = _run(code, "main", ["a,b,c"], input_function_name="parse", output_function_name="Out.fmt")
    assert result.output == "3"


def test_run_cases_shares_one_program_instance():
    code = "class Counter:\n    n = 0\ndef tick(x):\n    Counter.n += x\n    return Counter.n\n"
    results = _run(code, "tick", [1, 1, 5])
    assert [result.output for result in results] == [1, 2, 7]


def test_run_cases_keeps_container_types():
    code = "def f(x):\n    return (x, {x}, {'k': [x]})\n"
    [result] = _run(code, "f", [3])
    assert result.output == (3, {3}, {"k": [3]})


def test_run_cases_wraps_unrepresentable_output():
    code = "class P:\n    def __repr__(self):\n        return 'P()'\ndef f(x):\n    return P()\n"
    [result] = _run(code, "f", [1])
    assert result.output == OpaqueOutput("P()")
    assert repr(result.output) == "P()"


def test_run_cases_stops_at_first_runtime_error():
    code = "def f(x):\n    if x == 2:\n        return greeting\n    return x\n"
    results = _run(code, "f", [1, 2, 3])
    assert len(results) == 2
    assert results[0].output == 1
    assert results[1].failed is True
    assert results[1].raised_error == "NameError: name 'greeting' is not defined"
    assert results[1].is_stack_overflow is False


def test_run_cases_reports_stack_overflow():
    code = "def f(x):\n    return f(x)\n"
    [result] = _run(code, "f", [1])
    assert result.is_stack_overflow is True
    assert result.raised_error == STACK_OVERFLOW_ERROR


@pytest.mark.parametrize(
    "body, expected",
    [
        ("    exit()", "SystemExit: "),
        ("    raise SystemExit(3)", "SystemExit: 3"),
        ("    raise KeyboardInterrupt", "KeyboardInterrupt: "),
    ],
)
def test_run_cases_reports_interpreter_exits_as_errors(body, expected):
    [result] = _run(f"def f(x):\n{body}\n", "f", [1])
    assert result.failed is True
    assert result.raised_error == expected


def test_run_cases_reports_error_while_loading_program():
    [result] = _run("def f(x):\n    return x\nprint('loading')\nundefined_name\n", "f", [1, 2])
    assert result.raised_error == "NameError: name 'undefined_name' is not defined"
    assert result.stdout == "loading\n"


def test_run_cases_hard_exit_raises_executor_error():
    code = "import os\ndef f(x):\n    os._exit(0)\n"
    with pytest.raises(ExecutorError):
        _run(code, "f", [1])


def test_run_cases_kills_non_terminating_code(capsys):
    code = "def f(x):\n    while True:\n        pass\n"
    with pytest.raises(ExecutorError, match="timed out"):
        _run(code, "f", [1], executor=LocalPythonExecutor(timeout_sec=0.5))
    print("still printing")
    assert capsys.readouterr().out == "still printing\n"


def test_prerequisite_check_flags_unsupported_import():
    check = asyncio.run(
        LocalPythonExecutor().check_prerequisites(
            "import pandas\ndef main(x):\n    return x\n", "def main(x):\n    pass\n", "python"
        )
    )
    assert check.ok is False
    assert check.disallowed_imports == ("pandas",)
    assert check.missing_functions == ()


def test_unsupported_language():
    with pytest.raises(UnsupportedLanguageError):
        asyncio.run(LocalPythonExecutor().check_syntax("x", "javascript"))
