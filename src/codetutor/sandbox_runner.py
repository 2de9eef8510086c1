"""Child-process side of ``LocalPythonExecutor``.

Run as ``python -I sandbox_runner.py``. Reads one JSON request from stdin,
executes the linked program once, calls the requested function for every
input in order against that single program instance, and prints the results
after a sentinel line. Only the standard library may be imported here.
"""

from __future__ import annotations

import contextlib
import io
import json
import sys
from typing import Any

STACK_OVERFLOW_ERROR = "RecursionError: maximum recursion depth exceeded"

_SCALAR_TYPES = (type(None), bool, int, float, str)


def encode_value(value: Any) -> dict:
    """Tag a value so containers survive the JSON round trip between processes."""
    kind = type(value)
    if kind in _SCALAR_TYPES:
        return {"v": value}
    if kind is list:
        return {"list": [encode_value(v) for v in value]}
    if kind is tuple:
        return {"tuple": [encode_value(v) for v in value]}
    if kind is set:
        return {"set": [encode_value(v) for v in value]}
    if kind is frozenset:
        return {"frozenset": [encode_value(v) for v in value]}
    if kind is dict:
        return {"dict": [[encode_value(k), encode_value(v)] for k, v in value.items()]}
    return {"opaque": repr(value)}


def decode_value(raw: dict, opaque_factory=None) -> Any:
    if "v" in raw:
        return raw["v"]
    if "list" in raw:
        return [decode_value(v, opaque_factory) for v in raw["list"]]
    if "tuple" in raw:
        return tuple(decode_value(v, opaque_factory) for v in raw["tuple"])
    if "set" in raw:
        return {decode_value(v, opaque_factory) for v in raw["set"]}
    if "frozenset" in raw:
        return frozenset(decode_value(v, opaque_factory) for v in raw["frozenset"])
    if "dict" in raw:
        return {decode_value(k, opaque_factory): decode_value(v, opaque_factory) for k, v in raw["dict"]}
    if "opaque" in raw:
        return opaque_factory(raw["opaque"]) if opaque_factory else raw["opaque"]
    raise ValueError(f"unknown value encoding: {sorted(raw)}")


def _safe_encode(value: Any) -> dict:
    try:
        return encode_value(value)
    except RecursionError:
        return {"opaque": "<unrepresentable value>"}


def _resolve(namespace: dict[str, Any], dotted_name: str) -> Any:
    head, *rest = dotted_name.split(".")
    if head not in namespace:
        raise NameError(f"name '{head}' is not defined")
    obj = namespace[head]
    for attr in rest:
        obj = getattr(obj, attr)
    return obj


def _error_result(stdout: str, exc: BaseException) -> dict:
    if isinstance(exc, RecursionError):
        return {"stdout": stdout, "error": STACK_OVERFLOW_ERROR, "stack_overflow": True}
    return {"stdout": stdout, "error": f"{type(exc).__name__}: {exc}", "stack_overflow": False}


def run_request(request: dict) -> list[dict]:
    namespace: dict[str, Any] = {"__name__": "__submission__"}
    input_function_name = request.get("input_function_name")
    output_function_name = request.get("output_function_name")
    results: list[dict] = []

    # Output printed while the program loads is attributed to the first case.
    pending = io.StringIO()
    try:
        with contextlib.redirect_stdout(pending):
            exec(compile(request["code"], "<submission>", "exec"), namespace)
    except BaseException as exc:
        return [_error_result(pending.getvalue(), exc)]

    for raw_input in request["inputs"]:
        buf = io.StringIO()
        buf.write(pending.getvalue())
        pending = io.StringIO()
        try:
            with contextlib.redirect_stdout(buf):
                value = decode_value(raw_input)
                if input_function_name:
                    value = _resolve(namespace, input_function_name)(value)
                output = _resolve(namespace, request["function_name"])(value)
                if output_function_name:
                    output = _resolve(namespace, output_function_name)(output)
        except BaseException as exc:
            # SystemExit and KeyboardInterrupt from learner code are ordinary failures here.
            results.append(_error_result(buf.getvalue(), exc))
            break
        results.append(
            {"stdout": buf.getvalue(), "error": None, "stack_overflow": False, "output": _safe_encode(output)}
        )
    return results


def main() -> int:
    request = json.loads(sys.stdin.read())
    results = run_request(request)
    real_stdout = sys.__stdout__
    real_stdout.write("\n" + request["sentinel"] + "\n")
    real_stdout.write(json.dumps({"results": results}))
    real_stdout.flush()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
