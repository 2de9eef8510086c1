from __future__ import annotations

FEEDBACK_TYPE_INPUT_TO_TRY = "input_to_try"
FEEDBACK_TYPE_OUTPUT_ENABLED = "output_enabled"

CORRECTNESS_FEEDBACK_TEXT: dict[str, list[str]] = {
    FEEDBACK_TYPE_INPUT_TO_TRY: [
        "Your code gave an unexpected result for the following input. Try tracing through it by hand:",
        "Here's an input that your code doesn't handle correctly. What should happen in this case?",
        "Your code isn't working for this input yet. Could you walk through what it does step by step?",
        "Try running your code mentally on this input and compare it with what you expect:",
    ],
    FEEDBACK_TYPE_OUTPUT_ENABLED: [
        "Your code produced a different output from the one we expected for this sample input:",
        "Compare the expected and actual output for this sample input:",
        "Here's what your code returned for the sample input, next to what we expected:",
    ],
}

STRINGS: dict[str, str] = {
    "global_code": (
        "Please keep your code within the existing predefined functions or define your own "
        "helper functions if you need to -- we cannot process code in the global scope."
    ),
    "missing_starter_code": (
        "It looks like you deleted or modified the starter code!  Our evaluation program "
        "requires the function names given in the starter code.  You can press the 'Reset Code' "
        "button to start over.  Or, you can copy the starter code below:"
    ),
    "bad_import_intro": (
        "It looks like you're importing an external library. However, the following "
        "libraries are not supported:\n"
    ),
    "bad_import_supported": "Here is a list of libraries we currently support:\n",
    "wrong_language": (
        "It looks like you used {construct} on line {line_number}, which isn't valid in Python. "
        "In Python, use {replacement} instead."
    ),
    "syntax_error_intro": "It looks like your code has a syntax error. Take a look at the message below:",
    "stack_overflow": (
        "Your code appears to be hitting an infinite recursive loop. "
        "Check to make sure that your recursive calls terminate."
    ),
    "runtime_error": 'Looks like your code had a runtime error when evaluating the input {input}.',
    "runtime_error_undeclared": (
        "It looks like {name} isn't a declared variable. Did you make a typo, or forget to "
        "define it before using it? This happened when evaluating the input {input}."
    ),
    "runtime_error_index": (
        "It looks like your code tried to access an index that is out of range when "
        "evaluating the input {input}. Check the bounds of your loops and indices."
    ),
    "executor_failure": (
        "We couldn't finish running your code on the input {input}. "
        "It might be taking too long -- check for loops that never end."
    ),
    "success": (
        "You've completed all the tasks for this question! Click the \"Next\" button to "
        "move on to the next question."
    ),
    "input_line": "Input: {input}",
    "output_diff": "Input: {input}\nExpected Output: {expected}\nActual Output: {actual}",
}

WRONG_LANGUAGE_REPLACEMENTS: dict[str, str] = {
    "&&": "and",
    "||": "or",
    "push": ".append()",
    "else if": "elif",
    "true": "True",
    "false": "False",
    "null": "None",
}

def t(key: str, **kwargs: object) -> str:
    template = STRINGS.get(key, key)
    return template.format(**kwargs) if kwargs else template
