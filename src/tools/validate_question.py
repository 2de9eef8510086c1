import argparse
import json
import sys

from codetutor.models import Question
from codetutor.validation import validate_tasks

def _load_json(path: str):
    with open(path, "r", encoding="utf-8") as fh:
        return json.load(fh)

def validate(question_path: str) -> int:
    try:
        question = Question.from_dict(_load_json(question_path))
    except (KeyError, ValueError, TypeError) as exc:
        print(f"ERROR: malformed question: {exc!r}")
        return 1

    issues = validate_tasks(question.tasks)
    if not question.starter_code.strip():
        print("WARNING: question has no starter code")
    for issue in issues:
        where = [f"task {issue.task_index}"]
        if issue.suite_id is not None:
            where.append(f"suite {issue.suite_id}")
        if issue.test_index is not None:
            where.append(f"test {issue.test_index}")
        print(f"{issue.severity.upper()}: {', '.join(where)}: {issue.message}")

    if any(issue.severity == "error" for issue in issues):
        return 1
    print("OK")
    return 0

def main(argv: list[str]) -> int:
    parser = argparse.ArgumentParser(description="Check a question definition for authoring mistakes.")
    parser.add_argument("question", help="path to the question JSON file")
    args = parser.parse_args(argv)
    return validate(args.question)

if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
