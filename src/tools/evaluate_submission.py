import argparse
import asyncio
import json
import logging
import random
import sys

from codetutor.config import load_settings
from codetutor.grader import SubmissionGrader
from codetutor.models import Question, SubmissionResult

def _read_text(path: str) -> str:
    with open(path, "r", encoding="utf-8") as fh:
        return fh.read()

def format_result(result: SubmissionResult) -> str:
    lines = [f"[{result.details.category.value}] correct={result.feedback.is_answer_correct}"]
    if result.feedback.error_line_number is not None:
        lines.append(f"error line: {result.feedback.error_line_number}")
    for paragraph in result.feedback.paragraphs:
        if paragraph.is_text_paragraph():
            lines.append(paragraph.content)
        else:
            lines.append("\n".join(f"    {line}" for line in paragraph.content.splitlines()))
    if result.feedback.needs_language_unfamiliarity_prompt:
        lines.append("(learner may be struggling with the language itself)")
    if result.stdout:
        lines.append("--- stdout ---")
        lines.append(result.stdout.rstrip("\n"))
    return "\n".join(lines)

async def run(question_path: str, code_paths: list[str], language: str, seed: int | None) -> int:
    settings = load_settings()
    question = Question.from_dict(json.loads(_read_text(question_path)))
    grader = SubmissionGrader.with_local_executor(settings=settings, rng=random.Random(seed))
    last: SubmissionResult | None = None
    for idx, path in enumerate(code_paths, start=1):
        last = await grader.process_solution(
            question.tasks,
            question.starter_code,
            _read_text(path),
            question.auxiliary_code,
            language,
        )
        print(f"=== submission {idx}: {path}")
        print(format_result(last))
    return 0 if last is not None and last.feedback.is_answer_correct else 1

def main(argv: list[str]) -> int:
    parser = argparse.ArgumentParser(
        description="Run code files as consecutive submissions of one learner session."
    )
    parser.add_argument("question", help="path to the question JSON file")
    parser.add_argument("code", nargs="+", help="submission files, in submission order")
    parser.add_argument("--language", default="python")
    parser.add_argument("--seed", type=int, default=None)
    parser.add_argument("--verbose", action="store_true")
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    return asyncio.run(run(args.question, args.code, args.language, args.seed))

if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
