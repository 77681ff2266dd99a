"""Utilities for importing quizzes from a human-friendly text file.

File format: a header followed by question blocks separated by blank lines or
'---'.

    TITLE: Quiz title
    DESCRIPTION: Optional one-line description
    TIMELIMIT: minutes (optional, defaults to 10)

    Q: Question text (supports markdown + LaTeX). Additional lines until the
       next marker are treated as part of the question.
    A: First option text
    B: Second option text
    C: Third option text
    D: Fourth option text
    CORRECT: A|B|C|D

Example:

    TITLE: Arithmetic
    TIMELIMIT: 2

    Q: What is $2 + 2$?
    A: 3
    B: 4
    C: 5
    D: 22
    CORRECT: B
"""

from __future__ import annotations

from pathlib import Path

from timed_quiz.constants.quiz_constants import DEFAULT_TIME_LIMIT_MINUTES, OPTION_LETTERS
from timed_quiz.core.models import QuestionDraft, QuizDraft

_HEADER_KEYS = ("TITLE:", "DESCRIPTION:", "TIMELIMIT:")


class QuizImportError(Exception):
    """Raised when a quiz definition cannot be parsed."""


def load_quiz_from_file(file_path: Path) -> QuizDraft:
    text = file_path.read_text(encoding="utf-8")
    return parse_quiz_text(text, default_title=file_path.stem)


def parse_quiz_text(text: str, default_title: str | None = None) -> QuizDraft:
    header, blocks = _split_blocks(text)
    title = header.get("TITLE", default_title or "").strip()
    if not title:
        raise QuizImportError("Quiz file must define a TITLE.")

    time_limit = DEFAULT_TIME_LIMIT_MINUTES
    raw_limit = header.get("TIMELIMIT")
    if raw_limit is not None:
        try:
            time_limit = int(raw_limit)
        except ValueError as exc:
            raise QuizImportError("TIMELIMIT must be an integer number of minutes.") from exc
        if time_limit <= 0:
            raise QuizImportError("TIMELIMIT must be a positive integer.")

    questions = [_parse_block(block) for block in blocks]
    if not questions:
        raise QuizImportError("Quiz file did not contain any questions.")

    return QuizDraft(
        title=title,
        description=header.get("DESCRIPTION") or None,
        time_limit_minutes=time_limit,
        questions=questions,
    )


def _split_blocks(text: str) -> tuple[dict[str, str], list[str]]:
    header: dict[str, str] = {}
    blocks: list[str] = []
    current_block: list[str] = []
    for raw_line in text.splitlines():
        stripped = raw_line.strip()
        if not blocks and not current_block and stripped.upper().startswith(_HEADER_KEYS):
            key, value = stripped.split(":", 1)
            header[key.upper()] = value.strip()
            continue
        if stripped == "---":
            if current_block:
                blocks.append("\n".join(current_block).strip())
                current_block = []
            continue
        if stripped:
            current_block.append(raw_line)
        elif current_block:
            blocks.append("\n".join(current_block).strip())
            current_block = []
    if current_block:
        blocks.append("\n".join(current_block).strip())
    return header, [block for block in blocks if block]


def _parse_block(block: str) -> QuestionDraft:
    question_lines: list[str] = []
    options: dict[str, str] = {}
    correct_letter: str | None = None
    current_section: str | None = None

    for raw_line in block.splitlines():
        line = raw_line.strip()
        if not line:
            continue

        upper = line.upper()
        if upper.startswith("Q:"):
            question_lines = [line[2:].strip()]
            current_section = "Q"
            continue

        if upper.startswith("CORRECT:"):
            correct_letter = line.split(":", 1)[1].strip().upper()
            current_section = None
            continue

        if len(line) > 2 and line[0].upper() in OPTION_LETTERS and line[1] == ":":
            letter = line[0].upper()
            options[letter] = line[2:].strip()
            current_section = letter
            continue

        if current_section == "Q":
            question_lines.append(line)
        elif current_section in OPTION_LETTERS:
            options[current_section] = options[current_section] + f"\n{line}"
        else:
            raise QuizImportError(
                f"Encountered text outside of a known section: '{line}'."
            )

    if not question_lines:
        raise QuizImportError("Question text missing (Q: ...)")
    if len(options) != len(OPTION_LETTERS):
        raise QuizImportError("Each question must define exactly four options (A-D).")

    option_list = [options[letter].strip() for letter in OPTION_LETTERS]
    if any(not opt for opt in option_list):
        raise QuizImportError("Option text cannot be empty.")

    if correct_letter is None:
        raise QuizImportError("Each question must define its CORRECT answer.")
    if correct_letter not in OPTION_LETTERS:
        raise QuizImportError("CORRECT must be one of A, B, C, or D.")

    question_text = "\n".join(question_lines).strip()
    if not question_text:
        raise QuizImportError("Question text cannot be empty.")

    return QuestionDraft(
        question_text=question_text,
        options=option_list,
        correct_answer=OPTION_LETTERS.index(correct_letter),
    )
