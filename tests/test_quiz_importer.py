from __future__ import annotations

from pathlib import Path

import pytest

from timed_quiz.constants.quiz_constants import DEFAULT_TIME_LIMIT_MINUTES
from timed_quiz.core.quiz_importer import QuizImportError, load_quiz_from_file, parse_quiz_text

SAMPLE = """TITLE: Angles
DESCRIPTION: Degrees and radians
TIMELIMIT: 3

Q: What is $30^o$ in radians?
A: \\frac{\\pi}{2}
B: \\frac{\\pi}{6}
C: \\frac{\\pi}{4}
D: \\frac{\\pi}{3}
CORRECT: B

---

Q: Which angle is a right angle?
It is measured in degrees.
A: 45
B: 60
C: 90
D: 180
CORRECT: c
"""


def test_parse_header_and_questions():
    draft = parse_quiz_text(SAMPLE)

    assert draft.title == "Angles"
    assert draft.description == "Degrees and radians"
    assert draft.time_limit_minutes == 3
    assert len(draft.questions) == 2
    assert draft.questions[0].correct_answer == 1
    assert draft.questions[1].question_text == "Which angle is a right angle?\nIt is measured in degrees."
    assert draft.questions[1].options == ["45", "60", "90", "180"]
    assert draft.questions[1].correct_answer == 2
    assert all(q.is_complete() for q in draft.questions)


def test_title_defaults_to_file_name(tmp_path: Path):
    path = tmp_path / "geometry.txt"
    path.write_text(SAMPLE.split("\n", 1)[1].replace("TIMELIMIT: 3\n", ""), encoding="utf-8")

    draft = load_quiz_from_file(path)

    assert draft.title == "geometry"
    assert draft.time_limit_minutes == DEFAULT_TIME_LIMIT_MINUTES


@pytest.mark.parametrize(
    ("text", "message"),
    [
        ("TITLE: X\n", "did not contain any questions"),
        ("TITLE: X\n\nQ: q\nA: a\nB: b\nC: c\nCORRECT: A\n", "exactly four options"),
        ("TITLE: X\n\nQ: q\nA: a\nB: b\nC: c\nD: d\n", "CORRECT"),
        ("TITLE: X\n\nQ: q\nA: a\nB: b\nC: c\nD: d\nCORRECT: E\n", "one of A, B, C, or D"),
        ("TITLE: X\nTIMELIMIT: soon\n\nQ: q\nA: a\nB: b\nC: c\nD: d\nCORRECT: A\n", "integer"),
        ("TITLE: X\nTIMELIMIT: 0\n\nQ: q\nA: a\nB: b\nC: c\nD: d\nCORRECT: A\n", "positive"),
        ("TITLE: X\n\nstray text\nQ: q\n", "outside of a known section"),
        ("Q: q\nA: a\nB: b\nC: c\nD: d\nCORRECT: A\n", "TITLE"),
    ],
)
def test_invalid_files_raise(text, message):
    with pytest.raises(QuizImportError, match=message):
        parse_quiz_text(text)
