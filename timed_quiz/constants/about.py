"""Static metadata describing TimedQuiz."""

APP_NAME = "TimedQuiz"
APP_VERSION = "0.1"
APP_LICENSE = "MIT License"
APP_ABOUT_TEXT = (
    "TimedQuiz is a small quiz platform built with FastAPI. "
    "Create multiple-choice quizzes, take them against the clock, and review your scores."
)

HELP_TEXT = (
    "Quizzes can be created through the API or imported from a .txt file:\n\n"
    "TITLE: Angles\n"
    "DESCRIPTION: Degrees and radians\n"
    "TIMELIMIT: 5\n\n"
    "Q: What is $30^o$ in radians?\n"
    "A: \\frac{\\pi}{2}\nB: \\frac{\\pi}{6}\nC: \\frac{\\pi}{4}\nD: \\frac{\\pi}{3}\n"
    "CORRECT: B\n\n"
    "Q: What is $45^o$ in radians?\n"
    "A: \\frac{\\pi}{3}\nB: \\frac{\\pi}{6}\nC: \\frac{\\pi}{4}\nD: \\frac{3\\pi}{4}\n"
    "CORRECT: C"
)
