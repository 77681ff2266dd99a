"""Application entry point for TimedQuiz."""

from __future__ import annotations

import argparse
from pathlib import Path

from timed_quiz.constants.network_constants import DEFAULT_HOST, DEFAULT_PORT
from timed_quiz.core.errors import ValidationError
from timed_quiz.core.models import Identity
from timed_quiz.core.quiz_importer import QuizImportError, load_quiz_from_file
from timed_quiz.core.quiz_platform import QuizPlatform
from timed_quiz.server.api_server import run_api_server
from timed_quiz.utils.logging_config import configure_logging

_IMPORT_OWNER = Identity(id="importer")


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Serve the TimedQuiz API.")
    parser.add_argument("--host", default=DEFAULT_HOST)
    parser.add_argument("--port", type=int, default=DEFAULT_PORT)
    parser.add_argument(
        "quiz_files",
        nargs="*",
        type=Path,
        help="Quiz text files to import before serving.",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> None:
    """Initialize logging, import any quiz files, and serve the API."""
    args = _parse_args(argv)
    logger = configure_logging()
    logger.info("Starting TimedQuiz…")

    platform = QuizPlatform()
    for quiz_file in args.quiz_files:
        try:
            draft = load_quiz_from_file(quiz_file)
            quiz, questions = platform.create_quiz(_IMPORT_OWNER, draft)
        except (OSError, QuizImportError, ValidationError) as exc:
            logger.error("Could not import %s: %s", quiz_file, exc)
            continue
        logger.info("Imported '%s' with %d question(s) from %s", quiz.title, len(questions), quiz_file)

    logger.info("API available at http://%s:%d/", args.host, args.port)
    run_api_server(platform, host=args.host, port=args.port)


if __name__ == "__main__":
    main()
