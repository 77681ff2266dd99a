"""Quiz-related constants shared across the engine, store and API layers."""

OPTION_COUNT: int = 4
OPTION_LETTERS: tuple[str, ...] = ("A", "B", "C", "D")
DEFAULT_TIME_LIMIT_MINUTES: int = 10
TICK_INTERVAL_SECONDS: float = 1.0
MIN_RATING: int = 1
MAX_RATING: int = 5
RECENT_ATTEMPT_WINDOW: int = 5
FINISHED_SESSION_TTL_SECONDS: int = 300
