"""Assessment-related constants shared across UI, engine and server layers."""

MIN_QUESTION_SECONDS: int = 10
DEFAULT_QUESTION_SECONDS: int = 30
MIN_OPTIONS_PER_QUESTION: int = 2
TICK_INTERVAL_MS: int = 1000

SCORE_SCALE: float = 5.0
SCORE_DECIMALS: int = 2

ANSWER_PERSIST_ATTEMPTS: int = 3
ANSWER_PERSIST_BACKOFF_SECONDS: float = 0.5
IO_WORKER_COUNT: int = 4

TIME_LIMIT_WARNING_WINDOW_SECONDS: int = 9
DEFAULT_DATA_DIR: str = "data"
