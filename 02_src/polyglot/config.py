"""Project-level configuration and path helpers."""

import os
from pathlib import Path
from typing import Union

PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
DATA_DIR = PROJECT_ROOT / "03_data"
LOGS_DIR = PROJECT_ROOT / "04_logs"
DEFAULT_DB_PATH = DATA_DIR / "polyglot_chat.db"
DEFAULT_LOG_PATH = LOGS_DIR / "app.log"

DATA_DIR.mkdir(parents=True, exist_ok=True)
LOGS_DIR.mkdir(parents=True, exist_ok=True)

# Pipeline timing
TRANSLATION_DELAY = 0.1  # seconds
ASSISTANT_DELAY = 1.0  # seconds

ASSISTANT_NAME = "AI Assistant"
ASSISTANT_LANGUAGE = "en"
ASSISTANT_MENTION = "@assistant"
ASSISTANT_HISTORY_LIMIT = 20

DEFAULT_LLM_MODEL = "claude-3-5-sonnet-20241022"


PathLike = Union[str, Path]


def resolve_db_path(env_value: PathLike | None = None) -> PathLike:
    """Resolve DATABASE_URL to an absolute path."""
    if not env_value:
        return DEFAULT_DB_PATH

    if str(env_value) == ":memory:":
        return ":memory:"

    candidate = Path(env_value)
    return candidate if candidate.is_absolute() else PROJECT_ROOT / candidate


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if not value:
        return default
    try:
        return float(value)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {value!r}") from None


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if not value:
        return default
    try:
        return int(value)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {value!r}") from None


def llm_model() -> str:
    """Model name for the Anthropic client."""
    return os.getenv("LLM_MODEL", DEFAULT_LLM_MODEL)


def llm_timeout() -> float:
    """Client-side timeout for a single LLM request, in seconds."""
    return _env_float("LLM_TIMEOUT_SECONDS", 30.0)


def translation_timeout() -> float:
    """Upper bound for one per-language translation attempt, in seconds."""
    return _env_float("TRANSLATION_TIMEOUT_SECONDS", 20.0)


def task_poll_interval() -> float:
    """How often the task worker looks for due tasks, in seconds."""
    return _env_float("TASK_POLL_INTERVAL_SECONDS", 0.05)


def task_max_concurrency() -> int:
    """Maximum number of tasks executing at the same time."""
    return _env_int("TASK_MAX_CONCURRENCY", 16)


def languages_file() -> Path | None:
    """Optional JSON file extending the language table."""
    value = os.getenv("LANGUAGES_FILE")
    if not value:
        return None
    candidate = Path(value)
    return candidate if candidate.is_absolute() else PROJECT_ROOT / candidate
