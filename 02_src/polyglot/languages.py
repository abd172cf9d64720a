"""Language code table used to build translation prompts."""

import json
from pathlib import Path

from .config import languages_file
from .logging_config import get_logger

logger = get_logger(__name__)

DEFAULT_LANGUAGE_NAMES: dict[str, str] = {
    "en": "English",
    "es": "Spanish",
    "fr": "French",
    "de": "German",
    "it": "Italian",
    "pt": "Portuguese",
    "ru": "Russian",
    "ja": "Japanese",
    "ko": "Korean",
    "zh": "Chinese",
    "ar": "Arabic",
    "hi": "Hindi",
}


def load_language_names(path: Path | None = None) -> dict[str, str]:
    """
    Build the code -> name table.

    Entries from a JSON object file (LANGUAGES_FILE by default) are merged
    over the built-in defaults, so new codes need no code change.

    Args:
        path: Optional JSON file, e.g. {"pt-BR": "Brazilian Portuguese"}.

    Returns:
        Mapping of language code to display name.
    """
    names = dict(DEFAULT_LANGUAGE_NAMES)

    if path is None:
        path = languages_file()
    if path is None:
        return names

    with open(path, "r", encoding="utf-8") as f:
        extra = json.load(f)

    if not isinstance(extra, dict) or not all(
        isinstance(k, str) and isinstance(v, str) for k, v in extra.items()
    ):
        raise ValueError(f"Language file {path} must map codes to names")

    names.update(extra)
    logger.info("Loaded %s extra language names from %s", len(extra), path)
    return names


def language_name(code: str, names: dict[str, str] | None = None) -> str:
    """Full name for a code; unknown codes are used as-is."""
    table = DEFAULT_LANGUAGE_NAMES if names is None else names
    return table.get(code, code)
