"""Translation module."""

from .provider import ITranslationProvider, LLMTranslationProvider
from .resolver import PreferredLanguageLookup, resolve_target_languages

__all__ = [
    "ITranslationProvider",
    "LLMTranslationProvider",
    "PreferredLanguageLookup",
    "resolve_target_languages",
]
