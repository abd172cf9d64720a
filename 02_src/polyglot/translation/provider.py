"""Translation provider backed by the LLM."""

from typing import Protocol

from ..errors import TranslationProviderError
from ..languages import language_name
from ..llm import ILLMProvider
from ..logging_config import get_logger

logger = get_logger(__name__)

TRANSLATOR_SYSTEM_PROMPT = (
    "You are a professional translator. Translate the following text from "
    "{source} to {target}. Only return the translated text, nothing else. "
    "If the text is already in {target} or if no translation is needed, "
    "return the original text unchanged."
)


class ITranslationProvider(Protocol):
    """Stateless text translation capability."""

    async def translate(self, text: str, source_lang: str, target_lang: str) -> str:
        """Translate text. Raises TranslationProviderError on failure."""
        ...


class LLMTranslationProvider:
    """Translates text with a single LLM completion per call."""

    def __init__(
        self,
        llm_provider: ILLMProvider,
        language_names: dict[str, str] | None = None,
        max_tokens: int = 500,
    ):
        self._llm = llm_provider
        self._language_names = language_names
        self._max_tokens = max_tokens

    async def translate(self, text: str, source_lang: str, target_lang: str) -> str:
        """Translate text from source_lang to target_lang."""
        if source_lang == target_lang:
            return text

        system = TRANSLATOR_SYSTEM_PROMPT.format(
            source=language_name(source_lang, self._language_names),
            target=language_name(target_lang, self._language_names),
        )

        try:
            result = await self._llm.complete(
                messages=[{"role": "user", "content": text}],
                system=system,
                max_tokens=self._max_tokens,
                temperature=0.1,
            )
        except Exception as e:
            raise TranslationProviderError(
                f"Translation {source_lang}->{target_lang} failed: {e}"
            ) from e

        if not isinstance(result, str):
            raise TranslationProviderError(
                f"Invalid response from translation backend: {type(result).__name__}"
            )

        logger.debug("Translated %s->%s: %s", source_lang, target_lang, result[:50])
        return result.strip()
