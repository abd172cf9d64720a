"""Tests for LLMTranslationProvider."""

from unittest.mock import AsyncMock, Mock

import pytest

from polyglot.errors import TranslationProviderError
from polyglot.translation import LLMTranslationProvider


class TestLLMTranslationProvider:
    """Tests for LLMTranslationProvider.translate()."""

    async def test_translate_uses_language_names(self, mock_llm):
        mock_llm.complete = AsyncMock(return_value="  Hola  ")
        provider = LLMTranslationProvider(mock_llm)

        result = await provider.translate("Hello", "en", "es")

        assert result == "Hola"
        call = mock_llm.complete.call_args
        assert "from English to Spanish" in call.kwargs["system"]
        assert call.kwargs["messages"] == [{"role": "user", "content": "Hello"}]
        assert call.kwargs["max_tokens"] == 500
        assert call.kwargs["temperature"] == 0.1

    async def test_unknown_codes_used_verbatim(self, mock_llm):
        provider = LLMTranslationProvider(mock_llm, language_names={"en": "English"})

        await provider.translate("Hello", "en", "pt-BR")

        assert "from English to pt-BR" in mock_llm.complete.call_args.kwargs["system"]

    async def test_same_language_short_circuits(self, mock_llm):
        provider = LLMTranslationProvider(mock_llm)

        assert await provider.translate("Hello", "en", "en") == "Hello"
        mock_llm.complete.assert_not_called()

    async def test_llm_error_raises_provider_error(self):
        llm = Mock()
        llm.complete = AsyncMock(side_effect=RuntimeError("LLM API error: 500"))
        provider = LLMTranslationProvider(llm)

        with pytest.raises(TranslationProviderError, match="en->es"):
            await provider.translate("Hello", "en", "es")

    async def test_malformed_response_raises(self, mock_llm):
        mock_llm.complete = AsyncMock(return_value=None)
        provider = LLMTranslationProvider(mock_llm)

        with pytest.raises(TranslationProviderError):
            await provider.translate("Hello", "en", "es")
