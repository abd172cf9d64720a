"""Tests for LLMResponseGenerator."""

from unittest.mock import AsyncMock

import pytest

from polyglot.assistant import LLMResponseGenerator
from polyglot.errors import ResponseGenerationError


class TestLLMResponseGenerator:
    """Tests for LLMResponseGenerator.generate()."""

    async def test_generate_builds_prompt(self, mock_llm):
        generator = LLMResponseGenerator(mock_llm)

        reply = await generator.generate("Alice: hi\nBob: hello", "Team")

        assert reply == "Test response"
        call = mock_llm.complete.call_args
        assert 'chat called "Team"' in call.kwargs["system"]
        content = call.kwargs["messages"][0]["content"]
        assert content.startswith("Recent conversation:\nAlice: hi\nBob: hello")
        assert content.endswith("Please respond to the conversation.")
        assert call.kwargs["max_tokens"] == 300

    async def test_llm_failure(self, mock_llm):
        mock_llm.complete = AsyncMock(side_effect=RuntimeError("down"))
        generator = LLMResponseGenerator(mock_llm)

        with pytest.raises(ResponseGenerationError):
            await generator.generate("Alice: hi", "Team")

    async def test_empty_reply(self, mock_llm):
        mock_llm.complete = AsyncMock(return_value="   ")
        generator = LLMResponseGenerator(mock_llm)

        with pytest.raises(ResponseGenerationError, match="empty"):
            await generator.generate("Alice: hi", "Team")
