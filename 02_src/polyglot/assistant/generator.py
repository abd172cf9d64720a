"""Assistant response generation backed by the LLM."""

from typing import Protocol

from ..errors import ResponseGenerationError
from ..llm import ILLMProvider

ASSISTANT_SYSTEM_PROMPT = (
    'You are a helpful AI assistant in a chat called "{chat_name}". You can see '
    "the conversation history and should respond helpfully and naturally. "
    "Keep responses concise and friendly."
)


class IResponseGenerator(Protocol):
    """Produces one reply for a chat transcript."""

    async def generate(self, transcript: str, chat_name: str) -> str:
        """Generate a reply. Raises ResponseGenerationError on failure."""
        ...


class LLMResponseGenerator:
    """Generates assistant replies with a single LLM completion."""

    def __init__(self, llm_provider: ILLMProvider, max_tokens: int = 300):
        self._llm = llm_provider
        self._max_tokens = max_tokens

    async def generate(self, transcript: str, chat_name: str) -> str:
        """Generate a reply to the recent conversation."""
        prompt = (
            f"Recent conversation:\n{transcript}\n\n"
            "Please respond to the conversation."
        )
        try:
            response = await self._llm.complete(
                messages=[{"role": "user", "content": prompt}],
                system=ASSISTANT_SYSTEM_PROMPT.format(chat_name=chat_name),
                max_tokens=self._max_tokens,
            )
        except Exception as e:
            raise ResponseGenerationError(f"Assistant response failed: {e}") from e

        reply = response.strip() if isinstance(response, str) else ""
        if not reply:
            raise ResponseGenerationError("Assistant response was empty")
        return reply
