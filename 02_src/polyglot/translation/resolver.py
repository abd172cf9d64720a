"""Target language resolution for a chat message."""

from typing import Awaitable, Callable, Iterable

PreferredLanguageLookup = Callable[[str], Awaitable[str | None]]


async def resolve_target_languages(
    participant_ids: Iterable[str],
    sender_language: str,
    get_preferred_language: PreferredLanguageLookup,
) -> list[str]:
    """
    Distinct languages a message must be translated into.

    Codes are compared exactly ("pt" and "pt-BR" are different languages).
    Participants without a resolvable profile are skipped.

    Args:
        participant_ids: Current participants of the chat.
        sender_language: Preferred language of the sender at send time.
        get_preferred_language: Profile lookup, e.g. Storage.get_preferred_language.

    Returns:
        Target languages in order of first appearance among participants.
    """
    targets: list[str] = []
    for user_id in participant_ids:
        language = await get_preferred_language(user_id)
        if not language or language == sender_language:
            continue
        if language not in targets:
            targets.append(language)
    return targets
