"""
Content Extraction Strategies

Upstream providers do not agree on where the text of a completion chunk
lives. Each strategy below looks at one known location and returns the text
if it finds a string there. ``extract_content`` runs the strategies in order
and the first one that finds a string wins.

OpenAI-style streaming puts the text in ``choices[0].delta.content``; some
providers send a full ``message`` object per chunk, and legacy completion
endpoints use ``choices[0].text``.
"""

from collections.abc import Callable, Sequence
from typing import Any

ContentExtractor = Callable[[Any], str | None]


def _first_choice(payload: Any) -> dict[str, Any] | None:
    if not isinstance(payload, dict):
        return None

    choices = payload.get("choices")
    if not isinstance(choices, list) or not choices:
        return None

    choice = choices[0]
    return choice if isinstance(choice, dict) else None


def _string_at(container: Any, key: str) -> str | None:
    if not isinstance(container, dict):
        return None
    value = container.get(key)
    return value if isinstance(value, str) else None


def delta_content(payload: Any) -> str | None:
    """``choices[0].delta.content``"""
    choice = _first_choice(payload)
    return _string_at(choice.get("delta"), "content") if choice else None


def message_content(payload: Any) -> str | None:
    """``choices[0].message.content``"""
    choice = _first_choice(payload)
    return _string_at(choice.get("message"), "content") if choice else None


def choice_text(payload: Any) -> str | None:
    """``choices[0].text``"""
    return _string_at(_first_choice(payload), "text")


DEFAULT_EXTRACTORS: tuple[ContentExtractor, ...] = (
    delta_content,
    message_content,
    choice_text,
)


def extract_content(
    payload: Any, extractors: Sequence[ContentExtractor] = DEFAULT_EXTRACTORS
) -> str | None:
    """
    Return the text carried by a decoded upstream payload.

    Args:
        payload: Decoded JSON value of one ``data:`` line
        extractors: Strategies to try, in order

    Returns:
        The first string found, or None if no strategy matched
    """
    for extractor in extractors:
        content = extractor(payload)
        if content is not None:
            return content
    return None


def finish_reason(payload: Any) -> str | None:
    """
    Return ``choices[0].finish_reason`` when the upstream marks the last chunk.

    Any non-null value counts; providers use ``stop``, ``length``,
    ``content_filter`` and their own variants.
    """
    choice = _first_choice(payload)
    if choice is None:
        return None

    reason = choice.get("finish_reason")
    return None if reason is None else str(reason)
