"""Decide whether an inbound LINE message is addressed to the bot.

Signals are checked in a fixed order and the first match wins:

1. explicit_mention - a structured mentionee carries the bot's channel id
2. direct_context   - the message arrived in a 1:1 chat
3. textual_cue      - the text starts with "@" or contains the wake-word
"""

from enum import Enum
from typing import Callable, Optional

from relay.logging_config import get_logger
from relay.schemas.line import LineEvent, LineMessage

logger = get_logger("mention_service")

ADDRESS_TOKEN = "@"


class MentionSignal(str, Enum):
    EXPLICIT_MENTION = "explicit_mention"
    DIRECT_CONTEXT = "direct_context"
    TEXTUAL_CUE = "textual_cue"


SignalCheck = Callable[[LineMessage, LineEvent, str, str], bool]


def is_explicit_mention(message: LineMessage, event: LineEvent, channel_id: str, wake_word: str) -> bool:
    if message.mention is None or not message.mention.mentionees:
        return False
    logger.debug(
        "Mention data",
        extra={"context": {"mention": message.mention.model_dump(by_alias=True)}},
    )
    return any(mentionee.user_id == channel_id for mentionee in message.mention.mentionees)


def is_direct_context(message: LineMessage, event: LineEvent, channel_id: str, wake_word: str) -> bool:
    return event.source is not None and event.source.is_direct


def has_textual_cue(message: LineMessage, event: LineEvent, channel_id: str, wake_word: str) -> bool:
    text = message.text
    if not text:
        return False
    if text.startswith(ADDRESS_TOKEN):
        return True
    return bool(wake_word) and wake_word in text


SIGNAL_CHECKS: tuple[tuple[MentionSignal, SignalCheck], ...] = (
    (MentionSignal.EXPLICIT_MENTION, is_explicit_mention),
    (MentionSignal.DIRECT_CONTEXT, is_direct_context),
    (MentionSignal.TEXTUAL_CUE, has_textual_cue),
)


def resolve_signal(
    message: LineMessage,
    event: LineEvent,
    channel_id: str,
    wake_word: str = "",
) -> Optional[MentionSignal]:
    """Return the first signal that addresses the bot, or None."""
    for signal, check in SIGNAL_CHECKS:
        if check(message, event, channel_id, wake_word):
            return signal
    return None


def should_respond(
    message: LineMessage,
    event: LineEvent,
    channel_id: str,
    wake_word: str = "",
) -> bool:
    return resolve_signal(message, event, channel_id, wake_word) is not None
