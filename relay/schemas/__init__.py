from relay.schemas.engine import EngineRequest
from relay.schemas.line import (
    LineEvent,
    LineMention,
    LineMentionee,
    LineMessage,
    LineProfile,
    LineSource,
    LineWebhookRequest,
    OutboundTextMessage,
)

__all__ = [
    "EngineRequest",
    "LineEvent",
    "LineMention",
    "LineMentionee",
    "LineMessage",
    "LineProfile",
    "LineSource",
    "LineWebhookRequest",
    "OutboundTextMessage",
]
