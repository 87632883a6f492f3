from relay.schemas.line import OutboundTextMessage

DEFAULT_MAX_REPLY_MESSAGES = 5


def shape_replies(replies: list[str], max_count: int = DEFAULT_MAX_REPLY_MESSAGES) -> list[OutboundTextMessage]:
    """Keep the first max_count replies, in order, as LINE text messages."""
    if max_count <= 0:
        return []
    return [OutboundTextMessage(text=reply) for reply in replies[:max_count]]
