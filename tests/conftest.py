import json
from typing import Any, Optional
from unittest.mock import AsyncMock, Mock

import httpx
import pytest

from relay.config import Settings
from relay.schemas.line import LineEvent

CHANNEL_ID = "U0bot0channel"
ENGINE_URL = "https://engine.example.run.app"


@pytest.fixture
def settings():
    return Settings(
        channel_id=CHANNEL_ID,
        channel_secret="test-secret",
        channel_access_token="test-access-token",
        engine_url=ENGINE_URL,
        _env_file=None,
    )


@pytest.fixture
def credential():
    """Engine credential that always hands out the same token."""
    credential = Mock()
    credential.acquire = Mock()
    credential.get_token = Mock(return_value="id-token")
    credential.get_token_async = AsyncMock(return_value="id-token")
    return credential


def make_event(
    text: Optional[str] = "hello",
    source_type: str = "user",
    user_id: Optional[str] = "U1234",
    mentionees: Optional[list[dict]] = None,
    event_type: str = "message",
    message_type: str = "text",
    reply_token: Optional[str] = "reply-token",
) -> LineEvent:
    source: dict[str, Any] = {"type": source_type}
    if user_id:
        source["userId"] = user_id
    if source_type == "group":
        source["groupId"] = "G5678"
    elif source_type == "room":
        source["roomId"] = "R5678"

    raw: dict[str, Any] = {
        "type": event_type,
        "replyToken": reply_token,
        "source": source,
        "timestamp": 1702000000000,
        "mode": "active",
        "webhookEventId": "01HEVENT",
    }
    if event_type == "message":
        message: dict[str, Any] = {"id": "468789577898262530", "type": message_type}
        if message_type == "text":
            message["text"] = text
        if mentionees is not None:
            message["mention"] = {"mentionees": mentionees}
        raw["message"] = message
    return LineEvent.model_validate(raw)


def json_response(status_code: int, data: Any) -> httpx.Response:
    return httpx.Response(status_code, content=json.dumps(data).encode("utf-8"), headers={"content-type": "application/json"})
