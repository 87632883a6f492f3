from typing import Any, Optional

import httpx

from relay.logging_config import get_logger
from relay.schemas.engine import EngineRequest
from relay.services.auth_service import CredentialError, EngineCredential

logger = get_logger("engine_service")

SESSION_PREFIX = "line"


class EngineError(Exception):
    """Engine call failed or returned a body we cannot read."""


def build_conversation_key(channel_id: str, policy: str = "channel", user_id: Optional[str] = None) -> str:
    """Session id handed to the engine.

    "channel": one conversation per bot channel ("line-<channelId>").
    "user": one conversation per sender; events without a userId fall back to the channel key.
    """
    key = f"{SESSION_PREFIX}-{channel_id}"
    if policy == "user" and user_id:
        return f"{key}-{user_id}"
    return key


def _parse_messages_shape(data: dict) -> list[str]:
    messages = data.get("messages")
    if not isinstance(messages, list) or not all(isinstance(m, str) for m in messages):
        raise EngineError(f"Expected 'messages' to be a list of strings, got: {str(data)[:200]}")
    return list(messages)


def _parse_content_shape(data: dict) -> list[str]:
    response = data.get("response")
    if not isinstance(response, dict):
        raise EngineError(f"Expected 'response' object, got: {str(data)[:200]}")
    content = response.get("content")
    if content is None or content == "":
        return []
    if not isinstance(content, str):
        raise EngineError(f"Expected 'response.content' to be a string, got: {type(content).__name__}")
    return [content]


def parse_engine_response(data: Any, shape: str = "messages") -> list[str]:
    """Normalize an engine body into an ordered list of reply strings.

    shape="messages": {"messages": [str, ...]}
    shape="content":  {"response": {"content": str}}
    shape="auto":     "messages" when that key is present, else "content".
    """
    if not isinstance(data, dict):
        raise EngineError(f"Engine response is not a JSON object: {str(data)[:200]}")

    if shape == "auto":
        shape = "messages" if "messages" in data else "content"

    if shape == "messages":
        return _parse_messages_shape(data)
    if shape == "content":
        return _parse_content_shape(data)
    raise ValueError(f"Unknown engine response shape: {shape}")


class EngineBridge:
    """Forwards a message to the engine and returns its replies."""

    def __init__(
        self,
        base_url: str,
        credential: EngineCredential,
        client: httpx.AsyncClient,
        response_shape: str = "messages",
        timeout: float = 30.0,
    ):
        self.base_url = base_url.rstrip("/")
        self.credential = credential
        self.client = client
        self.response_shape = response_shape
        self.timeout = timeout

    @property
    def messages_url(self) -> str:
        return f"{self.base_url}/messages"

    def build_request(self, text: str, conversation_key: str, speaker: Optional[str]) -> EngineRequest:
        return EngineRequest(messages=[text], session_id=conversation_key, speaker_name=speaker)

    async def forward(self, text: str, conversation_key: str, speaker: Optional[str]) -> list[str]:
        request = self.build_request(text, conversation_key, speaker)

        try:
            token = await self.credential.get_token_async()
        except CredentialError as e:
            raise EngineError(str(e)) from e

        logger.debug(
            "Engine request",
            extra={"context": {"session_id": conversation_key, "has_speaker": speaker is not None}},
        )

        try:
            response = await self.client.post(
                self.messages_url,
                headers={"Authorization": f"Bearer {token}"},
                json=request.model_dump(),
                timeout=self.timeout,
            )
        except httpx.TimeoutException as e:
            raise EngineError(f"Engine call timed out after {self.timeout}s") from e
        except httpx.HTTPError as e:
            raise EngineError(f"Engine transport error: {e!r}") from e

        if not response.is_success:
            logger.error(f"Engine error: {response.text[:500]}")
            raise EngineError(f"Engine API error: {response.status_code} - {response.text[:200]}")

        try:
            data = response.json()
        except ValueError as e:
            raise EngineError(f"Engine returned invalid JSON: {response.text[:200]}") from e

        replies = parse_engine_response(data, self.response_shape)
        logger.debug(f"Engine replies: {len(replies)}")
        return replies
