import base64
import hashlib
import hmac
from typing import Any, Optional

import httpx

from relay.logging_config import get_logger
from relay.schemas.line import LineProfile, OutboundTextMessage

logger = get_logger("line_service")


class LineAPIError(Exception):
    """LINE Messaging API call failed. status_code is None for transport errors."""

    def __init__(self, status_code: Optional[int], message: str):
        super().__init__(message)
        self.status_code = status_code

    @property
    def is_not_found(self) -> bool:
        return self.status_code == 404


class LineService:
    """Client for the LINE Messaging API: signature check, profile lookup, reply."""

    BASE_URL = "https://api.line.me/v2/bot"

    def __init__(
        self,
        channel_access_token: str,
        channel_secret: str,
        client: httpx.AsyncClient,
        base_url: Optional[str] = None,
        profile_timeout: float = 5.0,
    ):
        self.channel_access_token = channel_access_token
        self.channel_secret = channel_secret
        self.client = client
        self.base_url = (base_url or self.BASE_URL).rstrip("/")
        self.profile_timeout = profile_timeout

    def verify_signature(self, body: bytes, signature: Optional[str]) -> bool:
        """Check X-Line-Signature: base64(HMAC-SHA256(channel_secret, raw body))."""
        if not signature:
            return False
        digest = hmac.new(self.channel_secret.encode("utf-8"), body, hashlib.sha256).digest()
        expected = base64.b64encode(digest)
        # header values are latin-1 decoded str and may hold non-ASCII
        return hmac.compare_digest(expected, signature.encode("utf-8", "surrogateescape"))

    async def _make_request(
        self,
        method: str,
        path: str,
        data: Optional[dict] = None,
        timeout: Optional[float] = None,
    ) -> dict[str, Any]:
        url = f"{self.base_url}/{path.lstrip('/')}"
        headers = {"Authorization": f"Bearer {self.channel_access_token}"}
        kwargs: dict[str, Any] = {"headers": headers}
        if data is not None:
            kwargs["json"] = data
        if timeout is not None:
            kwargs["timeout"] = timeout

        try:
            response = await self.client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            raise LineAPIError(None, f"LINE API transport error: {e!r}") from e

        if response.status_code >= 400:
            raise LineAPIError(
                response.status_code,
                f"LINE API error: {response.status_code} - {response.text[:200]}",
            )

        if not response.content:
            return {}
        return response.json()

    async def get_profile(self, user_id: str) -> LineProfile:
        """Fetch the profile of a user who is a friend of, or in a chat with, the bot."""
        data = await self._make_request("GET", f"profile/{user_id}", timeout=self.profile_timeout)
        return LineProfile.model_validate(data)

    async def reply_message(self, reply_token: str, messages: list[OutboundTextMessage]) -> None:
        """Send a batch of messages with a single-use reply token."""
        if not messages:
            logger.debug("Skipping reply with empty message batch")
            return
        payload = {
            "replyToken": reply_token,
            "messages": [message.model_dump() for message in messages],
        }
        await self._make_request("POST", "message/reply", payload)
        logger.info(
            "Reply sent",
            extra={"context": {"message_count": len(messages)}},
        )
