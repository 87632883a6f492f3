"""Alert service for reporting failed event pipelines to an operator Telegram chat."""

from typing import Optional

import httpx

from relay.logging_config import get_logger
from relay.schemas.line import LineEvent
from relay.services.result import Result

logger = get_logger("alert_service")


class AlertService:
    def __init__(self, bot_token: Optional[str], chat_id: Optional[str], client: httpx.AsyncClient):
        self.bot_token = bot_token
        self.chat_id = chat_id
        self.client = client

    @property
    def is_configured(self) -> bool:
        return bool(self.bot_token and self.chat_id)

    async def send_alert(self, level: str, message: str, context: Optional[dict] = None) -> bool:
        """Send alert to Telegram.

        Args:
            level: INFO, WARNING, ERROR, CRITICAL
            message: Alert message
            context: Optional context dict

        Returns:
            True if sent successfully
        """
        if not self.is_configured:
            logger.warning(f"Alert not configured: {level} - {message}")
            return False

        text = f"*{level}*\n\n{message}"
        if context:
            context_str = "\n".join(f"  {k}: {v}" for k, v in context.items())
            text += f"\n\n```\n{context_str}\n```"

        try:
            response = await self.client.post(
                f"https://api.telegram.org/bot{self.bot_token}/sendMessage",
                json={"chat_id": self.chat_id, "text": text, "parse_mode": "Markdown"},
                timeout=10,
            )
            return response.status_code == 200
        except Exception as e:
            logger.error(f"Failed to send alert: {e}")
            return False

    async def alert_error(self, message: str, context: Optional[dict] = None) -> bool:
        """Shortcut for ERROR level alert."""
        return await self.send_alert("ERROR", message, context)

    async def report_failures(self, events: list[LineEvent], results: list[Result]) -> None:
        """Alert once per failed event. Runs after the webhook response is sent."""
        for event, result in zip(events, results):
            if result.ok:
                continue
            await self.alert_error(
                "LINE relay event failed",
                {"error_code": result.error_code, "error": result.error, "event_id": event.webhook_event_id},
            )
