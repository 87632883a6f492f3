import asyncio
from typing import Iterable, Optional

from relay.config import Settings
from relay.logging_config import bind_event, get_logger
from relay.schemas.line import LineEvent
from relay.services.engine_service import EngineBridge, EngineError, build_conversation_key
from relay.services.identity_service import resolve_speaker
from relay.services.line_service import LineAPIError, LineService
from relay.services.mention_service import resolve_signal
from relay.services.reply_service import shape_replies
from relay.services.result import Result

logger = get_logger("dispatcher")


class DeliveryFailedError(Exception):
    """Raised under the fail_fast policy when any event in a delivery failed."""

    def __init__(self, results: list[Result]):
        self.results = results
        self.failures = [result for result in results if not result.ok]
        super().__init__(f"{len(self.failures)} event(s) failed")


class EventDispatcher:
    """Runs one relay pipeline per webhook event.

    The result value is the number of messages sent back, or None when the
    event was skipped (not a text message, or not addressed to the bot).
    """

    def __init__(
        self,
        settings: Settings,
        line_service: LineService,
        engine_bridge: EngineBridge,
    ):
        self.settings = settings
        self.line_service = line_service
        self.engine_bridge = engine_bridge

    async def handle_delivery(self, events: Iterable[LineEvent]) -> list[Result]:
        results = list(await asyncio.gather(*(self._run_event(event) for event in events)))

        failures = [result for result in results if not result.ok]
        if failures and self.settings.delivery_error_policy == "fail_fast":
            raise DeliveryFailedError(results)
        return results

    async def _run_event(self, event: LineEvent) -> Result[Optional[int]]:
        event_log = bind_event(logger, event.webhook_event_id)
        try:
            return await self.handle_event(event)
        except EngineError as e:
            result = Result.failure(str(e), "engine_error")
        except LineAPIError as e:
            result = Result.failure(str(e), "reply_error")
        except Exception as e:
            event_log.error(
                f"Event pipeline failed: {e}",
                context={"error_code": "unexpected_error"},
                exc_info=True,
            )
            return Result.failure(str(e), "unexpected_error")

        event_log.error(
            f"Event pipeline failed: {result.error}",
            context={"error_code": result.error_code},
        )
        return result

    async def handle_event(self, event: LineEvent) -> Result[Optional[int]]:
        if not event.is_text_message:
            logger.debug(f"Ignoring non-text event: type={event.type}")
            return Result.success(None)

        message = event.message
        signal = resolve_signal(message, event, self.settings.channel_id, self.settings.wake_word)
        if signal is None:
            return Result.success(None)

        user_id = event.source.user_id if event.source else None
        logger.info(
            "Bot addressed",
            extra={"context": {"signal": signal.value, "source_type": event.source.type if event.source else None}},
        )

        speaker = await resolve_speaker(self.line_service, user_id)
        conversation_key = build_conversation_key(
            self.settings.channel_id, self.settings.conversation_key_policy, user_id
        )
        replies = await self.engine_bridge.forward(message.text, conversation_key, speaker)

        batch = shape_replies(replies, self.settings.max_reply_messages)
        if not batch:
            logger.info("Engine returned no messages; nothing to send")
            return Result.success(0)

        if not event.reply_token:
            logger.warning("Event has no reply token; dropping replies")
            return Result.failure("Event has no reply token", "no_reply_token")

        await self.line_service.reply_message(event.reply_token, batch)
        return Result.success(len(batch))
