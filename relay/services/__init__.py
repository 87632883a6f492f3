from relay.services.dispatcher import DeliveryFailedError, EventDispatcher
from relay.services.engine_service import EngineBridge, EngineError, build_conversation_key, parse_engine_response
from relay.services.identity_service import resolve_speaker
from relay.services.line_service import LineAPIError, LineService
from relay.services.mention_service import MentionSignal, resolve_signal, should_respond
from relay.services.reply_service import shape_replies
