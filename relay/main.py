import asyncio
from typing import Optional

import httpx
import uvicorn
from fastapi import FastAPI

from relay.config import Settings, get_settings
from relay.logging_config import get_logger, setup_logging
from relay.routers import callback
from relay.services.alert_service import AlertService
from relay.services.auth_service import EngineCredential
from relay.services.dispatcher import EventDispatcher
from relay.services.engine_service import EngineBridge
from relay.services.line_service import LineService

logger = get_logger("main")


def create_app(
    settings: Optional[Settings] = None,
    credential: Optional[EngineCredential] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> FastAPI:
    """Build the relay app. Missing required settings raise here, before serving."""
    settings = settings or get_settings()
    setup_logging(settings.log_level)

    app = FastAPI(
        title="LINE Relay",
        description="Relays LINE messages addressed to the bot to the conversation engine",
        version="0.1.0",
    )
    app.state.settings = settings
    app.include_router(callback.build_router(settings.callback_path))

    @app.on_event("startup")
    async def start_relay() -> None:
        engine_credential = credential or EngineCredential(settings.engine_url)
        # CredentialError propagates and aborts startup
        await asyncio.to_thread(engine_credential.acquire)

        app.state.http_client = httpx.AsyncClient(transport=transport, timeout=30.0)
        app.state.line_service = LineService(
            settings.channel_access_token,
            settings.channel_secret,
            app.state.http_client,
            base_url=settings.line_api_base_url,
            profile_timeout=settings.profile_timeout_seconds,
        )
        engine_bridge = EngineBridge(
            settings.engine_url,
            engine_credential,
            app.state.http_client,
            response_shape=settings.engine_response_shape,
            timeout=settings.engine_timeout_seconds,
        )
        app.state.alert_service = AlertService(settings.alert_bot_token, settings.alert_chat_id, app.state.http_client)
        app.state.dispatcher = EventDispatcher(settings, app.state.line_service, engine_bridge)
        logger.info(
            "LINE relay started",
            extra={
                "context": {
                    "callback_path": settings.callback_path,
                    "engine_response_shape": settings.engine_response_shape,
                    "delivery_error_policy": settings.delivery_error_policy,
                }
            },
        )

    @app.on_event("shutdown")
    async def stop_relay() -> None:
        client = getattr(app.state, "http_client", None)
        if client is not None:
            await client.aclose()
            app.state.http_client = None

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    return app


def run() -> None:
    settings = get_settings()
    app = create_app(settings)
    logger.info(f"listening on {settings.port}")
    uvicorn.run(app, host=settings.host, port=settings.port)


if __name__ == "__main__":
    run()
