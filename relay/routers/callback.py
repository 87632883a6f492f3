from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Header, HTTPException, Request
from fastapi.responses import JSONResponse, Response
from pydantic import ValidationError

from relay.logging_config import get_logger
from relay.schemas.line import LineWebhookRequest
from relay.services.alert_service import AlertService
from relay.services.dispatcher import DeliveryFailedError, EventDispatcher
from relay.services.line_service import LineService

logger = get_logger("callback")


def get_dispatcher(request: Request) -> EventDispatcher:
    return request.app.state.dispatcher


def get_line_service(request: Request) -> LineService:
    return request.app.state.line_service


def get_alert_service(request: Request) -> AlertService:
    return request.app.state.alert_service


async def handle_callback(
    request: Request,
    background_tasks: BackgroundTasks,
    x_line_signature: Optional[str] = Header(default=None),
    dispatcher: EventDispatcher = Depends(get_dispatcher),
    line_service: LineService = Depends(get_line_service),
    alert_service: AlertService = Depends(get_alert_service),
):
    """
    Handle a LINE webhook delivery:
    - verify X-Line-Signature against the raw body
    - run one relay pipeline per event, concurrently
    - 200 with per-event results, or 500 with an empty body under fail_fast
    - failed events are alerted to the operator after the response is sent
    """
    body = await request.body()
    if not line_service.verify_signature(body, x_line_signature):
        logger.warning("Rejected webhook with invalid signature")
        raise HTTPException(status_code=401, detail="Invalid signature")

    try:
        payload = LineWebhookRequest.model_validate_json(body)
    except ValidationError as e:
        logger.warning(f"Invalid webhook payload: {e}")
        raise HTTPException(status_code=400, detail="Invalid payload")

    logger.info(
        "Webhook received",
        extra={"context": {"destination": payload.destination, "event_count": len(payload.events)}},
    )

    try:
        results = await dispatcher.handle_delivery(payload.events)
    except DeliveryFailedError as e:
        logger.error(f"Webhook delivery failed: {e}")
        background_tasks.add_task(alert_service.report_failures, payload.events, e.results)
        return Response(status_code=500)

    if any(not result.ok for result in results):
        background_tasks.add_task(alert_service.report_failures, payload.events, results)

    return JSONResponse([result.to_dict() for result in results])


def build_router(path: str = "/callback") -> APIRouter:
    router = APIRouter()
    router.add_api_route(path, handle_callback, methods=["POST"])
    return router
