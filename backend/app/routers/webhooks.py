"""Meta messaging webhook routes."""

import json
import logging

from fastapi import APIRouter, BackgroundTasks, Depends, Query, Request
from fastapi.responses import PlainTextResponse

from app.config import Settings, get_settings
from app.services.meta import verify_signature, verify_webhook_challenge
from app.services.webhook import process_webhook_payload

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/webhooks")


@router.get("/meta", response_class=PlainTextResponse)
def verify_meta_webhook(
    mode: str | None = Query(default=None, alias="hub.mode"),
    token: str | None = Query(default=None, alias="hub.verify_token"),
    challenge: str | None = Query(default=None, alias="hub.challenge"),
    settings: Settings = Depends(get_settings),
) -> PlainTextResponse:
    """Answer Meta's subscription handshake."""

    result = verify_webhook_challenge(mode, token, challenge, settings.meta_verify_token)
    if result is None:
        logger.warning("webhook.verification_failed mode=%s", mode)
        return PlainTextResponse("Forbidden", status_code=403)
    return PlainTextResponse(result)


@router.post("/meta", response_class=PlainTextResponse)
async def receive_meta_webhook(
    request: Request,
    background_tasks: BackgroundTasks,
    settings: Settings = Depends(get_settings),
) -> PlainTextResponse:
    """Acknowledge immediately and process messaging events in the background."""

    body = await request.body()
    if settings.meta_app_secret and not verify_signature(
        body,
        request.headers.get("X-Hub-Signature-256"),
        settings.meta_app_secret,
    ):
        logger.warning("webhook.signature_invalid")
        return PlainTextResponse("Forbidden", status_code=403)

    try:
        payload = json.loads(body or b"{}")
    except json.JSONDecodeError:
        logger.warning("webhook.invalid_json bytes=%d", len(body))
        return PlainTextResponse("EVENT_RECEIVED")

    if isinstance(payload, dict):
        background_tasks.add_task(process_webhook_payload, payload)
    return PlainTextResponse("EVENT_RECEIVED")
