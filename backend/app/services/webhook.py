"""Inbound messaging webhook processing: classify, resolve, generate, reply."""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime, timezone
from enum import Enum
from time import perf_counter
from typing import Any

from sqlalchemy.orm import Session

from app.config import get_settings
from app.db.session import SessionLocal
from app.models.conversation import Conversation
from app.models.message import Message
from app.models.page import PLATFORM_FACEBOOK, PLATFORM_INSTAGRAM, Page
from app.services.agents import AgentStrategy, LegacyStrategy, resolve_response_strategy
from app.services.attachments import classify_message, unsupported_reply
from app.services.context import build_conversation_history, build_product_context
from app.services.conversations import (
    find_active_page,
    get_or_create_conversation,
    message_exists,
    record_message,
    synthesize_message_id,
)
from app.services.llm import ChatCompletionClient
from app.services.meta import MessagingGateway, get_default_gateway
from app.services.responder import (
    generate_agent_response,
    generate_legacy_response,
    notify_order_confirmed,
)

logger = logging.getLogger(__name__)

PLATFORM_BY_OBJECT: dict[str, str] = {
    "page": PLATFORM_FACEBOOK,
    "instagram": PLATFORM_INSTAGRAM,
}


class EventOutcome(str, Enum):
    """How one messaging event ended."""

    IGNORED = "ignored"
    EMPTY = "empty"
    DUPLICATE = "duplicate"
    NO_PAGE = "no_page"
    UNSUPPORTED_REPLY = "unsupported_reply"
    AGENT_REPLY = "agent_reply"
    LEGACY_REPLY = "legacy_reply"
    NO_REPLY = "no_reply"
    FAILED = "failed"


def process_webhook_payload(
    payload: dict[str, Any],
    *,
    session_factory: Callable[[], Session] | None = None,
    gateway: MessagingGateway | None = None,
    chat_client: ChatCompletionClient | None = None,
) -> list[EventOutcome]:
    """Handle every messaging event of one delivery, isolating failures per event."""

    platform = PLATFORM_BY_OBJECT.get(str(payload.get("object") or ""))
    if platform is None:
        logger.info("webhook.payload_ignored object=%s", payload.get("object"))
        return []

    total_started = perf_counter()
    history_limit = get_settings().conversation_history_limit
    active_gateway = gateway or get_default_gateway()
    outcomes: list[EventOutcome] = []
    db = (session_factory or SessionLocal)()
    try:
        entries = payload.get("entry")
        for entry in entries if isinstance(entries, list) else []:
            if not isinstance(entry, dict):
                logger.info("webhook.entry_skipped platform=%s reason=not_object", platform)
                continue
            external_page_id = str(entry.get("id") or "")
            events = entry.get("messaging")
            if events is None:
                continue
            if not isinstance(events, list):
                logger.info(
                    "webhook.entry_skipped platform=%s page_id=%s reason=messaging_not_list",
                    platform,
                    external_page_id,
                )
                continue
            for event in events:
                started = perf_counter()
                try:
                    outcome = handle_messaging_event(
                        db,
                        event,
                        external_page_id=external_page_id,
                        platform=platform,
                        gateway=active_gateway,
                        chat_client=chat_client,
                        history_limit=history_limit,
                    )
                except Exception:
                    db.rollback()
                    logger.exception(
                        "webhook.event_failed platform=%s page_id=%s elapsed_ms=%.2f",
                        platform,
                        external_page_id,
                        (perf_counter() - started) * 1000.0,
                    )
                    outcome = EventOutcome.FAILED
                else:
                    logger.info(
                        "webhook.event_processed platform=%s page_id=%s outcome=%s elapsed_ms=%.2f",
                        platform,
                        external_page_id,
                        outcome.value,
                        (perf_counter() - started) * 1000.0,
                    )
                outcomes.append(outcome)
    finally:
        db.close()
    logger.info(
        "webhook.payload_processed platform=%s events=%d total_ms=%.2f",
        platform,
        len(outcomes),
        (perf_counter() - total_started) * 1000.0,
    )
    return outcomes


def handle_messaging_event(
    db: Session,
    event: dict[str, Any],
    *,
    external_page_id: str,
    platform: str,
    gateway: MessagingGateway,
    chat_client: ChatCompletionClient | None = None,
    history_limit: int = 10,
) -> EventOutcome:
    """Run one inbound message through persistence and the reply flow."""

    if not isinstance(event, dict):
        return EventOutcome.IGNORED
    message = event.get("message")
    sender_id = str((event.get("sender") or {}).get("id") or "")
    recipient_id = str((event.get("recipient") or {}).get("id") or external_page_id)
    if not isinstance(message, dict) or not sender_id:
        return EventOutcome.IGNORED
    if message.get("is_echo") or sender_id == external_page_id:
        return EventOutcome.IGNORED

    classified = classify_message(message)
    if classified.is_empty:
        return EventOutcome.EMPTY

    external_message_id = message.get("mid")
    if message_exists(db, external_message_id):
        return EventOutcome.DUPLICATE

    page = find_active_page(db, external_page_id, platform)
    if page is None:
        logger.info("webhook.page_not_found platform=%s page_id=%s", platform, external_page_id)
        return EventOutcome.NO_PAGE

    conversation = get_or_create_conversation(db, page, sender_id)
    inbound = record_message(
        db,
        conversation,
        message_id=str(external_message_id) if external_message_id else synthesize_message_id("in"),
        sender_id=sender_id,
        recipient_id=recipient_id,
        text=classified.text,
        attachment_type=classified.attachment_type,
        attachment_url=classified.attachment_url,
        is_from_page=False,
        timestamp=_event_timestamp(event),
    )

    if classified.is_unsupported_only:
        dispatch_reply(
            db,
            page=page,
            conversation=conversation,
            text=unsupported_reply(classified.unsupported_type),
            id_prefix="auto",
            gateway=gateway,
        )
        return EventOutcome.UNSUPPORTED_REPLY

    strategy = resolve_response_strategy(db, page, classified)
    match strategy:
        case AgentStrategy(agent=agent, products=products):
            agent_reply = generate_agent_response(
                agent=agent,
                products=build_product_context(db, products),
                history=build_conversation_history(
                    db, conversation.id, limit=history_limit, exclude_message_id=inbound.id
                ),
                user_message=classified.text,
                image_urls=classified.image_urls,
                chat_client=chat_client,
            )
            dispatch_reply(
                db,
                page=page,
                conversation=conversation,
                text=agent_reply.text,
                id_prefix="agent",
                gateway=gateway,
            )
            if agent_reply.order_confirmed:
                notify_order_confirmed(db, agent=agent, user_id=page.user_id, conversation_id=conversation.id)
            return EventOutcome.AGENT_REPLY
        case LegacyStrategy(settings=settings):
            history = build_conversation_history(
                db, conversation.id, limit=history_limit, exclude_message_id=inbound.id
            )
            reply = generate_legacy_response(
                history=[*history, {"role": "user", "content": classified.text or ""}],
                model=settings.ai_model,
                business_context=settings.business_context,
                custom_instructions=settings.custom_instructions,
                chat_client=chat_client,
            )
            dispatch_reply(db, page=page, conversation=conversation, text=reply, id_prefix="ai", gateway=gateway)
            return EventOutcome.LEGACY_REPLY
        case _:
            return EventOutcome.NO_REPLY


def dispatch_reply(
    db: Session,
    *,
    page: Page,
    conversation: Conversation,
    text: str,
    id_prefix: str,
    gateway: MessagingGateway,
) -> Message:
    """Send a reply and store it only after the provider accepted it."""

    provider_message_id = gateway.send_message(
        page.page_access_token,
        conversation.sender_id,
        text,
        page.platform,
    )
    return record_message(
        db,
        conversation,
        message_id=provider_message_id or synthesize_message_id(id_prefix),
        sender_id=page.page_id,
        recipient_id=conversation.sender_id,
        text=text,
        is_from_page=True,
    )


def _event_timestamp(event: dict[str, Any]) -> datetime | None:
    raw = event.get("timestamp")
    try:
        return datetime.fromtimestamp(int(raw) / 1000.0, tz=timezone.utc) if raw is not None else None
    except (TypeError, ValueError, OverflowError):
        return None
