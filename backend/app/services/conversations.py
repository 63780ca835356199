"""Page, conversation and message persistence services."""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.models.conversation import Conversation
from app.models.message import Message
from app.models.page import Page
from app.schemas.page import (
    ConversationListItem,
    ConversationsPage,
    LastMessage,
    MessageRead,
    MessagesPage,
    PageRead,
    ReplyResult,
)
from app.services.meta import MessagingGateway, MetaProviderError

logger = logging.getLogger(__name__)


class ReplyError(RuntimeError):
    """Raised when a manual reply cannot be delivered."""


def synthesize_message_id(prefix: str) -> str:
    """Return a collision-free local id for messages without a provider id."""

    return f"{prefix}_{uuid.uuid4().hex}"


def find_active_page(db: Session, external_page_id: str, platform: str) -> Page | None:
    """Return the active page receiving a webhook entry."""

    stmt = select(Page).where(
        Page.page_id == external_page_id,
        Page.platform == platform,
        Page.is_active.is_(True),
    )
    return db.scalars(stmt).first()


def get_or_create_conversation(db: Session, page: Page, sender_id: str) -> Conversation:
    """Return the unique conversation for (platform, page, sender), creating it once."""

    existing = _find_conversation(db, page, sender_id)
    if existing is not None:
        return existing

    try:
        with db.begin_nested():
            conversation = Conversation(
                platform=page.platform,
                page_id=page.id,
                sender_id=sender_id,
                user_id=page.user_id,
            )
            db.add(conversation)
    except IntegrityError:
        # Another delivery created the row between our select and insert.
        existing = _find_conversation(db, page, sender_id)
        if existing is None:
            raise
        return existing
    db.commit()
    db.refresh(conversation)
    return conversation


def message_exists(db: Session, message_id: str | None) -> bool:
    """Return whether an external message id was already stored."""

    if not message_id:
        return False
    return db.scalar(select(Message.id).where(Message.message_id == message_id)) is not None


def record_message(
    db: Session,
    conversation: Conversation,
    *,
    message_id: str,
    sender_id: str,
    recipient_id: str,
    text: str | None,
    is_from_page: bool,
    attachment_type: str | None = None,
    attachment_url: str | None = None,
    timestamp: datetime | None = None,
) -> Message:
    """Append one message and bump the conversation's activity timestamp."""

    now = datetime.now(timezone.utc)
    message = Message(
        conversation_id=conversation.id,
        message_id=message_id,
        sender_id=sender_id,
        recipient_id=recipient_id,
        text=text,
        attachment_type=attachment_type,
        attachment_url=attachment_url,
        is_from_page=is_from_page,
        timestamp=timestamp or now,
    )
    db.add(message)
    conversation.updated_at = now
    db.commit()
    db.refresh(message)
    return message


def list_pages(db: Session, user_id: str) -> list[PageRead]:
    """Return a merchant's connected pages, newest first."""

    stmt = (
        select(Page)
        .where(Page.user_id == user_id, Page.is_active.is_(True))
        .order_by(Page.created_at.desc(), Page.id.desc())
    )
    return [PageRead.model_validate(page) for page in db.scalars(stmt)]


def get_owned_page(db: Session, user_id: str, page_id: int, *, active_only: bool = True) -> Page | None:
    stmt = select(Page).where(Page.id == page_id, Page.user_id == user_id)
    if active_only:
        stmt = stmt.where(Page.is_active.is_(True))
    return db.scalars(stmt).first()


def disconnect_page(db: Session, user_id: str, page_id: int) -> bool:
    """Soft-delete a page; returns False when the page is not owned by the user."""

    page = get_owned_page(db, user_id, page_id, active_only=False)
    if page is None:
        return False
    page.is_active = False
    db.commit()
    logger.info("pages.disconnected user_id=%s page_id=%s", user_id, page_id)
    return True


def list_page_conversations(
    db: Session,
    page: Page,
    *,
    status: str = "active",
    limit: int = 50,
    offset: int = 0,
) -> ConversationsPage:
    """Return conversations for a page ordered by latest activity."""

    base = select(Conversation).where(Conversation.page_id == page.id)
    if status and status != "all":
        base = base.where(Conversation.status == status)
    total = int(db.scalar(select(func.count()).select_from(base.subquery())) or 0)

    conversations = list(
        db.scalars(
            base.order_by(Conversation.updated_at.desc(), Conversation.id.desc()).limit(limit).offset(offset)
        )
    )
    items = []
    for conversation in conversations:
        latest = db.scalars(
            select(Message)
            .where(Message.conversation_id == conversation.id)
            .order_by(Message.timestamp.desc(), Message.id.desc())
            .limit(1)
        ).first()
        items.append(
            ConversationListItem(
                id=conversation.id,
                sender_id=conversation.sender_id,
                sender_name=conversation.sender_name,
                status=conversation.status,
                last_message=(
                    LastMessage(text=latest.text, timestamp=latest.timestamp, is_from_page=latest.is_from_page)
                    if latest is not None
                    else None
                ),
                created_at=conversation.created_at,
                updated_at=conversation.updated_at,
            )
        )
    return ConversationsPage(items=items, total=total, limit=limit, offset=offset)


def list_page_messages(
    db: Session,
    page: Page,
    *,
    direction: str | None = None,
    date_from: datetime | None = None,
    date_to: datetime | None = None,
    limit: int = 50,
    offset: int = 0,
) -> MessagesPage:
    """Return message history across a page's conversations, newest first."""

    base = (
        select(Message, Conversation.sender_name)
        .join(Conversation, Conversation.id == Message.conversation_id)
        .where(Conversation.page_id == page.id)
    )
    if date_from is not None:
        base = base.where(Message.timestamp >= date_from)
    if date_to is not None:
        base = base.where(Message.timestamp <= date_to)
    if direction == "incoming":
        base = base.where(Message.is_from_page.is_(False))
    elif direction == "outgoing":
        base = base.where(Message.is_from_page.is_(True))

    total = int(db.scalar(select(func.count()).select_from(base.subquery())) or 0)
    rows = db.execute(base.order_by(Message.timestamp.desc(), Message.id.desc()).limit(limit).offset(offset)).all()
    items = [
        MessageRead.model_validate(message).model_copy(update={"sender_name": sender_name})
        for message, sender_name in rows
    ]
    return MessagesPage(items=items, total=total, limit=limit, offset=offset)


def send_manual_reply(
    db: Session,
    user_id: str,
    conversation_id: int,
    text: str,
    *,
    gateway: MessagingGateway,
) -> ReplyResult | None:
    """Send a merchant-typed reply; returns None when the conversation is not owned."""

    trimmed = text.strip()
    if not trimmed:
        raise ReplyError("Message text is required.")

    row = db.execute(
        select(Conversation, Page)
        .join(Page, Page.id == Conversation.page_id)
        .where(Conversation.id == conversation_id, Conversation.user_id == user_id)
    ).first()
    if row is None:
        return None
    conversation, page = row

    try:
        provider_message_id = gateway.send_message(
            page.page_access_token,
            conversation.sender_id,
            trimmed,
            conversation.platform,
        )
    except MetaProviderError as exc:
        logger.warning("replies.send_failed conversation_id=%s error=%s", conversation_id, exc)
        raise ReplyError("Failed to send message via Meta. Please try again.") from exc

    message = record_message(
        db,
        conversation,
        message_id=provider_message_id or synthesize_message_id("manual"),
        sender_id=page.page_id,
        recipient_id=conversation.sender_id,
        text=trimmed,
        is_from_page=True,
    )
    return ReplyResult(message=MessageRead.model_validate(message))


def _find_conversation(db: Session, page: Page, sender_id: str) -> Conversation | None:
    stmt = select(Conversation).where(
        Conversation.platform == page.platform,
        Conversation.page_id == page.id,
        Conversation.sender_id == sender_id,
    )
    return db.scalars(stmt).first()
