"""Merchant notification services."""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.models.notification import Notification
from app.schemas.notification import NotificationRead, NotificationsPage

logger = logging.getLogger(__name__)

ORDER_CONFIRMED = "order_confirmed"


def create_notification(
    db: Session,
    *,
    user_id: str,
    type: str,
    title: str,
    message: str,
    metadata: dict[str, Any] | None = None,
) -> Notification | None:
    """Store a notification; failures are logged and never interrupt the caller."""

    notification = Notification(
        user_id=user_id,
        type=type,
        title=title,
        message=message,
        metadata_json=metadata or {},
    )
    try:
        with db.begin_nested():
            db.add(notification)
        db.commit()
    except SQLAlchemyError:
        logger.exception("notifications.create_failed user_id=%s type=%s", user_id, type)
        return None
    return notification


def list_notifications(db: Session, user_id: str, *, limit: int = 50, offset: int = 0) -> NotificationsPage:
    """Return a user's notifications, newest first, with unread count."""

    stmt = (
        select(Notification)
        .where(Notification.user_id == user_id)
        .order_by(Notification.created_at.desc(), Notification.id.desc())
        .limit(limit)
        .offset(offset)
    )
    total = int(db.scalar(select(func.count(Notification.id)).where(Notification.user_id == user_id)) or 0)
    unread = int(
        db.scalar(
            select(func.count(Notification.id)).where(
                Notification.user_id == user_id,
                Notification.is_read.is_(False),
            )
        )
        or 0
    )
    return NotificationsPage(
        items=[NotificationRead.model_validate(row) for row in db.scalars(stmt)],
        total=total,
        unread=unread,
    )


def mark_all_read(db: Session, user_id: str) -> int:
    result = db.execute(
        update(Notification)
        .where(Notification.user_id == user_id, Notification.is_read.is_(False))
        .values(is_read=True)
    )
    db.commit()
    return int(result.rowcount or 0)
