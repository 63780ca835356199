"""Notification schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class NotificationRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    type: str
    title: str
    message: str
    metadata_json: dict[str, object] = Field(default_factory=dict)
    is_read: bool
    created_at: datetime


class NotificationsPage(BaseModel):
    items: list[NotificationRead] = Field(default_factory=list)
    total: int
    unread: int
