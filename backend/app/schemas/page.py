"""Page, conversation and message history schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class PageRead(BaseModel):
    """Serialized connected page; the access token is never exposed."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    platform: str
    page_id: str
    page_name: str | None = None
    is_active: bool
    created_at: datetime


class LastMessage(BaseModel):
    """Latest message preview for conversation lists."""

    text: str | None = None
    timestamp: datetime
    is_from_page: bool


class ConversationListItem(BaseModel):
    id: int
    sender_id: str
    sender_name: str | None = None
    status: str
    last_message: LastMessage | None = None
    created_at: datetime
    updated_at: datetime


class ConversationsPage(BaseModel):
    items: list[ConversationListItem] = Field(default_factory=list)
    total: int
    limit: int
    offset: int


class MessageRead(BaseModel):
    """Serialized stored message."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    conversation_id: int
    message_id: str
    sender_id: str
    recipient_id: str
    text: str | None = None
    attachment_type: str | None = None
    attachment_url: str | None = None
    is_from_page: bool
    timestamp: datetime
    sender_name: str | None = None


class MessagesPage(BaseModel):
    items: list[MessageRead] = Field(default_factory=list)
    total: int
    limit: int
    offset: int


class ReplyRequest(BaseModel):
    """Manual reply typed by the merchant in the dashboard."""

    message: str = Field(min_length=1)


class ReplyResult(BaseModel):
    message: MessageRead
