"""Conversation ORM model."""

from sqlalchemy import ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base, CreatedAtMixin, IdMixin, UpdatedAtMixin


class Conversation(Base, IdMixin, CreatedAtMixin, UpdatedAtMixin):
    """Running thread with one external sender on one page."""

    __tablename__ = "conversations"
    __table_args__ = (
        UniqueConstraint("platform", "page_id", "sender_id", name="uq_conversations_platform_page_sender"),
    )

    platform: Mapped[str] = mapped_column(String(32), nullable=False)
    page_id: Mapped[int] = mapped_column(
        ForeignKey("pages.id", ondelete="CASCADE"),
        index=True,
        nullable=False,
    )
    sender_id: Mapped[str] = mapped_column(String(255), nullable=False)
    sender_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    user_id: Mapped[str] = mapped_column(String(255), index=True, nullable=False)
    status: Mapped[str] = mapped_column(String(32), default="active", nullable=False, index=True)
