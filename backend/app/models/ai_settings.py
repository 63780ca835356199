"""Per-user AI settings used when no agent is bound to a page."""

from sqlalchemy import Boolean, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base, CreatedAtMixin, IdMixin, UpdatedAtMixin


class AISettings(Base, IdMixin, CreatedAtMixin, UpdatedAtMixin):
    """Legacy single-settings auto-reply configuration."""

    __tablename__ = "ai_settings"

    user_id: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    auto_reply: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    business_context: Mapped[str | None] = mapped_column(Text, nullable=True)
    custom_instructions: Mapped[str | None] = mapped_column(Text, nullable=True)
    ai_model: Mapped[str] = mapped_column(String(128), default="gpt-4o-mini", nullable=False)
