"""Connected social page ORM model."""

from sqlalchemy import Boolean, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base, CreatedAtMixin, IdMixin, UpdatedAtMixin

PLATFORM_FACEBOOK = "facebook"
PLATFORM_INSTAGRAM = "instagram"


class Page(Base, IdMixin, CreatedAtMixin, UpdatedAtMixin):
    """Facebook page or Instagram account connected by a merchant."""

    __tablename__ = "pages"
    __table_args__ = (UniqueConstraint("platform", "page_id", name="uq_pages_platform_page_id"),)

    user_id: Mapped[str] = mapped_column(String(255), index=True, nullable=False)
    platform: Mapped[str] = mapped_column(String(32), nullable=False)
    page_id: Mapped[str] = mapped_column(String(255), index=True, nullable=False)
    page_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    page_access_token: Mapped[str] = mapped_column(Text, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
