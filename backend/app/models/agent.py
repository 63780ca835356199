"""AI agent ORM models and their page/product links."""

from sqlalchemy import Boolean, Float, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base, CreatedAtMixin, IdMixin, UpdatedAtMixin


class Agent(Base, IdMixin, CreatedAtMixin, UpdatedAtMixin):
    """Configured AI persona answering on the pages bound to it."""

    __tablename__ = "agents"

    user_id: Mapped[str] = mapped_column(String(255), index=True, nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    personality: Mapped[str] = mapped_column(String(32), default="professional", nullable=False)
    custom_instructions: Mapped[str | None] = mapped_column(Text, nullable=True)
    ai_model: Mapped[str] = mapped_column(String(128), default="gpt-4o-mini", nullable=False)
    temperature: Mapped[float] = mapped_column(Float, default=0.7, nullable=False)
    max_tokens: Mapped[int] = mapped_column(Integer, default=1000, nullable=False)
    sell_all_products: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)


class AgentPage(Base, IdMixin, CreatedAtMixin):
    """Binds a page to exactly one agent."""

    __tablename__ = "agent_pages"

    agent_id: Mapped[int] = mapped_column(
        ForeignKey("agents.id", ondelete="CASCADE"),
        index=True,
        nullable=False,
    )
    page_id: Mapped[int] = mapped_column(
        ForeignKey("pages.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
    )


class AgentProduct(Base, IdMixin, CreatedAtMixin):
    """Explicit product scope for agents that do not sell the whole catalog."""

    __tablename__ = "agent_products"
    __table_args__ = (UniqueConstraint("agent_id", "product_id", name="uq_agent_products_agent_product"),)

    agent_id: Mapped[int] = mapped_column(
        ForeignKey("agents.id", ondelete="CASCADE"),
        index=True,
        nullable=False,
    )
    product_id: Mapped[int] = mapped_column(
        ForeignKey("products.id", ondelete="CASCADE"),
        index=True,
        nullable=False,
    )
