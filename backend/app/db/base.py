"""SQLAlchemy metadata registry import for Alembic."""

from app.models import (
    Agent,
    AgentPage,
    AgentProduct,
    AISettings,
    Conversation,
    Message,
    Notification,
    Page,
    Product,
    ProductVariant,
)
from app.models.base import Base

__all__ = [
    "Base",
    "Page",
    "Conversation",
    "Message",
    "Agent",
    "AgentPage",
    "AgentProduct",
    "AISettings",
    "Product",
    "ProductVariant",
    "Notification",
]
