"""ORM models package exports."""

from app.models.agent import Agent, AgentPage, AgentProduct
from app.models.ai_settings import AISettings
from app.models.conversation import Conversation
from app.models.message import Message
from app.models.notification import Notification
from app.models.page import Page
from app.models.product import Product, ProductVariant

__all__ = [
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
