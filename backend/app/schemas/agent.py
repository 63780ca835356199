"""Agent configuration request/response schemas."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

Personality = Literal["professional", "friendly", "casual", "technical"]


class AgentCreate(BaseModel):
    """Payload for creating an agent."""

    name: str = Field(min_length=1, max_length=255)
    description: str | None = None
    personality: Personality = "professional"
    custom_instructions: str | None = None
    ai_model: str = "gpt-4o-mini"
    temperature: float = Field(default=0.7, ge=0.0, le=2.0)
    max_tokens: int = Field(default=1000, ge=1, le=16000)
    sell_all_products: bool = True
    page_ids: list[int] = Field(default_factory=list)
    product_ids: list[int] = Field(default_factory=list)


class AgentUpdate(BaseModel):
    """Partial agent update; omitted fields are left unchanged."""

    name: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = None
    personality: Personality | None = None
    custom_instructions: str | None = None
    ai_model: str | None = None
    temperature: float | None = Field(default=None, ge=0.0, le=2.0)
    max_tokens: int | None = Field(default=None, ge=1, le=16000)
    sell_all_products: bool | None = None
    is_active: bool | None = None
    page_ids: list[int] | None = None
    product_ids: list[int] | None = None


class AgentRead(BaseModel):
    """Serialized agent with its page and product links."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: str
    name: str
    description: str | None = None
    personality: str
    custom_instructions: str | None = None
    ai_model: str
    temperature: float
    max_tokens: int
    sell_all_products: bool
    is_active: bool
    created_at: datetime
    updated_at: datetime
    page_ids: list[int] = Field(default_factory=list)
    product_ids: list[int] = Field(default_factory=list)


class ChatTurn(BaseModel):
    role: Literal["user", "assistant"]
    content: str


class AgentTestRequest(BaseModel):
    """Dry-run message sent to an agent from the dashboard."""

    message: str = Field(min_length=1)
    history: list[ChatTurn] = Field(default_factory=list)


class AgentTestResult(BaseModel):
    response: str
