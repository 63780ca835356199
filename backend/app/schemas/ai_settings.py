"""Legacy AI settings schemas."""

from pydantic import BaseModel, ConfigDict


class AISettingsUpdate(BaseModel):
    auto_reply: bool | None = None
    business_context: str | None = None
    custom_instructions: str | None = None
    ai_model: str | None = None


class AISettingsRead(BaseModel):
    """Serialized legacy settings, or defaults when none are stored."""

    model_config = ConfigDict(from_attributes=True)

    user_id: str
    auto_reply: bool = True
    business_context: str | None = None
    custom_instructions: str | None = None
    ai_model: str = "gpt-4o-mini"
