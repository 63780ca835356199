"""Reply generation for agent-based and legacy auto-reply flows."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any

from sqlalchemy.orm import Session

from app.models.agent import Agent
from app.schemas.agent import AgentTestResult, ChatTurn
from app.services.agents import get_owned_agent
from app.services.context import assemble_agent_context
from app.services.llm import ChatCompletionClient, ChatRequest, get_chat_client
from app.services.notifications import ORDER_CONFIRMED, create_notification

logger = logging.getLogger(__name__)

ORDER_CONFIRMED_MARKER = "[ORDER_CONFIRMED]"
IMAGE_ONLY_PLACEHOLDER = (
    "The customer sent an image without any text. Look at it and help them, "
    "matching it against the product catalog when relevant."
)
LEGACY_TEMPERATURE = 0.7
LEGACY_MAX_TOKENS = 500

PERSONALITY_GUIDES: dict[str, str] = {
    "professional": "Be formal, courteous and business-focused.",
    "friendly": "Be warm, upbeat and approachable.",
    "casual": "Be relaxed and conversational, like chatting with a friend.",
    "technical": "Be detailed and precise, and explain specifications clearly.",
}


def build_agent_system_prompt(agent: Agent, products: list[dict[str, Any]]) -> str:
    """Compose the agent persona, rules and catalog snapshot."""

    personality = PERSONALITY_GUIDES.get(agent.personality, PERSONALITY_GUIDES["professional"])
    sections = [
        f"You are {agent.name}, a sales assistant answering customer messages for an online shop.",
        f"Tone: {personality}",
    ]
    if agent.custom_instructions:
        sections.append(f"Custom instructions: {agent.custom_instructions}")
    if products:
        sections.append(
            "Product catalog (prices and stock are current; never invent products):\n"
            + json.dumps(products, ensure_ascii=False)
        )
    else:
        sections.append("No products are currently available. Do not promise items or prices.")
    sections.append(
        "Guidelines:\n"
        "- Reply in the customer's language and keep answers short.\n"
        "- Only quote prices and quantities from the catalog.\n"
        "- If an item is out of stock, say so and suggest an alternative.\n"
        "- To confirm an order, collect the product, variant, quantity, name, phone and address. "
        f"Once the customer confirms everything, end your reply with {ORDER_CONFIRMED_MARKER}."
    )
    return "\n\n".join(sections)


def build_legacy_system_prompt(business_context: str | None, custom_instructions: str | None) -> str:
    lines = ["You are an AI assistant helping with customer service for a business."]
    if business_context:
        lines.append(f"Business context: {business_context}")
    if custom_instructions:
        lines.append(f"Custom instructions: {custom_instructions}")
    lines.append(
        "\nGuidelines:\n"
        "- Be helpful, professional, and friendly\n"
        "- Keep responses concise and clear\n"
        "- If you don't know something, be honest about it\n"
        "- Always prioritize customer satisfaction"
    )
    return "\n".join(lines)


@dataclass(slots=True)
class AgentReply:
    """Agent reply text with the order confirmation marker already stripped."""

    text: str
    order_confirmed: bool = False


def generate_agent_response(
    *,
    agent: Agent,
    products: list[dict[str, Any]],
    history: list[dict[str, str]],
    user_message: str | None,
    image_urls: list[str] | None = None,
    chat_client: ChatCompletionClient | None = None,
) -> AgentReply:
    """Generate an agent reply; model failures propagate as ``LLMError``."""

    content = (user_message or "").strip() or IMAGE_ONLY_PLACEHOLDER
    request = ChatRequest(
        system_prompt=build_agent_system_prompt(agent, products),
        messages=[*history, {"role": "user", "content": content}],
        model=agent.ai_model,
        temperature=agent.temperature,
        max_tokens=agent.max_tokens,
        image_urls=list(image_urls or []),
    )
    reply = (chat_client or get_chat_client(agent.ai_model)).complete(request)
    if ORDER_CONFIRMED_MARKER not in reply:
        return AgentReply(text=reply)
    return AgentReply(text=reply.replace(ORDER_CONFIRMED_MARKER, "").strip(), order_confirmed=True)


def notify_order_confirmed(db: Session, *, agent: Agent, user_id: str, conversation_id: int) -> None:
    """Raise the merchant notification for a confirmation the customer received."""

    create_notification(
        db,
        user_id=user_id,
        type=ORDER_CONFIRMED,
        title="New order confirmed",
        message=f"{agent.name} confirmed an order with a customer.",
        metadata={"agent_id": agent.id, "conversation_id": conversation_id},
    )
    logger.info("agents.order_confirmed agent_id=%s conversation_id=%s", agent.id, conversation_id)


def generate_legacy_response(
    *,
    history: list[dict[str, str]],
    model: str,
    business_context: str | None = None,
    custom_instructions: str | None = None,
    chat_client: ChatCompletionClient | None = None,
) -> str:
    """Generate a reply from per-user settings; ``history`` ends with the new message."""

    request = ChatRequest(
        system_prompt=build_legacy_system_prompt(business_context, custom_instructions),
        messages=history,
        model=model,
        temperature=LEGACY_TEMPERATURE,
        max_tokens=LEGACY_MAX_TOKENS,
    )
    return (chat_client or get_chat_client(model)).complete(request)


def run_agent_test(
    db: Session,
    user_id: str,
    agent_id: int,
    *,
    message: str,
    history: list[ChatTurn],
    chat_client: ChatCompletionClient | None = None,
) -> AgentTestResult | None:
    """Run an agent against a dashboard test message without storing anything."""

    agent = get_owned_agent(db, user_id, agent_id)
    if agent is None:
        return None
    reply = generate_agent_response(
        agent=agent,
        products=assemble_agent_context(db, agent),
        history=[turn.model_dump() for turn in history],
        user_message=message.strip(),
        chat_client=chat_client,
    )
    return AgentTestResult(response=reply.text)
