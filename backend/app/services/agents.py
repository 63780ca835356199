"""Agent resolution, agent configuration and legacy AI settings services."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Union

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.models.agent import Agent, AgentPage, AgentProduct
from app.models.ai_settings import AISettings
from app.models.page import Page
from app.models.product import Product
from app.schemas.agent import AgentCreate, AgentRead, AgentUpdate
from app.schemas.ai_settings import AISettingsRead, AISettingsUpdate
from app.services.attachments import ClassifiedMessage

logger = logging.getLogger(__name__)


class AgentConfigError(RuntimeError):
    """Raised when an agent configuration request is invalid."""


@dataclass(slots=True)
class AgentStrategy:
    """Reply with the agent bound to the page, scoped to its products."""

    agent: Agent
    products: list[Product] = field(default_factory=list)


@dataclass(slots=True)
class LegacyStrategy:
    """Reply with the page owner's single AI settings record."""

    settings: AISettings


ResponseStrategy = Union[AgentStrategy, LegacyStrategy, None]


def find_page_agent(db: Session, page: Page) -> Agent | None:
    """Return the active agent bound to a page, if any."""

    stmt = (
        select(Agent)
        .join(AgentPage, AgentPage.agent_id == Agent.id)
        .where(AgentPage.page_id == page.id, Agent.is_active.is_(True))
    )
    return db.scalars(stmt).first()


def resolve_agent_products(db: Session, agent: Agent) -> list[Product]:
    """Return the active products an agent may sell."""

    if agent.sell_all_products:
        stmt = (
            select(Product)
            .where(Product.user_id == agent.user_id, Product.is_active.is_(True))
            .order_by(Product.id.asc())
        )
    else:
        stmt = (
            select(Product)
            .join(AgentProduct, AgentProduct.product_id == Product.id)
            .where(AgentProduct.agent_id == agent.id, Product.is_active.is_(True))
            .order_by(Product.id.asc())
        )
    return list(db.scalars(stmt))


def resolve_response_strategy(db: Session, page: Page, classified: ClassifiedMessage) -> ResponseStrategy:
    """Pick the reply flow for an already-persisted inbound message."""

    agent = find_page_agent(db, page)
    if agent is not None:
        if not classified.text and not classified.image_urls:
            return None
        return AgentStrategy(agent=agent, products=resolve_agent_products(db, agent))

    # Legacy settings only answer text.
    if not classified.text:
        return None
    settings = db.scalars(select(AISettings).where(AISettings.user_id == page.user_id)).first()
    if settings is None or not settings.auto_reply:
        return None
    return LegacyStrategy(settings=settings)


def list_agents(db: Session, user_id: str) -> list[AgentRead]:
    """Return a merchant's agents, newest first."""

    stmt = select(Agent).where(Agent.user_id == user_id).order_by(Agent.created_at.desc(), Agent.id.desc())
    return [_to_read(db, agent) for agent in db.scalars(stmt)]


def get_owned_agent(db: Session, user_id: str, agent_id: int) -> Agent | None:
    return db.scalars(select(Agent).where(Agent.id == agent_id, Agent.user_id == user_id)).first()


def get_agent(db: Session, user_id: str, agent_id: int) -> AgentRead | None:
    agent = get_owned_agent(db, user_id, agent_id)
    return _to_read(db, agent) if agent is not None else None


def create_agent(db: Session, user_id: str, payload: AgentCreate) -> AgentRead:
    """Create an agent and bind its pages and products in one transaction."""

    name = payload.name.strip()
    if not name:
        raise AgentConfigError("Agent name is required.")
    agent = Agent(
        user_id=user_id,
        name=name,
        description=_clean(payload.description),
        personality=payload.personality,
        custom_instructions=_clean(payload.custom_instructions),
        ai_model=payload.ai_model,
        temperature=payload.temperature,
        max_tokens=payload.max_tokens,
        sell_all_products=payload.sell_all_products,
        is_active=True,
    )
    db.add(agent)
    db.flush()
    _sync_links(
        db,
        agent,
        user_id=user_id,
        page_ids=payload.page_ids,
        product_ids=[] if payload.sell_all_products else payload.product_ids,
    )
    _commit_links(db)
    db.refresh(agent)
    logger.info("agents.created user_id=%s agent_id=%s", user_id, agent.id)
    return _to_read(db, agent)


def update_agent(db: Session, user_id: str, agent_id: int, payload: AgentUpdate) -> AgentRead | None:
    """Apply a partial update; page/product links are replaced when provided."""

    agent = get_owned_agent(db, user_id, agent_id)
    if agent is None:
        return None

    changes = payload.model_dump(exclude_unset=True, exclude={"page_ids", "product_ids"})
    if "name" in changes:
        name = (changes["name"] or "").strip()
        if not name:
            raise AgentConfigError("Agent name is required.")
        changes["name"] = name
    for key in ("description", "custom_instructions"):
        if key in changes:
            changes[key] = _clean(changes[key])
    for key, value in changes.items():
        if value is None and key not in {"description", "custom_instructions"}:
            continue
        setattr(agent, key, value)

    _sync_links(db, agent, user_id=user_id, page_ids=payload.page_ids, product_ids=payload.product_ids)
    _commit_links(db)
    db.refresh(agent)
    return _to_read(db, agent)


def delete_agent(db: Session, user_id: str, agent_id: int) -> bool:
    agent = get_owned_agent(db, user_id, agent_id)
    if agent is None:
        return False
    db.execute(delete(AgentPage).where(AgentPage.agent_id == agent.id))
    db.execute(delete(AgentProduct).where(AgentProduct.agent_id == agent.id))
    db.delete(agent)
    db.commit()
    return True


def get_ai_settings(db: Session, user_id: str) -> AISettingsRead:
    """Return stored legacy settings, or defaults."""

    settings = db.scalars(select(AISettings).where(AISettings.user_id == user_id)).first()
    if settings is None:
        return AISettingsRead(user_id=user_id)
    return AISettingsRead.model_validate(settings)


def upsert_ai_settings(db: Session, user_id: str, payload: AISettingsUpdate) -> AISettingsRead:
    settings = db.scalars(select(AISettings).where(AISettings.user_id == user_id)).first()
    if settings is None:
        settings = AISettings(user_id=user_id)
        db.add(settings)
    for key, value in payload.model_dump(exclude_unset=True).items():
        if key in {"business_context", "custom_instructions"}:
            value = _clean(value)
        elif value is None:
            continue
        setattr(settings, key, value)
    db.commit()
    db.refresh(settings)
    return AISettingsRead.model_validate(settings)


def _sync_links(
    db: Session,
    agent: Agent,
    *,
    user_id: str,
    page_ids: list[int] | None,
    product_ids: list[int] | None,
) -> None:
    if page_ids is not None:
        unique_page_ids = list(dict.fromkeys(page_ids))
        owned = set(db.scalars(select(Page.id).where(Page.id.in_(unique_page_ids), Page.user_id == user_id)))
        missing = [page_id for page_id in unique_page_ids if page_id not in owned]
        if missing:
            db.rollback()
            raise AgentConfigError(f"Unknown page ids: {missing}")
        db.execute(delete(AgentPage).where(AgentPage.agent_id == agent.id))
        for page_id in unique_page_ids:
            db.add(AgentPage(agent_id=agent.id, page_id=page_id))

    if product_ids is not None:
        unique_product_ids = list(dict.fromkeys(product_ids))
        owned = set(
            db.scalars(select(Product.id).where(Product.id.in_(unique_product_ids), Product.user_id == user_id))
        )
        missing = [product_id for product_id in unique_product_ids if product_id not in owned]
        if missing:
            db.rollback()
            raise AgentConfigError(f"Unknown product ids: {missing}")
        db.execute(delete(AgentProduct).where(AgentProduct.agent_id == agent.id))
        for product_id in unique_product_ids:
            db.add(AgentProduct(agent_id=agent.id, product_id=product_id))


def _commit_links(db: Session) -> None:
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise AgentConfigError("One or more pages are already assigned to another agent.") from exc


def _to_read(db: Session, agent: Agent) -> AgentRead:
    page_ids = list(
        db.scalars(select(AgentPage.page_id).where(AgentPage.agent_id == agent.id).order_by(AgentPage.page_id))
    )
    product_ids = list(
        db.scalars(
            select(AgentProduct.product_id)
            .where(AgentProduct.agent_id == agent.id)
            .order_by(AgentProduct.product_id)
        )
    )
    return AgentRead.model_validate(agent).model_copy(update={"page_ids": page_ids, "product_ids": product_ids})


def _clean(value: str | None) -> str | None:
    if value is None:
        return None
    trimmed = value.strip()
    return trimmed or None
