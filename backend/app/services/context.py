"""Product catalog and conversation history context for reply generation."""

from __future__ import annotations

from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.models.agent import Agent
from app.models.message import Message
from app.models.product import Product, ProductVariant
from app.services.agents import resolve_agent_products

DEFAULT_HISTORY_LIMIT = 10


def build_product_context(db: Session, products: list[Product]) -> list[dict[str, Any]]:
    """Serialize products and their active variants for the model prompt."""

    if not products:
        return []
    product_ids = [product.id for product in products]
    variants_by_product: dict[int, list[ProductVariant]] = {product_id: [] for product_id in product_ids}
    variants = db.scalars(
        select(ProductVariant)
        .where(ProductVariant.product_id.in_(product_ids), ProductVariant.is_active.is_(True))
        .order_by(ProductVariant.id.asc())
    )
    for variant in variants:
        variants_by_product[variant.product_id].append(variant)

    return [
        {
            "id": product.id,
            "name": product.name,
            "sku": product.sku,
            "description": product.description,
            "sellingPrice": float(product.selling_price),
            "quantity": product.quantity,
            "hasVariants": product.has_variants,
            "variants": [
                {
                    "name": variant.name,
                    "sellingPrice": float(variant.selling_price),
                    "quantity": variant.quantity,
                }
                for variant in variants_by_product[product.id]
            ],
            "imageUrl": product.image_url,
        }
        for product in products
    ]


def assemble_agent_context(db: Session, agent: Agent) -> list[dict[str, Any]]:
    """Return the product catalog snapshot an agent answers from."""

    return build_product_context(db, resolve_agent_products(db, agent))


def build_conversation_history(
    db: Session,
    conversation_id: int,
    *,
    limit: int = DEFAULT_HISTORY_LIMIT,
    exclude_message_id: int | None = None,
) -> list[dict[str, str]]:
    """Return the latest ``limit`` turns, oldest first, as chat roles."""

    stmt = (
        select(Message)
        .where(Message.conversation_id == conversation_id)
        .order_by(Message.timestamp.desc(), Message.id.desc())
        .limit(limit)
    )
    if exclude_message_id is not None:
        stmt = stmt.where(Message.id != exclude_message_id)
    recent = list(db.scalars(stmt))
    recent.reverse()
    return [
        {
            "role": "assistant" if message.is_from_page else "user",
            "content": message.text or "",
        }
        for message in recent
    ]
