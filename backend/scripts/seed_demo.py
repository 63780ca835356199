"""Seed a demo merchant with a connected page, catalog and agent.

Usage (from repository root):
    python backend/scripts/seed_demo.py

Usage (from backend directory):
    python scripts/seed_demo.py
    # or
    python -m scripts.seed_demo
"""

from __future__ import annotations

import argparse
import sys
from decimal import Decimal
from pathlib import Path

from sqlalchemy import delete, select

# Make `app` imports work whether the script is run from repo root or backend/.
BACKEND_DIR = Path(__file__).resolve().parents[1]
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

from app.db.session import SessionLocal
from app.models.agent import Agent
from app.models.ai_settings import AISettings
from app.models.page import PLATFORM_FACEBOOK, Page
from app.models.product import Product
from app.schemas.agent import AgentCreate
from app.services.agents import create_agent
from app.services.products import create_variant


DEFAULT_USER_ID = "demo-merchant"
DEFAULT_PAGE_ID = "100000000000001"


def reset_merchant(db, user_id: str) -> None:
    """Remove demo-owned rows; conversations cascade from pages."""

    db.execute(delete(Agent).where(Agent.user_id == user_id))
    db.execute(delete(Product).where(Product.user_id == user_id))
    db.execute(delete(AISettings).where(AISettings.user_id == user_id))
    db.execute(delete(Page).where(Page.user_id == user_id))
    db.commit()


def seed_catalog(db, user_id: str) -> list[Product]:
    """Create a small catalog, one product with variants."""

    products = [
        Product(
            user_id=user_id,
            name="Linen Shirt",
            sku="SHIRT-LIN",
            description="Breathable summer shirt.",
            selling_price=Decimal("3500.00"),
            image_url="https://example.com/img/linen-shirt.jpg",
        ),
        Product(
            user_id=user_id,
            name="Leather Belt",
            sku="BELT-01",
            description="Full-grain leather, brass buckle.",
            selling_price=Decimal("1800.00"),
            quantity=12,
        ),
    ]
    db.add_all(products)
    db.commit()
    shirt = products[0]
    for name, quantity in (("S", 4), ("M", 7), ("L", 2)):
        create_variant(db, shirt, name=name, quantity=quantity)
    return products


def parse_args() -> argparse.Namespace:
    """Parse script CLI arguments."""

    parser = argparse.ArgumentParser(description="Seed a demo merchant, page, catalog and agent.")
    parser.add_argument("--user-id", default=DEFAULT_USER_ID, help=f"Merchant id (default: {DEFAULT_USER_ID})")
    parser.add_argument("--page-id", default=DEFAULT_PAGE_ID, help="External Facebook page id.")
    parser.add_argument("--access-token", default="demo-page-token", help="Page access token to store.")
    parser.add_argument(
        "--no-reset",
        action="store_true",
        help="Do not delete existing records for the merchant before seeding.",
    )
    return parser.parse_args()


def main() -> None:
    """Seed demo data and print a short summary."""

    args = parse_args()
    user_id: str = args.user_id

    with SessionLocal() as db:
        if not args.no_reset:
            reset_merchant(db, user_id)

        page = db.scalars(
            select(Page).where(Page.platform == PLATFORM_FACEBOOK, Page.page_id == args.page_id)
        ).first()
        if page is None:
            page = Page(user_id=user_id, platform=PLATFORM_FACEBOOK, page_id=args.page_id, page_name="Demo Shop")
            db.add(page)
        page.page_access_token = args.access_token
        page.is_active = True
        db.commit()

        products = seed_catalog(db, user_id)
        db.add(AISettings(user_id=user_id, auto_reply=True, business_context="Demo clothing shop."))
        db.commit()
        agent = create_agent(
            db,
            user_id,
            AgentCreate(name="Sara", personality="friendly", page_ids=[page.id]),
        )

    print("Seed complete")
    print(f"user_id={user_id}")
    print(f"page_id={args.page_id}")
    print(f"products_created={len(products)}")
    print(f"agent_id={agent.id}")
    print()
    print("Inspect:")
    print(f"  GET /users/{user_id}/pages")
    print(f"  GET /users/{user_id}/agents")
    print(f"  POST /users/{user_id}/agents/{agent.id}/test")


if __name__ == "__main__":
    main()
