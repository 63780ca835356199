"""Run a real model call through the agent prompt with an in-memory agent.

Usage (from repo root):
    python backend/scripts/smoke_agent_reply.py --model gpt-4o-mini

Usage (from backend/):
    python scripts/smoke_agent_reply.py
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

BACKEND_DIR = Path(__file__).resolve().parents[1]
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

from app.models.agent import Agent
from app.services.responder import generate_agent_response


def _demo_products() -> list[dict]:
    return [
        {
            "id": 1,
            "name": "Linen Shirt",
            "sku": "SHIRT-LIN",
            "description": "Breathable summer shirt.",
            "sellingPrice": 3500.0,
            "quantity": 13,
            "hasVariants": True,
            "variants": [
                {"name": "S", "sellingPrice": 3500.0, "quantity": 4},
                {"name": "M", "sellingPrice": 3500.0, "quantity": 7},
                {"name": "L", "sellingPrice": 3500.0, "quantity": 2},
            ],
            "imageUrl": None,
        }
    ]


def main() -> None:
    parser = argparse.ArgumentParser(description="Send one message through the agent prompt.")
    parser.add_argument("--model", default="gpt-4o-mini")
    parser.add_argument("--message", default="Hi, do you have the linen shirt in medium? How much is it?")
    args = parser.parse_args()

    agent = Agent(
        id=0,
        user_id="smoke",
        name="Sara",
        personality="friendly",
        ai_model=args.model,
        temperature=0.7,
        max_tokens=400,
    )
    reply = generate_agent_response(
        agent=agent,
        products=_demo_products(),
        history=[],
        user_message=args.message,
    )
    print(reply.text)
    if reply.order_confirmed:
        print("(order confirmed)")


if __name__ == "__main__":
    main()
