"""HTTP-level tests for webhook and dashboard routes."""

from __future__ import annotations

import hashlib
import hmac
import json
import unittest
from decimal import Decimal
from unittest import mock

from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.config import Settings, get_settings
from app.db.dependencies import get_db
from app.main import app
from app.models.base import Base
from app.models.notification import Notification
from app.models.page import Page
from app.models.product import Product
from app.services.conversations import get_or_create_conversation
from app.services.meta import get_default_gateway


class _StubGateway:
    def __init__(self) -> None:
        self.calls: list[tuple[str, str, str, str]] = []

    def send_message(self, page_access_token: str, recipient_id: str, text: str, platform: str) -> str | None:
        self.calls.append((page_access_token, recipient_id, text, platform))
        return "mid.reply.1"


class HttpRoutesTests(unittest.TestCase):
    @classmethod
    def setUpClass(cls) -> None:
        cls.engine = create_engine(
            "sqlite+pysqlite:///:memory:",
            future=True,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
        cls.SessionLocal = sessionmaker(bind=cls.engine, autoflush=False, autocommit=False, future=True)
        Base.metadata.create_all(cls.engine)

    @classmethod
    def tearDownClass(cls) -> None:
        Base.metadata.drop_all(cls.engine)
        cls.engine.dispose()

    def setUp(self) -> None:
        with self.SessionLocal() as db:
            for table in reversed(Base.metadata.sorted_tables):
                db.execute(table.delete())
            db.commit()

        def _get_db():
            db = self.SessionLocal()
            try:
                yield db
            finally:
                db.close()

        self.settings = Settings(_env_file=None, meta_verify_token="verify-me", meta_app_secret="app-secret")
        self.gateway = _StubGateway()
        app.dependency_overrides[get_db] = _get_db
        app.dependency_overrides[get_settings] = lambda: self.settings
        app.dependency_overrides[get_default_gateway] = lambda: self.gateway
        self.client = TestClient(app)

    def tearDown(self) -> None:
        app.dependency_overrides.clear()

    def _seed_page(self) -> int:
        with self.SessionLocal() as db:
            page = Page(user_id="merchant-1", platform="facebook", page_id="pg-1", page_access_token="tok")
            db.add(page)
            db.commit()
            return page.id

    def _signed(self, body: bytes) -> dict[str, str]:
        digest = hmac.new(b"app-secret", msg=body, digestmod=hashlib.sha256).hexdigest()
        return {"X-Hub-Signature-256": f"sha256={digest}", "Content-Type": "application/json"}

    def test_verification_handshake(self) -> None:
        ok = self.client.get(
            "/webhooks/meta",
            params={"hub.mode": "subscribe", "hub.verify_token": "verify-me", "hub.challenge": "42"},
        )
        denied = self.client.get(
            "/webhooks/meta",
            params={"hub.mode": "subscribe", "hub.verify_token": "wrong", "hub.challenge": "42"},
        )

        self.assertEqual(ok.status_code, 200)
        self.assertEqual(ok.text, "42")
        self.assertEqual(denied.status_code, 403)

    def test_delivery_is_acknowledged_and_processed_in_background(self) -> None:
        body = json.dumps({"object": "page", "entry": []}).encode("utf-8")
        with mock.patch("app.routers.webhooks.process_webhook_payload") as process:
            response = self.client.post("/webhooks/meta", content=body, headers=self._signed(body))

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.text, "EVENT_RECEIVED")
        process.assert_called_once_with({"object": "page", "entry": []})

    def test_bad_signature_is_rejected(self) -> None:
        body = b'{"object":"page","entry":[]}'
        with mock.patch("app.routers.webhooks.process_webhook_payload") as process:
            response = self.client.post(
                "/webhooks/meta",
                content=body,
                headers={"X-Hub-Signature-256": "sha256=deadbeef"},
            )

        self.assertEqual(response.status_code, 403)
        process.assert_not_called()

    def test_invalid_json_is_still_acknowledged(self) -> None:
        body = b"not json"
        with mock.patch("app.routers.webhooks.process_webhook_payload") as process:
            response = self.client.post("/webhooks/meta", content=body, headers=self._signed(body))

        self.assertEqual(response.status_code, 200)
        process.assert_not_called()

    def test_agent_crud_and_page_conflict(self) -> None:
        page_id = self._seed_page()
        with self.SessionLocal() as db:
            db.add(Product(user_id="merchant-1", name="Tote", selling_price=Decimal("25.00")))
            db.commit()

        created = self.client.post("/users/merchant-1/agents", json={"name": "Sara", "page_ids": [page_id]})
        conflict = self.client.post("/users/merchant-1/agents", json={"name": "Omar", "page_ids": [page_id]})
        listed = self.client.get("/users/merchant-1/agents")

        self.assertEqual(created.status_code, 201)
        agent = created.json()["data"]
        self.assertEqual(agent["page_ids"], [page_id])
        self.assertEqual(conflict.status_code, 400)
        self.assertEqual([a["name"] for a in listed.json()["data"]], ["Sara"])

        updated = self.client.put(f"/users/merchant-1/agents/{agent['id']}", json={"personality": "casual"})
        self.assertEqual(updated.json()["data"]["personality"], "casual")
        self.assertEqual(self.client.get(f"/users/merchant-2/agents/{agent['id']}").status_code, 404)
        self.assertEqual(self.client.delete(f"/users/merchant-1/agents/{agent['id']}").status_code, 200)

    def test_manual_reply_and_history_listing(self) -> None:
        page_id = self._seed_page()
        with self.SessionLocal() as db:
            conversation_id = get_or_create_conversation(db, db.get(Page, page_id), "cust-1").id

        blank = self.client.post(f"/users/merchant-1/conversations/{conversation_id}/reply", json={"message": "  "})
        sent = self.client.post(
            f"/users/merchant-1/conversations/{conversation_id}/reply",
            json={"message": "Shipped today"},
        )
        history = self.client.get(f"/users/merchant-1/pages/{page_id}/messages", params={"type": "outgoing"})
        conversations = self.client.get(f"/users/merchant-1/pages/{page_id}/conversations")
        foreign = self.client.get(f"/users/merchant-2/pages/{page_id}/messages")

        self.assertEqual(blank.status_code, 400)
        self.assertEqual(sent.status_code, 200)
        self.assertEqual(sent.json()["data"]["message"]["message_id"], "mid.reply.1")
        self.assertEqual(self.gateway.calls, [("tok", "cust-1", "Shipped today", "facebook")])
        self.assertEqual([m["text"] for m in history.json()["data"]["items"]], ["Shipped today"])
        self.assertEqual(conversations.json()["data"]["total"], 1)
        self.assertEqual(foreign.status_code, 404)

    def test_disconnect_page_hides_it(self) -> None:
        page_id = self._seed_page()

        removed = self.client.delete(f"/users/merchant-1/pages/{page_id}")
        pages = self.client.get("/users/merchant-1/pages")

        self.assertEqual(removed.status_code, 200)
        self.assertTrue(removed.json()["success"])
        self.assertEqual(removed.json()["data"], {"success": True})
        self.assertEqual(pages.json()["data"], [])

    def test_settings_and_notifications(self) -> None:
        with self.SessionLocal() as db:
            db.add(Notification(user_id="merchant-1", type="order_confirmed", title="New order", message="m"))
            db.commit()

        defaults = self.client.get("/users/merchant-1/ai-settings")
        saved = self.client.put("/users/merchant-1/ai-settings", json={"auto_reply": False})
        notifications = self.client.get("/users/merchant-1/notifications")
        marked = self.client.post("/users/merchant-1/notifications/read-all")
        after = self.client.get("/users/merchant-1/notifications")

        self.assertTrue(defaults.json()["data"]["auto_reply"])
        self.assertFalse(saved.json()["data"]["auto_reply"])
        self.assertEqual(notifications.json()["data"]["unread"], 1)
        self.assertEqual(marked.json()["data"], {"updated": 1})
        self.assertEqual(after.json()["data"]["unread"], 0)


if __name__ == "__main__":
    unittest.main()
