"""Meta Graph API gateway for Facebook and Instagram messaging."""

from __future__ import annotations

import hashlib
import hmac
import json
import logging
import time
from dataclasses import dataclass
from typing import Protocol
from urllib import error as urllib_error
from urllib import parse as urllib_parse
from urllib import request as urllib_request

from app.config import get_settings
from app.models.page import PLATFORM_INSTAGRAM

logger = logging.getLogger(__name__)

SIGNATURE_PREFIX = "sha256="


class MetaProviderError(RuntimeError):
    """Raised when the Graph API rejects or fails a send request."""


class MessagingGateway(Protocol):
    """Protocol for outbound social messaging providers."""

    def send_message(
        self,
        page_access_token: str,
        recipient_id: str,
        text: str,
        platform: str,
    ) -> str | None:
        """Send a text message and return the provider message id, if any."""


def verify_webhook_challenge(
    mode: str | None,
    token: str | None,
    challenge: str | None,
    expected_token: str | None,
) -> str | None:
    """Return the challenge only for a matching subscribe handshake."""

    if not expected_token:
        return None
    if mode == "subscribe" and token == expected_token:
        return challenge
    return None


def verify_signature(payload: bytes, signature_header: str | None, app_secret: str) -> bool:
    """Check an `X-Hub-Signature-256` header against the raw request body."""

    if not signature_header:
        return False
    signature = signature_header
    if signature.startswith(SIGNATURE_PREFIX):
        signature = signature[len(SIGNATURE_PREFIX):]
    expected = hmac.new(app_secret.encode("utf-8"), msg=payload, digestmod=hashlib.sha256).hexdigest()
    return hmac.compare_digest(expected, signature)


@dataclass(slots=True)
class MetaGraphClient:
    """Graph API send-message client using stdlib HTTP.

    Facebook pages authenticate with an ``access_token`` query parameter while
    Instagram accounts use a bearer header against the Instagram graph host.
    """

    facebook_base_url: str = "https://graph.facebook.com/v18.0"
    instagram_base_url: str = "https://graph.instagram.com/v21.0"
    timeout_seconds: int = 15
    max_attempts: int = 1
    backoff_seconds: float = 0.5

    def send_message(
        self,
        page_access_token: str,
        recipient_id: str,
        text: str,
        platform: str,
    ) -> str | None:
        req = self.build_request(page_access_token, recipient_id, text, platform)
        attempts = max(1, int(self.max_attempts))
        for attempt in range(1, attempts + 1):
            try:
                return self._execute(req)
            except MetaProviderError:
                if attempt >= attempts:
                    raise
                delay = self.backoff_seconds * (2 ** (attempt - 1))
                logger.warning(
                    "meta.send_retry platform=%s recipient_id=%s attempt=%d delay_s=%.2f",
                    platform,
                    recipient_id,
                    attempt,
                    delay,
                )
                time.sleep(delay)
        return None

    def build_request(
        self,
        page_access_token: str,
        recipient_id: str,
        text: str,
        platform: str,
    ) -> urllib_request.Request:
        """Return the outbound request for the platform's auth convention."""

        body = json.dumps({"recipient": {"id": recipient_id}, "message": {"text": text}}).encode("utf-8")
        headers = {"Content-Type": "application/json"}
        if platform == PLATFORM_INSTAGRAM:
            url = f"{self.instagram_base_url.rstrip('/')}/me/messages"
            headers["Authorization"] = f"Bearer {page_access_token}"
        else:
            query = urllib_parse.urlencode({"access_token": page_access_token})
            url = f"{self.facebook_base_url.rstrip('/')}/me/messages?{query}"
        return urllib_request.Request(url=url, data=body, method="POST", headers=headers)

    def _execute(self, req: urllib_request.Request) -> str | None:
        try:
            with urllib_request.urlopen(req, timeout=self.timeout_seconds) as resp:
                status = getattr(resp, "status", 200)
                raw = resp.read().decode("utf-8")
        except urllib_error.HTTPError as exc:
            detail = exc.read().decode("utf-8", errors="replace")
            raise MetaProviderError(f"Meta HTTP {exc.code}: {detail}") from exc
        except urllib_error.URLError as exc:
            raise MetaProviderError(f"Meta request failed: {exc.reason}") from exc

        if status < 200 or status >= 300:
            raise MetaProviderError(f"Meta HTTP {status}: {raw}")
        try:
            decoded = json.loads(raw) if raw else {}
        except json.JSONDecodeError:
            return None
        message_id = decoded.get("message_id") if isinstance(decoded, dict) else None
        return str(message_id) if message_id else None


def get_default_gateway() -> MessagingGateway:
    """Return the configured Graph API client."""

    settings = get_settings()
    return MetaGraphClient(
        facebook_base_url=settings.facebook_graph_url,
        instagram_base_url=settings.instagram_graph_url,
        timeout_seconds=settings.meta_timeout_seconds,
        max_attempts=settings.meta_send_max_attempts,
        backoff_seconds=settings.meta_send_backoff_seconds,
    )
