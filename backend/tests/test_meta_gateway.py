"""Unit tests for webhook verification and Graph API send requests."""

from __future__ import annotations

import hashlib
import hmac
import io
import json
import unittest
from unittest import mock
from urllib import error as urllib_error
from urllib import parse as urllib_parse

from app.services.meta import MetaGraphClient, MetaProviderError, verify_signature, verify_webhook_challenge


class _FakeResponse:
    def __init__(self, body: dict, status: int = 200) -> None:
        self.status = status
        self._raw = json.dumps(body).encode("utf-8")

    def read(self) -> bytes:
        return self._raw

    def __enter__(self) -> "_FakeResponse":
        return self

    def __exit__(self, *exc_info) -> None:  # noqa: ANN002
        return None


class WebhookVerificationTests(unittest.TestCase):
    def test_challenge_is_echoed_for_matching_subscribe(self) -> None:
        self.assertEqual(verify_webhook_challenge("subscribe", "secret", "12345", "secret"), "12345")

    def test_challenge_rejected_for_wrong_token_or_mode(self) -> None:
        self.assertIsNone(verify_webhook_challenge("subscribe", "nope", "12345", "secret"))
        self.assertIsNone(verify_webhook_challenge("unsubscribe", "secret", "12345", "secret"))

    def test_challenge_rejected_when_no_token_configured(self) -> None:
        self.assertIsNone(verify_webhook_challenge("subscribe", "", "12345", ""))
        self.assertIsNone(verify_webhook_challenge("subscribe", None, "12345", None))

    def test_signature_matches_raw_body(self) -> None:
        body = b'{"object":"page","entry":[]}'
        digest = hmac.new(b"app-secret", msg=body, digestmod=hashlib.sha256).hexdigest()

        self.assertTrue(verify_signature(body, f"sha256={digest}", "app-secret"))
        self.assertFalse(verify_signature(body + b" ", f"sha256={digest}", "app-secret"))
        self.assertFalse(verify_signature(body, f"sha256={digest}", "other-secret"))
        self.assertFalse(verify_signature(body, None, "app-secret"))


class MetaGraphClientTests(unittest.TestCase):
    def setUp(self) -> None:
        self.client = MetaGraphClient(
            facebook_base_url="https://graph.facebook.com/v18.0",
            instagram_base_url="https://graph.instagram.com/v21.0",
        )

    def test_facebook_request_uses_access_token_query(self) -> None:
        req = self.client.build_request("fb-token", "user-1", "hello", "facebook")

        parsed = urllib_parse.urlparse(req.full_url)
        self.assertEqual(parsed.netloc, "graph.facebook.com")
        self.assertEqual(parsed.path, "/v18.0/me/messages")
        self.assertEqual(urllib_parse.parse_qs(parsed.query), {"access_token": ["fb-token"]})
        self.assertIsNone(req.get_header("Authorization"))
        self.assertEqual(
            json.loads(req.data.decode("utf-8")),
            {"recipient": {"id": "user-1"}, "message": {"text": "hello"}},
        )

    def test_instagram_request_uses_bearer_header(self) -> None:
        req = self.client.build_request("ig-token", "user-2", "hi", "instagram")

        self.assertEqual(req.full_url, "https://graph.instagram.com/v21.0/me/messages")
        self.assertEqual(req.get_header("Authorization"), "Bearer ig-token")
        self.assertEqual(req.get_method(), "POST")

    def test_send_returns_provider_message_id(self) -> None:
        with mock.patch(
            "app.services.meta.urllib_request.urlopen",
            return_value=_FakeResponse({"recipient_id": "user-1", "message_id": "mid.abc"}),
        ):
            self.assertEqual(self.client.send_message("t", "user-1", "hello", "facebook"), "mid.abc")

    def test_non_success_status_raises(self) -> None:
        with mock.patch(
            "app.services.meta.urllib_request.urlopen",
            return_value=_FakeResponse({"error": "bad"}, status=500),
        ):
            with self.assertRaises(MetaProviderError):
                self.client.send_message("t", "user-1", "hello", "facebook")

    def test_http_error_raises_with_detail(self) -> None:
        http_error = urllib_error.HTTPError(
            url="https://graph.facebook.com/v18.0/me/messages",
            code=400,
            msg="Bad Request",
            hdrs=None,
            fp=io.BytesIO(b'{"error":{"message":"Invalid OAuth access token"}}'),
        )
        with mock.patch("app.services.meta.urllib_request.urlopen", side_effect=http_error):
            with self.assertRaises(MetaProviderError) as ctx:
                self.client.send_message("t", "user-1", "hello", "facebook")
        self.assertIn("Invalid OAuth access token", str(ctx.exception))

    def test_retries_with_backoff_before_giving_up(self) -> None:
        client = MetaGraphClient(max_attempts=3, backoff_seconds=0.5)
        failure = urllib_error.URLError("connection reset")
        with mock.patch("app.services.meta.urllib_request.urlopen", side_effect=failure) as urlopen, mock.patch(
            "app.services.meta.time.sleep"
        ) as sleep:
            with self.assertRaises(MetaProviderError):
                client.send_message("t", "user-1", "hello", "facebook")

        self.assertEqual(urlopen.call_count, 3)
        self.assertEqual([call.args[0] for call in sleep.call_args_list], [0.5, 1.0])


if __name__ == "__main__":
    unittest.main()
