"""Unit tests for inbound attachment classification."""

from __future__ import annotations

import unittest

from app.services.attachments import AttachmentKind, classify_message, decode_attachment, unsupported_reply


class AttachmentClassifierTests(unittest.TestCase):
    def test_text_only_message(self) -> None:
        classified = classify_message({"mid": "m1", "text": "Do you ship abroad?"})

        self.assertEqual(classified.text, "Do you ship abroad?")
        self.assertEqual(classified.image_urls, [])
        self.assertIsNone(classified.attachment_type)
        self.assertFalse(classified.is_empty)
        self.assertFalse(classified.is_unsupported_only)

    def test_blank_text_without_attachments_is_empty(self) -> None:
        self.assertTrue(classify_message({"mid": "m1", "text": "   "}).is_empty)
        self.assertTrue(classify_message({"mid": "m1"}).is_empty)

    def test_images_keep_order_and_first_is_stored(self) -> None:
        classified = classify_message(
            {
                "attachments": [
                    {"type": "image", "payload": {"url": "https://cdn/a.jpg"}},
                    {"type": "video", "payload": {"url": "https://cdn/v.mp4"}},
                    {"type": "image", "payload": {"url": "https://cdn/b.jpg"}},
                ]
            }
        )

        self.assertEqual(classified.image_urls, ["https://cdn/a.jpg", "https://cdn/b.jpg"])
        self.assertEqual(classified.attachment_type, "image")
        self.assertEqual(classified.attachment_url, "https://cdn/a.jpg")
        self.assertEqual(classified.unsupported_type, "video")
        self.assertFalse(classified.is_unsupported_only)

    def test_first_unsupported_type_wins(self) -> None:
        classified = classify_message(
            {
                "attachments": [
                    {"type": "location", "payload": {"coordinates": {"lat": 1, "long": 2}}},
                    {"type": "audio", "payload": {"url": "https://cdn/a.mp4"}},
                ]
            }
        )

        self.assertEqual(classified.unsupported_type, "location")
        self.assertEqual(classified.attachment_type, "location")
        self.assertIsNone(classified.attachment_url)
        self.assertTrue(classified.is_unsupported_only)

    def test_text_with_unsupported_attachment_is_not_unsupported_only(self) -> None:
        classified = classify_message(
            {"text": "see attached", "attachments": [{"type": "file", "payload": {"url": "https://cdn/f.pdf"}}]}
        )

        self.assertFalse(classified.is_unsupported_only)
        self.assertEqual(classified.attachment_type, "file")

    def test_unknown_type_is_stored_but_not_unsupported(self) -> None:
        classified = classify_message({"attachments": [{"type": "sticker", "payload": {"url": "https://cdn/s.png"}}]})

        self.assertEqual(classified.attachments[0].kind, AttachmentKind.OTHER)
        self.assertEqual(classified.attachment_type, "sticker")
        self.assertIsNone(classified.unsupported_type)
        self.assertFalse(classified.is_empty)
        self.assertFalse(classified.is_unsupported_only)

    def test_decode_attachment_rejects_untyped_entries(self) -> None:
        self.assertIsNone(decode_attachment({"payload": {"url": "https://cdn/x"}}))
        self.assertIsNone(decode_attachment("image"))
        decoded = decode_attachment({"type": "IMAGE", "payload": {"url": "https://cdn/x.jpg"}})
        self.assertEqual(decoded.kind, AttachmentKind.IMAGE)
        self.assertEqual(decoded.url, "https://cdn/x.jpg")

    def test_unsupported_reply_labels(self) -> None:
        self.assertIn("voice messages", unsupported_reply("audio"))
        self.assertIn("shared links", unsupported_reply("fallback"))
        self.assertIn("this type of message", unsupported_reply("sticker"))
        self.assertIn("this type of message", unsupported_reply(None))
        self.assertEqual(
            unsupported_reply("file"),
            "Sorry, I can't process files yet. Please send me a text message and I'll be happy to help! 😊",
        )


if __name__ == "__main__":
    unittest.main()
