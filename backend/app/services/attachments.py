"""Inbound message attachment classification."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class AttachmentKind(str, Enum):
    """Closed set of attachment kinds decoded from messaging payloads."""

    IMAGE = "image"
    AUDIO = "audio"
    VIDEO = "video"
    FILE = "file"
    LOCATION = "location"
    FALLBACK = "fallback"
    OTHER = "other"


UNSUPPORTED_KINDS = frozenset(
    {
        AttachmentKind.AUDIO,
        AttachmentKind.VIDEO,
        AttachmentKind.FILE,
        AttachmentKind.LOCATION,
        AttachmentKind.FALLBACK,
    }
)

_UNSUPPORTED_LABELS: dict[str, str] = {
    AttachmentKind.AUDIO.value: "voice messages",
    AttachmentKind.VIDEO.value: "videos",
    AttachmentKind.FILE.value: "files",
    AttachmentKind.LOCATION.value: "locations",
    AttachmentKind.FALLBACK.value: "shared links",
}
_GENERIC_LABEL = "this type of message"


@dataclass(slots=True, frozen=True)
class Attachment:
    """One decoded attachment; ``type`` keeps the raw provider label."""

    kind: AttachmentKind
    type: str
    url: str | None = None


@dataclass(slots=True)
class ClassifiedMessage:
    """Text, images and storage attachment fields derived from one message."""

    text: str | None = None
    image_urls: list[str] = field(default_factory=list)
    unsupported_type: str | None = None
    attachment_type: str | None = None
    attachment_url: str | None = None
    attachments: list[Attachment] = field(default_factory=list)

    @property
    def has_text(self) -> bool:
        return bool(self.text)

    @property
    def is_empty(self) -> bool:
        return not self.text and not self.image_urls and self.attachment_type is None

    @property
    def is_unsupported_only(self) -> bool:
        return not self.text and not self.image_urls and self.unsupported_type is not None


def decode_attachment(raw: Any) -> Attachment | None:
    """Decode one raw attachment dict; entries without a type are ignored."""

    if not isinstance(raw, dict):
        return None
    raw_type = str(raw.get("type") or "").strip().lower()
    if not raw_type:
        return None
    try:
        kind = AttachmentKind(raw_type)
    except ValueError:
        kind = AttachmentKind.OTHER
    payload = raw.get("payload")
    url = payload.get("url") if isinstance(payload, dict) else None
    return Attachment(kind=kind, type=raw_type, url=str(url) if url else None)


def classify_message(message: dict[str, Any]) -> ClassifiedMessage:
    """Derive text, ordered image URLs and the storage attachment for a message."""

    text = message.get("text")
    text = text if isinstance(text, str) and text.strip() else None

    attachments = [
        attachment
        for attachment in (decode_attachment(raw) for raw in message.get("attachments") or [])
        if attachment is not None
    ]

    image_urls: list[str] = []
    unsupported_type: str | None = None
    for attachment in attachments:
        match attachment.kind:
            case AttachmentKind.IMAGE:
                if attachment.url:
                    image_urls.append(attachment.url)
            case kind if kind in UNSUPPORTED_KINDS:
                if unsupported_type is None:
                    unsupported_type = attachment.type
            case _:
                pass

    attachment_type: str | None = None
    attachment_url: str | None = None
    if image_urls:
        attachment_type, attachment_url = AttachmentKind.IMAGE.value, image_urls[0]
    elif unsupported_type is not None:
        first_unsupported = next(a for a in attachments if a.type == unsupported_type)
        attachment_type, attachment_url = unsupported_type, first_unsupported.url
    elif attachments:
        attachment_type, attachment_url = attachments[0].type, attachments[0].url

    return ClassifiedMessage(
        text=text,
        image_urls=image_urls,
        unsupported_type=unsupported_type,
        attachment_type=attachment_type,
        attachment_url=attachment_url,
        attachments=attachments,
    )


def unsupported_reply(unsupported_type: str | None) -> str:
    """Return the canned apology for an attachment type we cannot handle."""

    label = _UNSUPPORTED_LABELS.get((unsupported_type or "").lower(), _GENERIC_LABEL)
    return f"Sorry, I can't process {label} yet. Please send me a text message and I'll be happy to help! 😊"
