"""Parsing of client-supplied ``images`` / ``videos`` fields.

Clients send media as a single encoded string, a list of strings, a list of
already-uploaded descriptor objects, or the same list JSON-encoded in a form
field. Everything is turned into an ordered list of tagged items:

* ``PendingUpload``  - a raw payload (data URI, remote URL, ...) still to be
  pushed to the media store;
* ``MediaDescriptor`` - a reference to media already held by the store.

A string that looks like JSON but does not parse contributes no media at all;
it never aborts the request. A descriptor without an id or url does.
"""
import json
import logging
from dataclasses import dataclass

from app.core.errors import ValidationError

logger = logging.getLogger(__name__)

MEDIA_KINDS = ("image", "video")
INVALID_MEDIA_FORMAT = "invalid-media-format"


@dataclass(frozen=True)
class MediaDescriptor:
    external_id: str
    url: str
    kind: str = "image"

    def to_dict(self) -> dict:
        return {"external_id": self.external_id, "url": self.url, "kind": self.kind}

    @classmethod
    def from_dict(cls, data: dict) -> "MediaDescriptor":
        return cls(external_id=data["external_id"], url=data["url"], kind=data.get("kind", "image"))


@dataclass(frozen=True)
class PendingUpload:
    payload: str | bytes
    kind: str = "image"
    filename: str | None = None


MediaItem = MediaDescriptor | PendingUpload


def _invalid(kind: str) -> ValidationError:
    return ValidationError(f"Invalid {kind} data format", kind=INVALID_MEDIA_FORMAT)


def normalize_media(value, kind: str = "image") -> list[MediaItem]:
    if value is None:
        return []
    if isinstance(value, str):
        return _from_string(value, kind)
    if isinstance(value, (list, tuple)):
        return [_from_item(item, kind) for item in value]
    if isinstance(value, dict):
        return [_from_item(value, kind)]
    raise _invalid(kind)


def _from_string(value: str, kind: str) -> list[MediaItem]:
    text = value.strip()
    if not text:
        return []

    try:
        parsed = json.loads(text)
    except ValueError:
        if text[0] in "[{":
            logger.debug("Dropping unparseable %s field (%d chars)", kind, len(text))
            return []
        return [PendingUpload(payload=text, kind=kind)]

    if isinstance(parsed, list):
        return [_from_item(item, kind) for item in parsed]
    if isinstance(parsed, dict):
        return [_from_item(parsed, kind)]
    if isinstance(parsed, str):
        return _from_string(parsed, kind) if parsed.strip() else []
    return [PendingUpload(payload=text, kind=kind)]


def _from_item(item, kind: str) -> MediaItem:
    if isinstance(item, str):
        if not item.strip():
            raise _invalid(kind)
        return PendingUpload(payload=item.strip(), kind=kind)

    if not isinstance(item, dict):
        raise _invalid(kind)

    external_id = item.get("external_id") or item.get("public_id")
    url = item.get("url")
    if not isinstance(external_id, str) or not external_id or not isinstance(url, str) or not url:
        raise _invalid(kind)

    item_kind = item.get("kind") or item.get("resource_type") or kind
    if item_kind not in MEDIA_KINDS:
        raise _invalid(kind)
    return MediaDescriptor(external_id=external_id, url=url, kind=item_kind)


def descriptors_of(media: list[dict] | None) -> list[MediaDescriptor]:
    return [MediaDescriptor.from_dict(m) for m in media or []]
